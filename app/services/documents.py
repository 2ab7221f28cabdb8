"""Collect uploaded identity documents from the final-submit form into Drive-ready files."""
from __future__ import annotations

import re
from dataclasses import dataclass, field

from app.schemas.registration import ChildInfo


@dataclass(frozen=True)
class UploadedFile:
    """A multipart file already read into memory."""
    filename: str
    content_type: str
    data: bytes


@dataclass(frozen=True)
class DocumentFile:
    name: str
    data: bytes
    mime_type: str


@dataclass
class DocumentsUploaded:
    """Labels of the documents received, per person (rendered in the registration PDF)."""
    applicant: list[str] = field(default_factory=list)
    spouse: list[str] = field(default_factory=list)
    children: dict[str, list[str]] = field(default_factory=dict)


# (form field suffix, label, uploaded file name stem)
APPLICANT_FIELDS = [
    ("photo", "Passport Photo", "Applicant_Photo"),
    ("passport", "Passport Copy", "Applicant_Passport"),
    ("education", "Education Certificate", "Applicant_Education"),
]
SPOUSE_FIELDS = [
    ("photo", "Passport Photo", "Spouse_Photo"),
    ("passport", "Passport Copy", "Spouse_Passport"),
    ("education", "Education Certificate", "Spouse_Education"),
    ("marriage_cert", "Marriage Certificate", "Marriage_Certificate"),
]
CHILD_FIELDS = [
    ("photo", "Passport Photo", "Photo"),
    ("passport", "Passport Copy", "Passport"),
    ("birth_cert", "Birth Certificate", "BirthCert"),
]


def _extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1] if "." in filename else "bin"


def _file_name(stem: str, upload: UploadedFile, timestamp: int) -> str:
    return f"{stem}_{timestamp}.{_extension(upload.filename)}"


def collect_documents(
    files: dict[str, UploadedFile],
    marital_status: str,
    children: list[ChildInfo],
    timestamp: int,
) -> tuple[list[DocumentFile], DocumentsUploaded]:
    """
    Spouse documents count only for ``married``; child documents only for
    children who are not US citizens / LPRs. Unknown form fields are ignored.
    """
    out: list[DocumentFile] = []
    summary = DocumentsUploaded()

    def _take(field_name: str, label: str, stem: str, labels: list[str]) -> None:
        upload = files.get(field_name)
        if upload is None:
            return
        labels.append(label)
        out.append(
            DocumentFile(
                name=_file_name(stem, upload, timestamp),
                data=upload.data,
                mime_type=upload.content_type or "application/octet-stream",
            )
        )

    for suffix, label, stem in APPLICANT_FIELDS:
        _take(f"applicant_{suffix}", label, stem, summary.applicant)

    if marital_status == "married":
        for suffix, label, stem in SPOUSE_FIELDS:
            _take(f"spouse_{suffix}", label, stem, summary.spouse)

    for child in children:
        if child.is_us_citizen_or_lpr:
            continue
        labels: list[str] = []
        child_name = re.sub(r"\s+", "_", child.full_name.strip()) or child.id
        for suffix, label, stem in CHILD_FIELDS:
            _take(f"child_{child.id}_{suffix}", label, f"Child_{child_name}_{stem}", labels)
        summary.children[child.id] = labels

    return out, summary
