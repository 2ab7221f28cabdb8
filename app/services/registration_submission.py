"""
Final registration submit.

Order is fixed: spend the submission token, render the registration PDF,
resolve the client's Drive folder, upload the PDF and documents, mark the
folder mapping submitted, then email the client and the admin. Once the
token is spent the submission is accepted; later failures are logged only.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime

from app.errors import CollaboratorError, InvalidOrConsumedToken, StorageError, ValidationError
from app.models.registration import RegistrationRecord
from app.schemas.registration import ApplicantInfo, ChildInfo, SpouseInfo
from app.services import google_drive, notifications, pdf
from app.services.documents import UploadedFile, collect_documents
from app.services.submission_tokens import SubmissionTokenService
from app.stores.folder_mappings import FolderMappingStore

log = logging.getLogger("uvicorn.error")


@dataclass
class SubmissionRequest:
    applicant: ApplicantInfo
    marital_status: str
    submission_token: str
    spouse: SpouseInfo | None = None
    children: list[ChildInfo] = field(default_factory=list)
    files: dict[str, UploadedFile] = field(default_factory=dict)


@dataclass
class SubmissionResult:
    registration_id: str
    folder_link: str = ""
    steps_failed: list[str] = field(default_factory=list)


def submit_registration(
    req: SubmissionRequest,
    tokens: SubmissionTokenService,
    mappings: FolderMappingStore,
) -> SubmissionResult:
    """
    Raises ValidationError when applicant identity or the token is missing and
    InvalidOrConsumedToken when the token cannot be spent. StorageError escapes
    only from consumption itself; after that every failure lands in
    ``steps_failed``.
    """
    a = req.applicant
    if not a.has_identity():
        raise ValidationError("Missing required applicant information")
    if not (req.submission_token or "").strip():
        raise ValidationError("Invalid submission. Please refresh and try again.")

    record = tokens.consume(req.submission_token, a.email, a.phone)
    if record is None:
        raise InvalidOrConsumedToken("This form has already been submitted or the submission token is invalid.")

    result = SubmissionResult(registration_id=record.registration_id)
    timestamp = int(time.time() * 1000)
    log.info("[Submit] Token consumed for %s; registration %s", a.email, record.registration_id)

    def _failed(step: str, e: Exception) -> None:
        result.steps_failed.append(step)
        log.error("[Submit] %s failed for %s: %s", step, record.registration_id, e)

    documents, summary = collect_documents(req.files, req.marital_status, req.children, timestamp)

    registration_pdf = None
    try:
        registration_pdf = pdf.generate_registration_pdf(
            pdf.RegistrationData(
                registration_id=record.registration_id,
                submitted_at=datetime.now().strftime("%Y-%m-%d %H:%M"),
                applicant_info=a,
                marital_status=req.marital_status,
                spouse_info=req.spouse,
                children=req.children,
                documents_uploaded=summary,
            )
        )
    except Exception as e:
        _failed("registration_pdf", e)

    folder_id = ""
    try:
        folder = google_drive.find_or_create_client_folder(mappings, a.first_name, a.last_name, a.email, a.phone)
        folder_id, result.folder_link = folder.folder_id, folder.folder_link
        log.info("[Submit] %s folder %s", "Using existing" if folder.is_existing else "Created new", folder_id)
    except (CollaboratorError, StorageError) as e:
        _failed("drive_folder", e)

    if folder_id:
        try:
            _attach_folder(tokens, record, folder_id)
        except StorageError as e:
            _failed("attach_folder", e)

    if folder_id:
        if registration_pdf:
            try:
                google_drive.upload_file(
                    folder_id, f"Registration_{a.first_name}_{a.last_name}_{timestamp}.pdf", registration_pdf
                )
            except CollaboratorError as e:
                _failed("drive_registration_pdf", e)
        try:
            google_drive.upload_multiple_files(folder_id, documents)
        except CollaboratorError as e:
            _failed("drive_documents", e)

    try:
        mappings.mark_registration_submitted(a.email)
    except StorageError as e:
        _failed("mark_submitted", e)

    if not notifications.send_registration_email_to_client(
        a.email, a.first_name, a.last_name, record.registration_id, registration_pdf
    ):
        result.steps_failed.append("client_email")
    if not notifications.send_registration_email_to_admin(
        first_name=a.first_name,
        last_name=a.last_name,
        email=a.email,
        phone=a.phone,
        registration_id=record.registration_id,
        marital_status=req.marital_status,
        number_of_children=len(req.children),
        registration_pdf=registration_pdf,
        drive_link=result.folder_link or None,
    ):
        result.steps_failed.append("admin_email")

    log.info("[Submit] Registration %s completed", record.registration_id)
    return result


def _attach_folder(tokens: SubmissionTokenService, record: RegistrationRecord, folder_id: str) -> None:
    tokens.store.upsert(record.model_copy(update={"folder_id": folder_id}))
