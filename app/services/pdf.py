"""Contract, payment receipt and registration PDFs (reportlab)."""
from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass, field
from io import BytesIO

from reportlab.lib.enums import TA_JUSTIFY
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.lib.utils import ImageReader
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer

from app.schemas.registration import ApplicantInfo, ChildInfo, SpouseInfo
from app.services.documents import DocumentsUploaded
from app.services.pricing import format_marital_status

log = logging.getLogger("uvicorn.error")

FIRM_NAME = "DRSI Law"

CONTRACT_TERMS = """This Service Agreement is entered into by and between DRSI Law and the Client.

The Service Provider agrees to provide immigration lottery registration services, including the preparation and submission of all necessary documentation for the Diversity Visa (DV) Lottery program.

The Client agrees to pay the Service Provider the total amount stated above. This fee includes professional consultation, application preparation, and government filing fees.

Payment is due in full before the submission of the application. All fees are non-refundable once the application has been submitted to the appropriate government agency.

The Service Provider makes no guarantee regarding the outcome of the lottery registration. Selection is determined solely by the U.S. government through a random lottery process.

The Service Provider agrees to maintain the confidentiality of all Client information and will not disclose such information to third parties without the Client's consent, except as required by law.

By signing below, the Client acknowledges that they have read, understood, and agree to be bound by the terms and conditions of this Agreement."""

_DATA_URL_PREFIX = re.compile(r"^data:image/\w+;base64,")


@dataclass
class ContractData:
    first_name: str
    last_name: str
    email: str
    phone: str
    marital_status: str
    amount: str
    signature: str
    date: str


@dataclass
class ReceiptData:
    receipt_number: str
    first_name: str
    last_name: str
    email: str
    phone: str
    marital_status: str
    service_fee: str
    government_fee: str
    total_amount: str
    payment_date: str
    payment_method: str = "Credit Card"
    stripe_receipt_url: str = ""


@dataclass
class RegistrationData:
    registration_id: str
    submitted_at: str
    applicant_info: ApplicantInfo
    marital_status: str
    spouse_info: SpouseInfo | None = None
    children: list[ChildInfo] = field(default_factory=list)
    documents_uploaded: DocumentsUploaded = field(default_factory=DocumentsUploaded)


def decode_signature_image(signature: str) -> bytes | None:
    """Signature data URL ("data:image/png;base64,...") -> PNG bytes. None if not decodable."""
    if not signature:
        return None
    try:
        return base64.b64decode(_DATA_URL_PREFIX.sub("", signature.strip()), validate=True)
    except (binascii.Error, ValueError):
        return None


def _escape_for_reportlab(s: str) -> str:
    """Escape text for ReportLab Paragraph (XML-like markup)."""
    return (
        str(s)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
    )


class _Story:
    """Small builder over platypus flowables shared by the three documents."""

    def __init__(self, title: str, subtitle: str | None = None):
        styles = getSampleStyleSheet()
        self.title_style = styles["Title"]
        self.heading_style = styles["Heading3"]
        self.body_style = styles["Normal"].clone("JustifiedBody", alignment=TA_JUSTIFY, spaceAfter=6)
        self.small_style = styles["Normal"].clone("Small", fontSize=8, leading=10)
        self.flowables: list = [Paragraph(_escape_for_reportlab(title), self.title_style)]
        if subtitle:
            self.flowables.append(Paragraph(_escape_for_reportlab(subtitle), styles["Heading2"]))
        self.flowables.append(Spacer(1, 0.2 * inch))

    def heading(self, text: str) -> None:
        self.flowables.append(Paragraph(_escape_for_reportlab(text), self.heading_style))

    def field(self, label: str, value: str | None) -> None:
        self.flowables.append(
            Paragraph(f"<b>{_escape_for_reportlab(label)}:</b> {_escape_for_reportlab(value or 'N/A')}", self.body_style)
        )

    def text(self, content: str) -> None:
        for line in content.splitlines():
            line = line.strip()
            if line:
                self.flowables.append(Paragraph(_escape_for_reportlab(line), self.body_style))
            else:
                self.flowables.append(Spacer(1, 0.12 * inch))

    def note(self, text: str) -> None:
        self.flowables.append(Paragraph(_escape_for_reportlab(text), self.small_style))

    def spacer(self, height: float = 0.15) -> None:
        self.flowables.append(Spacer(1, height * inch))

    def image(self, data: bytes, width: float, height: float) -> None:
        ImageReader(BytesIO(data))  # raises on undecodable image data
        self.flowables.append(Image(BytesIO(data), width=width * inch, height=height * inch, hAlign="LEFT"))

    def build(self) -> bytes:
        buf = BytesIO()
        doc = SimpleDocTemplate(
            buf,
            pagesize=letter,
            leftMargin=0.75 * inch,
            rightMargin=0.75 * inch,
            topMargin=0.75 * inch,
            bottomMargin=0.75 * inch,
        )
        doc.build(self.flowables)
        return buf.getvalue()


def generate_contract_pdf(data: ContractData) -> bytes:
    story = _Story(FIRM_NAME, "Service Agreement")

    story.heading("Client Information")
    story.field("Name", f"{data.first_name} {data.last_name}")
    story.field("Email", data.email)
    story.field("Phone", data.phone)
    story.field("Marital Status", format_marital_status(data.marital_status))

    story.heading("Agreement Details")
    story.field("Total Amount", f"${data.amount}")
    story.field("Date", data.date)

    story.heading("Terms and Conditions")
    story.text(CONTRACT_TERMS)

    if data.signature:
        story.heading("Client Signature")
        png = decode_signature_image(data.signature)
        try:
            if png is None:
                raise ValueError("signature is not a base64 image")
            story.image(png, width=2.5, height=0.85)
        except Exception as e:
            log.warning("[PDF] Could not embed signature image: %s", e)
            story.text("[Signature on file]")

    return story.build()


def generate_payment_receipt_pdf(data: ReceiptData) -> bytes:
    story = _Story(FIRM_NAME, "Payment Receipt")

    story.field("Receipt Number", data.receipt_number)
    story.field("Payment Date", data.payment_date)
    story.field("Payment Method", data.payment_method)

    story.heading("Billed To")
    story.field("Name", f"{data.first_name} {data.last_name}")
    story.field("Email", data.email)
    story.field("Phone", data.phone)
    story.field("Marital Status", format_marital_status(data.marital_status))

    story.heading("Payment Details")
    story.field("DV Lottery Registration Service", f"${data.service_fee}")
    story.field("Government Processing Fee", f"${data.government_fee}")
    story.field("Total Paid", f"${data.total_amount}")

    if data.stripe_receipt_url:
        story.spacer()
        story.field("Card receipt", data.stripe_receipt_url)

    story.spacer(0.3)
    story.note("Thank you for your payment. Please keep this receipt for your records.")
    return story.build()


def _person_section(story: _Story, prefix: str, dob: str, gender: str, city: str, country: str, education: str) -> None:
    story.field(f"{prefix}Date of Birth", dob)
    story.field(f"{prefix}Gender", gender.capitalize() if gender else "N/A")
    story.field(f"{prefix}City of Birth", city)
    story.field(f"{prefix}Country of Birth", country)
    story.field(f"{prefix}Education Level", education.replace("_", " ").title() if education else "N/A")


def generate_registration_pdf(data: RegistrationData) -> bytes:
    a = data.applicant_info
    story = _Story(f"{FIRM_NAME} - DV Lottery Registration", f"Registration ID: {data.registration_id}")
    story.field("Submitted", data.submitted_at)

    story.heading("Applicant Information")
    story.field("Full Name", f"{a.first_name} {a.last_name}")
    story.field("Email", a.email)
    story.field("Phone", a.phone)
    _person_section(story, "", a.date_of_birth.display(), a.gender, a.city_of_birth, a.country_of_birth, a.education_level)
    story.field("Mailing Address", a.mailing_address)
    story.field("Current Residence", a.current_residence.display())

    story.heading("Marital Status")
    story.field("Status", format_marital_status(data.marital_status))

    if data.spouse_info and data.marital_status == "married":
        s = data.spouse_info
        story.heading("Spouse Information")
        story.field("Full Name", s.full_name)
        _person_section(story, "", s.date_of_birth.display(), s.gender, s.city_of_birth, s.country_of_birth, s.education_level)
        story.field("US Citizen / LPR", "Yes" if s.is_us_citizen_or_lpr else "No")

    story.heading(f"Children ({len(data.children)})")
    if not data.children:
        story.text("No children listed.")
    for i, child in enumerate(data.children, start=1):
        story.field(f"Child {i}", child.full_name)
        story.field("Date of Birth", child.date_of_birth.display())
        story.field("Gender", child.gender.capitalize() if child.gender else "N/A")
        story.field("Birth Place", child.birth_place)
        story.field("US Citizen / LPR", "Yes" if child.is_us_citizen_or_lpr else "No")

    story.heading("Documents Uploaded")
    docs = data.documents_uploaded
    story.field("Applicant", ", ".join(docs.applicant) or "None")
    if data.marital_status == "married":
        story.field("Spouse", ", ".join(docs.spouse) or "None")
    names = {c.id: c.full_name for c in data.children}
    for child_id, labels in docs.children.items():
        story.field(f"Child: {names.get(child_id, child_id)}", ", ".join(labels) or "None")

    story.spacer(0.3)
    story.note("This document was generated automatically from the online registration form.")
    return story.build()
