"""
Post-payment fan-out for ``checkout.session.completed``.

Runs after the Stripe signature has been verified. Every step is
best-effort: a failing collaborator is logged and the next step still runs,
so Stripe always gets a 200 and never retries a paid session.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime

from app.errors import CollaboratorError, StorageError
from app.models.folder_mapping import FolderMapping
from app.services import google_drive, monday, notifications, payments, pdf, registration_links
from app.services.pricing import GOVERNMENT_FEE, calculate_service_fee, calculate_total_price
from app.stores.folder_mappings import FolderMappingStore
from app.stores.signatures import SignatureStore

log = logging.getLogger("uvicorn.error")


@dataclass
class WebhookOutcome:
    session_id: str
    folder_id: str = ""
    folder_link: str = ""
    contract_link: str = ""
    steps_failed: list[str] = field(default_factory=list)


def _long_date(now: datetime) -> str:
    return f"{now.strftime('%B')} {now.day}, {now.year}"


def handle_checkout_completed(
    session: dict,
    signatures: SignatureStore,
    mappings: FolderMappingStore,
    now: datetime | None = None,
) -> WebhookOutcome:
    now = now or datetime.now()
    stamp = int(time.time() * 1000)
    session_id = session.get("id") or ""
    meta = session.get("metadata") or {}
    first_name = meta.get("firstName", "")
    last_name = meta.get("lastName", "")
    email = meta.get("email") or session.get("customer_email") or ""
    phone = meta.get("phone", "")
    marital_status = meta.get("maritalStatus", "")
    signature_id = meta.get("signatureId") or session.get("client_reference_id") or ""
    amount = meta.get("amount") or f"{calculate_total_price(marital_status):.2f}"
    outcome = WebhookOutcome(session_id=session_id)

    log.info("[Webhook] Processing payment %s for %s %s", session_id, first_name, last_name)

    def _failed(step: str, e: Exception) -> None:
        outcome.steps_failed.append(step)
        log.error("[Webhook] %s failed for session %s: %s", step, session_id, e)

    signature = None
    try:
        signature = signatures.get(signature_id) if signature_id else None
    except StorageError as e:
        _failed("signature_read", e)
    if not signature:
        log.warning("[Webhook] Signature not found for signatureId=%s", signature_id)

    contract_pdf = None
    try:
        contract_pdf = pdf.generate_contract_pdf(
            pdf.ContractData(
                first_name=first_name,
                last_name=last_name,
                email=email,
                phone=phone,
                marital_status=marital_status,
                amount=amount,
                signature=signature or "",
                date=_long_date(now),
            )
        )
    except Exception as e:
        _failed("contract_pdf", e)

    folder_name = google_drive.client_folder_name(first_name, last_name, phone)
    if contract_pdf is not None:
        try:
            upload = google_drive.create_folder_and_upload(
                folder_name, f"Contract_{first_name}_{last_name}_{stamp}.pdf", contract_pdf
            )
            outcome.folder_id = upload.folder_id
            outcome.folder_link = upload.folder_link
            outcome.contract_link = upload.file_link
        except CollaboratorError as e:
            _failed("drive_contract", e)

    if outcome.folder_id:
        try:
            mappings.save(
                FolderMapping(
                    email=email,
                    folder_id=outcome.folder_id,
                    folder_name=folder_name,
                    first_name=first_name,
                    last_name=last_name,
                    phone=phone,
                    payment_session_id=session_id,
                )
            )
        except StorageError as e:
            _failed("folder_mapping", e)

    receipt_pdf = None
    try:
        details = payments.retrieve_payment_details(session.get("payment_intent"))
        receipt_pdf = pdf.generate_payment_receipt_pdf(
            pdf.ReceiptData(
                receipt_number=session_id[-10:].upper(),
                first_name=first_name,
                last_name=last_name,
                email=email,
                phone=phone,
                marital_status=marital_status,
                service_fee=str(calculate_service_fee(marital_status)),
                government_fee=str(GOVERNMENT_FEE),
                total_amount=amount,
                payment_date=_long_date(now),
                payment_method=details.payment_method,
                stripe_receipt_url=details.receipt_url,
            )
        )
        if outcome.folder_id:
            google_drive.upload_file(outcome.folder_id, f"Receipt_{first_name}_{last_name}_{stamp}.pdf", receipt_pdf)
    except Exception as e:
        _failed("receipt", e)

    if signature and outcome.folder_id:
        png = pdf.decode_signature_image(signature)
        if png:
            try:
                google_drive.upload_file(
                    outcome.folder_id, f"Signature_{first_name}_{last_name}_{stamp}.png", png, "image/png"
                )
            except CollaboratorError as e:
                _failed("drive_signature", e)

    try:
        monday.create_monday_item(
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=phone,
            marital_status=marital_status,
            amount=amount,
            drive_link=outcome.contract_link,
        )
    except CollaboratorError as e:
        _failed("monday", e)

    token = registration_links.create_registration_token(first_name, last_name, email, phone, marital_status)
    attachments = []
    if contract_pdf:
        attachments.append(notifications.EmailAttachment(f"Contract_{first_name}_{last_name}.pdf", contract_pdf))
    if receipt_pdf:
        attachments.append(notifications.EmailAttachment(f"Receipt_{first_name}_{last_name}.pdf", receipt_pdf))
    if not notifications.send_welcome_email(
        email,
        first_name,
        last_name,
        registration_form_link=registration_links.registration_form_link(token),
        drive_link=outcome.folder_link or outcome.contract_link or None,
        attachments=attachments,
    ):
        outcome.steps_failed.append("welcome_email")

    if signature_id:
        try:
            signatures.delete(signature_id)
        except StorageError as e:
            _failed("signature_delete", e)

    log.info(
        "[Webhook] Processed payment %s for %s %s (failed steps: %s)",
        session_id,
        first_name,
        last_name,
        ", ".join(outcome.steps_failed) or "none",
    )
    return outcome
