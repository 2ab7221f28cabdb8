"""Email notifications (Mailgun, SendGrid or SMTP) for the payment and registration wizards."""
import base64
import logging
import smtplib
from dataclasses import dataclass
from datetime import datetime
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape

import httpx
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Attachment, Disposition, FileContent, FileName, FileType, Mail

from app.config import get_settings

log = logging.getLogger("uvicorn.error")

MAILGUN_US_BASE = "https://api.mailgun.net"
MAILGUN_EU_BASE = "https://api.eu.mailgun.net"

CONTACT_LINE = "office@drsi-law.com | WhatsApp: +972 58-764-4252"


@dataclass(frozen=True)
class EmailAttachment:
    filename: str
    content: bytes
    content_type: str = "application/pdf"


def send_email(
    to_email: str,
    subject: str,
    html_content: str,
    text_content: str | None = None,
    attachments: list[EmailAttachment] | None = None,
) -> bool:
    """Send via Mailgun (preferred), SendGrid, then SMTP. Returns False (never raises) when nothing sent."""
    settings = get_settings()
    attachments = attachments or []
    if settings.mailgun_api_key and settings.mailgun_domain:
        log.info("[Email] Mailgun: to=%s subject=%s domain=%s", to_email, subject, settings.mailgun_domain)
        return _send_email_mailgun(to_email, subject, html_content, text_content, attachments, settings)
    if settings.sendgrid_api_key:
        return _send_email_sendgrid(to_email, subject, html_content, text_content, attachments, settings)
    if settings.smtp_host and settings.smtp_user and settings.smtp_password:
        return _send_email_smtp(to_email, subject, html_content, text_content, attachments, settings)
    log.warning(
        "[Email] NOT SENT: to=%s subject=%s. No email provider configured "
        "(MAILGUN_API_KEY/MAILGUN_DOMAIN, SENDGRID_API_KEY or SMTP_HOST/SMTP_USER/SMTP_PASSWORD).",
        to_email,
        subject,
    )
    return False


def _send_email_mailgun(to_email, subject, html_content, text_content, attachments, settings) -> bool:
    base = (settings.mailgun_base_url or MAILGUN_US_BASE).rstrip("/")
    domain = settings.mailgun_domain.lower()
    from_addr = settings.mailgun_from_email
    from_domain = from_addr.split("@")[-1].lower() if "@" in from_addr else ""
    if from_domain != domain:
        from_addr = f"noreply@{domain}"
    data = {
        "from": f"{settings.mailgun_from_name} <{from_addr}>",
        "to": to_email,
        "subject": subject,
        "text": text_content or "",
        "html": html_content or "",
    }
    files = [("attachment", (a.filename, a.content, a.content_type)) for a in attachments]
    try:
        with httpx.Client(timeout=30.0) as client:
            r = client.post(f"{base}/v3/{domain}/messages", auth=("api", settings.mailgun_api_key), data=data, files=files or None)
            if r.status_code == 401 and base == MAILGUN_US_BASE:
                log.info("[Mailgun] 401 with US endpoint. Retrying with EU endpoint...")
                r = client.post(
                    f"{MAILGUN_EU_BASE}/v3/{domain}/messages",
                    auth=("api", settings.mailgun_api_key),
                    data=data,
                    files=files or None,
                )
    except httpx.HTTPError as e:
        log.error("[Mailgun] Exception: to=%s error=%s: %s", to_email, type(e).__name__, e)
        return False
    if 200 <= r.status_code < 300:
        log.info("[Mailgun] Sent: to=%s status=%s", to_email, r.status_code)
        return True
    log.error("[Mailgun] API failed: status=%s to=%s body=%s", r.status_code, to_email, r.text[:500])
    return False


def _send_email_sendgrid(to_email, subject, html_content, text_content, attachments, settings) -> bool:
    message = Mail(
        from_email=(settings.sendgrid_from_email, settings.sendgrid_from_name),
        to_emails=to_email,
        subject=subject,
        html_content=html_content,
        plain_text_content=text_content or "",
    )
    for a in attachments:
        message.add_attachment(
            Attachment(
                FileContent(base64.b64encode(a.content).decode("ascii")),
                FileName(a.filename),
                FileType(a.content_type),
                Disposition("attachment"),
            )
        )
    try:
        SendGridAPIClient(settings.sendgrid_api_key).send(message)
    except Exception as e:
        log.error("[SendGrid] Failed: to=%s error=%s: %s", to_email, type(e).__name__, e)
        return False
    log.info("[SendGrid] Sent: to=%s", to_email)
    return True


def _send_email_smtp(to_email, subject, html_content, text_content, attachments, settings) -> bool:
    msg = MIMEMultipart("mixed")
    msg["From"] = f'"{settings.from_name}" <{settings.from_email or settings.smtp_user}>'
    msg["To"] = to_email
    msg["Subject"] = subject
    body = MIMEMultipart("alternative")
    if text_content:
        body.attach(MIMEText(text_content, "plain"))
    body.attach(MIMEText(html_content, "html"))
    msg.attach(body)
    for a in attachments:
        subtype = a.content_type.split("/", 1)[-1]
        part = MIMEApplication(a.content, _subtype=subtype)
        part.add_header("Content-Disposition", "attachment", filename=a.filename)
        msg.attach(part)
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as server:
            server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        log.error("[SMTP] Failed: to=%s error=%s: %s", to_email, type(e).__name__, e)
        return False
    log.info("[SMTP] Sent: to=%s", to_email)
    return True


def _wrap(title: str, body: str, to_email: str) -> str:
    return f"""
    <div style="font-family:Arial,sans-serif;line-height:1.6;color:#333;max-width:600px;margin:0 auto;">
      <div style="background:#B02828;color:#fff;padding:24px;text-align:center;border-radius:8px 8px 0 0;">
        <h1 style="margin:0;">{escape(title)}</h1>
      </div>
      <div style="background:#f9f9f9;padding:24px;border-radius:0 0 8px 8px;">
        {body}
        <p>Best regards,<br><strong>The DRSI Law Team</strong></p>
      </div>
      <p style="text-align:center;color:#666;font-size:12px;">
        {CONTACT_LINE}<br>This email was sent to {escape(to_email)}
      </p>
    </div>
    """


def _button(href: str, label: str) -> str:
    return (
        f'<p style="text-align:center;"><a href="{escape(href, quote=True)}" '
        f'style="display:inline-block;background:#B02828;color:#fff;padding:12px 30px;'
        f'text-decoration:none;border-radius:5px;">{escape(label)}</a></p>'
    )


def send_contract_email(
    to_email: str,
    first_name: str,
    last_name: str,
    amount: str,
    drive_link: str | None = None,
    contract_pdf: bytes | None = None,
) -> bool:
    """Contract-saved confirmation sent right after the client signs (signed PDF attached when given)."""
    name = escape(f"{first_name} {last_name}")
    today = datetime.now().strftime("%Y-%m-%d")
    folder = _button(drive_link, "View Your Contract Folder") if drive_link else ""
    html = _wrap(
        "Contract Saved Successfully!",
        f"""
        <h2>Dear {name},</h2>
        <p>Your contract has been signed and saved successfully.</p>
        <p><strong>Name:</strong> {name}<br>
           <strong>Email:</strong> {escape(to_email)}<br>
           <strong>Total Amount:</strong> ${escape(amount)}<br>
           <strong>Date:</strong> {today}</p>
        {folder}
        <p><strong>Next Steps:</strong></p>
        <ol>
          <li>Complete the payment on the next page</li>
          <li>After payment, you'll receive a confirmation email</li>
          <li>We'll send you the registration form link within 24 hours</li>
        </ol>
        """,
        to_email,
    )
    text = (
        f"Dear {first_name} {last_name},\n\nYour contract has been signed and saved successfully.\n"
        f"Total Amount: ${amount}\nDate: {today}\n"
        + (f"Your Documents Folder: {drive_link}\n" if drive_link else "")
        + "\nThe DRSI Law Team"
    )
    attachments = []
    if contract_pdf:
        attachments.append(EmailAttachment(f"Contract_{first_name}_{last_name}.pdf", contract_pdf))
    return send_email(
        to_email, "Contract Saved - DRSI Law Registration", html, text_content=text, attachments=attachments
    )


def send_welcome_email(
    to_email: str,
    first_name: str,
    last_name: str,
    registration_form_link: str,
    drive_link: str | None = None,
    attachments: list[EmailAttachment] | None = None,
) -> bool:
    """Post-payment welcome with the registration form link (and contract / receipt PDFs when given)."""
    name = escape(f"{first_name} {last_name}")
    folder = _button(drive_link, "View Your Contract Folder") if drive_link else ""
    html = _wrap(
        "Welcome to DRSI Law!",
        f"""
        <h2>Dear {name},</h2>
        <p>Thank you for choosing DRSI Law for your immigration lottery registration.
           We have successfully received your payment and contract.</p>
        <p><strong>Next Steps:</strong></p>
        <ol>
          <li>Complete your detailed registration form</li>
          <li>Upload required documents (passport, photos, etc.)</li>
          <li>Review and submit your application</li>
        </ol>
        {folder}
        <p>Please click the button below to access your registration form:</p>
        {_button(registration_form_link, "Complete Registration Form")}
        <p><strong>Important:</strong> Please complete your registration within 7 days to ensure timely processing.</p>
        """,
        to_email,
    )
    text = (
        f"Dear {first_name} {last_name},\n\n"
        "Thank you for choosing DRSI Law. We have successfully received your payment and contract.\n\n"
        f"Registration form: {registration_form_link}\n"
        + (f"Your Documents Folder: {drive_link}\n" if drive_link else "")
        + "\nPlease complete your registration within 7 days.\n\nThe DRSI Law Team"
    )
    return send_email(
        to_email,
        "Welcome to DRSI Law - Your Immigration Registration",
        html,
        text_content=text,
        attachments=attachments,
    )


def send_registration_email_to_client(
    to_email: str,
    first_name: str,
    last_name: str,
    registration_id: str,
    registration_pdf: bytes | None,
) -> bool:
    if not registration_pdf:
        log.warning("[Email] No registration PDF for client email to=%s; skipped", to_email)
        return False
    name = escape(f"{first_name} {last_name}")
    html = _wrap(
        "Registration Submitted Successfully!",
        f"""
        <h2>Dear {name},</h2>
        <p>Your DV Lottery registration has been successfully submitted to DRSI Law.</p>
        <p><strong>Registration ID:</strong> {escape(registration_id)}<br>
           <strong>Submission Date:</strong> {datetime.now().strftime("%Y-%m-%d")}<br>
           <strong>Status:</strong> Submitted</p>
        <p>Your complete registration form is attached to this email as a PDF document.
           Please save this file for your records.</p>
        <h3>What Happens Next:</h3>
        <ol>
          <li>Document review (24-48 hours)</li>
          <li>Quality check of all DV Lottery requirements</li>
          <li>Submission to the US Department of State</li>
          <li>A final confirmation email with your tracking number</li>
        </ol>
        """,
        to_email,
    )
    attachment = EmailAttachment(
        filename=f"Registration_{first_name}_{last_name}_{registration_id}.pdf",
        content=registration_pdf,
    )
    return send_email(
        to_email,
        "Registration Submitted - DRSI Law DV Lottery",
        html,
        text_content=f"Dear {first_name} {last_name},\n\nYour registration {registration_id} has been submitted.",
        attachments=[attachment],
    )


def send_registration_email_to_admin(
    first_name: str,
    last_name: str,
    email: str,
    phone: str,
    registration_id: str,
    marital_status: str,
    number_of_children: int,
    registration_pdf: bytes | None = None,
    drive_link: str | None = None,
) -> bool:
    """Admin copy of a submitted registration; skipped when ADMIN_NOTIFICATION_EMAIL is unset."""
    admin_email = get_settings().admin_notification_email
    if not admin_email:
        log.info("[Email] ADMIN_NOTIFICATION_EMAIL not set; admin registration email skipped")
        return False
    folder = _button(drive_link, "Open Client Folder") if drive_link else ""
    html = _wrap(
        "New DV Lottery Registration",
        f"""
        <p><strong>Registration ID:</strong> {escape(registration_id)}<br>
           <strong>Client:</strong> {escape(f"{first_name} {last_name}")}<br>
           <strong>Email:</strong> {escape(email)}<br>
           <strong>Phone:</strong> {escape(phone)}<br>
           <strong>Marital Status:</strong> {escape(marital_status)}<br>
           <strong>Children:</strong> {number_of_children}</p>
        {folder}
        """,
        admin_email,
    )
    attachments = []
    if registration_pdf:
        attachments.append(
            EmailAttachment(filename=f"Registration_{first_name}_{last_name}_{registration_id}.pdf", content=registration_pdf)
        )
    return send_email(
        admin_email,
        f"New Registration: {first_name} {last_name} ({registration_id})",
        html,
        attachments=attachments,
    )
