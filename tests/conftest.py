"""Pytest fixtures: isolated stores (JSON files and fakeredis), a manual clock,
an HTTP client with the stores overridden, and in-memory collaborator doubles.

No test touches the network: Drive, Stripe, Monday and email are replaced
with the recorders below.
"""
from __future__ import annotations

import os

# Settings are read once (lru_cache); pin them before the app is imported.
os.environ.update(
    {
        "STORAGE_BACKEND": "file",
        "SWEEP_CRON_ENABLED": "false",
        "ADMIN_API_KEY": "test-admin-key",
        "JWT_SECRET_KEY": "test-jwt-secret",
        "STRIPE_SECRET_KEY": "",
        "STRIPE_WEBHOOK_SECRET": "whsec_test",
        "MAILGUN_API_KEY": "",
        "MAILGUN_DOMAIN": "",
        "SENDGRID_API_KEY": "",
        "SMTP_HOST": "",
        "MONDAY_API_TOKEN": "",
        "ADMIN_NOTIFICATION_EMAIL": "admin@drsi-law.test",
        "APP_URL": "http://testserver",
    }
)

from dataclasses import dataclass, field

import fakeredis
import pytest
from fastapi.testclient import TestClient

from app.config import get_settings
from app.dependencies import get_stores
from app.errors import CollaboratorError
from app.services import google_drive, monday, notifications, payments
from app.services.submission_tokens import SubmissionTokenService
from app.stores import build_file_stores, build_redis_stores
from tests.helpers import SIGNATURE_TTL_MS, T0

get_settings.cache_clear()


class ManualClock:
    """Epoch-millis clock advanced explicitly by tests."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def file_stores(tmp_path):
    return build_file_stores(tmp_path / ".db", SIGNATURE_TTL_MS)


@pytest.fixture()
def redis_client():
    return fakeredis.FakeRedis()


@pytest.fixture()
def redis_stores(redis_client):
    return build_redis_stores(redis_client, SIGNATURE_TTL_MS)


@pytest.fixture(params=["file", "redis"])
def stores(request, tmp_path):
    """Every store-level test runs against both backends."""
    if request.param == "redis":
        return build_redis_stores(fakeredis.FakeRedis(), SIGNATURE_TTL_MS)
    return build_file_stores(tmp_path / ".db", SIGNATURE_TTL_MS)


@pytest.fixture()
def tokens(stores, clock) -> SubmissionTokenService:
    return SubmissionTokenService(stores.registrations, clock=clock)


# ----------------------------- Collaborators ------------------------------ #
@dataclass
class Recorder:
    emails: list[dict] = field(default_factory=list)
    uploads: list[tuple[str, str]] = field(default_factory=list)
    folders: list[str] = field(default_factory=list)
    monday_items: list[dict] = field(default_factory=list)
    checkout_calls: list[dict] = field(default_factory=list)
    fail: set[str] = field(default_factory=set)


@pytest.fixture()
def collaborators(monkeypatch) -> Recorder:
    """
    Replace Drive, Monday, Stripe and the email transport with recorders.
    Add a name to ``recorder.fail`` ("drive", "email", "monday") to make that
    collaborator fail.
    """
    rec = Recorder()

    def _drive_check():
        if "drive" in rec.fail:
            raise CollaboratorError("drive", "simulated outage")

    def fake_send_email(to_email, subject, html_content, text_content=None, attachments=None):
        if "email" in rec.fail:
            return False
        rec.emails.append(
            {"to": to_email, "subject": subject, "html": html_content, "attachments": list(attachments or [])}
        )
        return True

    def fake_create_folder_and_upload(folder_name, file_name, data, mime_type="application/pdf"):
        _drive_check()
        rec.folders.append(folder_name)
        rec.uploads.append(("folder-1", file_name))
        return google_drive.FolderUpload("folder-1", "https://drive.test/folder-1", f"https://drive.test/{file_name}")

    def fake_upload_file(folder_id, file_name, data, mime_type="application/pdf", service=None):
        _drive_check()
        rec.uploads.append((folder_id, file_name))
        return f"https://drive.test/{file_name}"

    def fake_upload_multiple_files(folder_id, files):
        return [fake_upload_file(folder_id, f.name, f.data, f.mime_type) for f in files]

    def fake_find_or_create_client_folder(mappings, first_name, last_name, email, phone):
        _drive_check()
        existing = mappings.find_by_user(email, phone)
        if existing:
            return google_drive.ClientFolder(existing.folder_id, f"https://drive.test/{existing.folder_id}", True)
        rec.folders.append(google_drive.client_folder_name(first_name, last_name, phone))
        return google_drive.ClientFolder("folder-new", "https://drive.test/folder-new", False)

    def fake_create_monday_item(**kwargs):
        if "monday" in rec.fail:
            raise CollaboratorError("monday", "simulated outage")
        rec.monday_items.append(kwargs)
        return "item-1"

    def fake_create_checkout_session(**kwargs):
        rec.checkout_calls.append(kwargs)
        return payments.CheckoutSession(session_id="cs_test_123", url="https://checkout.stripe.test/cs_test_123")

    monkeypatch.setattr(notifications, "send_email", fake_send_email)
    monkeypatch.setattr(google_drive, "create_folder_and_upload", fake_create_folder_and_upload)
    monkeypatch.setattr(google_drive, "upload_file", fake_upload_file)
    monkeypatch.setattr(google_drive, "upload_multiple_files", fake_upload_multiple_files)
    monkeypatch.setattr(google_drive, "find_or_create_client_folder", fake_find_or_create_client_folder)
    monkeypatch.setattr(monday, "create_monday_item", fake_create_monday_item)
    monkeypatch.setattr(payments, "create_checkout_session", fake_create_checkout_session)
    monkeypatch.setattr(payments, "retrieve_payment_details", lambda payment_intent_id: payments.PaymentDetails())
    return rec


# ------------------------------- HTTP client ------------------------------ #
@pytest.fixture()
def client(stores, collaborators):
    from app.main import app

    app.dependency_overrides[get_stores] = lambda: stores
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
