# tests/test_collaborators.py
"""Adapters for Drive, Monday and email, exercised against in-process fakes."""
from __future__ import annotations

import json
import threading

import httpx
import pytest

from app.config import get_settings
from app.errors import CollaboratorError
from app.services import google_drive, monday, notifications
from app.services.documents import DocumentFile


# ------------------------------ Google Drive ------------------------------ #
class _Call:
    def __init__(self, result):
        self._result = result

    def execute(self):
        if isinstance(self._result, Exception):
            raise self._result
        return self._result


class FakeDrive:
    """Just enough of the Drive v3 resource surface for the adapter."""

    def __init__(self):
        self.folders: dict[str, str] = {}  # name -> id
        self.files_created: list[dict] = []
        self.permissions_created: list[str] = []
        self._lock = threading.Lock()

    def files(self):
        return self

    def permissions(self):
        drive = self

        class _Perms:
            def create(self, fileId, body):
                drive.permissions_created.append(fileId)
                return _Call({})

        return _Perms()

    def list(self, q, fields, spaces):
        name = q.split("name='", 1)[1].split("' and", 1)[0].replace("\\'", "'").replace("\\\\", "\\")
        fid = self.folders.get(name)
        return _Call({"files": [{"id": fid, "name": name}] if fid else []})

    def create(self, body, fields, media_body=None):
        with self._lock:
            if body.get("mimeType") == google_drive.FOLDER_MIME:
                fid = f"folder-{len(self.folders) + 1}"
                self.folders[body["name"]] = fid
                return _Call({"id": fid, "name": body["name"]})
            fid = f"file-{len(self.files_created) + 1}"
            self.files_created.append({"id": fid, "name": body["name"], "parents": body["parents"]})
            return _Call({"id": fid, "webViewLink": f"https://drive.test/file/{fid}"})

    def get(self, fileId, fields):
        return _Call({"webViewLink": f"https://drive.test/folders/{fileId}"})


@pytest.fixture()
def drive(monkeypatch):
    fake = FakeDrive()
    monkeypatch.setattr(google_drive, "get_drive_service", lambda: fake)
    monkeypatch.setattr(get_settings(), "google_drive_folder_id", "root-folder")
    return fake


def test_create_folder_and_upload(drive):
    up = google_drive.create_folder_and_upload("Alice_Smith_111", "Contract.pdf", b"%PDF")
    assert up.folder_id == "folder-1"
    assert up.folder_link == "https://drive.test/folders/folder-1"
    assert up.file_link == "https://drive.test/file/file-1"
    assert drive.files_created[0]["parents"] == ["folder-1"]
    assert drive.permissions_created == ["file-1"]


def test_find_or_create_folder_reuses_existing(drive):
    first = google_drive.find_or_create_folder("O'Brien_Smith_111")
    assert google_drive.find_or_create_folder("O'Brien_Smith_111") == first
    assert len(drive.folders) == 1


def test_find_or_create_client_folder_records_mapping(drive, stores):
    created = google_drive.find_or_create_client_folder(stores.folder_mappings, "Alice", "Smith", "a@x.com", "111")
    assert created.is_existing is False
    assert stores.folder_mappings.find_by_email("a@x.com").folder_name == "Alice_Smith_111"

    again = google_drive.find_or_create_client_folder(stores.folder_mappings, "Alice", "Smith", "other@x.com", "111")
    assert again.is_existing is True
    assert again.folder_id == created.folder_id


def test_upload_multiple_files_keeps_order(drive):
    docs = [DocumentFile(name=f"doc{i}.jpg", data=b"x", mime_type="image/jpeg") for i in range(6)]
    links = google_drive.upload_multiple_files("folder-9", docs)
    assert len(links) == 6
    assert sorted(f["name"] for f in drive.files_created) == sorted(d.name for d in docs)
    assert google_drive.upload_multiple_files("folder-9", []) == []


def test_drive_requires_refresh_token(monkeypatch):
    monkeypatch.setattr(get_settings(), "google_oauth_refresh_token", "")
    with pytest.raises(CollaboratorError):
        google_drive.get_drive_service()


# ------------------------------- Monday.com ------------------------------- #
def _mock_httpx(monkeypatch, handler):
    real_client = httpx.Client
    monkeypatch.setattr(httpx, "Client", lambda **kw: real_client(transport=httpx.MockTransport(handler), **kw))


def _monday_args():
    return dict(
        first_name="Alice",
        last_name="Smith",
        email="a@x.com",
        phone="111",
        marital_status="single",
        amount="300.00",
        drive_link="https://drive.test/folder-1",
    )


def test_monday_not_configured_is_a_no_op():
    assert monday.create_monday_item(**_monday_args()) == ""


def test_monday_creates_item(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "monday_api_token", "tok")
    monkeypatch.setattr(settings, "monday_board_id", "42")
    seen = {}

    def handler(request: httpx.Request):
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"data": {"create_item": {"id": "987"}}})

    _mock_httpx(monkeypatch, handler)
    assert monday.create_monday_item(**_monday_args()) == "987"
    assert seen["auth"] == "tok"
    variables = seen["body"]["variables"]
    assert variables["boardId"] == "42"
    assert variables["itemName"] == "Alice Smith"
    assert json.loads(variables["columnValues"])["contract_link"] == "https://drive.test/folder-1"


@pytest.mark.parametrize(
    "response",
    [httpx.Response(500, text="boom"), httpx.Response(200, json={"errors": [{"message": "bad board"}]})],
)
def test_monday_errors_raise_collaborator_error(monkeypatch, response):
    settings = get_settings()
    monkeypatch.setattr(settings, "monday_api_token", "tok")
    monkeypatch.setattr(settings, "monday_board_id", "42")
    _mock_httpx(monkeypatch, lambda request: response)
    with pytest.raises(CollaboratorError):
        monday.create_monday_item(**_monday_args())


# ---------------------------------- Email --------------------------------- #
def test_send_email_without_provider_returns_false():
    assert notifications.send_email("a@x.com", "Hi", "<p>Hi</p>") is False


def test_mailgun_retries_eu_endpoint_on_401(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "mailgun_api_key", "key-1")
    monkeypatch.setattr(settings, "mailgun_domain", "mg.drsi-law.com")
    monkeypatch.setattr(settings, "mailgun_base_url", notifications.MAILGUN_US_BASE)
    hosts = []

    def handler(request: httpx.Request):
        hosts.append(request.url.host)
        if request.url.host == "api.mailgun.net":
            return httpx.Response(401, text="Forbidden")
        return httpx.Response(200, json={"id": "<msg>"})

    _mock_httpx(monkeypatch, handler)
    pdf = notifications.EmailAttachment("Contract.pdf", b"%PDF")
    assert notifications.send_email("a@x.com", "Hi", "<p>Hi</p>", attachments=[pdf]) is True
    assert hosts == ["api.mailgun.net", "api.eu.mailgun.net"]


def test_smtp_transport(monkeypatch):
    settings = get_settings()
    monkeypatch.setattr(settings, "smtp_host", "smtp.test")
    monkeypatch.setattr(settings, "smtp_user", "user")
    monkeypatch.setattr(settings, "smtp_password", "pw")
    sent = []

    class FakeSMTP:
        def __init__(self, host, port, timeout):
            self.host = host

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def starttls(self):
            pass

        def login(self, user, password):
            assert (user, password) == ("user", "pw")

        def send_message(self, msg):
            sent.append(msg)

    monkeypatch.setattr(notifications.smtplib, "SMTP", FakeSMTP)
    ok = notifications.send_registration_email_to_client("a@x.com", "Alice", "Smith", "REG-1", b"%PDF")
    assert ok is True
    (msg,) = sent
    assert msg["To"] == "a@x.com"
    assert msg["Subject"] == "Registration Submitted - DRSI Law DV Lottery"
    assert [p.get_filename() for p in msg.get_payload() if p.get_filename()] == ["Registration_Alice_Smith_REG-1.pdf"]


def test_registration_emails_skip_without_pdf_or_admin(monkeypatch):
    assert notifications.send_registration_email_to_client("a@x.com", "Alice", "Smith", "REG-1", None) is False

    monkeypatch.setattr(get_settings(), "admin_notification_email", "")
    assert (
        notifications.send_registration_email_to_admin(
            first_name="Alice",
            last_name="Smith",
            email="a@x.com",
            phone="111",
            registration_id="REG-1",
            marital_status="single",
            number_of_children=0,
        )
        is False
    )
