"""
Google Drive storage for client folders (contract PDF, receipt, registration
documents). Authenticates as the firm's account with an OAuth refresh token,
obtained once through the /api/auth/google endpoints.
"""
from __future__ import annotations

import io
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from app.config import get_settings
from app.errors import CollaboratorError
from app.models.folder_mapping import FolderMapping
from app.services.documents import DocumentFile
from app.stores.folder_mappings import FolderMappingStore

log = logging.getLogger("uvicorn.error")

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive.file"]
TOKEN_URI = "https://oauth2.googleapis.com/token"
AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
FOLDER_MIME = "application/vnd.google-apps.folder"
MAX_PARALLEL_UPLOADS = 4


@dataclass(frozen=True)
class ClientFolder:
    folder_id: str
    folder_link: str
    is_existing: bool = False


@dataclass(frozen=True)
class FolderUpload:
    folder_id: str
    folder_link: str
    file_link: str


def client_folder_name(first_name: str, last_name: str, phone: str) -> str:
    return f"{first_name}_{last_name}_{phone}"


def _flow() -> Flow:
    settings = get_settings()
    if not settings.google_oauth_client_id or not settings.google_oauth_client_secret:
        raise CollaboratorError("drive", "Google OAuth credentials not configured")
    flow = Flow.from_client_config(
        {
            "web": {
                "client_id": settings.google_oauth_client_id,
                "client_secret": settings.google_oauth_client_secret,
                "auth_uri": AUTH_URI,
                "token_uri": TOKEN_URI,
                "redirect_uris": [settings.google_oauth_redirect_uri],
            }
        },
        scopes=DRIVE_SCOPES,
    )
    flow.redirect_uri = settings.google_oauth_redirect_uri
    return flow


def get_authorization_url() -> str:
    """Consent screen URL; prompt=consent so Google always returns a refresh token."""
    auth_url, _ = _flow().authorization_url(access_type="offline", prompt="consent")
    return auth_url


def exchange_code_for_tokens(code: str) -> dict:
    flow = _flow()
    try:
        flow.fetch_token(code=code)
    except Exception as e:
        raise CollaboratorError("drive", f"OAuth code exchange failed: {e}") from e
    credentials = flow.credentials
    return {
        "access_token": credentials.token,
        "refresh_token": credentials.refresh_token,
        "expiry": credentials.expiry.isoformat() if credentials.expiry else None,
        "scope": " ".join(credentials.scopes or DRIVE_SCOPES),
    }


def get_drive_service():
    """A fresh Drive v3 client. googleapiclient services are not thread-safe, so build one per worker."""
    settings = get_settings()
    if not settings.google_oauth_refresh_token:
        raise CollaboratorError(
            "drive",
            "GOOGLE_OAUTH_REFRESH_TOKEN not configured; visit /api/auth/google/authorize to authorize",
        )
    credentials = Credentials(
        token=None,
        refresh_token=settings.google_oauth_refresh_token,
        token_uri=TOKEN_URI,
        client_id=settings.google_oauth_client_id,
        client_secret=settings.google_oauth_client_secret,
        scopes=DRIVE_SCOPES,
    )
    return build("drive", "v3", credentials=credentials, cache_discovery=False)


def _parent_folder_id() -> str:
    parent = get_settings().google_drive_folder_id
    if not parent:
        raise CollaboratorError("drive", "GOOGLE_DRIVE_FOLDER_ID not configured")
    return parent


def find_or_create_folder(name: str, parent_id: str | None = None, service=None) -> str:
    """Folder id of ``name`` under the parent, creating it when missing."""
    parent = parent_id or _parent_folder_id()
    service = service or get_drive_service()
    safe_name = name.replace("\\", "\\\\").replace("'", "\\'")
    try:
        found = (
            service.files()
            .list(
                q=f"name='{safe_name}' and '{parent}' in parents and mimeType='{FOLDER_MIME}' and trashed=false",
                fields="files(id, name)",
                spaces="drive",
            )
            .execute()
        )
        files = found.get("files") or []
        if files:
            log.info("[Drive] Folder already exists: %s", name)
            return files[0]["id"]
        created = (
            service.files()
            .create(body={"name": name, "mimeType": FOLDER_MIME, "parents": [parent]}, fields="id, name")
            .execute()
        )
    except (HttpError, GoogleAuthError) as e:
        raise CollaboratorError("drive", f"Failed to create folder {name!r}: {e}") from e
    log.info("[Drive] Created folder %s id=%s", name, created["id"])
    return created["id"]


def get_folder_link(folder_id: str, service=None) -> str:
    service = service or get_drive_service()
    try:
        meta = service.files().get(fileId=folder_id, fields="webViewLink").execute()
    except (HttpError, GoogleAuthError) as e:
        raise CollaboratorError("drive", f"Failed to read folder {folder_id}: {e}") from e
    return meta.get("webViewLink") or ""


def upload_file(folder_id: str, file_name: str, data: bytes, mime_type: str = "application/pdf", service=None) -> str:
    """Upload into the folder, share as anyone-with-link reader; returns the view link."""
    service = service or get_drive_service()
    media = MediaIoBaseUpload(io.BytesIO(data), mimetype=mime_type, resumable=False)
    try:
        created = (
            service.files()
            .create(
                body={"name": file_name, "parents": [folder_id]},
                media_body=media,
                fields="id, name, size, webViewLink",
            )
            .execute()
        )
        service.permissions().create(fileId=created["id"], body={"role": "reader", "type": "anyone"}).execute()
    except (HttpError, GoogleAuthError) as e:
        raise CollaboratorError("drive", f"Failed to upload {file_name!r}: {e}") from e
    log.info("[Drive] Uploaded %s (%d bytes) to folder %s", file_name, len(data), folder_id)
    return created.get("webViewLink") or created["id"]


def create_folder_and_upload(folder_name: str, file_name: str, data: bytes, mime_type: str = "application/pdf") -> FolderUpload:
    service = get_drive_service()
    folder_id = find_or_create_folder(folder_name, service=service)
    folder_link = get_folder_link(folder_id, service=service)
    file_link = upload_file(folder_id, file_name, data, mime_type, service=service)
    return FolderUpload(folder_id=folder_id, folder_link=folder_link, file_link=file_link)


def find_or_create_client_folder(
    mappings: FolderMappingStore,
    first_name: str,
    last_name: str,
    email: str,
    phone: str,
) -> ClientFolder:
    """Reuse the folder created at payment time (by email, then phone); otherwise create and record one."""
    service = get_drive_service()
    existing = mappings.find_by_user(email, phone)
    if existing:
        log.info("[Drive] Found existing folder mapping for %s: %s", email, existing.folder_id)
        return ClientFolder(existing.folder_id, get_folder_link(existing.folder_id, service=service), is_existing=True)

    folder_name = client_folder_name(first_name, last_name, phone)
    folder_id = find_or_create_folder(folder_name, service=service)
    folder_link = get_folder_link(folder_id, service=service)
    mappings.save(
        FolderMapping(
            email=email,
            folder_id=folder_id,
            folder_name=folder_name,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
        )
    )
    return ClientFolder(folder_id, folder_link, is_existing=False)


def _upload_one(folder_id: str, doc: DocumentFile) -> str:
    return upload_file(folder_id, doc.name, doc.data, doc.mime_type)


def upload_multiple_files(folder_id: str, files: list[DocumentFile]) -> list[str]:
    """Parallel uploads; links come back in input order. The first failure is raised."""
    if not files:
        return []
    with ThreadPoolExecutor(max_workers=min(MAX_PARALLEL_UPLOADS, len(files))) as pool:
        links = list(pool.map(lambda doc: _upload_one(folder_id, doc), files))
    log.info("[Drive] Uploaded %d files to folder %s", len(files), folder_id)
    return links
