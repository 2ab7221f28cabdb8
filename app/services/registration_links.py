"""Signed prefill links for the registration wizard (JWT)."""
from datetime import datetime, timedelta, timezone

import jwt

from app.config import get_settings

LINK_SUBJECT = "registration-link"


def create_registration_token(
    first_name: str,
    last_name: str,
    email: str,
    phone: str,
    marital_status: str = "",
    now: datetime | None = None,
) -> str:
    settings = get_settings()
    issued = now or datetime.now(timezone.utc)
    payload = {
        "sub": LINK_SUBJECT,
        "firstName": first_name,
        "lastName": last_name,
        "email": email,
        "phone": phone,
        "maritalStatus": marital_status,
        "iat": issued,
        "exp": issued + timedelta(days=settings.registration_link_expire_days),
    }
    raw = jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return raw if isinstance(raw, str) else raw.decode("utf-8")


def decode_registration_token(token: str) -> tuple[dict | None, str | None]:
    """Decode a prefill link token; returns (user data, error_message)."""
    if not token or not isinstance(token, str):
        return None, "empty token"
    settings = get_settings()
    try:
        payload = jwt.decode(token.strip(), settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        return None, "Registration link has expired"
    except jwt.PyJWTError as e:
        return None, str(e)
    if payload.get("sub") != LINK_SUBJECT:
        return None, "Not a registration link"
    return {
        "firstName": payload.get("firstName", ""),
        "lastName": payload.get("lastName", ""),
        "email": payload.get("email", ""),
        "phone": payload.get("phone", ""),
        "maritalStatus": payload.get("maritalStatus", ""),
    }, None


def registration_form_link(token: str) -> str:
    return f"{get_settings().app_url.rstrip('/')}/register?token={token}"
