"""Shared dependencies: stores, submission token service, admin key."""
from functools import lru_cache

from fastapi import Depends, Header, HTTPException

from app.config import get_settings
from app.stores import Stores, build_stores
from app.services.submission_tokens import SubmissionTokenService


@lru_cache
def get_stores() -> Stores:
    return build_stores(get_settings())


def get_submission_token_service(stores: Stores = Depends(get_stores)) -> SubmissionTokenService:
    settings = get_settings()
    return SubmissionTokenService(
        stores.registrations,
        max_age_ms=settings.submission_token_max_age_minutes * 60 * 1000,
        sweep_on_mint=settings.sweep_on_mint,
    )


def check_admin_key(provided: str | None) -> None:
    expected = get_settings().admin_api_key
    if not expected:
        raise HTTPException(status_code=503, detail="Admin API is not configured")
    if (provided or "").strip() != expected:
        raise HTTPException(status_code=401, detail="Unauthorized")


def require_admin_key(x_admin_key: str | None = Header(None)) -> None:
    """Admin endpoints without a JSON body authenticate with the X-Admin-Key header."""
    check_admin_key(x_admin_key)
