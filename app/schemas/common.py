"""Shared schema base and field helpers."""
import re

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

PHONE_MIN_DIGITS = 10
PHONE_MAX_DIGITS = 15


class CamelModel(BaseModel):
    """Request/response bodies use camelCase keys (wizard client); Python uses snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _normalize_phone(value: str | None) -> str:
    if value is None:
        return ""
    return re.sub(r"\D", "", value.strip())


def validate_phone_digits(phone: str) -> str:
    digits = _normalize_phone(phone)
    if not digits:
        raise ValueError("Phone number is required.")
    if len(digits) < PHONE_MIN_DIGITS:
        raise ValueError(f"Phone number must have at least {PHONE_MIN_DIGITS} digits (e.g. +1 555 123 4567).")
    if len(digits) > PHONE_MAX_DIGITS:
        raise ValueError(f"Phone number cannot exceed {PHONE_MAX_DIGITS} digits.")
    return (phone or "").strip()
