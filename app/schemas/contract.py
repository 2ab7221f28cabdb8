"""Payment wizard schemas: contact info, contract signing, checkout."""
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from app.schemas.common import CamelModel, validate_phone_digits

PaymentMaritalStatus = Literal[
    "single",
    "married",
    "married_to_citizen",
    "divorced",
    "widowed",
    "legally_separated",
]


class ContactInfo(CamelModel):
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    phone: str

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return str(v).strip().lower()

    @field_validator("phone")
    @classmethod
    def phone_valid(cls, v: str) -> str:
        return validate_phone_digits(v)


class SaveContractRequest(CamelModel):
    contact_info: ContactInfo
    marital_status: PaymentMaritalStatus
    signature: str = Field(..., min_length=1)
    agreed_to_terms: bool = True

    @model_validator(mode="after")
    def must_agree(self):
        if not self.agreed_to_terms:
            raise ValueError("You must agree to the terms and conditions")
        return self


class SaveContractResponse(CamelModel):
    success: bool = True
    signature_id: str
    message: str


class CheckoutRequest(CamelModel):
    contact_info: ContactInfo
    marital_status: PaymentMaritalStatus
    # either a signature already saved via save-contract, or the raw data URL
    signature_id: str | None = None
    signature: str | None = None

    @model_validator(mode="after")
    def needs_signature(self):
        if not (self.signature_id or self.signature):
            raise ValueError("signature or signatureId is required")
        return self


class CheckoutResponse(CamelModel):
    session_id: str
    url: str | None = None


class SessionSummary(BaseModel):
    """Mirrors Stripe's snake_case field names."""

    id: str
    customer_email: str | None = None
    amount_total: int | None = None
    currency: str | None = None
    payment_status: str | None = None
    metadata: dict[str, str] = {}
