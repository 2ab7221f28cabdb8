"""Registration attempt: one row per minted submission token."""
from pydantic import Field

from app.models.base import RecordModel


class RegistrationRecord(RecordModel):
    registration_id: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    first_name: str
    last_name: str
    submission_token: str = Field(..., min_length=1)
    used: bool = False
    # epoch millis; set at mint time
    submitted_at: int
    folder_id: str | None = None

    def matches_email(self, email: str) -> bool:
        return self.email.lower() == (email or "").strip().lower()

    def matches_identity(self, email: str, phone: str) -> bool:
        """Either email or phone matches (used for duplicate and replay checks)."""
        return self.matches_email(email) or self.phone == (phone or "").strip()
