"""Pending e-signature held between contract signing and the payment webhook."""
from pydantic import Field

from app.models.base import RecordModel


class SignatureRecord(RecordModel):
    signature_id: str = Field(..., min_length=1)
    # base64 data URL, e.g. "data:image/png;base64,iVBOR..."
    signature: str
    timestamp: int
