"""Durable link between a customer and their Google Drive folder."""
from datetime import datetime

from pydantic import Field

from app.models.base import RecordModel


class FolderMapping(RecordModel):
    email: str = Field(..., min_length=1)
    folder_id: str = Field(..., min_length=1)
    folder_name: str
    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    created_at: datetime | None = None
    payment_session_id: str | None = None
    registration_submitted: bool = False
    registration_date: datetime | None = None
