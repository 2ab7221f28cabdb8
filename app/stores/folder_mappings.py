"""Customer -> Google Drive folder mappings, created at payment time and reused at submission."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from app.models.folder_mapping import FolderMapping
from app.stores.base import RecordStore

log = logging.getLogger("uvicorn.error")


def mapping_key(email: str) -> str:
    return (email or "").strip().lower()


class FolderMappingStore:
    """At most one mapping per email; phone is a fallback lookup."""

    def __init__(self, backend: RecordStore[FolderMapping]):
        self.backend = backend

    def get_all(self) -> list[FolderMapping]:
        return self.backend.get_all()

    def find_by_email(self, email: str) -> FolderMapping | None:
        return self.backend.get(mapping_key(email))

    def find_by_phone(self, phone: str) -> FolderMapping | None:
        phone = (phone or "").strip()
        if not phone:
            return None
        return next((m for m in self.backend.get_all() if m.phone == phone), None)

    def find_by_user(self, email: str, phone: str) -> FolderMapping | None:
        """Email first, then phone."""
        return self.find_by_email(email) or self.find_by_phone(phone)

    def save(self, mapping: FolderMapping) -> FolderMapping:
        """Create or update by email. An update keeps the original ``created_at``."""
        existing = self.find_by_email(mapping.email)
        if existing:
            merged = existing.model_copy(update=mapping.model_dump(exclude_unset=True))
            merged.created_at = existing.created_at or mapping.created_at
            self.backend.upsert(merged)
            log.info("[FolderMappings] Updated mapping for %s", mapping.email)
            return merged
        if mapping.created_at is None:
            mapping = mapping.model_copy(update={"created_at": datetime.now(timezone.utc)})
        self.backend.upsert(mapping)
        log.info("[FolderMappings] Saved new mapping for %s", mapping.email)
        return mapping

    def mark_registration_submitted(self, email: str, when: datetime | None = None) -> bool:
        existing = self.find_by_email(email)
        if not existing:
            return False
        updated = existing.model_copy(
            update={
                "registration_submitted": True,
                "registration_date": when or datetime.now(timezone.utc),
            }
        )
        self.backend.upsert(updated)
        log.info("[FolderMappings] Marked registration submitted for %s", email)
        return True

    def stats(self) -> dict[str, int]:
        mappings = self.backend.get_all()
        return {
            "total": len(mappings),
            "withPayment": sum(1 for m in mappings if m.payment_session_id),
            "withRegistration": sum(1 for m in mappings if m.registration_submitted),
            "pending": sum(1 for m in mappings if m.payment_session_id and not m.registration_submitted),
        }
