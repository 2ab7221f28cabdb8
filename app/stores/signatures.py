"""Short-lived signature store: contract signing -> payment webhook."""
from __future__ import annotations

import logging
from collections.abc import Callable

from app.models.base import epoch_ms
from app.models.signature import SignatureRecord
from app.stores.base import RecordStore

log = logging.getLogger("uvicorn.error")

SIGNATURE_TTL_MS = 60 * 60 * 1000


class SignatureStore:
    """Holds base64 signature images for at most ``ttl_ms``; expired entries are dropped on read."""

    def __init__(
        self,
        backend: RecordStore[SignatureRecord],
        ttl_ms: int = SIGNATURE_TTL_MS,
        clock: Callable[[], int] = epoch_ms,
    ):
        self.backend = backend
        self.ttl_ms = ttl_ms
        self.clock = clock

    def _expired(self, rec: SignatureRecord) -> bool:
        return self.clock() - rec.timestamp > self.ttl_ms

    def store(self, signature_id: str, signature: str) -> SignatureRecord:
        rec = SignatureRecord(signature_id=signature_id, signature=signature, timestamp=self.clock())
        self.backend.upsert(rec)
        log.info("[Signatures] Stored %s", signature_id)
        return rec

    def get(self, signature_id: str) -> str | None:
        rec = self.backend.get(signature_id)
        if rec is None:
            log.info("[Signatures] Not found: %s", signature_id)
            return None
        if self._expired(rec):
            self.backend.delete(signature_id)
            log.info("[Signatures] Expired: %s", signature_id)
            return None
        return rec.signature

    def delete(self, signature_id: str) -> bool:
        return self.backend.delete(signature_id)

    def sweep_expired(self) -> int:
        removed = 0
        for rec in self.backend.get_all():
            if self._expired(rec) and self.backend.delete(rec.signature_id):
                removed += 1
        if removed:
            log.info("[Signatures] Cleaned up %d expired signature(s)", removed)
        return removed
