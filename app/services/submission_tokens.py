"""
One-time submission tokens guarding the final registration submit.

A token is minted when the applicant reaches the review step and is spent
exactly once by a successful final submission. Revisiting the review step
replaces the outstanding unused token; once a token is spent the identity
(email or phone) cannot mint again.
"""
from __future__ import annotations

import logging
import secrets
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from app.errors import DuplicateSubmission, ValidationError
from app.models.base import epoch_ms
from app.models.registration import RegistrationRecord
from app.stores.base import RecordStore

log = logging.getLogger("uvicorn.error")

SUBMISSION_TOKEN_MAX_AGE_MS = 60 * 60 * 1000


@dataclass(frozen=True)
class MintedToken:
    token: str
    registration_id: str


def _new_registration_id() -> str:
    return f"REG-{uuid.uuid4().hex[:8].upper()}"


def _new_token() -> str:
    return secrets.token_urlsafe(32)


def _clean(value: str | None) -> str:
    return (value or "").strip()


class SubmissionTokenService:
    """
    :param store: Registration records, keyed by registration id.
    :param max_age_ms: Age after which an unused record is swept.
    :param clock: Returns "now" in epoch millis.
    :param sweep_on_mint: Run :meth:`sweep_expired` lazily before each mint.
    """

    def __init__(
        self,
        store: RecordStore[RegistrationRecord],
        max_age_ms: int = SUBMISSION_TOKEN_MAX_AGE_MS,
        clock: Callable[[], int] = epoch_ms,
        sweep_on_mint: bool = True,
    ):
        self.store = store
        self.max_age_ms = max_age_ms
        self.clock = clock
        self.sweep_on_mint = sweep_on_mint

    def mint(self, email: str, phone: str, first_name: str, last_name: str) -> MintedToken:
        email, phone = _clean(email), _clean(phone)
        first_name, last_name = _clean(first_name), _clean(last_name)
        if not (email and phone and first_name and last_name):
            raise ValidationError("email, phone, firstName and lastName are required")

        if self.sweep_on_mint:
            self.sweep_expired()

        existing = self.has_used_registration(email, phone)
        if existing:
            log.info("[Tokens] Registration already submitted for %s (ID: %s)", email, existing.registration_id)
            raise DuplicateSubmission(existing)

        # A reload of the review step leaves an older unused token behind.
        self.remove_unused(email, phone)

        rec = RegistrationRecord(
            registration_id=_new_registration_id(),
            email=email,
            phone=phone,
            first_name=first_name,
            last_name=last_name,
            submission_token=_new_token(),
            used=False,
            submitted_at=self.clock(),
        )
        self.store.upsert(rec)
        log.info("[Tokens] Minted submission token for %s: %s...", email, rec.submission_token[:8])
        return MintedToken(token=rec.submission_token, registration_id=rec.registration_id)

    def consume(self, token: str, email: str, phone: str) -> RegistrationRecord | None:
        """Spend ``token`` for (email, phone). Returns the spent record, or None if rejected."""
        token = _clean(token)
        if not token:
            raise ValidationError("submission token is required")
        email, phone = _clean(email), _clean(phone)

        def _spendable(r: RegistrationRecord) -> bool:
            return r.submission_token == token and r.matches_email(email) and r.phone == phone and not r.used

        candidate = next((r for r in self.store.get_all() if _spendable(r)), None)
        if candidate is None:
            log.warning("[Tokens] Invalid or already used submission token for %s", email)
            return None

        spent = candidate.model_copy(update={"used": True})
        if not self.store.replace_if(candidate.registration_id, _spendable, spent):
            log.warning("[Tokens] Submission token for %s was consumed concurrently", email)
            return None
        log.info("[Tokens] Submission token verified and consumed for %s (%s)", email, spent.registration_id)
        return spent

    def verify_and_consume(self, token: str, email: str, phone: str) -> bool:
        return self.consume(token, email, phone) is not None

    def has_used_registration(self, email: str, phone: str) -> RegistrationRecord | None:
        """A submitted record matching email or phone."""
        return next(
            (r for r in self.store.get_all() if r.used and r.matches_identity(email, phone)),
            None,
        )

    def remove_unused(self, email: str, phone: str) -> int:
        removed = 0
        for r in self.store.get_all():
            if not r.used and r.matches_identity(email, phone) and self.store.delete(r.registration_id):
                removed += 1
        if removed:
            log.info("[Tokens] Removed %d unused token(s) for %s", removed, email)
        return removed

    def sweep_expired(self, max_age_ms: int | None = None) -> int:
        """Delete unused records older than ``max_age_ms``. Used records are never touched."""
        cutoff = self.clock() - (self.max_age_ms if max_age_ms is None else max_age_ms)
        removed = 0
        for r in self.store.get_all():
            if not r.used and r.submitted_at < cutoff and self.store.delete(r.registration_id):
                removed += 1
        if removed:
            log.info("[Tokens] Cleaned up %d expired submission token(s)", removed)
        return removed

    def clear_for_email(self, email: str) -> int:
        removed = 0
        for r in self.store.get_all():
            if r.matches_email(email) and self.store.delete(r.registration_id):
                removed += 1
        return removed

    def clear_all(self) -> int:
        removed = 0
        for r in self.store.get_all():
            if self.store.delete(r.registration_id):
                removed += 1
        return removed
