"""Error taxonomy shared by stores, services and routers."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.models.registration import RegistrationRecord


class IntakeError(Exception):
    """Base class for every error raised by this application."""


class ValidationError(IntakeError):
    """Required identity fields are missing; rejected before any store access."""


class DuplicateSubmission(IntakeError):
    """A used (already submitted) registration exists for the identity."""

    def __init__(self, existing: "RegistrationRecord"):
        super().__init__(f"Registration already submitted: {existing.registration_id}")
        self.existing = existing


class InvalidOrConsumedToken(IntakeError):
    """Submission token unknown, bound to another identity, or already spent."""


class StorageError(IntakeError):
    """Backing store unreachable or its data is corrupt."""


class CollaboratorError(IntakeError):
    """A third-party call (payment, Drive, email, CRM) failed."""

    def __init__(self, collaborator: str, message: str):
        super().__init__(f"[{collaborator}] {message}")
        self.collaborator = collaborator
