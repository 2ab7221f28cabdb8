"""Periodic cleanup of expired unused submission tokens and stale signatures."""
import logging

from app.dependencies import get_stores, get_submission_token_service
from app.errors import StorageError
from app.services.submission_tokens import SubmissionTokenService
from app.stores import Stores

log = logging.getLogger("uvicorn.error")


def run_sweeps(stores: Stores, tokens: SubmissionTokenService) -> dict[str, int]:
    return {
        "registrations": tokens.sweep_expired(),
        "signatures": stores.signatures.sweep_expired(),
    }


def run_sweep_job() -> None:
    """Scheduled job entry point (BackgroundScheduler). Errors are logged; the next run retries."""
    stores = get_stores()
    try:
        removed = run_sweeps(stores, get_submission_token_service(stores))
    except StorageError as e:
        log.warning("[Sweep] Skipped: %s", e)
        return
    log.info("[Sweep] Removed %d registration token(s), %d signature(s)", removed["registrations"], removed["signatures"])
