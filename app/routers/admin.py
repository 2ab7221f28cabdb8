"""Admin maintenance: clear registrations (testing/support), folder mapping stats, manual sweep."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from app.dependencies import check_admin_key, get_stores, get_submission_token_service, require_admin_key
from app.schemas.admin import ClearAllRegistrationsRequest, ClearRegistrationRequest
from app.services.submission_tokens import SubmissionTokenService
from app.services.sweeps import run_sweeps
from app.stores import Stores

log = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/clear-registration")
def clear_registration(
    data: ClearRegistrationRequest,
    tokens: SubmissionTokenService = Depends(get_submission_token_service),
):
    check_admin_key(data.admin_key)
    email = data.email.strip()
    if not email:
        raise HTTPException(status_code=400, detail="Email is required")
    deleted = tokens.clear_for_email(email)
    remaining = len(tokens.store.get_all())
    log.info("[Admin] Deleted %d registration(s) for %s", deleted, email)
    return {
        "success": True,
        "message": f"Deleted {deleted} registration(s) for {email}",
        "deletedCount": deleted,
        "remainingCount": remaining,
    }


@router.delete("/clear-registration")
def clear_all_registrations(
    data: ClearAllRegistrationsRequest,
    tokens: SubmissionTokenService = Depends(get_submission_token_service),
):
    check_admin_key(data.admin_key)
    if not data.confirm:
        raise HTTPException(status_code=400, detail="Please set confirm: true to clear all registrations")
    deleted = tokens.clear_all()
    log.info("[Admin] Cleared ALL %d registration(s)", deleted)
    return {"success": True, "message": f"Cleared all {deleted} registration(s)", "deletedCount": deleted}


@router.get("/folder-mappings/stats", dependencies=[Depends(require_admin_key)])
def folder_mapping_stats(stores: Stores = Depends(get_stores)):
    return stores.folder_mappings.stats()


@router.post("/sweep", dependencies=[Depends(require_admin_key)])
def sweep(
    stores: Stores = Depends(get_stores),
    tokens: SubmissionTokenService = Depends(get_submission_token_service),
):
    removed = run_sweeps(stores, tokens)
    return {"success": True, "removed": removed}
