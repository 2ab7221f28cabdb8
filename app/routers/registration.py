"""Registration wizard: prefill links, submission tokens, final submit."""
import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from app.dependencies import get_stores, get_submission_token_service
from app.errors import CollaboratorError, DuplicateSubmission, InvalidOrConsumedToken, ValidationError
from app.schemas.registration import (
    ApplicantInfo,
    ChildInfo,
    RegistrationLinkResponse,
    RegistrationStatusResponse,
    RegistrationUserData,
    SpouseInfo,
    SubmissionTokenRequest,
    SubmissionTokenResponse,
    SubmitRegistrationResponse,
)
from app.services import payments, registration_links
from app.services.documents import UploadedFile
from app.services.registration_submission import SubmissionRequest, submit_registration
from app.services.submission_tokens import SubmissionTokenService
from app.stores import Stores

log = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api", tags=["registration"])


@router.get("/generate-registration-token", response_model=RegistrationLinkResponse)
def generate_registration_token(session_id: str = Query("")):
    """Prefill token for the registration wizard, built from a paid Checkout session."""
    if not session_id:
        raise HTTPException(status_code=400, detail="Session ID is required")
    try:
        session = payments.retrieve_session(session_id)
    except CollaboratorError as e:
        log.error("[Registration] %s", e)
        raise HTTPException(status_code=404, detail="Session not found")
    meta = dict(session.metadata or {})
    details = getattr(session, "customer_details", None)
    user = RegistrationUserData(
        first_name=meta.get("firstName", ""),
        last_name=meta.get("lastName", ""),
        email=meta.get("email") or (getattr(details, "email", None) if details else None) or "",
        phone=meta.get("phone", ""),
        marital_status=meta.get("maritalStatus", ""),
    )
    token = registration_links.create_registration_token(
        user.first_name, user.last_name, user.email, user.phone, user.marital_status
    )
    return RegistrationLinkResponse(token=token, user_data=user)


@router.get("/verify-registration-token", response_model=RegistrationUserData)
def verify_registration_token(token: str = Query("")):
    data, err = registration_links.decode_registration_token(token)
    if data is None:
        raise HTTPException(status_code=401, detail=err or "Invalid registration link")
    return RegistrationUserData.model_validate(data)


@router.post("/generate-submission-token", response_model=SubmissionTokenResponse)
def generate_submission_token(
    data: SubmissionTokenRequest,
    tokens: SubmissionTokenService = Depends(get_submission_token_service),
):
    try:
        minted = tokens.mint(data.email, data.phone, data.first_name, data.last_name)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Missing required fields")
    except DuplicateSubmission as e:
        return JSONResponse(
            status_code=409,
            content={
                "error": "Registration already submitted",
                "existingRegistrationId": e.existing.registration_id,
                "registrationId": e.existing.registration_id,
                "submittedAt": e.existing.submitted_at,
            },
        )
    return SubmissionTokenResponse(submission_token=minted.token, registration_id=minted.registration_id)


@router.get("/registration-status", response_model=RegistrationStatusResponse)
def registration_status(
    email: str = Query(""),
    phone: str = Query(""),
    tokens: SubmissionTokenService = Depends(get_submission_token_service),
):
    """Lets the wizard stop an applicant before they fill the whole form twice."""
    if not email.strip() and not phone.strip():
        raise HTTPException(status_code=400, detail="email or phone is required")
    existing = tokens.has_used_registration(email, phone)
    if not existing:
        return RegistrationStatusResponse(submitted=False)
    return RegistrationStatusResponse(
        submitted=True,
        registration_id=existing.registration_id,
        submitted_at=existing.submitted_at,
    )


def _json_field(form, name: str, default):
    raw = form.get(name)
    if raw is None or raw == "":
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail=f"Invalid JSON in field {name}")


@router.post("/submit-registration", response_model=SubmitRegistrationResponse)
async def submit_registration_endpoint(
    request: Request,
    stores: Stores = Depends(get_stores),
    tokens: SubmissionTokenService = Depends(get_submission_token_service),
):
    form = await request.form()
    try:
        applicant = ApplicantInfo.model_validate(_json_field(form, "applicantInfo", {}))
        spouse_raw = _json_field(form, "spouseInfo", None)
        spouse = SpouseInfo.model_validate(spouse_raw) if spouse_raw else None
        children = [ChildInfo.model_validate(c) for c in _json_field(form, "children", [])]
    except PydanticValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors(include_url=False, include_context=False))

    files: dict[str, UploadedFile] = {}
    for key, value in form.multi_items():
        if isinstance(value, UploadFile) and value.filename:
            files[key] = UploadedFile(
                filename=value.filename,
                content_type=value.content_type or "application/octet-stream",
                data=await value.read(),
            )

    req = SubmissionRequest(
        applicant=applicant,
        marital_status=str(form.get("maritalStatus") or ""),
        submission_token=str(form.get("submissionToken") or ""),
        spouse=spouse,
        children=children,
        files=files,
    )
    log.info("[Registration] Submission received for %s (%d file(s))", applicant.email, len(files))
    try:
        result = await run_in_threadpool(submit_registration, req, tokens, stores.folder_mappings)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InvalidOrConsumedToken as e:
        raise HTTPException(status_code=409, detail=str(e))
    return SubmitRegistrationResponse(registration_id=result.registration_id, folder_link=result.folder_link)
