"""Payment wizard: contract signing, Stripe Checkout, session lookup."""
import logging
import secrets
import time
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from app.dependencies import get_stores
from app.errors import CollaboratorError
from app.schemas.contract import (
    CheckoutRequest,
    CheckoutResponse,
    SaveContractRequest,
    SaveContractResponse,
    SessionSummary,
)
from app.services import notifications, payments, pdf
from app.services.pricing import calculate_total_price
from app.stores import Stores

log = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api", tags=["contracts"])


def _new_signature_id() -> str:
    return f"sig_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


@router.post("/save-contract", response_model=SaveContractResponse)
def save_contract(data: SaveContractRequest, stores: Stores = Depends(get_stores)):
    """Store the signature for the payment webhook and email the signed contract. Drive upload happens after payment."""
    c = data.contact_info
    signature_id = _new_signature_id()
    stores.signatures.store(signature_id, data.signature)

    amount = f"{calculate_total_price(data.marital_status):.2f}"
    contract_pdf = None
    try:
        contract_pdf = pdf.generate_contract_pdf(
            pdf.ContractData(
                first_name=c.first_name,
                last_name=c.last_name,
                email=c.email,
                phone=c.phone,
                marital_status=data.marital_status,
                amount=amount,
                signature=data.signature,
                date=datetime.now().strftime("%B %d, %Y"),
            )
        )
    except Exception as e:
        log.error("[Contract] PDF generation failed for %s: %s", c.email, e)

    if not notifications.send_contract_email(c.email, c.first_name, c.last_name, amount, contract_pdf=contract_pdf):
        log.warning("[Contract] Contract email not sent to %s", c.email)

    return SaveContractResponse(
        signature_id=signature_id,
        message="Contract saved successfully. Upload will occur after payment.",
    )


@router.post("/checkout", response_model=CheckoutResponse)
def checkout(data: CheckoutRequest, stores: Stores = Depends(get_stores)):
    c = data.contact_info
    signature_id = data.signature_id
    if signature_id and stores.signatures.get(signature_id) is None:
        if not data.signature:
            raise HTTPException(status_code=400, detail="Signature expired. Please sign the contract again.")
        signature_id = None
    if not signature_id:
        signature_id = _new_signature_id()
        stores.signatures.store(signature_id, data.signature)

    amount = calculate_total_price(data.marital_status)
    try:
        session = payments.create_checkout_session(
            first_name=c.first_name,
            last_name=c.last_name,
            email=c.email,
            phone=c.phone,
            marital_status=data.marital_status,
            amount=amount,
            signature_id=signature_id,
        )
    except CollaboratorError as e:
        log.error("[Checkout] %s", e)
        raise HTTPException(status_code=502, detail="Failed to create checkout session")
    return CheckoutResponse(session_id=session.session_id, url=session.url)


@router.get("/get-session", response_model=SessionSummary)
def get_session(session_id: str = Query("")):
    if not session_id:
        raise HTTPException(status_code=400, detail="Missing session_id parameter")
    try:
        session = payments.retrieve_session(session_id)
    except CollaboratorError as e:
        log.error("[Checkout] %s", e)
        raise HTTPException(status_code=502, detail="Failed to fetch session data")
    return SessionSummary(
        id=session.id,
        customer_email=session.customer_email,
        amount_total=session.amount_total,
        currency=session.currency,
        payment_status=session.payment_status,
        metadata=dict(session.metadata or {}),
    )
