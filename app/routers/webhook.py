"""Stripe webhook."""
import logging

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from app.dependencies import get_stores
from app.errors import CollaboratorError
from app.services import payments
from app.services.payment_webhook import handle_checkout_completed
from app.stores import Stores

log = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api", tags=["webhook"])


@router.post("/webhook")
async def stripe_webhook(request: Request, stores: Stores = Depends(get_stores)):
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    if not sig_header:
        raise HTTPException(status_code=400, detail="Missing stripe-signature header")
    try:
        event = payments.construct_event(payload, sig_header)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid payload")
    except stripe.SignatureVerificationError:
        log.warning("[Webhook] Signature verification failed")
        raise HTTPException(status_code=400, detail="Webhook signature verification failed")
    except CollaboratorError as e:
        log.error("[Webhook] %s", e)
        raise HTTPException(status_code=400, detail="Webhook secret not configured")

    if event.get("type") == payments.CHECKOUT_COMPLETED:
        session = (event.get("data") or {}).get("object") or {}
        try:
            await run_in_threadpool(handle_checkout_completed, session, stores.signatures, stores.folder_mappings)
        except Exception as e:
            # Stripe retries non-2xx responses; a paid session must not be processed twice.
            log.exception("[Webhook] Error processing session %s: %s", session.get("id"), e)
            return {"received": True, "error": "Error processing webhook"}
    return {"received": True}
