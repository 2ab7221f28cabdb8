"""Stripe Checkout: session creation, lookup, webhook verification, payment details for receipts."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

import stripe

from app.config import get_settings
from app.errors import CollaboratorError
from app.services.pricing import to_cents

log = logging.getLogger("uvicorn.error")

CHECKOUT_COMPLETED = "checkout.session.completed"

PAYMENT_METHOD_LABELS = {
    "card": "Credit Card",
    "us_bank_account": "Bank Account",
}


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    url: str | None = None


@dataclass(frozen=True)
class PaymentDetails:
    payment_method: str = "Credit Card"
    receipt_url: str = ""


def stripe_configured() -> bool:
    return bool(get_settings().stripe_secret_key)


def _client_key() -> None:
    settings = get_settings()
    if not settings.stripe_secret_key:
        raise CollaboratorError("stripe", "STRIPE_SECRET_KEY not configured")
    stripe.api_key = settings.stripe_secret_key


def create_checkout_session(
    first_name: str,
    last_name: str,
    email: str,
    phone: str,
    marital_status: str,
    amount: Decimal,
    signature_id: str,
) -> CheckoutSession:
    """
    Card-only one-line Checkout session. Metadata carries everything the
    webhook needs; the signature itself is too large for metadata so only
    its id travels (also as client_reference_id).
    """
    _client_key()
    settings = get_settings()
    try:
        session = stripe.checkout.Session.create(
            payment_method_types=["card"],
            line_items=[
                {
                    "price_data": {
                        "currency": settings.stripe_currency,
                        "product_data": {
                            "name": settings.product_name,
                            "description": f"Registration for {first_name} {last_name}",
                        },
                        "unit_amount": to_cents(amount),
                    },
                    "quantity": 1,
                }
            ],
            mode="payment",
            success_url=f"{settings.app_url}/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{settings.app_url}/",
            customer_email=email,
            client_reference_id=signature_id,
            metadata={
                "maritalStatus": marital_status,
                "firstName": first_name,
                "lastName": last_name,
                "email": email,
                "phone": phone,
                "signatureId": signature_id,
                "amount": f"{amount:.2f}",
            },
        )
    except stripe.StripeError as e:
        raise CollaboratorError("stripe", f"Failed to create checkout session: {e}") from e
    log.info("[Stripe] Checkout session created: %s for %s", session.id, email)
    return CheckoutSession(session_id=session.id, url=session.url)


def retrieve_session(session_id: str) -> stripe.checkout.Session:
    _client_key()
    try:
        return stripe.checkout.Session.retrieve(session_id)
    except stripe.StripeError as e:
        raise CollaboratorError("stripe", f"Failed to fetch session {session_id}: {e}") from e


def construct_event(payload: bytes, sig_header: str) -> dict:
    """
    Verify the Stripe-Signature header and return the event as plain dicts.
    Raises ValueError (bad payload) or stripe.SignatureVerificationError.
    """
    secret = get_settings().stripe_webhook_secret
    if not secret:
        raise CollaboratorError("stripe", "STRIPE_WEBHOOK_SECRET not configured")
    return stripe.Webhook.construct_event(payload, sig_header, secret).to_dict()


def retrieve_payment_details(payment_intent_id: str | None) -> PaymentDetails:
    """Payment method label and card receipt URL; defaults when anything is unavailable."""
    if not payment_intent_id or not stripe_configured():
        return PaymentDetails()
    _client_key()
    try:
        intent = stripe.PaymentIntent.retrieve(payment_intent_id, expand=["latest_charge"])
        receipt_url = ""
        charge = getattr(intent, "latest_charge", None)
        if charge and not isinstance(charge, str):
            receipt_url = getattr(charge, "receipt_url", None) or ""
        method = "Credit Card"
        pm_id = getattr(intent, "payment_method", None)
        if pm_id:
            pm = stripe.PaymentMethod.retrieve(pm_id if isinstance(pm_id, str) else pm_id.id)
            method = PAYMENT_METHOD_LABELS.get(pm.type) or pm.type.replace("_", " ").capitalize()
    except stripe.StripeError as e:
        log.warning("[Stripe] Failed to retrieve payment details for %s: %s", payment_intent_id, e)
        return PaymentDetails()
    return PaymentDetails(payment_method=method, receipt_url=receipt_url)
