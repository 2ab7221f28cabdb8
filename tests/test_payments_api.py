# tests/test_payments_api.py
from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest
import stripe

from app.errors import StorageError
from app.services import payments
from app.services.payment_webhook import handle_checkout_completed
from tests.helpers import SIGNATURE_PNG, contact_info

API = "/api"


# ------------------------------ Save contract ----------------------------- #
def _save_contract(client, **overrides):
    body = {"contactInfo": contact_info(), "maritalStatus": "single", "signature": SIGNATURE_PNG, "agreedToTerms": True}
    body.update(overrides)
    return client.post(f"{API}/save-contract", json=body)


def test_save_contract_stores_signature_and_emails_pdf(client, stores, collaborators):
    r = _save_contract(client)
    assert r.status_code == 200, r.text
    signature_id = r.json()["signatureId"]
    assert signature_id.startswith("sig_")
    assert stores.signatures.get(signature_id) == SIGNATURE_PNG

    (mail,) = collaborators.emails
    assert mail["to"] == "alice@example.com"
    assert mail["subject"] == "Contract Saved - DRSI Law Registration"
    assert mail["attachments"][0].content.startswith(b"%PDF")
    assert collaborators.uploads == []  # Drive only after payment


def test_save_contract_succeeds_without_email(client, collaborators):
    collaborators.fail = {"email"}
    assert _save_contract(client).status_code == 200


@pytest.mark.parametrize(
    "overrides",
    [
        {"agreedToTerms": False},
        {"maritalStatus": "complicated"},
        {"contactInfo": contact_info(phone="12345")},
        {"contactInfo": contact_info(email="not-an-email")},
        {"contactInfo": contact_info(firstName="A")},
    ],
)
def test_save_contract_validation(client, overrides):
    assert _save_contract(client, **overrides).status_code == 422


# -------------------------------- Checkout -------------------------------- #
def test_checkout_reuses_saved_signature_and_prices_server_side(client, stores, collaborators):
    signature_id = _save_contract(client, maritalStatus="married").json()["signatureId"]

    r = client.post(
        f"{API}/checkout",
        json={"contactInfo": contact_info(), "maritalStatus": "married", "signatureId": signature_id},
    )
    assert r.status_code == 200, r.text
    assert r.json() == {"sessionId": "cs_test_123", "url": "https://checkout.stripe.test/cs_test_123"}

    (call,) = collaborators.checkout_calls
    assert call["signature_id"] == signature_id
    assert call["amount"] == Decimal("599.00")
    assert call["email"] == "alice@example.com"


def test_checkout_with_raw_signature_stores_it(client, stores, collaborators):
    r = client.post(
        f"{API}/checkout",
        json={"contactInfo": contact_info(), "maritalStatus": "single", "signature": SIGNATURE_PNG},
    )
    assert r.status_code == 200
    (call,) = collaborators.checkout_calls
    assert call["amount"] == Decimal("300.00")
    assert stores.signatures.get(call["signature_id"]) == SIGNATURE_PNG


def test_checkout_expired_signature(client, collaborators):
    r = client.post(
        f"{API}/checkout",
        json={"contactInfo": contact_info(), "maritalStatus": "single", "signatureId": "sig_gone"},
    )
    assert r.status_code == 400
    assert collaborators.checkout_calls == []


def test_checkout_expired_signature_falls_back_to_raw(client, collaborators):
    r = client.post(
        f"{API}/checkout",
        json={
            "contactInfo": contact_info(),
            "maritalStatus": "single",
            "signatureId": "sig_gone",
            "signature": SIGNATURE_PNG,
        },
    )
    assert r.status_code == 200
    assert collaborators.checkout_calls[0]["signature_id"] != "sig_gone"


def test_checkout_requires_a_signature(client):
    r = client.post(f"{API}/checkout", json={"contactInfo": contact_info(), "maritalStatus": "single"})
    assert r.status_code == 422


# ------------------------------- Get session ------------------------------ #
def test_get_session(client, monkeypatch):
    session = SimpleNamespace(
        id="cs_1",
        customer_email="a@x.com",
        amount_total=30000,
        currency="usd",
        payment_status="paid",
        metadata={"firstName": "Alice"},
    )
    monkeypatch.setattr(payments, "retrieve_session", lambda session_id: session)

    assert client.get(f"{API}/get-session").status_code == 400
    r = client.get(f"{API}/get-session", params={"session_id": "cs_1"})
    assert r.json() == {
        "id": "cs_1",
        "customer_email": "a@x.com",
        "amount_total": 30000,
        "currency": "usd",
        "payment_status": "paid",
        "metadata": {"firstName": "Alice"},
    }


def test_generate_registration_token_from_session(client, monkeypatch):
    session = SimpleNamespace(
        metadata={"firstName": "Alice", "lastName": "Smith", "phone": "111", "maritalStatus": "single"},
        customer_details=SimpleNamespace(email="a@x.com"),
    )
    monkeypatch.setattr(payments, "retrieve_session", lambda session_id: session)

    r = client.get(f"{API}/generate-registration-token", params={"session_id": "cs_1"})
    assert r.status_code == 200
    body = r.json()
    assert body["userData"]["email"] == "a@x.com"

    verified = client.get(f"{API}/verify-registration-token", params={"token": body["token"]})
    assert verified.json()["firstName"] == "Alice"
    assert client.get(f"{API}/verify-registration-token", params={"token": "junk"}).status_code == 401


# --------------------------------- Webhook -------------------------------- #
def _completed_event(signature_id="sig_1", session_id="cs_test_abcdef123456"):
    return {
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": session_id,
                "payment_intent": "pi_1",
                "customer_email": "a@x.com",
                "metadata": {
                    "firstName": "Alice",
                    "lastName": "Smith",
                    "email": "a@x.com",
                    "phone": "111",
                    "maritalStatus": "single",
                    "amount": "300.00",
                    "signatureId": signature_id,
                },
            }
        },
    }


@pytest.fixture()
def stripe_event(monkeypatch):
    """Skip real signature verification; the event is whatever the test sets."""
    holder = {"event": _completed_event()}
    monkeypatch.setattr(payments, "construct_event", lambda payload, sig_header: holder["event"])
    return holder


def _post_webhook(client, headers=None):
    return client.post(f"{API}/webhook", content=b"{}", headers={"stripe-signature": "t=1,v1=x"} if headers is None else headers)


def test_webhook_requires_signature_header(client, stripe_event):
    assert _post_webhook(client, headers={}).status_code == 400


def test_webhook_rejects_bad_signature(client, monkeypatch):
    def bad(payload, sig_header):
        raise stripe.SignatureVerificationError("No signatures found", sig_header)

    monkeypatch.setattr(payments, "construct_event", bad)
    r = _post_webhook(client)
    assert r.status_code == 400
    assert r.json()["detail"] == "Webhook signature verification failed"


def test_webhook_rejects_malformed_payload(client, monkeypatch):
    def bad(payload, sig_header):
        raise ValueError("bad json")

    monkeypatch.setattr(payments, "construct_event", bad)
    assert _post_webhook(client).status_code == 400


def test_webhook_checkout_completed_fans_out(client, stores, collaborators, stripe_event):
    stores.signatures.store("sig_1", SIGNATURE_PNG)

    r = _post_webhook(client)
    assert r.status_code == 200
    assert r.json() == {"received": True}

    assert collaborators.folders == ["Alice_Smith_111"]
    uploaded = [name for _, name in collaborators.uploads]
    assert any(n.startswith("Contract_Alice_Smith_") for n in uploaded)
    assert any(n.startswith("Receipt_Alice_Smith_") for n in uploaded)
    assert any(n.startswith("Signature_Alice_Smith_") and n.endswith(".png") for n in uploaded)

    mapping = stores.folder_mappings.find_by_email("a@x.com")
    assert mapping.folder_id == "folder-1"
    assert mapping.payment_session_id == "cs_test_abcdef123456"

    (item,) = collaborators.monday_items
    assert item["amount"] == "300.00"
    assert item["marital_status"] == "single"

    (welcome,) = collaborators.emails
    assert welcome["to"] == "a@x.com"
    assert "http://testserver/register?token=" in welcome["html"]
    assert [a.filename for a in welcome["attachments"]] == ["Contract_Alice_Smith.pdf", "Receipt_Alice_Smith.pdf"]

    assert stores.signatures.get("sig_1") is None


def test_webhook_collaborator_failures_still_ack(client, stores, collaborators, stripe_event):
    collaborators.fail = {"drive", "monday"}
    r = _post_webhook(client)
    assert r.status_code == 200
    assert r.json() == {"received": True}
    assert stores.folder_mappings.get_all() == []
    assert len(collaborators.emails) == 1


def _raise_storage(*args, **kwargs):
    raise StorageError("mapping store down")


def test_webhook_mapping_save_failure_still_sends_registration_link(
    client, stores, collaborators, stripe_event, monkeypatch
):
    stores.signatures.store("sig_1", SIGNATURE_PNG)
    monkeypatch.setattr(stores.folder_mappings, "save", _raise_storage)

    r = _post_webhook(client)
    assert r.json() == {"received": True}

    uploaded = [name for _, name in collaborators.uploads]
    assert any(n.startswith("Receipt_Alice_Smith_") for n in uploaded)
    assert any(n.startswith("Signature_Alice_Smith_") for n in uploaded)
    assert len(collaborators.monday_items) == 1
    (welcome,) = collaborators.emails
    assert "http://testserver/register?token=" in welcome["html"]
    assert stores.signatures.get("sig_1") is None


def test_webhook_signature_store_failures_are_best_effort(stores, collaborators, monkeypatch):
    monkeypatch.setattr(stores.signatures, "get", _raise_storage)
    monkeypatch.setattr(stores.signatures, "delete", _raise_storage)

    outcome = handle_checkout_completed(
        _completed_event()["data"]["object"], stores.signatures, stores.folder_mappings
    )

    assert outcome.steps_failed == ["signature_read", "signature_delete"]
    assert outcome.folder_id == "folder-1"
    assert stores.folder_mappings.find_by_email("a@x.com").payment_session_id == "cs_test_abcdef123456"
    assert len(collaborators.monday_items) == 1
    assert len(collaborators.emails) == 1


def test_webhook_ignores_other_events(client, collaborators, stripe_event):
    stripe_event["event"] = {"type": "payment_intent.created", "data": {"object": {}}}
    assert _post_webhook(client).json() == {"received": True}
    assert collaborators.emails == []
