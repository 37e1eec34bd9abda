import hashlib
import hmac
import json
import time
from urllib.parse import parse_qs

import httpx
import pytest

from conftest import auth_header, identity_of
from tradecert.core.config import settings
from tradecert.core.errors import Forbidden, GatewayError, ValidationFailed
from tradecert.crud.payment import payment_crud
from tradecert.models.payment import PaymentStatus
from tradecert.schemas.payment import CheckoutIn, GatewayEvent
from tradecert.services import payments
from tradecert.services.checkout import StripeClient, construct_event, flatten_form, get_stripe


def stripe_with(handler) -> StripeClient:
    client = StripeClient(http=httpx.Client(transport=httpx.MockTransport(handler)))
    client.api_key = "sk_test_123"
    return client


def checkout_handler(calls):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.method == "POST" and request.url.path == "/v1/checkout/sessions":
            return httpx.Response(200, json={"id": "cs_test_1", "client_secret": "cs_secret"})
        if request.method == "GET" and request.url.path == "/v1/checkout/sessions/cs_test_1":
            return httpx.Response(200, json={
                "id": "cs_test_1",
                "payment_status": "paid",
                "amount_total": 150000,
                "customer_details": {"email": "buyer@example.com", "name": "Buyer"},
                "payment_intent": "pi_1",
            })
        return httpx.Response(404, json={"error": {"message": "not found"}})
    return handler


def test_flatten_form_nests_with_brackets():
    assert flatten_form({"line_items": [{"price": "p_1", "quantity": 1}], "metadata": {"user_id": 3}}) == [
        ("line_items[0][price]", "p_1"),
        ("line_items[0][quantity]", "1"),
        ("metadata[user_id]", "3"),
    ]


def test_checkout_session_records_created_payment(db, make):
    user = make.user()
    calls = []
    stripe = stripe_with(checkout_handler(calls))

    session = payments.create_checkout_session(
        db, identity_of(user),
        CheckoutIn(stripe_price_id="price_1", metadata={"user_id": user.id, "course_id": 7}),
        stripe,
    )

    assert session["id"] == "cs_test_1"
    sent = parse_qs(calls[0].content.decode())
    assert sent["ui_mode"] == ["embedded"]
    assert sent["line_items[0][price]"] == ["price_1"]
    assert sent["return_url"][0].endswith("/success?session_id={CHECKOUT_SESSION_ID}")
    assert calls[0].headers["Authorization"] == "Bearer sk_test_123"

    row = payment_crud.get_by_session(db, "cs_test_1")
    assert row.status == PaymentStatus.created
    assert (row.amount, row.currency, row.course_id) == (0, "THB", 7)


def test_checkout_session_requires_fields_and_ownership(db, make):
    user = make.user()
    stripe = stripe_with(checkout_handler([]))

    with pytest.raises(ValidationFailed) as err:
        payments.create_checkout_session(db, identity_of(user), CheckoutIn(stripe_price_id="price_1"), stripe)
    assert err.value.code == "MISSING_FIELDS"

    other = make.user()
    with pytest.raises(Forbidden):
        payments.create_checkout_session(
            db, identity_of(user),
            CheckoutIn(stripe_price_id="price_1", metadata={"user_id": other.id, "course_id": 1}),
            stripe,
        )


def test_gateway_failure_is_reported_and_nothing_recorded(db, make):
    user = make.user()
    stripe = stripe_with(lambda request: httpx.Response(500, json={"error": {}}))

    with pytest.raises(GatewayError) as err:
        payments.create_checkout_session(
            db, identity_of(user),
            CheckoutIn(stripe_price_id="price_1", metadata={"user_id": user.id, "course_id": 1}),
            stripe,
        )
    assert err.value.code == "GATEWAY_ERROR"
    assert payments.list_payments(db) == []


def test_sync_marks_paid_session_completed(db, make):
    user = make.user()
    stripe = stripe_with(checkout_handler([]))
    payments.create_checkout_session(
        db, identity_of(user),
        CheckoutIn(stripe_price_id="price_1", metadata={"user_id": user.id, "course_id": 7}),
        stripe,
    )

    payments.sync_checkout_session(db, "cs_test_1", stripe)

    row = payment_crud.get_by_session(db, "cs_test_1")
    assert row.status == PaymentStatus.completed
    assert row.amount == 150000
    assert row.customer_email == "buyer@example.com"
    assert row.payment_intent == "pi_1"


def _completed_event(session_id="cs_live_9"):
    return GatewayEvent(type="checkout.session.completed", data={"object": {
        "id": session_id,
        "amount_total": 250000,
        "currency": "thb",
        "customer_details": {"email": "payer@example.com", "name": "Payer"},
        "payment_method_types": ["card", "promptpay"],
        "payment_intent": "pi_9",
        "metadata": {"userId": "4", "courseId": "12"},
        "created": 1735689600,
    }})


def test_completed_event_upserts_payment(db):
    assert payments.apply_gateway_event(db, _completed_event()) is True

    row = payment_crud.get_by_session(db, "cs_live_9")
    assert row.status == PaymentStatus.completed
    assert (row.user_id, row.course_id, row.amount) == (4, 12, 250000)
    assert row.payment_method == "card"
    assert row.created_at.year == 2025

    # same session again updates in place
    payments.apply_gateway_event(db, _completed_event())
    assert len(payments.list_payments(db)) == 1


def test_expired_and_refund_events(db):
    payments.apply_gateway_event(db, _completed_event("cs_a"))

    payments.apply_gateway_event(db, GatewayEvent(type="charge.refunded", data={"object": {"payment_intent": "pi_9"}}))
    assert payment_crud.get_by_session(db, "cs_a").status == PaymentStatus.refunded

    payments.apply_gateway_event(db, _completed_event("cs_b"))
    payments.apply_gateway_event(db, GatewayEvent(type="checkout.session.expired", data={"object": {"id": "cs_b"}}))
    assert payment_crud.get_by_session(db, "cs_b").status == PaymentStatus.failed


def test_unknown_event_is_ignored(db):
    assert payments.apply_gateway_event(db, GatewayEvent(type="invoice.paid", data={"object": {}})) is False
    assert payments.list_payments(db) == []


def test_payment_routes(client, make):
    user = make.user()
    admin = make.admin()
    stripe = stripe_with(checkout_handler([]))

    from tradecert.main import api
    api.dependency_overrides[get_stripe] = lambda: stripe

    res = client.post(
        "/api/v1/payments/checkout-session",
        json={"stripe_price_id": "price_1", "metadata": {"user_id": user.id, "course_id": 3}},
        headers=auth_header(user),
    )
    assert res.status_code == 200, res.text
    assert res.json() == {"session_id": "cs_test_1", "client_secret": "cs_secret"}

    res = client.get("/api/v1/payments/cs_test_1", headers=auth_header(user))
    assert res.status_code == 200
    assert res.json()["metadata"] == {"user_id": user.id, "course_id": 3}

    assert client.get("/api/v1/payments", headers=auth_header(user)).status_code == 403
    res = client.get("/api/v1/payments", params={"status": "created"}, headers=auth_header(admin))
    assert [p["session_id"] for p in res.json()] == ["cs_test_1"]


WEBHOOK_SECRET = "whsec_test"


def signed(payload: bytes, secret: str = WEBHOOK_SECRET, at: int = None) -> str:
    at = int(time.time()) if at is None else at
    digest = hmac.new(secret.encode(), f"{at}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={at},v1={digest}"


def test_construct_event_checks_signature_and_age():
    body = json.dumps({"type": "checkout.session.expired", "data": {"object": {"id": "cs_1"}}}).encode()

    event = construct_event(body, signed(body, at=1_700_000_000), secret=WEBHOOK_SECRET, now=1_700_000_060)
    assert event.type == "checkout.session.expired"

    for header in (None, "t=1700000000", signed(body, secret="whsec_other", at=1_700_000_000)):
        with pytest.raises(ValidationFailed) as err:
            construct_event(body, header, secret=WEBHOOK_SECRET, now=1_700_000_060)
        assert err.value.code == "INVALID_SIGNATURE"

    with pytest.raises(ValidationFailed) as err:
        construct_event(body, signed(body, at=1_700_000_000), secret=WEBHOOK_SECRET, now=1_700_001_000)
    assert err.value.code == "INVALID_SIGNATURE"

    with pytest.raises(ValidationFailed) as err:
        construct_event(body, signed(body), secret="")
    assert err.value.code == "WEBHOOK_NOT_CONFIGURED"


def test_webhook_route_rejects_unsigned_events(client, db, monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    body = _completed_event("cs_forged").model_dump_json().encode()
    json_header = {"Content-Type": "application/json"}

    res = client.post("/api/v1/payments/webhook", content=body, headers=json_header)
    assert (res.status_code, res.json()["code"]) == (400, "INVALID_SIGNATURE")

    tampered = {**json_header, "Stripe-Signature": signed(b"{}")}
    res = client.post("/api/v1/payments/webhook", content=body, headers=tampered)
    assert res.status_code == 400
    assert payment_crud.get_by_session(db, "cs_forged") is None

    res = client.post("/api/v1/payments/webhook", content=body,
                      headers={**json_header, "Stripe-Signature": signed(body)})
    assert res.status_code == 200, res.text
    assert res.json() == {"received": True, "handled": True}
    assert payment_crud.get_by_session(db, "cs_forged").status == PaymentStatus.completed
