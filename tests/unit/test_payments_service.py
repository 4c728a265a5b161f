import pytest
import stripe
from fastapi import HTTPException

import partyhub.payments.service as svc
from partyhub.payments import stripe_client
from partyhub.auth.models import AuthContext

@pytest.fixture
def stripe_calls(monkeypatch):
    """Remplace les appels Stripe réseau et enregistre les paramètres."""
    calls = {"customers": [], "sessions": []}

    def fake_customer(email):
        calls["customers"].append(email)
        return "cus_123"

    def fake_session(**kwargs):
        calls["sessions"].append(kwargs)
        return {"id": "cs_test_1", "url": "https://checkout.stripe.test/cs_test_1"}

    monkeypatch.setattr(stripe_client, "find_or_create_customer", fake_customer)
    monkeypatch.setattr(stripe_client, "create_session", fake_session)
    return calls

@pytest.fixture
def pending_booking(fake_db, seeded):
    return fake_db.seed(
        "bookings",
        {
            "id": "bk-1",
            "user_id": "user-1",
            "package_id": "pkg-active",
            "event_date": "2030-06-01",
            "guest_count": 3,
            "total_amount": 897,
            "status": "pending",
        },
    )[0]

def _completed_event(booking_id="bk-1", amount_total=89700, payment_intent="pi_1"):
    return {
        "id": "evt_1",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": "cs_test_1",
                "amount_total": amount_total,
                "payment_intent": payment_intent,
                "metadata": {"booking_id": booking_id, "user_id": "user-1"} if booking_id else {},
            }
        },
    }

def test_with_booking_id_appends_query():
    assert svc.with_booking_id("https://a.test/ok", "b1") == "https://a.test/ok?booking_id=b1"
    assert svc.with_booking_id("https://a.test/ok?x=1", "b1") == "https://a.test/ok?x=1&booking_id=b1"

def test_redirect_urls_default_to_origin():
    urls = svc.redirect_urls("b1", "https://party.test")
    assert urls["success_url"] == "https://party.test/booking-success?booking_id=b1"
    assert urls["cancel_url"] == "https://party.test/booking-canceled?booking_id=b1"

def test_build_line_item_uses_frozen_total_in_cents():
    item = svc.build_line_item({
        "total_amount": 897,
        "guest_count": 3,
        "event_date": "2030-06-01",
        "service_packages": {"title": "Premium Party"},
    })
    assert item["quantity"] == 1
    assert item["price_data"]["unit_amount"] == 89700
    assert item["price_data"]["currency"] == "usd"
    assert item["price_data"]["product_data"]["name"] == "Premium Party"
    assert item["price_data"]["product_data"]["description"] == "3 guests • 06/01/2030"

def test_to_minor_units_rounds_half_up():
    assert svc.to_minor_units("10.005") == 1001
    assert svc.to_minor_units(0) == 0

def test_checkout_for_own_booking(fake_db, pending_booking, user_ctx, stripe_calls):
    res = svc.create_checkout_for_booking(user_ctx, "bk-1", origin="https://party.test")
    assert res == {"url": "https://checkout.stripe.test/cs_test_1", "session_id": "cs_test_1"}

    assert stripe_calls["customers"] == ["user1@example.com"]
    params = stripe_calls["sessions"][0]
    assert params["metadata"] == {"booking_id": "bk-1", "user_id": "user-1"}
    assert params["customer"] == "cus_123"
    assert params["mode"] == "payment"
    assert params["success_url"] == "https://party.test/booking-success?booking_id=bk-1"
    assert params["line_items"][0]["price_data"]["unit_amount"] == 89700

def test_checkout_for_foreign_booking_makes_no_stripe_call(fake_db, pending_booking, stripe_calls):
    intruder = AuthContext("user-2", email="intruder@example.com", token="t2")
    with pytest.raises(HTTPException) as exc:
        svc.create_checkout_for_booking(intruder, "bk-1")
    assert exc.value.status_code == 400
    assert exc.value.detail == "Booking not found or unauthorized"
    assert stripe_calls["customers"] == []
    assert stripe_calls["sessions"] == []

@pytest.mark.parametrize("status", ["confirmed", "cancelled", "completed"])
def test_checkout_rejects_booking_not_pending(fake_db, pending_booking, user_ctx, stripe_calls, status):
    pending_booking["status"] = status
    with pytest.raises(HTTPException) as exc:
        svc.create_checkout_for_booking(user_ctx, "bk-1")
    assert exc.value.status_code == 400
    assert status in exc.value.detail
    assert stripe_calls["customers"] == []
    assert stripe_calls["sessions"] == []

def test_paid_booking_cannot_be_charged_twice(fake_db, pending_booking, user_ctx, stripe_calls):
    svc.handle_event(_completed_event(payment_intent="pi_first"))
    with pytest.raises(HTTPException):
        svc.create_checkout_for_booking(user_ctx, "bk-1")
    assert stripe_calls["sessions"] == []
    assert [p["transaction_id"] for p in fake_db.rows("payments")] == ["pi_first"]

def test_checkout_requires_identity(fake_db, pending_booking, stripe_calls):
    with pytest.raises(HTTPException) as exc:
        svc.create_checkout_for_booking(None, "bk-1")
    assert exc.value.status_code == 401
    assert stripe_calls["sessions"] == []

def test_checkout_provider_error_surfaces_message(fake_db, pending_booking, user_ctx, monkeypatch):
    def boom(email):
        raise stripe.InvalidRequestError("No such customer", param="customer")
    monkeypatch.setattr(stripe_client, "find_or_create_customer", boom)
    with pytest.raises(HTTPException) as exc:
        svc.create_checkout_for_booking(user_ctx, "bk-1")
    assert exc.value.status_code == 400
    assert "No such customer" in exc.value.detail

def test_create_booking_with_checkout_returns_booking_id(fake_db, seeded, user_ctx, stripe_calls):
    res = svc.create_booking_with_checkout(user_ctx, "pkg-active", "2030-06-01", guest_count=3)
    assert res["session_id"] == "cs_test_1"
    booking = fake_db.rows("bookings")[0]
    assert res["booking_id"] == booking["id"]
    assert booking["total_amount"] == 897.0
    assert stripe_calls["sessions"][0]["metadata"]["booking_id"] == booking["id"]

def test_handle_event_ignores_other_types(fake_db, pending_booking):
    assert svc.handle_event({"type": "payment_intent.created", "data": {"object": {}}}) == {"status": "ignored"}
    assert fake_db.writes() == []

def test_handle_event_requires_booking_id(fake_db, pending_booking):
    with pytest.raises(HTTPException) as exc:
        svc.handle_event(_completed_event(booking_id=None))
    assert exc.value.status_code == 400
    assert fake_db.writes() == []

def test_handle_event_confirms_and_records_payment(fake_db, pending_booking):
    res = svc.handle_event(_completed_event())
    assert res == {"status": "ok", "booking_id": "bk-1"}

    assert fake_db.rows("bookings")[0]["status"] == "confirmed"
    payments = fake_db.rows("payments")
    assert len(payments) == 1
    assert payments[0]["amount"] == 897.0
    assert payments[0]["transaction_id"] == "pi_1"
    assert payments[0]["status"] == "completed"
    assert payments[0]["payment_method"] == "stripe"
    # Écritures faites avec la clé service
    assert {c[0] for c in fake_db.writes()} == {"service"}

def test_handle_event_twice_keeps_single_payment(fake_db, pending_booking):
    svc.handle_event(_completed_event())
    svc.handle_event(_completed_event())
    assert len(fake_db.rows("payments")) == 1

def test_handle_event_falls_back_to_session_id(fake_db, pending_booking):
    svc.handle_event(_completed_event(payment_intent=None))
    assert fake_db.rows("payments")[0]["transaction_id"] == "cs_test_1"

def test_handle_event_unknown_booking_is_500(fake_db, pending_booking):
    with pytest.raises(HTTPException) as exc:
        svc.handle_event(_completed_event(booking_id="missing"))
    assert exc.value.status_code == 500
    assert fake_db.rows("payments") == []

def test_handle_event_payment_write_failure_is_500(fake_db, pending_booking):
    fake_db.fail_on.add(("payments", "upsert"))
    with pytest.raises(HTTPException) as exc:
        svc.handle_event(_completed_event())
    assert exc.value.status_code == 500
