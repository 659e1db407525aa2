from datetime import timedelta

import pytest

from deposit_hold.core.exceptions import EmailError, InvalidAmountError, MissingEmailError, PaymentServiceError
from deposit_hold.services import deposit_service, stripe_service
from deposit_hold.storage.base import utcnow


def test_send_link_without_email_fails_and_sends_nothing(stores, planyo, outbox):
    with pytest.raises(MissingEmailError):
        deposit_service.send_deposit_link(stores, planyo, "2002")

    assert outbox == []
    assert not stores.sent.has_recent("2002")


def test_send_link_emails_customer_and_admin_then_marks(stores, planyo, outbox):
    result = deposit_service.send_deposit_link(stores, planyo, "1001", amount=25000, location_id="LON")

    assert result["success"] is True
    assert result["url"] == "https://deposits.example.com/deposit/pay/1001?amount=25000"
    assert result["locationId"] == "LON"
    assert [m["to"] for m in outbox] == ["jane@example.com", "admin@example.com"]
    assert "Booking #1001" in outbox[0]["subject"]
    assert result["url"].replace("&", "&amp;") in outbox[0]["html"]
    assert stores.sent.has_recent("1001")


def test_recent_send_is_suppressed(stores, planyo, outbox):
    stores.sent.mark("1001")

    result = deposit_service.send_deposit_link(stores, planyo, "1001")

    assert result["success"] is True
    assert result["skipped"] is True
    assert outbox == []
    assert planyo.lookups == []


def test_force_sends_despite_recent_record_and_keeps_original_mark(stores, planyo, outbox):
    first = utcnow() - timedelta(days=2)
    stores.sent.mark("1001", now=first)

    result = deposit_service.send_deposit_link(stores, planyo, "1001", force=True)

    assert result["success"] is True
    assert "skipped" not in result
    assert len(outbox) == 2
    assert stores.sent.get("1001") == first


def test_force_without_record_marks(stores, planyo, outbox):
    deposit_service.send_deposit_link(stores, planyo, "1001", force=True)

    assert stores.sent.has_recent("1001")


def test_expired_record_allows_resend(stores, planyo, outbox):
    stores.sent.mark("1001", now=utcnow() - timedelta(days=4))

    result = deposit_service.send_deposit_link(stores, planyo, "1001")

    assert "skipped" not in result
    assert len(outbox) == 2
    assert stores.sent.get("1001") > utcnow() - timedelta(minutes=1)


def test_create_hold_uses_manual_capture_metadata_and_description(planyo, fake_stripe):
    intent = deposit_service.create_hold(planyo, "1001", 5000)

    kwargs = fake_stripe.created_kwargs[0]
    assert stripe_service.booking_id_of(intent) == "1001"
    assert stripe_service.purpose_of(intent) == "deposit"
    assert kwargs["currency"] == "gbp"
    assert kwargs["description"] == "Booking #1001 | Jane Doe | VW California | 2026-10-19 09:00:00 → 2026-10-22 17:00:00"


@pytest.mark.parametrize("amount", [0, -5, True, "100"])
def test_create_hold_rejects_bad_amount(planyo, fake_stripe, amount):
    with pytest.raises(InvalidAmountError):
        deposit_service.create_hold(planyo, "1001", amount)
    assert fake_stripe.intents == []


def test_page_hold_is_reused_while_awaiting_customer(planyo, fake_stripe):
    first, _ = deposit_service.get_or_create_page_hold(planyo, "1001", 100)
    second, booking = deposit_service.get_or_create_page_hold(planyo, "1001", 100)

    assert first.id == second.id
    assert len(fake_stripe.intents) == 1
    assert booking.email == "jane@example.com"
    assert fake_stripe.created_kwargs[0]["idempotency_key"].startswith("deposit-page-1001-100-")


def test_page_hold_not_reused_once_authorised_or_amount_differs(planyo, fake_stripe):
    held = fake_stripe.add("1001", 100, status="requires_capture")
    fake_stripe.add("1001", 500)

    intent, _ = deposit_service.get_or_create_page_hold(planyo, "1001", 100)

    assert intent.id != held.id
    assert intent.amount == 100
    assert len(fake_stripe.intents) == 3


def test_cancel_emails_once_per_hold(stores, planyo, fake_stripe, outbox):
    pi = fake_stripe.add("1001", 100, status="requires_capture")

    result = deposit_service.cancel_hold(stores, planyo, pi.id)

    assert result == {"id": pi.id, "status": "canceled", "emailSent": True}
    assert len(outbox) == 1
    assert outbox[0]["to"] == ["jane@example.com", "admin@example.com"]

    with pytest.raises(PaymentServiceError):
        deposit_service.cancel_hold(stores, planyo, pi.id)
    assert len(outbox) == 1


def test_cancel_notice_not_resent_when_already_marked(stores, planyo, fake_stripe, outbox):
    pi = fake_stripe.add("1001", 100, status="requires_capture")
    stores.cancel_notices.mark(pi.id)

    result = deposit_service.cancel_hold(stores, planyo, pi.id)

    assert result["status"] == "canceled"
    assert outbox == []


def test_cancel_without_email_still_cancels(stores, planyo, fake_stripe, outbox):
    pi = fake_stripe.add("2002", 100, status="requires_capture")

    result = deposit_service.cancel_hold(stores, planyo, pi.id)

    assert result == {"id": pi.id, "status": "canceled"}
    assert outbox == []


def test_canceled_hold_cannot_be_captured(stores, planyo, fake_stripe, outbox):
    pi = fake_stripe.add("1001", 100, status="requires_capture")
    deposit_service.cancel_hold(stores, planyo, pi.id)

    with pytest.raises(PaymentServiceError, match="status of canceled"):
        deposit_service.capture_hold(pi.id)


def test_capture_partial_amount(fake_stripe):
    pi = fake_stripe.add("1001", 20000, status="requires_capture")

    result = deposit_service.capture_hold(pi.id, 7500)

    assert result["status"] == "succeeded"
    assert result["amount_received"] == 7500
    assert result["bookingID"] == "1001"


def test_deposit_status_reports_first_reportable_hold(fake_stripe):
    fake_stripe.add("1001", 100, status="canceled")
    held = fake_stripe.add("1001", 100, status="requires_capture")
    fake_stripe.add("1001", 100, status="requires_payment_method")
    fake_stripe.add("3003", 100, status="succeeded")

    status = deposit_service.deposit_status("1001")

    assert status["status"] == "requires_capture"
    assert status["label"] == "Hold Successful"
    assert status["holdId"] == held.id


def test_deposit_status_none(fake_stripe):
    fake_stripe.add("1001", 100, status="requires_payment_method")

    assert deposit_service.deposit_status("1001")["status"] == "none"


def test_list_active_holds_only_requires_capture(planyo, fake_stripe):
    fake_stripe.add("1001", 100, status="requires_payment_method")
    held = fake_stripe.add("1001", 20000, status="requires_capture")

    rows = deposit_service.list_active_holds(planyo)

    assert rows == [{
        "id": held.id,
        "bookingID": "1001",
        "amount": 20000,
        "status": "Hold Successful",
        "created": held.created,
        "name": "VW California",
        "start": "2026-10-19 09:00:00",
        "end": "2026-10-22 17:00:00",
        "customer": "Jane Doe",
    }]


def test_confirmation_requires_email(planyo, outbox):
    with pytest.raises(MissingEmailError):
        deposit_service.send_deposit_confirmation(planyo, "2002", 100)

    result = deposit_service.send_deposit_confirmation(planyo, "1001", 25000)

    assert result == {"success": True, "email": "jane@example.com"}
    assert "£250.00" in outbox[0]["html"]


def test_admin_copy_failure_still_marks_sent(stores, planyo, monkeypatch):
    sent = []

    def _send(to, subject, html, text=None):
        if to == "admin@example.com":
            raise EmailError("SendGrid error 503")
        sent.append(to)

    monkeypatch.setattr(deposit_service, "send_email", _send)

    result = deposit_service.send_deposit_link(stores, planyo, "1001")

    assert sent == ["jane@example.com"]
    assert result["adminNotified"] is False
    assert stores.sent.has_recent("1001")
    assert deposit_service.send_deposit_link(stores, planyo, "1001")["skipped"] is True
