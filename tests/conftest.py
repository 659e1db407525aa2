from datetime import timedelta

import pytest
import stripe
from fastapi.testclient import TestClient

from deposit_hold.api import deps
from deposit_hold.api.v1.routes import deposits as deposits_routes
from deposit_hold.core.config import settings
from deposit_hold.core.exceptions import PaymentServiceError
from deposit_hold.main import app
from deposit_hold.services import deposit_service, stripe_service, webhook_service
from deposit_hold.services.planyo_client import BookingInfo
from deposit_hold.storage import registry
from deposit_hold.storage.json_store import JsonFormStatusStore, JsonIdempotencyStore
from deposit_hold.storage.registry import Stores


class FakePlanyo:
    """Stands in for PlanyoClient; unknown ids give the N/A placeholder like the real lookup."""

    def __init__(self, bookings=None, rows=None):
        self.bookings = bookings or {}
        self.rows = rows or []
        self.lookups = []
        self.list_calls = []
        self.list_error = None

    def get_reservation(self, booking_id):
        self.lookups.append(str(booking_id))
        return self.bookings.get(str(booking_id)) or BookingInfo.not_found(str(booking_id))

    def list_reservations(self, start, end, required_status=None):
        self.list_calls.append((start, end))
        if self.list_error:
            raise self.list_error
        return list(self.rows)


class FakeStripe:
    """In-memory SDK PaymentIntents following Stripe's manual-capture state rules."""

    def __init__(self):
        self.intents = []
        self.created_kwargs = []
        self._seq = 0

    def add(self, booking_id, amount=100, status="requires_payment_method", purpose="deposit"):
        self._seq += 1
        pi = stripe.PaymentIntent.construct_from({
            "id": f"pi_{self._seq}",
            "object": "payment_intent",
            "amount": amount,
            "amount_received": 0,
            "currency": "gbp",
            "status": status,
            "created": 1760000000 + self._seq,
            "client_secret": f"pi_{self._seq}_secret",
            "metadata": {"bookingID": str(booking_id), "purpose": purpose},
        }, "sk_test")
        self.intents.insert(0, pi)  # newest first, like Stripe
        return pi

    def _get(self, intent_id):
        for pi in self.intents:
            if pi.id == intent_id:
                return pi
        raise PaymentServiceError(f"No such payment_intent: '{intent_id}'")

    def create_intent(self, *, booking_id, amount, currency, description, idempotency_key=None):
        self.created_kwargs.append({"booking_id": booking_id, "amount": amount, "currency": currency,
                                    "description": description, "idempotency_key": idempotency_key})
        return self.add(booking_id, amount)

    def list_intents(self, limit=100):
        return self.intents[:limit]

    def cancel_intent(self, intent_id):
        pi = self._get(intent_id)
        if pi.status in ("canceled", "succeeded"):
            raise PaymentServiceError(
                f"You cannot cancel this PaymentIntent because it has a status of {pi.status}."
            )
        pi.status = "canceled"
        return pi

    def capture_intent(self, intent_id, amount_to_capture=None):
        pi = self._get(intent_id)
        if pi.status != "requires_capture":
            raise PaymentServiceError(
                f"This PaymentIntent could not be captured because it has a status of {pi.status}."
            )
        pi.status = "succeeded"
        pi.amount_received = amount_to_capture or pi.amount
        return pi

    def create_connection_token(self):
        return "pst_test_secret"


@pytest.fixture(autouse=True)
def _settings(monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "SERVER_URL", "https://deposits.example.com")
    monkeypatch.setattr(settings, "ADMIN_EMAIL", "admin@example.com")
    monkeypatch.setattr(settings, "ADMIN_API_TOKEN", "")
    monkeypatch.setattr(settings, "DEPOSIT_CURRENCY", "gbp")
    monkeypatch.setattr(settings, "PLANYO_HASH_KEY", "planyo-secret")
    monkeypatch.setattr(settings, "PLANYO_CONFIRMED_STATUS", 7)
    monkeypatch.setattr(settings, "DATA_DIR", str(tmp_path / "data"))


@pytest.fixture
def stores(tmp_path, monkeypatch) -> Stores:
    data = tmp_path / "data"
    s = Stores(
        sent=JsonIdempotencyStore(data / "sentDeposits.json", timedelta(days=3)),
        processed=JsonIdempotencyStore(data / "processedCallbacks.json", timedelta(days=30)),
        cancel_notices=JsonIdempotencyStore(data / "cancelNotices.json", timedelta(days=30)),
        forms=JsonFormStatusStore(data / "form-status.json"),
    )
    monkeypatch.setattr(registry, "_stores", s)
    return s


@pytest.fixture
def jane() -> BookingInfo:
    return BookingInfo(
        booking_id="1001",
        resource="VW California",
        start="2026-10-19 09:00:00",
        end="2026-10-22 17:00:00",
        first_name="Jane",
        last_name="Doe",
        email="jane@example.com",
        status=7,
    )


@pytest.fixture
def planyo(jane) -> FakePlanyo:
    return FakePlanyo(bookings={"1001": jane, "2002": BookingInfo(booking_id="2002", first_name="No", last_name="Email")})


@pytest.fixture
def fake_stripe(monkeypatch) -> FakeStripe:
    fake = FakeStripe()
    for name in ("create_intent", "list_intents", "cancel_intent", "capture_intent", "create_connection_token"):
        monkeypatch.setattr(stripe_service, name, getattr(fake, name))
    return fake


@pytest.fixture
def outbox(monkeypatch) -> list:
    sent = []

    def _send(to, subject, html, text=None):
        sent.append({"to": to, "subject": subject, "html": html})

    for module in (deposit_service, webhook_service, deposits_routes):
        monkeypatch.setattr(module, "send_email", _send)
    return sent


@pytest.fixture
def client(stores, planyo, fake_stripe, outbox):
    app.dependency_overrides[deps.get_planyo] = lambda: planyo
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
