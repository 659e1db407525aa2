"""Thin wrapper around the Stripe SDK for manual-capture deposit holds.

Every call configures the API key from settings and maps SDK errors onto
PaymentServiceError so handlers can report the Stripe message verbatim.
"""
import logging
from typing import Any

import stripe

from deposit_hold.core.config import settings
from deposit_hold.core.exceptions import PaymentServiceError

logger = logging.getLogger(__name__)

HOLD_PURPOSE = "deposit"


def _configure() -> None:
    if not settings.STRIPE_SECRET_KEY:
        raise PaymentServiceError("Stripe is not configured (missing STRIPE_SECRET_KEY)")
    stripe.api_key = settings.STRIPE_SECRET_KEY


def _message(e: stripe.StripeError) -> str:
    return getattr(e, "user_message", None) or str(e) or e.__class__.__name__


def create_intent(*, booking_id: str, amount: int, currency: str, description: str,
                  idempotency_key: str | None = None) -> Any:
    _configure()
    kwargs = {}
    if idempotency_key:
        kwargs["idempotency_key"] = idempotency_key
    try:
        return stripe.PaymentIntent.create(
            amount=amount,
            currency=currency,
            capture_method="manual",
            payment_method_types=["card"],
            metadata={"bookingID": str(booking_id), "purpose": HOLD_PURPOSE},
            description=description,
            **kwargs,
        )
    except stripe.StripeError as e:
        logger.warning("Stripe rejected hold for booking %s: %s", booking_id, _message(e))
        raise PaymentServiceError(_message(e)) from e


def list_intents(limit: int = 100) -> list:
    _configure()
    try:
        return list(stripe.PaymentIntent.list(limit=limit).data)
    except stripe.StripeError as e:
        raise PaymentServiceError(_message(e)) from e


def cancel_intent(intent_id: str) -> Any:
    _configure()
    try:
        return stripe.PaymentIntent.cancel(intent_id)
    except stripe.StripeError as e:
        raise PaymentServiceError(_message(e)) from e


def capture_intent(intent_id: str, amount_to_capture: int | None = None) -> Any:
    _configure()
    kwargs = {}
    if amount_to_capture is not None:
        kwargs["amount_to_capture"] = amount_to_capture
    try:
        return stripe.PaymentIntent.capture(intent_id, **kwargs)
    except stripe.StripeError as e:
        raise PaymentServiceError(_message(e)) from e


def create_connection_token() -> str:
    _configure()
    try:
        return stripe.terminal.ConnectionToken.create().secret
    except stripe.StripeError as e:
        raise PaymentServiceError(_message(e)) from e


def construct_event(payload: bytes, signature: str) -> Any:
    """Raises ValueError / stripe.SignatureVerificationError on bad payloads."""
    if not settings.STRIPE_WEBHOOK_SECRET:
        raise ValueError("STRIPE_WEBHOOK_SECRET is not configured")
    return stripe.Webhook.construct_event(payload, signature, settings.STRIPE_WEBHOOK_SECRET)


def field(obj: Any, name: str, default: Any = None) -> Any:
    """Read a key off a StripeObject or a plain dict; StripeObject has no .get()."""
    if obj is None or name not in obj:
        return default
    return obj[name]


def booking_id_of(intent: Any) -> str | None:
    booking_id = field(field(intent, "metadata"), "bookingID")
    return str(booking_id) if booking_id else None


def purpose_of(intent: Any) -> str | None:
    return field(field(intent, "metadata"), "purpose")
