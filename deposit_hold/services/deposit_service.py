"""Deposit hold workflow shared by the HTTP routes and the scheduler.

Hold lifecycle (Stripe PaymentIntent, capture_method=manual):
created -> requires_capture -> captured | canceled. Nothing moves a hold out
of requires_capture automatically; an admin cancels or captures it.
"""
import logging
from datetime import datetime, timezone
from urllib.parse import urlencode

from deposit_hold.core.config import settings
from deposit_hold.core.exceptions import EmailError, InvalidAmountError, MissingEmailError
from deposit_hold.services import email_templates, stripe_service
from deposit_hold.services.email_service import send_email
from deposit_hold.services.planyo_client import BookingInfo, PlanyoClient
from deposit_hold.storage.registry import Stores

logger = logging.getLogger(__name__)

# Page holds still waiting for the customer; safe to hand out again.
AWAITING_CUSTOMER = ("requires_payment_method", "requires_confirmation", "requires_action")
# Statuses the status query reports (hold active or terminal).
REPORTABLE = ("requires_capture", "succeeded", "canceled")
HOLD_SUCCESSFUL = "Hold Successful"


def hold_description(booking_id: str, booking: BookingInfo) -> str:
    parts = [
        f"Booking #{booking_id}",
        booking.customer_name,
        booking.resource,
        f"{booking.start} → {booking.end}",
    ]
    return " | ".join(p for p in parts if p)


def payment_link(booking_id: str, amount: int | None = None) -> str:
    link = f"{settings.SERVER_URL.rstrip('/')}/deposit/pay/{booking_id}"
    if amount:
        link += "?" + urlencode({"amount": amount})
    return link


def _validate_amount(amount) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError("amount must be a positive integer in minor currency units")
    return amount


def create_hold(planyo: PlanyoClient, booking_id: str, amount: int, booking: BookingInfo | None = None,
                idempotency_key: str | None = None):
    amount = _validate_amount(amount)
    booking = booking or planyo.get_reservation(booking_id)
    intent = stripe_service.create_intent(
        booking_id=booking_id,
        amount=amount,
        currency=settings.DEPOSIT_CURRENCY,
        description=hold_description(booking_id, booking),
        idempotency_key=idempotency_key,
    )
    logger.info("Created hold %s for booking %s (%s)", intent.id, booking_id, amount)
    return intent


def intents_for_booking(booking_id: str, intents: list | None = None, limit: int = 100) -> list:
    """Holds tagged with the booking, newest first (Stripe lists newest first)."""
    if intents is None:
        intents = stripe_service.list_intents(limit=limit)
    return [pi for pi in intents if stripe_service.booking_id_of(pi) == str(booking_id)]


def get_or_create_page_hold(planyo: PlanyoClient, booking_id: str, amount: int):
    """Reuse an unpaid deposit hold for the same booking and amount; create one otherwise."""
    amount = _validate_amount(amount)
    booking = planyo.get_reservation(booking_id)
    for pi in intents_for_booking(booking_id):
        if (pi.status in AWAITING_CUSTOMER and pi.amount == amount
                and stripe_service.purpose_of(pi) == stripe_service.HOLD_PURPOSE):
            logger.info("Reusing hold %s for booking %s", pi.id, booking_id)
            return pi, booking
    hour = datetime.now(timezone.utc).strftime("%Y%m%d%H")
    intent = create_hold(planyo, booking_id, amount, booking=booking,
                         idempotency_key=f"deposit-page-{booking_id}-{amount}-{hour}")
    return intent, booking


def send_deposit_link(stores: Stores, planyo: PlanyoClient, booking_id: str, amount: int | None = None,
                      location_id: str | None = None, force: bool = False) -> dict:
    booking_id = str(booking_id)
    already_sent = stores.sent.has_recent(booking_id)
    if already_sent and not force:
        logger.info("Deposit link for booking %s already sent recently; skipping", booking_id)
        return {"success": True, "skipped": True, "reason": "already_sent", "bookingID": booking_id}

    booking = planyo.get_reservation(booking_id)
    if not booking.email:
        raise MissingEmailError("No customer email found")

    link = payment_link(booking_id, amount)
    logger.info("Sending deposit link for booking %s (amount=%s, location=%s, force=%s)", booking_id, amount, location_id, force)

    subject, html = email_templates.deposit_link_customer(booking, link)
    send_email(booking.email, subject, html)
    # Marked once the customer has the link. A forced re-send keeps the original mark.
    if not already_sent:
        stores.sent.mark(booking_id)

    result = {"success": True, "url": link, "locationId": location_id, "bookingID": booking_id}
    subject, html = email_templates.deposit_link_admin(booking, link)
    try:
        send_email(settings.ADMIN_EMAIL, subject, html)
    except EmailError:
        logger.exception("Admin copy of deposit link for booking %s failed", booking_id)
        result["adminNotified"] = False
    return result


def send_deposit_confirmation(planyo: PlanyoClient, booking_id: str, amount: int) -> dict:
    booking = planyo.get_reservation(booking_id)
    if not booking.email:
        raise MissingEmailError("Could not find customer email")
    subject, html = email_templates.hold_confirmation(booking, amount, settings.DEPOSIT_CURRENCY)
    send_email([booking.email, settings.ADMIN_EMAIL], subject, html)
    return {"success": True, "email": booking.email}


def cancel_hold(stores: Stores, planyo: PlanyoClient, hold_id: str) -> dict:
    intent = stripe_service.cancel_intent(hold_id)
    result = {"id": intent.id, "status": intent.status}

    booking_id = stripe_service.booking_id_of(intent)
    if not booking_id or stores.cancel_notices.has_recent(intent.id):
        return result
    booking = planyo.get_reservation(booking_id)
    if not booking.email:
        return result
    subject, html = email_templates.hold_cancelled(booking, intent.amount, intent.currency or settings.DEPOSIT_CURRENCY)
    try:
        send_email([booking.email, settings.ADMIN_EMAIL], subject, html)
    except EmailError:
        # The hold is already released; report the cancel and leave the notice unmarked.
        logger.exception("Cancellation email for hold %s failed", intent.id)
        result["emailSent"] = False
        return result
    stores.cancel_notices.mark(intent.id)
    result["emailSent"] = True
    return result


def capture_hold(hold_id: str, amount_to_capture: int | None = None) -> dict:
    if amount_to_capture is not None:
        _validate_amount(amount_to_capture)
    intent = stripe_service.capture_intent(hold_id, amount_to_capture)
    logger.info("Captured hold %s (%s)", intent.id, getattr(intent, "amount_received", None))
    return {
        "id": intent.id,
        "status": intent.status,
        "amount": intent.amount,
        "amount_received": getattr(intent, "amount_received", None),
        "bookingID": stripe_service.booking_id_of(intent),
    }


def display_status(status: str) -> str:
    return HOLD_SUCCESSFUL if status == "requires_capture" else status


def hold_row(intent, booking: BookingInfo) -> dict:
    return {
        "id": intent.id,
        "bookingID": booking.booking_id,
        "amount": intent.amount,
        "status": display_status(intent.status),
        "created": intent.created,
        "name": booking.resource,
        "start": booking.start,
        "end": booking.end,
        "customer": booking.customer_name,
    }


def list_active_holds(planyo: PlanyoClient, limit: int = 50) -> list[dict]:
    rows, bookings = [], {}
    for pi in stripe_service.list_intents(limit=limit):
        booking_id = stripe_service.booking_id_of(pi)
        if not booking_id or pi.status != "requires_capture":
            continue
        if booking_id not in bookings:
            bookings[booking_id] = planyo.get_reservation(booking_id)
        rows.append(hold_row(pi, bookings[booking_id]))
    return rows


def list_holds_for_booking(planyo: PlanyoClient, booking_id: str, limit: int = 100) -> list[dict]:
    intents = intents_for_booking(booking_id, limit=limit)
    booking = planyo.get_reservation(booking_id)
    return [hold_row(pi, booking) for pi in intents]


def deposit_status(booking_id: str, intents: list | None = None) -> dict:
    for pi in intents_for_booking(booking_id, intents):
        if pi.status in REPORTABLE:
            return {
                "bookingID": str(booking_id),
                "status": pi.status,
                "label": display_status(pi.status),
                "holdId": pi.id,
                "amount": pi.amount,
            }
    return {"bookingID": str(booking_id), "status": "none", "label": "No deposit", "holdId": None, "amount": None}
