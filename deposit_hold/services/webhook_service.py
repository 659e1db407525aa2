import logging

from deposit_hold.core.config import settings
from deposit_hold.core.exceptions import MissingEmailError
from deposit_hold.services import deposit_service, email_templates
from deposit_hold.services.email_service import send_email
from deposit_hold.services.planyo_client import PlanyoClient
from deposit_hold.services.stripe_service import booking_id_of, field
from deposit_hold.storage.registry import Stores

logger = logging.getLogger(__name__)

CONFIRMATION_NOTIFICATIONS = ("reservation_confirmed",)


def handle_stripe_event(stores: Stores, planyo: PlanyoClient, event) -> dict:
    event_id = event["id"]
    event_type = event["type"]
    if stores.processed.has_recent(event_id):
        logger.info("Stripe event %s already processed", event_id)
        return {"received": True, "duplicate": True}

    obj = event["data"]["object"]
    intent_id = field(obj, "id")
    booking_id = booking_id_of(obj)

    if event_type == "payment_intent.amount_capturable_updated":
        logger.info("Hold placed: %s (booking %s)", intent_id, booking_id)
        if booking_id:
            booking = planyo.get_reservation(booking_id)
            if booking.email:
                amount = field(obj, "amount_capturable") or field(obj, "amount") or 0
                subject, html = email_templates.hold_confirmation(booking, amount, field(obj, "currency") or settings.DEPOSIT_CURRENCY)
                send_email([booking.email, settings.ADMIN_EMAIL], subject, html)
            else:
                logger.warning("Hold %s placed but booking %s has no email on file", intent_id, booking_id)
    elif event_type == "payment_intent.succeeded":
        logger.info("PaymentIntent succeeded: %s", intent_id)
    elif event_type == "payment_intent.payment_failed":
        logger.warning("PaymentIntent failed: %s", intent_id)
    elif event_type == "payment_intent.canceled":
        logger.info("PaymentIntent canceled: %s", intent_id)
    else:
        logger.info("Unhandled event type: %s", event_type)

    stores.processed.mark(event_id)
    return {"received": True}


def booking_id_from_callback(params: dict) -> str | None:
    booking_id = params.get("reservation") or params.get("reservation_id")
    return str(booking_id) if booking_id not in (None, "") else None


def is_confirmation(params: dict) -> bool:
    if params.get("notification_type") in CONFIRMATION_NOTIFICATIONS:
        return True
    try:
        return int(params.get("status")) == settings.PLANYO_CONFIRMED_STATUS
    except (TypeError, ValueError):
        return False


def handle_planyo_callback(stores: Stores, planyo: PlanyoClient, params: dict) -> dict:
    booking_id = booking_id_from_callback(params)
    if not booking_id:
        logger.info("Planyo callback without reservation id: %s", params.get("notification_type"))
        return {"ok": True, "handled": False}
    if not is_confirmation(params):
        return {"ok": True, "handled": False, "bookingID": booking_id}
    if stores.processed.has_recent(booking_id):
        logger.info("Planyo callback for booking %s already processed", booking_id)
        return {"ok": True, "duplicate": True, "bookingID": booking_id}

    try:
        result = deposit_service.send_deposit_link(stores, planyo, booking_id)
    except MissingEmailError as e:
        logger.warning("Planyo callback for booking %s: %s", booking_id, e)
        return {"ok": False, "bookingID": booking_id, "error": str(e)}

    stores.processed.mark(booking_id)
    return {"ok": True, "handled": True, "bookingID": booking_id, "deposit": result}
