from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from deposit_hold.core.config import settings
from deposit_hold.services import deposit_service, stripe_service
from deposit_hold.services.planyo_client import BookingInfo, PlanyoClient
from deposit_hold.storage.registry import Stores


def _enrich(stores: Stores, booking: BookingInfo, intents: list) -> dict:
    sent_at = stores.sent.get(booking.booking_id)
    return {
        **booking.to_dict(),
        "customer": booking.customer_name,
        "deposit": deposit_service.deposit_status(booking.booking_id, intents),
        "linkSent": sent_at is not None,
        "linkSentAt": sent_at.isoformat() if sent_at else None,
        "forms": stores.forms.get_or_default(booking.booking_id).to_api(),
    }


def upcoming_bookings(stores: Stores, planyo: PlanyoClient, days: int = 7, now: datetime | None = None) -> list[dict]:
    tz = ZoneInfo(settings.SCHEDULER_TIMEZONE)
    start = (now or datetime.now(tz)).astimezone(tz).replace(tzinfo=None)
    end = start + timedelta(days=days)
    rows = planyo.list_reservations(start, end)
    intents = stripe_service.list_intents(limit=100)
    out = []
    for row in rows:
        booking_id = row.get("reservation_id") or row.get("id")
        if booking_id is None:
            continue
        out.append(_enrich(stores, BookingInfo.from_planyo(str(booking_id), row), intents))
    return out


def booking_detail(stores: Stores, planyo: PlanyoClient, booking_id: str) -> dict:
    booking = planyo.get_reservation(booking_id)
    intents = deposit_service.intents_for_booking(booking_id)
    detail = _enrich(stores, booking, intents)
    detail["holds"] = [deposit_service.hold_row(pi, booking) for pi in intents]
    return detail
