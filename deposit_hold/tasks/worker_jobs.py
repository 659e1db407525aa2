import logging
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

from deposit_hold.core.config import settings
from deposit_hold.core.exceptions import MissingEmailError
from deposit_hold.services import deposit_service
from deposit_hold.services.planyo_client import PlanyoClient, get_planyo_client
from deposit_hold.storage.registry import Stores, get_stores

logger = logging.getLogger(__name__)


def tomorrow_window(now: datetime | None = None, tz_name: str | None = None) -> tuple[datetime, datetime]:
    """Naive local [00:00:00, 23:59:59] of tomorrow in the scheduler timezone."""
    tz = ZoneInfo(tz_name or settings.SCHEDULER_TIMEZONE)
    local_now = (now or datetime.now(tz)).astimezone(tz)
    tomorrow = local_now.date() + timedelta(days=1)
    return datetime.combine(tomorrow, time(0, 0, 0)), datetime.combine(tomorrow, time(23, 59, 59))


def _status_of(row: dict) -> int | None:
    try:
        return int(row.get("status"))
    except (TypeError, ValueError):
        return None


def run_deposit_scheduler(now: datetime | None = None, stores: Stores | None = None,
                          planyo: PlanyoClient | None = None) -> dict:
    """Send deposit links for tomorrow's confirmed reservations that have not had one yet.

    Per-booking missing email is logged and skipped; anything else ends the run.
    Bookings left unsent are picked up by the next run via the sent store.
    """
    stores = stores or get_stores()
    planyo = planyo or get_planyo_client()
    counts = {"listed": 0, "eligible": 0, "sent": 0, "skipped": 0, "failed": 0, "aborted": False}

    try:
        start, end = tomorrow_window(now)
        rows = planyo.list_reservations(start, end)
        counts["listed"] = len(rows)
        for row in rows:
            booking_id = row.get("reservation_id") or row.get("id")
            if booking_id is None or _status_of(row) != settings.PLANYO_CONFIRMED_STATUS:
                continue
            booking_id = str(booking_id)
            counts["eligible"] += 1
            if stores.sent.has_recent(booking_id):
                counts["skipped"] += 1
                continue
            try:
                deposit_service.send_deposit_link(stores, planyo, booking_id)
                counts["sent"] += 1
            except MissingEmailError:
                logger.warning("Scheduler: booking %s has no email on file", booking_id)
                counts["failed"] += 1
    except Exception:
        logger.exception("Deposit scheduler run aborted")
        counts["aborted"] = True

    logger.info("Deposit scheduler run: %s", counts)
    return counts


def sweep_stores() -> dict:
    removed = get_stores().sweep()
    logger.info("Swept idempotency stores: %s", removed)
    return removed
