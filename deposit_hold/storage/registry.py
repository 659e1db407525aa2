import logging
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from deposit_hold.core.config import settings
from deposit_hold.storage.base import FormStatusStore, IdempotencyStore

logger = logging.getLogger(__name__)

SENT_DEPOSITS_FILE = "sentDeposits.json"
PROCESSED_CALLBACKS_FILE = "processedCallbacks.json"
CANCEL_NOTICES_FILE = "cancelNotices.json"
FORM_STATUS_FILE = "form-status.json"


@dataclass
class Stores:
    sent: IdempotencyStore            # deposit-link emails, SENT_RETENTION_DAYS window
    processed: IdempotencyStore       # Planyo callbacks (booking id) and Stripe events (event id)
    cancel_notices: IdempotencyStore  # cancellation emails, keyed by hold id
    forms: FormStatusStore

    def sweep(self) -> dict:
        return {
            "sent": self.sent.sweep(),
            "processed": self.processed.sweep(),
            "cancelNotices": self.cancel_notices.sweep(),
        }


def build_stores() -> Stores:
    sent_retention = timedelta(days=settings.SENT_RETENTION_DAYS)
    processed_retention = timedelta(days=settings.PROCESSED_RETENTION_DAYS)

    if settings.STORAGE_BACKEND == "sql":
        from deposit_hold.db.session import Base, SessionLocal, engine
        from deposit_hold.storage.sql_store import SqlFormStatusStore, SqlIdempotencyStore

        if settings.DATABASE_URL.startswith("sqlite:///./"):
            Path(settings.DATABASE_URL[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
        Base.metadata.create_all(bind=engine, checkfirst=True)
        return Stores(
            sent=SqlIdempotencyStore(SessionLocal, "sent_deposits", sent_retention),
            processed=SqlIdempotencyStore(SessionLocal, "processed_callbacks", processed_retention),
            cancel_notices=SqlIdempotencyStore(SessionLocal, "cancel_notices", processed_retention),
            forms=SqlFormStatusStore(SessionLocal),
        )

    from deposit_hold.storage.json_store import JsonFormStatusStore, JsonIdempotencyStore

    data_dir = Path(settings.DATA_DIR)
    return Stores(
        sent=JsonIdempotencyStore(data_dir / SENT_DEPOSITS_FILE, sent_retention),
        processed=JsonIdempotencyStore(data_dir / PROCESSED_CALLBACKS_FILE, processed_retention),
        cancel_notices=JsonIdempotencyStore(data_dir / CANCEL_NOTICES_FILE, processed_retention),
        forms=JsonFormStatusStore(data_dir / FORM_STATUS_FILE),
    )


_stores: Stores | None = None


def get_stores() -> Stores:
    global _stores
    if _stores is None:
        _stores = build_stores()
        logger.info("Stores ready (backend=%s)", settings.STORAGE_BACKEND)
    return _stores
