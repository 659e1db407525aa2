"""Store interfaces shared by the JSON-file and SQL backends.

Handlers only see ``IdempotencyStore`` and ``FormStatusStore``; the backend is
picked from settings in ``deposit_hold.storage.registry``.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt.astimezone(timezone.utc)


class IdempotencyStore(ABC):
    """Keyed "already done" marks with optional time-boxed expiry.

    retention=None means marks never expire (sweep is then a no-op).
    """

    def __init__(self, retention: timedelta | None = None):
        self.retention = retention

    @abstractmethod
    def get(self, key: str) -> datetime | None:
        """Time the key was marked, or None."""

    @abstractmethod
    def keys(self) -> list[str]:
        ...

    @abstractmethod
    def _put(self, key: str, marked_at: datetime) -> None:
        ...

    @abstractmethod
    def _delete_older_than(self, cutoff: datetime) -> int:
        ...

    def has_recent(self, key: str, now: datetime | None = None) -> bool:
        marked_at = self.get(str(key))
        if marked_at is None:
            return False
        if self.retention is None:
            return True
        return as_utc(now or utcnow()) - as_utc(marked_at) < self.retention

    def mark(self, key: str, now: datetime | None = None) -> None:
        self._put(str(key), as_utc(now or utcnow()))

    def sweep(self, now: datetime | None = None) -> int:
        if self.retention is None:
            return 0
        return self._delete_older_than(as_utc(now or utcnow()) - self.retention)


class DvlaStatus(str, Enum):
    pending = "pending"
    checked = "checked"
    valid = "valid"
    invalid = "invalid"


class FormVariant(str, Enum):
    new_customer = "new_customer"
    returning_customer = "returning_customer"


@dataclass
class FormStatus:
    booking_id: str
    form_variant: str | None = None
    form_submitted_at: str | None = None
    dvla_status: str = DvlaStatus.pending.value
    licence_number: str | None = None
    dvla_check_code: str | None = None
    dvla_updated_at: str | None = None
    dvla_note: str | None = None

    @classmethod
    def from_dict(cls, booking_id: str, data: dict) -> FormStatus:
        known = {k: data[k] for k in cls.__dataclass_fields__ if k in data and k != "booking_id"}
        return cls(booking_id=str(booking_id), **known)

    def to_dict(self) -> dict:
        data = asdict(self)
        data.pop("booking_id")
        return data

    def to_api(self) -> dict:
        return {
            "bookingID": self.booking_id,
            "formCompleted": self.form_variant is not None,
            "formVariant": self.form_variant,
            "formSubmittedAt": self.form_submitted_at,
            "dvlaStatus": self.dvla_status,
            "licenceNumber": self.licence_number,
            "dvlaUpdatedAt": self.dvla_updated_at,
            "dvlaNote": self.dvla_note,
        }


class FormStatusStore(ABC):
    @abstractmethod
    def get(self, booking_id: str) -> FormStatus | None:
        ...

    @abstractmethod
    def save(self, status: FormStatus) -> None:
        ...

    @abstractmethod
    def all(self) -> dict[str, FormStatus]:
        ...

    def get_or_default(self, booking_id: str) -> FormStatus:
        return self.get(str(booking_id)) or FormStatus(booking_id=str(booking_id))
