"""SQLAlchemy backends: one transaction per mutation, so every mark is an atomic upsert."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from deposit_hold.models.form_status import FormStatusRecord
from deposit_hold.models.idempotency_record import IdempotencyRecord
from deposit_hold.storage.base import FormStatus, FormStatusStore, IdempotencyStore, as_utc

_FORM_FIELDS = ("form_variant", "form_submitted_at", "dvla_status", "licence_number",
                "dvla_check_code", "dvla_updated_at", "dvla_note")


def _naive_utc(dt: datetime) -> datetime:
    return as_utc(dt).replace(tzinfo=None)


class SqlIdempotencyStore(IdempotencyStore):
    def __init__(self, session_factory: sessionmaker, namespace: str, retention: timedelta | None = None):
        super().__init__(retention)
        self.session_factory = session_factory
        self.namespace = namespace

    def get(self, key: str) -> datetime | None:
        db: Session = self.session_factory()
        try:
            rec = db.get(IdempotencyRecord, (self.namespace, str(key)))
            return rec.marked_at.replace(tzinfo=timezone.utc) if rec else None
        finally:
            db.close()

    def keys(self) -> list[str]:
        db: Session = self.session_factory()
        try:
            return list(db.scalars(select(IdempotencyRecord.key).where(IdempotencyRecord.namespace == self.namespace)))
        finally:
            db.close()

    def _put(self, key: str, marked_at: datetime) -> None:
        db: Session = self.session_factory()
        try:
            db.merge(IdempotencyRecord(namespace=self.namespace, key=key, marked_at=_naive_utc(marked_at)))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _delete_older_than(self, cutoff: datetime) -> int:
        db: Session = self.session_factory()
        try:
            res = db.execute(
                delete(IdempotencyRecord).where(
                    IdempotencyRecord.namespace == self.namespace,
                    IdempotencyRecord.marked_at < _naive_utc(cutoff),
                )
            )
            db.commit()
            return res.rowcount or 0
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class SqlFormStatusStore(FormStatusStore):
    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @staticmethod
    def _to_status(rec: FormStatusRecord) -> FormStatus:
        return FormStatus(booking_id=rec.booking_id, **{f: getattr(rec, f) for f in _FORM_FIELDS})

    def get(self, booking_id: str) -> FormStatus | None:
        db: Session = self.session_factory()
        try:
            rec = db.get(FormStatusRecord, str(booking_id))
            return self._to_status(rec) if rec else None
        finally:
            db.close()

    def save(self, status: FormStatus) -> None:
        db: Session = self.session_factory()
        try:
            db.merge(FormStatusRecord(booking_id=status.booking_id, **{f: getattr(status, f) for f in _FORM_FIELDS}))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def all(self) -> dict[str, FormStatus]:
        db: Session = self.session_factory()
        try:
            return {rec.booking_id: self._to_status(rec) for rec in db.scalars(select(FormStatusRecord))}
        finally:
            db.close()
