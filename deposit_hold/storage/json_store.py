"""Flat JSON-file backends: loaded once, rewritten wholesale on every mutation."""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timedelta
from pathlib import Path

from deposit_hold.storage.base import FormStatus, FormStatusStore, IdempotencyStore, as_utc, utcnow

logger = logging.getLogger(__name__)


def _read_json(path: Path, default):
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8") or "null") or default
    except (OSError, json.JSONDecodeError):
        logger.exception("Could not read %s; starting empty", path)
        return default


def _write_json(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2, ensure_ascii=False)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


class JsonIdempotencyStore(IdempotencyStore):
    """File layout: [{"id": "<key>", "at": "<ISO-8601 UTC>"}, ...].

    A plain array of ids (older set-only files) is accepted and stamped with
    the load time, so those entries still age out after the window.
    """

    def __init__(self, path: str | Path, retention: timedelta | None = None):
        super().__init__(retention)
        self.path = Path(path)
        self._lock = threading.Lock()
        self._entries: dict[str, datetime] = self._load()

    def _load(self) -> dict[str, datetime]:
        raw = _read_json(self.path, [])
        loaded_at = utcnow()
        entries: dict[str, datetime] = {}
        if isinstance(raw, dict):
            raw = [{"id": k, "at": v} for k, v in raw.items()]
        for item in raw if isinstance(raw, list) else []:
            if isinstance(item, dict) and item.get("id") is not None:
                try:
                    entries[str(item["id"])] = as_utc(datetime.fromisoformat(str(item.get("at"))))
                except ValueError:
                    entries[str(item["id"])] = loaded_at
            elif isinstance(item, (str, int)):
                entries[str(item)] = loaded_at
        return entries

    def _flush(self) -> None:
        data = [{"id": k, "at": v.isoformat()} for k, v in sorted(self._entries.items(), key=lambda kv: kv[1])]
        _write_json(self.path, data)

    def get(self, key: str) -> datetime | None:
        return self._entries.get(str(key))

    def keys(self) -> list[str]:
        return list(self._entries)

    def _put(self, key: str, marked_at: datetime) -> None:
        with self._lock:
            self._entries[key] = marked_at
            self._flush()

    def _delete_older_than(self, cutoff: datetime) -> int:
        with self._lock:
            stale = [k for k, at in self._entries.items() if at < cutoff]
            for k in stale:
                del self._entries[k]
            if stale:
                self._flush()
        return len(stale)


class JsonFormStatusStore(FormStatusStore):
    """File layout: {"<bookingID>": {...status fields...}, ...}."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        raw = _read_json(self.path, {})
        self._records: dict[str, dict] = {str(k): v for k, v in raw.items() if isinstance(v, dict)} if isinstance(raw, dict) else {}

    def get(self, booking_id: str) -> FormStatus | None:
        data = self._records.get(str(booking_id))
        return FormStatus.from_dict(booking_id, data) if data is not None else None

    def save(self, status: FormStatus) -> None:
        with self._lock:
            self._records[status.booking_id] = status.to_dict()
            _write_json(self.path, self._records)

    def all(self) -> dict[str, FormStatus]:
        return {k: FormStatus.from_dict(k, v) for k, v in self._records.items()}
