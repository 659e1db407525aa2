import hashlib
import hmac
import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import requests

from deposit_hold.core.config import settings
from deposit_hold.core.exceptions import PlanyoError

logger = logging.getLogger(__name__)

# "Invalid hash_timestamp ... current timestamp is 1760781234" (wording varies slightly)
_DRIFT_RE = re.compile(r"current\s+(?:unix\s+)?timestamp\s*(?:is|:|=)?\s*(\d{9,11})", re.IGNORECASE)

NOT_AVAILABLE = "N/A"
PLANYO_DATETIME_FMT = "%Y-%m-%d %H:%M:%S"


@dataclass
class PlanyoConfig:
    api_key: str            # api_key query parameter
    hash_key: str           # shared secret used for hash_key
    site_id: str = ""
    base_url: str = "https://www.planyo.com/rest/"
    timeout: int = 20


@dataclass
class PlanyoResult:
    ok: bool
    code: int | None = None
    message: str = ""
    data: Any = None
    raw: Any = None         # raw text or payload, kept for diagnostics


@dataclass
class BookingInfo:
    booking_id: str
    resource: str = NOT_AVAILABLE
    start: str = NOT_AVAILABLE
    end: str = NOT_AVAILABLE
    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    status: int | None = None
    total_price: str | None = None
    amount_paid: str | None = None
    currency: str | None = None

    @classmethod
    def not_found(cls, booking_id: str) -> "BookingInfo":
        return cls(booking_id=str(booking_id))

    @classmethod
    def from_planyo(cls, booking_id: str, data: dict) -> "BookingInfo":
        status = data.get("status")
        try:
            status = int(status) if status not in (None, "") else None
        except (TypeError, ValueError):
            status = None
        return cls(
            booking_id=str(booking_id),
            resource=data.get("name") or NOT_AVAILABLE,
            start=data.get("start_time") or NOT_AVAILABLE,
            end=data.get("end_time") or NOT_AVAILABLE,
            first_name=data.get("first_name") or "",
            last_name=data.get("last_name") or "",
            email=(data.get("email") or "").strip() or None,
            status=status,
            total_price=_str_or_none(data.get("total_price")),
            amount_paid=_str_or_none(data.get("amount_paid")),
            currency=data.get("currency") or None,
        )

    @property
    def customer_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict:
        return {
            "bookingID": self.booking_id,
            "resource": self.resource,
            "start": self.start,
            "end": self.end,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "status": self.status,
            "totalPrice": self.total_price,
            "amountPaid": self.amount_paid,
            "currency": self.currency,
        }


def _str_or_none(v: Any) -> str | None:
    return None if v in (None, "") else str(v)


def planyo_hash(secret: str, timestamp: int, method: str) -> str:
    return hashlib.md5(f"{secret}{timestamp}{method}".encode("utf-8")).hexdigest()


def drift_timestamp(message: str) -> int | None:
    """Server's own clock, when the error message reports one."""
    m = _DRIFT_RE.search(message or "")
    return int(m.group(1)) if m else None


def callback_hash(params: dict, secret: str) -> str:
    """Notification hash: values of all non-hash params ordered by key, then the secret."""
    concat = "".join(str(params[k]) for k in sorted(params) if k != "hash")
    return hashlib.md5(f"{concat}{secret}".encode("utf-8")).hexdigest()


def verify_callback(params: dict, secret: str) -> bool:
    received = str(params.get("hash") or "")
    if not received or not secret:
        return False
    return hmac.compare_digest(callback_hash(params, secret), received.lower())


class PlanyoClient:
    def __init__(self, cfg: PlanyoConfig):
        self.cfg = cfg

    @property
    def configured(self) -> bool:
        return bool(self.cfg.api_key and self.cfg.hash_key)

    def signed_params(self, method: str, timestamp: int, params: dict | None = None) -> dict:
        query = {
            "method": method,
            "api_key": self.cfg.api_key,
            "hash_timestamp": str(timestamp),
            "hash_key": planyo_hash(self.cfg.hash_key, timestamp, method),
        }
        for k, v in (params or {}).items():
            if v is not None:
                query[k] = str(v)
        return query

    def _request(self, method: str, timestamp: int, params: dict) -> PlanyoResult:
        query = self.signed_params(method, timestamp, params)
        try:
            r = requests.get(self.cfg.base_url, params=query, timeout=self.cfg.timeout)
        except requests.RequestException as e:
            return PlanyoResult(ok=False, code=-1, message=f"Planyo request failed: {e}")
        try:
            payload = r.json()
        except ValueError:
            return PlanyoResult(ok=False, code=-1, message=f"Planyo returned non-JSON response (HTTP {r.status_code})", raw=r.text)
        if not isinstance(payload, dict):
            return PlanyoResult(ok=False, code=-1, message="Planyo returned an unexpected payload", raw=payload)

        try:
            code = int(payload.get("response_code"))
        except (TypeError, ValueError):
            code = -1
        return PlanyoResult(
            ok=code == 0,
            code=code,
            message=str(payload.get("response_message") or ""),
            data=payload.get("data"),
            raw=payload,
        )

    def call(self, method: str, **params) -> PlanyoResult:
        """Signed call. A clock-drift rejection is retried once with the server's timestamp."""
        if not self.configured:
            return PlanyoResult(ok=False, code=-1, message="Planyo is not configured (missing PLANYO_API_KEY/PLANYO_HASH_KEY)")

        timestamp = int(time.time())
        result = self._request(method, timestamp, params)
        if result.ok:
            return result

        corrected = drift_timestamp(result.message)
        if corrected is None:
            return result
        logger.warning("Planyo %s rejected timestamp %s; retrying with server time %s", method, timestamp, corrected)
        result = self._request(method, corrected, params)
        if not result.ok:
            logger.error("Planyo %s failed after drift retry: %s", method, result.message)
        return result

    def get_reservation(self, booking_id: str) -> BookingInfo:
        """Never raises; failures give the N/A placeholder record with email=None."""
        booking_id = str(booking_id)
        result = self.call("get_reservation_data", reservation_id=booking_id)
        if result.ok and isinstance(result.data, dict) and result.data:
            return BookingInfo.from_planyo(booking_id, result.data)
        logger.warning("Planyo lookup for booking %s failed: %s", booking_id, result.message or "empty result")
        return BookingInfo.not_found(booking_id)

    def list_reservations(self, start: datetime, end: datetime, required_status: int | None = None) -> list[dict]:
        result = self.call(
            "list_reservations",
            start_time=start.strftime(PLANYO_DATETIME_FMT),
            end_time=end.strftime(PLANYO_DATETIME_FMT),
            site_id=self.cfg.site_id or None,
            required_status=required_status,
        )
        if not result.ok:
            raise PlanyoError(f"Planyo list_reservations failed: {result.message or result.code}")
        data = result.data if isinstance(result.data, dict) else {}
        results = data.get("results") or []
        return [r for r in results if isinstance(r, dict)]


def get_planyo_client() -> PlanyoClient:
    return PlanyoClient(PlanyoConfig(
        api_key=settings.PLANYO_API_KEY,
        hash_key=settings.PLANYO_HASH_KEY,
        site_id=settings.PLANYO_SITE_ID,
        base_url=settings.PLANYO_BASE_URL,
        timeout=settings.PLANYO_TIMEOUT,
    ))
