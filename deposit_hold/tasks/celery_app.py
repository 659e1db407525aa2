from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from celery import Celery
from celery.schedules import crontab
from deposit_hold.core.config import settings
from deposit_hold.core.logging_config import setup_logging


def broker_url(url: str, cert_reqs: str = "CERT_REQUIRED") -> str:
    """rediss:// brokers must name ssl_cert_reqs in the URL or Celery refuses them."""
    parts = urlsplit(url or "")
    if parts.scheme.lower() != "rediss":
        return url
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    query.setdefault("ssl_cert_reqs", cert_reqs)
    return urlunsplit(parts._replace(query=urlencode(query)))


def deposit_schedule(mode: str, daily_hour: int = 9) -> crontab:
    """intraday: every 30 minutes 08:00-20:59; daily: once at daily_hour:00."""
    if (mode or "").lower() == "daily":
        return crontab(minute=0, hour=daily_hour)
    return crontab(minute="0,30", hour="8-20")


setup_logging(settings.LOG_LEVEL)

_redis_url = broker_url(settings.REDIS_URL, settings.REDIS_SSL_CERT_REQS)

celery = Celery(
    "deposit_hold",
    broker=_redis_url,
    backend=_redis_url,
    include=["deposit_hold.tasks.jobs"],
)

celery.conf.timezone = settings.SCHEDULER_TIMEZONE

celery.conf.beat_schedule = {
    "send-deposit-links": {
        "task": "deposit_hold.tasks.jobs.send_deposit_links",
        "schedule": deposit_schedule(settings.SCHEDULER_MODE, settings.SCHEDULER_DAILY_HOUR),
    },
    "sweep-idempotency-stores-daily": {
        "task": "deposit_hold.tasks.jobs.sweep_stores",
        "schedule": crontab(minute=15, hour=3),
    },
}
