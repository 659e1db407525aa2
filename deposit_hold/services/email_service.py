import logging
import re
import smtplib
from email.message import EmailMessage

import requests

from deposit_hold.core.config import settings
from deposit_hold.core.exceptions import EmailError

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")


def _recipients(to: str | list[str]) -> list[str]:
    items = [to] if isinstance(to, str) else list(to)
    seen, out = set(), []
    for addr in items:
        addr = (addr or "").strip()
        if addr and addr.lower() not in seen:
            seen.add(addr.lower())
            out.append(addr)
    return out


def _from_email() -> str:
    return settings.SENDGRID_FROM_EMAIL or settings.SMTP_FROM


def send_email(to: str | list[str], subject: str, html: str, text: str | None = None) -> None:
    """Send one message via SendGrid if configured, otherwise SMTP. No retry; raises EmailError."""
    recipients = _recipients(to)
    if not recipients:
        raise EmailError("No recipients")

    try:
        if settings.SENDGRID_API_KEY:
            _send_via_sendgrid(recipients, subject, html, text)
        else:
            _send_via_smtp(recipients, subject, html, text)
    except EmailError:
        raise
    except (requests.RequestException, smtplib.SMTPException, OSError) as e:
        raise EmailError(f"Email send failed: {e}") from e
    logger.info("Email sent to %s: %s", ", ".join(recipients), subject)


def _plain(html: str) -> str:
    return _TAG_RE.sub("", html).strip()


def _send_via_smtp(recipients: list[str], subject: str, html: str, text: str | None):
    msg = EmailMessage()
    msg["From"] = settings.SMTP_FROM
    msg["To"] = ", ".join(recipients)
    msg["Subject"] = subject
    msg.set_content(text or _plain(html))
    msg.add_alternative(html, subtype="html")

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
        if settings.SMTP_USERNAME:
            smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        smtp.send_message(msg)


def _send_via_sendgrid(recipients: list[str], subject: str, html: str, text: str | None):
    payload = {
        "personalizations": [{"to": [{"email": addr} for addr in recipients]}],
        "from": {"email": _from_email()},
        "subject": subject,
        "content": [
            {"type": "text/plain", "value": text or _plain(html)},
            {"type": "text/html", "value": html},
        ],
    }
    r = requests.post(
        "https://api.sendgrid.com/v3/mail/send",
        json=payload,
        headers={"Authorization": f"Bearer {settings.SENDGRID_API_KEY}"},
        timeout=20,
    )
    if r.status_code >= 400:
        raise EmailError(f"SendGrid error {r.status_code}: {r.text}")
