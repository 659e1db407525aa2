from html import escape

from deposit_hold.services.planyo_client import BookingInfo

CURRENCY_SYMBOLS = {"gbp": "£", "eur": "€", "usd": "$"}


def format_amount(amount: int, currency: str) -> str:
    symbol = CURRENCY_SYMBOLS.get((currency or "").lower())
    value = f"{(amount or 0) / 100:.2f}"
    return f"{symbol}{value}" if symbol else f"{value} {(currency or '').upper()}"


def _booking_lines(booking: BookingInfo) -> str:
    return (
        f"<p>Booking <b>#{escape(booking.booking_id)}</b> - {escape(booking.customer_name)}<br>"
        f"{escape(booking.resource)}: {escape(booking.start)} &rarr; {escape(booking.end)}</p>"
    )


def deposit_link_customer(booking: BookingInfo, link: str) -> tuple[str, str]:
    subject = f"Deposit Link for Booking #{booking.booking_id}"
    html = (
        f"<p>Hi {escape(booking.first_name or 'there')},</p>"
        f"{_booking_lines(booking)}"
        f'<p>Please place your deposit hold: <a href="{escape(link, quote=True)}">Pay Here</a></p>'
        "<p>The card is authorised only; nothing is charged unless needed after your hire.</p>"
    )
    return subject, html


def deposit_link_admin(booking: BookingInfo, link: str) -> tuple[str, str]:
    subject = f"Admin Copy | Booking #{booking.booking_id}"
    html = (
        f"<p>Deposit link sent to {escape(booking.email or '')}.</p>"
        f"{_booking_lines(booking)}"
        f'<p><a href="{escape(link, quote=True)}">Pay Here</a></p>'
    )
    return subject, html


def hold_confirmation(booking: BookingInfo, amount: int, currency: str) -> tuple[str, str]:
    subject = f"Deposit Hold Confirmation #{booking.booking_id}"
    html = (
        f"<p>Deposit hold of {escape(format_amount(amount, currency))} placed for booking "
        f"{escape(booking.booking_id)}.</p>"
        f"{_booking_lines(booking)}"
    )
    return subject, html


def hold_cancelled(booking: BookingInfo, amount: int, currency: str) -> tuple[str, str]:
    subject = f"Deposit Hold Released #{booking.booking_id}"
    html = (
        f"<p>Hi {escape(booking.first_name or 'there')},</p>"
        f"<p>The deposit hold of {escape(format_amount(amount, currency))} for booking "
        f"#{escape(booking.booking_id)} has been cancelled. No money has been taken.</p>"
        f"{_booking_lines(booking)}"
    )
    return subject, html


def connectivity_check() -> tuple[str, str]:
    return (
        "Test Email from Deposit Hold Backend",
        "<p>This is a test email sent from the deposit hold service.</p>",
    )
