import json
from html import escape

from deposit_hold.services.email_templates import format_amount
from deposit_hold.services.planyo_client import BookingInfo


def render_payment_page(*, booking: BookingInfo, amount: int, currency: str,
                        client_secret: str, publishable_key: str) -> str:
    """Card-entry page bound to one hold's client secret. Pure function."""
    title = f"Deposit Hold ({format_amount(amount, currency)})"
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{escape(title)}</title>
  <script src="https://js.stripe.com/v3/"></script>
</head>
<body>
  <h2>{escape(title)}</h2>
  <p>Booking <b>#{escape(booking.booking_id)}</b> - {escape(booking.customer_name)}</p>
  <p>{escape(booking.resource)}: {escape(booking.start)} &rarr; {escape(booking.end)}</p>
  <form id="deposit-form">
    <div id="card-element"></div>
    <button id="submit" type="submit">Authorise deposit</button>
    <p id="message" role="alert"></p>
  </form>
  <script>
    const stripe = Stripe({json.dumps(publishable_key)});
    const clientSecret = {json.dumps(client_secret)};
    const card = stripe.elements().create("card");
    card.mount("#card-element");
    const form = document.getElementById("deposit-form");
    const message = document.getElementById("message");
    form.addEventListener("submit", async (ev) => {{
      ev.preventDefault();
      document.getElementById("submit").disabled = true;
      const result = await stripe.confirmCardPayment(clientSecret, {{ payment_method: {{ card }} }});
      if (result.error) {{
        message.textContent = result.error.message;
        document.getElementById("submit").disabled = false;
      }} else {{
        message.textContent = "Deposit hold placed. Thank you!";
      }}
    }});
  </script>
</body>
</html>"""
