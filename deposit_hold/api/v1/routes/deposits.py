from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse

from deposit_hold.api.deps import get_planyo, stores_dep
from deposit_hold.core.config import settings
from deposit_hold.schemas.deposit import CreateIntentRequest, DepositConfirmationRequest, SendLinkRequest
from deposit_hold.services import deposit_service, email_templates
from deposit_hold.services.email_service import send_email
from deposit_hold.services.payment_page import render_payment_page
from deposit_hold.services.planyo_client import PlanyoClient
from deposit_hold.storage.registry import Stores

router = APIRouter(tags=["deposits"])


@router.post("/deposit/create-intent")
def create_intent(body: CreateIntentRequest, planyo: PlanyoClient = Depends(get_planyo)):
    intent = deposit_service.create_hold(planyo, body.bookingID, body.amount)
    return {"clientSecret": intent.client_secret, "id": intent.id}


@router.get("/deposit/pay/{booking_id}", response_class=HTMLResponse)
def payment_page(booking_id: str, amount: int | None = Query(default=None), planyo: PlanyoClient = Depends(get_planyo)):
    amount = amount or settings.DEPOSIT_DEFAULT_AMOUNT
    intent, booking = deposit_service.get_or_create_page_hold(planyo, booking_id, amount)
    return HTMLResponse(render_payment_page(
        booking=booking,
        amount=amount,
        currency=settings.DEPOSIT_CURRENCY,
        client_secret=intent.client_secret,
        publishable_key=settings.STRIPE_PUBLISHABLE_KEY,
    ))


@router.post("/deposit/send-link")
def send_link(body: SendLinkRequest, stores: Stores = Depends(stores_dep), planyo: PlanyoClient = Depends(get_planyo)):
    return deposit_service.send_deposit_link(
        stores, planyo, body.bookingID, amount=body.amount, location_id=body.locationId, force=body.force,
    )


@router.get("/deposit/status/{booking_id}")
def deposit_status(booking_id: str):
    return deposit_service.deposit_status(booking_id)


@router.post("/email/deposit-confirmation")
def deposit_confirmation(body: DepositConfirmationRequest, planyo: PlanyoClient = Depends(get_planyo)):
    return deposit_service.send_deposit_confirmation(planyo, body.bookingID, body.amount)


@router.get("/test/email")
def send_test_email():
    subject, html = email_templates.connectivity_check()
    send_email(settings.ADMIN_EMAIL, subject, html)
    return {"success": True}
