from fastapi import APIRouter, Depends

from deposit_hold.api.deps import get_planyo, require_admin, stores_dep
from deposit_hold.schemas.deposit import HoldActionRequest
from deposit_hold.services import deposit_service, stripe_service
from deposit_hold.services.planyo_client import PlanyoClient
from deposit_hold.storage.registry import Stores

router = APIRouter(prefix="/terminal", tags=["terminal"])


@router.post("/connection_token")
def connection_token():
    return {"secret": stripe_service.create_connection_token()}


@router.post("/cancel", dependencies=[Depends(require_admin)])
def cancel(body: HoldActionRequest, stores: Stores = Depends(stores_dep), planyo: PlanyoClient = Depends(get_planyo)):
    return deposit_service.cancel_hold(stores, planyo, body.payment_intent_id)


@router.post("/capture", dependencies=[Depends(require_admin)])
def capture(body: HoldActionRequest):
    return deposit_service.capture_hold(body.payment_intent_id, body.amount_to_capture)


@router.get("/list-all", dependencies=[Depends(require_admin)])
def list_all(planyo: PlanyoClient = Depends(get_planyo)):
    return deposit_service.list_active_holds(planyo)


@router.get("/list/{booking_id}")
def list_for_booking(booking_id: str, planyo: PlanyoClient = Depends(get_planyo)):
    return deposit_service.list_holds_for_booking(planyo, booking_id)
