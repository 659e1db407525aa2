from fastapi import APIRouter, Depends, Query

from deposit_hold.api.deps import get_planyo, stores_dep
from deposit_hold.services import overview_service
from deposit_hold.services.planyo_client import PlanyoClient
from deposit_hold.storage.registry import Stores

router = APIRouter(prefix="/planyo", tags=["planyo"])


@router.get("/upcoming")
def upcoming(days: int = Query(default=7, ge=1, le=60), stores: Stores = Depends(stores_dep), planyo: PlanyoClient = Depends(get_planyo)):
    return overview_service.upcoming_bookings(stores, planyo, days=days)


@router.get("/booking/{booking_id}")
def booking(booking_id: str, stores: Stores = Depends(stores_dep), planyo: PlanyoClient = Depends(get_planyo)):
    return overview_service.booking_detail(stores, planyo, booking_id)
