from fastapi import APIRouter, Depends

from deposit_hold.api.deps import require_admin, stores_dep
from deposit_hold.schemas.forms import DvlaCheckRequest, DvlaManualVerifyRequest, FormSubmittedRequest
from deposit_hold.services import form_service
from deposit_hold.storage.base import DvlaStatus
from deposit_hold.storage.registry import Stores

router = APIRouter(tags=["forms"])


@router.post("/forms/submitted")
@router.post("/forms/submit")
def form_submitted(body: FormSubmittedRequest, stores: Stores = Depends(stores_dep)):
    status = form_service.record_form_submission(stores.forms, body.bookingID, body.variant)
    return {"success": True, **status.to_api()}


@router.get("/forms/status/{booking_id}")
def form_status(booking_id: str, stores: Stores = Depends(stores_dep)):
    return stores.forms.get_or_default(booking_id).to_api()


@router.post("/dvla/check")
def dvla_check(body: DvlaCheckRequest, stores: Stores = Depends(stores_dep)):
    status = form_service.record_dvla_check(stores.forms, body.bookingID, body.licenceNumber, body.checkCode)
    return {"success": True, **status.to_api()}


@router.post("/dvla/manual-verify", dependencies=[Depends(require_admin)])
def dvla_manual_verify(body: DvlaManualVerifyRequest, stores: Stores = Depends(stores_dep)):
    status = form_service.record_manual_verification(stores.forms, body.bookingID, DvlaStatus(body.status), body.note)
    return {"success": True, **status.to_api()}
