import logging

from fastapi import APIRouter, Depends

from deposit_hold.api.deps import require_admin, stores_dep
from deposit_hold.storage.registry import Stores

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.post("/sweep")
def sweep(stores: Stores = Depends(stores_dep)):
    removed = stores.sweep()
    logger.info("Manual sweep removed %s", removed)
    return {"ok": True, "removed": removed}
