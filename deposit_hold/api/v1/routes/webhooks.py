import json
import logging
from urllib.parse import parse_qsl

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request
from starlette.concurrency import run_in_threadpool

from deposit_hold.api.deps import get_planyo, stores_dep
from deposit_hold.core.config import settings
from deposit_hold.services import stripe_service, webhook_service
from deposit_hold.services.planyo_client import PlanyoClient, verify_callback
from deposit_hold.storage.registry import Stores

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])


@router.post("/webhook")
async def stripe_webhook(req: Request, stores: Stores = Depends(stores_dep), planyo: PlanyoClient = Depends(get_planyo)):
    body = await req.body()
    sig = req.headers.get("stripe-signature") or ""
    try:
        event = stripe_service.construct_event(body, sig)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning("Webhook verification failed: %s", e)
        raise HTTPException(status_code=400, detail=f"Webhook Error: {e}")
    return await run_in_threadpool(webhook_service.handle_stripe_event, stores, planyo, event)


async def _callback_params(req: Request) -> dict:
    body = await req.body()
    content_type = req.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            data = json.loads(body.decode("utf-8") or "{}")
        except (UnicodeDecodeError, json.JSONDecodeError):
            raise HTTPException(status_code=400, detail="Invalid JSON body")
        if not isinstance(data, dict):
            raise HTTPException(status_code=400, detail="Invalid JSON body")
        return data
    params = dict(req.query_params)
    params.update(parse_qsl(body.decode("utf-8", errors="replace"), keep_blank_values=True))
    return params


@router.post("/planyo/callback")
@router.post("/planyo-callback")
async def planyo_callback(req: Request, stores: Stores = Depends(stores_dep), planyo: PlanyoClient = Depends(get_planyo)):
    params = await _callback_params(req)
    if settings.PLANYO_VERIFY_CALLBACK and not verify_callback(params, settings.PLANYO_HASH_KEY):
        logger.warning("Invalid Planyo hash for callback %s", params.get("notification_type"))
        raise HTTPException(status_code=400, detail="Invalid hash")
    params.pop("hash", None)
    logger.info("Planyo callback: %s reservation=%s", params.get("notification_type"), webhook_service.booking_id_from_callback(params))
    return await run_in_threadpool(webhook_service.handle_planyo_callback, stores, planyo, params)
