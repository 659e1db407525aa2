from fastapi import APIRouter
from deposit_hold.api.v1.routes.deposits import router as deposits_router
from deposit_hold.api.v1.routes.terminal import router as terminal_router
from deposit_hold.api.v1.routes.webhooks import router as webhooks_router
from deposit_hold.api.v1.routes.planyo import router as planyo_router
from deposit_hold.api.v1.routes.forms import router as forms_router
from deposit_hold.api.v1.routes.admin import router as admin_router

# No prefix: the companion app and the Planyo/Stripe webhooks call these paths directly.
api_router = APIRouter()
api_router.include_router(deposits_router)
api_router.include_router(terminal_router)
api_router.include_router(webhooks_router)
api_router.include_router(planyo_router)
api_router.include_router(forms_router)
api_router.include_router(admin_router)
