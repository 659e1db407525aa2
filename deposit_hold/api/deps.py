import hmac

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from deposit_hold.core.config import settings
from deposit_hold.services.planyo_client import PlanyoClient, get_planyo_client
from deposit_hold.storage.registry import Stores, get_stores

bearer = HTTPBearer(auto_error=False)


def get_planyo() -> PlanyoClient:
    return get_planyo_client()


def stores_dep() -> Stores:
    return get_stores()


def require_admin(creds: HTTPAuthorizationCredentials | None = Depends(bearer)) -> None:
    """Open when ADMIN_API_TOKEN is unset (single-tenant deployments behind the app)."""
    if not settings.ADMIN_API_TOKEN:
        return
    if not creds:
        raise HTTPException(status_code=401, detail="Not authenticated")
    if not hmac.compare_digest(creds.credentials, settings.ADMIN_API_TOKEN):
        raise HTTPException(status_code=403, detail="Forbidden")
