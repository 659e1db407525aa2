import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from deposit_hold.core.config import settings
from deposit_hold.core.exceptions import DepositHoldError
from deposit_hold.core.logging_config import setup_logging
from deposit_hold.api.v1.api import api_router
from deposit_hold.storage.registry import get_stores

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up (storage=%s)", settings.STORAGE_BACKEND)
    removed = get_stores().sweep()
    logger.info("Startup sweep removed %s", removed)
    yield
    logger.info("Application shutting down...")


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# CORS: use CORS_ORIGINS from env when set; otherwise the companion app may call from anywhere
_origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()] or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DepositHoldError)
async def deposit_error_handler(request: Request, exc: DepositHoldError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "; ".join(f"{'.'.join(str(p) for p in e.get('loc', ()) if p != 'body')}: {e.get('msg')}" for e in errors)
    return JSONResponse(status_code=400, content={"error": message or "Invalid request"})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc) or exc.__class__.__name__})


app.include_router(api_router)


@app.get("/health")
def health():
    return {"status": "ok"}
