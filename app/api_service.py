from __future__ import annotations

import logging
import os
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from admins.management import AdminAlreadyExists, AdminNotFound, MainAdminProtected, WeakPassword
from config.settings import settings
from moderation.queue import ReportNotFound
from notifications.dedup import DuplicateSendError
from notifications.fanout import CampaignNotFound
from ops.structured_logger import setup_logging
from utils.request_context import clear_request_context, set_request_id
from verification.workflow import VerificationNotFound

from app.routers.admins import router as admins_router
from app.routers.analytics import router as analytics_router
from app.routers.campaigns import router as campaigns_router
from app.routers.health import router as health_router
from app.routers.moderation import router as moderation_router
from app.routers.notifications import router as notifications_router
from app.routers.push import router as push_router
from app.routers.users import router as users_router
from app.routers.verifications import router as verifications_router

setup_logging(settings.LOG_LEVEL)

app = FastAPI(title="KolekKita Admin API", version="1.0.0")
log = logging.getLogger("kolekkita.api")


def _get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get("x-request-id") or ""


def _error_body(request: Request, detail, **extra) -> dict:
    return {"detail": detail, "request_id": _get_request_id(request), "revision": os.getenv("K_REVISION") or "", **extra}


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    set_request_id(rid)
    try:
        response = await call_next(request)
    finally:
        clear_request_context()
    response.headers["X-Request-Id"] = rid
    return response


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    log.warning(
        "http_exception",
        extra={
            "extra": {
                "event": "http_exception",
                "status_code": exc.status_code,
                "detail": exc.detail,
                "path": request.url.path,
                "method": request.method,
            }
        },
    )
    return JSONResponse(status_code=exc.status_code, content=_error_body(request, exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    log.warning(
        "validation_error",
        extra={"extra": {"event": "validation_error", "path": request.url.path, "method": request.method}},
    )
    return JSONResponse(status_code=422, content=_error_body(request, exc.errors()))


@app.exception_handler(DuplicateSendError)
async def duplicate_send_handler(request: Request, exc: DuplicateSendError):
    log.warning(
        "campaign_duplicate_rejected",
        extra={"extra": {"event": "campaign_duplicate_rejected", "seconds_since_last": round(exc.seconds_since_last, 3)}},
    )
    return JSONResponse(status_code=409, content=_error_body(request, "duplicate_send"))


async def not_found_handler(request: Request, exc: LookupError):
    return JSONResponse(status_code=404, content=_error_body(request, str(exc)))


for _exc in (VerificationNotFound, ReportNotFound, CampaignNotFound, AdminNotFound):
    app.add_exception_handler(_exc, not_found_handler)


@app.exception_handler(MainAdminProtected)
async def main_admin_protected_handler(request: Request, exc: MainAdminProtected):
    log.warning("main_admin_protected", extra={"extra": {"event": "main_admin_protected", "uid": exc.uid}})
    return JSONResponse(status_code=403, content=_error_body(request, "main_admin_protected"))


@app.exception_handler(AdminAlreadyExists)
async def admin_exists_handler(request: Request, exc: AdminAlreadyExists):
    return JSONResponse(status_code=409, content=_error_body(request, "admin_already_exists"))


@app.exception_handler(WeakPassword)
async def weak_password_handler(request: Request, exc: WeakPassword):
    return JSONResponse(status_code=400, content=_error_body(request, "weak_password", errors=exc.errors))


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    log.warning(
        "request_rejected",
        extra={"extra": {"event": "request_rejected", "reason": str(exc), "path": request.url.path, "method": request.method}},
    )
    return JSONResponse(status_code=400, content=_error_body(request, str(exc)))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _get_request_id(request)
    log.error(
        "internal_unhandled_exception",
        extra={
            "extra": {
                "event": "internal_unhandled_exception",
                "error_type": type(exc).__name__,
                "message": str(exc),
                "path": request.url.path,
                "method": request.method,
                "request_id": rid,
            }
        },
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"error": "internal_unhandled_exception", "request_id": rid, "revision": os.getenv("K_REVISION") or ""},
    )


# Browser dashboard calls the API cross-origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ALLOW_ORIGINS.split(",") if o.strip()] or ["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(health_router, tags=["health"])
app.include_router(campaigns_router, prefix="/api", tags=["campaigns"])
app.include_router(notifications_router, prefix="/api", tags=["notifications"])
app.include_router(verifications_router, prefix="/api", tags=["verifications"])
app.include_router(moderation_router, prefix="/api", tags=["moderation"])
app.include_router(analytics_router, prefix="/api", tags=["analytics"])
app.include_router(users_router, prefix="/api", tags=["users"])
app.include_router(admins_router, prefix="/api", tags=["admins"])
app.include_router(push_router, prefix="/api", tags=["push"])
