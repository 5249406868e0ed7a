from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.deps import get_push_service
from push.service import PushService
from security.admin_auth import require_admin

router = APIRouter()
log = logging.getLogger("kolekkita.push_api")

# Missing fields answer 400 {"error": ...}, not 422.


class SendToUserRequest(BaseModel):
    userId: Optional[str] = None
    title: Optional[str] = None
    body: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


class SendToAllRequest(BaseModel):
    title: Optional[str] = None
    body: Optional[str] = None
    userTypeFilter: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


class SendToMultipleRequest(BaseModel):
    userIds: Optional[List[str]] = None
    title: Optional[str] = None
    body: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _failed(route: str, e: Exception) -> JSONResponse:
    log.error(
        "push_route_failed",
        extra={"extra": {"event": "push_route_failed", "route": route, "error_type": type(e).__name__, "message": str(e)}},
        exc_info=True,
    )
    return _error(500, str(e) or type(e).__name__)


@router.post("/push-notifications/send-to-user")
def send_to_user(
    req: SendToUserRequest,
    admin: dict = Depends(require_admin),
    svc: PushService = Depends(get_push_service),
):
    if not req.userId or not req.title or not req.body:
        return _error(400, "Missing required fields: userId, title, body")
    try:
        return svc.send_to_user(req.userId, req.title, req.body, req.data)
    except Exception as e:
        return _failed("send-to-user", e)


@router.post("/push-notifications/send-to-all")
def send_to_all(
    req: SendToAllRequest,
    admin: dict = Depends(require_admin),
    svc: PushService = Depends(get_push_service),
):
    if not req.title or not req.body:
        return _error(400, "Missing required fields: title, body")
    try:
        return svc.send_to_all(req.title, req.body, req.userTypeFilter or "all", req.data or {})
    except ValueError as e:
        return _error(400, str(e))
    except Exception as e:
        return _failed("send-to-all", e)


@router.post("/push-notifications/send-to-multiple")
def send_to_multiple(
    req: SendToMultipleRequest,
    admin: dict = Depends(require_admin),
    svc: PushService = Depends(get_push_service),
):
    if req.userIds is None or not req.title or not req.body:
        return _error(400, "Missing required fields: userIds (array), title, body")
    try:
        return svc.send_to_multiple(req.userIds, req.title, req.body, req.data)
    except Exception as e:
        return _failed("send-to-multiple", e)
