from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from google.api_core.exceptions import NotFound

from app.deps import get_notification_service
from notifications.service import NotificationService
from security.admin_auth import require_admin

router = APIRouter()


@router.get("/notifications")
def list_notifications(
    user_id: Optional[str] = None,
    type: Optional[str] = None,
    is_read: Optional[bool] = None,
    limit: Optional[int] = 100,
    admin: dict = Depends(require_admin),
    svc: NotificationService = Depends(get_notification_service),
):
    items = svc.list(user_id=user_id, notification_type=type, is_read=is_read, limit=limit)
    return {"ok": True, "items": items}


@router.post("/notifications/{notification_id}/read")
def mark_read(
    notification_id: str,
    admin: dict = Depends(require_admin),
    svc: NotificationService = Depends(get_notification_service),
):
    try:
        svc.mark_as_read(notification_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="notification_not_found")
    return {"ok": True, "id": notification_id}


@router.delete("/notifications/{notification_id}")
def delete_notification(
    notification_id: str,
    admin: dict = Depends(require_admin),
    svc: NotificationService = Depends(get_notification_service),
):
    svc.delete(notification_id)
    return {"ok": True, "id": notification_id}
