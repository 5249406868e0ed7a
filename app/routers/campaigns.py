from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.deps import get_fanout
from models.statuses import NotificationType
from notifications.fanout import CampaignFanOut
from security.admin_auth import require_admin

router = APIRouter()


class CampaignSendRequest(BaseModel):
    title: str = Field(..., max_length=200)
    message: str = Field(..., max_length=5000)
    type: str = Field(default=NotificationType.ANNOUNCEMENT.value)
    idempotency_token: Any = None
    data: Optional[Dict[str, Any]] = None


@router.post("/campaigns/send-to-all")
def send_to_all(
    req: CampaignSendRequest,
    admin: dict = Depends(require_admin),
    fanout: CampaignFanOut = Depends(get_fanout),
):
    return fanout.send_to_all(
        req.title,
        req.message,
        notification_type=req.type,
        sent_by=admin.get("uid") or "system",
        sent_by_name=admin.get("name") or admin.get("email") or "Admin",
        idempotency_token=req.idempotency_token,
        data=req.data,
    )


@router.get("/campaigns")
def list_campaigns(
    limit: Optional[int] = None,
    admin: dict = Depends(require_admin),
    fanout: CampaignFanOut = Depends(get_fanout),
):
    return {"ok": True, "items": fanout.list_campaigns(limit=limit)}


@router.get("/campaigns/{campaign_id}")
def get_campaign(
    campaign_id: str,
    admin: dict = Depends(require_admin),
    fanout: CampaignFanOut = Depends(get_fanout),
):
    return {"ok": True, "campaign": fanout.get_campaign(campaign_id)}
