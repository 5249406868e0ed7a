from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from pydantic import BaseModel, Field

from app.deps import get_moderation_service
from moderation.queue import ModerationService, entry_to_dict, export_csv
from security.admin_auth import require_admin
from utils.csv_export import export_filename

router = APIRouter()


class ResolveRequest(BaseModel):
    action_type: str = Field(..., min_length=1, max_length=32)
    action_notes: str = Field(default="", max_length=2000)
    setting_value: Optional[str] = Field(default=None, max_length=200)


@router.get("/moderation/queue")
def queue(
    period: Optional[str] = None,
    status: str = "pending",
    search: str = "",
    admin: dict = Depends(require_admin),
    svc: ModerationService = Depends(get_moderation_service),
):
    entries = svc.queue(period=period, status=status, search=search)
    return {"ok": True, "items": [entry_to_dict(e) for e in entries], "count": len(entries)}


@router.get("/moderation/export")
def export(
    period: Optional[str] = None,
    status: str = "pending",
    search: str = "",
    admin: dict = Depends(require_admin),
    svc: ModerationService = Depends(get_moderation_service),
):
    body = export_csv(svc.queue(period=period, status=status, search=search))
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename("moderation-reports")}"'},
    )


@router.post("/moderation/reports/{report_id}/resolve")
def resolve(
    report_id: str,
    req: ResolveRequest,
    admin: dict = Depends(require_admin),
    svc: ModerationService = Depends(get_moderation_service),
):
    return svc.resolve(
        report_id,
        req.action_type,
        actor_id=admin.get("uid") or "admin",
        action_notes=req.action_notes,
        setting_value=req.setting_value,
    )
