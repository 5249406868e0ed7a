from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from pydantic import BaseModel, Field

from app.deps import get_verification_workflow
from security.admin_auth import require_admin
from utils.csv_export import export_filename
from verification.workflow import VerificationWorkflow, export_csv

router = APIRouter()


class DecisionRequest(BaseModel):
    status: str = Field(..., min_length=1, max_length=32)
    admin_notes: Optional[str] = Field(default=None, max_length=2000)
    rejection_reason: Optional[str] = Field(default=None, max_length=2000)


@router.get("/verifications")
def list_verifications(
    status: str = "all",
    search: str = "",
    admin: dict = Depends(require_admin),
    wf: VerificationWorkflow = Depends(get_verification_workflow),
):
    return {"ok": True, "items": wf.list(status=status, search=search), "counts": wf.counts()}


@router.get("/verifications/export")
def export_verifications(
    status: str = "all",
    search: str = "",
    admin: dict = Depends(require_admin),
    wf: VerificationWorkflow = Depends(get_verification_workflow),
):
    body = export_csv(wf.list(status=status, search=search))
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename("verifications")}"'},
    )


@router.post("/verifications/{verification_id}/decision")
def decide(
    verification_id: str,
    req: DecisionRequest,
    admin: dict = Depends(require_admin),
    wf: VerificationWorkflow = Depends(get_verification_workflow),
):
    return wf.decide(
        verification_id,
        req.status,
        actor_id=admin.get("uid") or "admin",
        admin_notes=req.admin_notes,
        rejection_reason=req.rejection_reason,
    )
