from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from admins.management import AdminService
from app.deps import get_admin_service
from security.admin_auth import require_admin

router = APIRouter()


@router.get("/users")
def list_users(
    role: Optional[str] = None,
    search: str = "",
    admin: dict = Depends(require_admin),
    svc: AdminService = Depends(get_admin_service),
):
    return {"ok": True, **svc.list_users(role=role, search=search)}
