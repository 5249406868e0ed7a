from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from admins.management import AdminService
from app.deps import get_admin_service
from security.admin_auth import require_admin, require_main_admin
from utils.passwords import PASSWORD_REQUIREMENTS, password_strength

router = APIRouter()


class CreateAdminRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str = Field(..., min_length=1, max_length=256)
    name: str = Field(..., min_length=1, max_length=128)


class PasswordCheckRequest(BaseModel):
    password: str = Field(default="", max_length=256)


@router.get("/admins")
def list_admins(
    admin: dict = Depends(require_admin),
    svc: AdminService = Depends(get_admin_service),
):
    return {"ok": True, "items": svc.list_admins(), "is_main_admin": svc.is_main_admin(admin.get("uid") or "")}


@router.post("/admins")
def create_admin(
    req: CreateAdminRequest,
    admin: dict = Depends(require_main_admin),
    svc: AdminService = Depends(get_admin_service),
):
    return svc.create_admin(req.email, req.password, req.name, created_by=admin.get("uid") or "")


@router.delete("/admins/{uid}")
def delete_admin(
    uid: str,
    admin: dict = Depends(require_main_admin),
    svc: AdminService = Depends(get_admin_service),
):
    return svc.delete_admin(uid)


@router.post("/admins/password-strength")
def check_password(req: PasswordCheckRequest, admin: dict = Depends(require_main_admin)):
    return {"ok": True, **password_strength(req.password), "requirements": PASSWORD_REQUIREMENTS}
