"""
User directory and admin account management.

The main admin is the profile with ``isMainAdmin`` true or role
``main_admin``. It can never be deleted, and only it may create or delete
other admins (enforced at the HTTP layer by ``security.admin_auth``).
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from firebase_admin import auth
from google.cloud import firestore

from admins.identity import IdentityClient
from models.roles import (
    BUCKET_ADMINS,
    BUCKET_COLLECTORS,
    BUCKET_JUNK_SHOPS,
    BUCKET_RESIDENTS,
    Role,
    canonical_role,
    is_admin_role,
    role_bucket,
)
from repos.user_repo import UserRepository
from utils.passwords import validate_password
from utils.timestamps import parse_timestamp

log = logging.getLogger("kolekkita.admins")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

USER_SEARCH_FIELDS = ("name", "email", "phone", "role", "id")


class MainAdminProtected(Exception):
    def __init__(self, uid: str):
        super().__init__("main_admin_protected")
        self.uid = uid


class AdminAlreadyExists(Exception):
    def __init__(self, email: str):
        super().__init__("admin_already_exists")
        self.email = email


class AdminNotFound(LookupError):
    def __init__(self, uid: str):
        super().__init__("admin_not_found")
        self.uid = uid


class WeakPassword(ValueError):
    def __init__(self, errors: List[str]):
        super().__init__("weak_password")
        self.errors = errors


def is_main_admin_profile(user: Optional[Dict[str, Any]]) -> bool:
    if not user:
        return False
    return user.get("isMainAdmin") is True or canonical_role(user.get("role")) == Role.MAIN_ADMIN


def sort_admins(admins: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Main admin first, then newest first."""
    newest = sorted(admins, key=lambda a: parse_timestamp(a.get("createdAt")) or _EPOCH, reverse=True)
    return sorted(newest, key=lambda a: not is_main_admin_profile(a))


def role_counts(users: List[Dict[str, Any]]) -> Dict[str, int]:
    counts = {"total": len(users), BUCKET_ADMINS: 0, BUCKET_JUNK_SHOPS: 0, BUCKET_COLLECTORS: 0, BUCKET_RESIDENTS: 0}
    for u in users:
        bucket = role_bucket(u.get("role"))
        if bucket:
            counts[bucket] += 1
    return counts


def filter_users(users: List[Dict[str, Any]], role: Optional[str] = None, search: str = "") -> List[Dict[str, Any]]:
    if role and role != "all":
        wanted = canonical_role(role)
        if wanted is None:
            raise ValueError("invalid_role")
        if wanted in (Role.ADMIN, Role.MAIN_ADMIN):
            users = [u for u in users if is_admin_role(u.get("role"))]
        else:
            users = [u for u in users if canonical_role(u.get("role")) == wanted]
    needle = (search or "").strip().lower()
    if needle:
        users = [u for u in users if any(needle in str(u.get(f) or "").lower() for f in USER_SEARCH_FIELDS)]
    return users


class AdminService:
    def __init__(self, users: Optional[UserRepository] = None, identity: Optional[IdentityClient] = None):
        self.users = users or UserRepository()
        self.identity = identity or IdentityClient()

    # -------- Directory --------
    def list_users(self, role: Optional[str] = None, search: str = "") -> Dict[str, Any]:
        users = self.users.list_all()
        return {"users": filter_users(users, role, search), "counts": role_counts(users)}

    def list_admins(self) -> List[Dict[str, Any]]:
        admins = [u for u in self.users.list_all() if is_admin_role(u.get("role"))]
        return sort_admins(admins)

    # -------- Main admin --------
    def is_main_admin(self, uid: str) -> bool:
        return is_main_admin_profile(self.users.get(uid))

    def can_delete(self, uid: str) -> bool:
        return not self.is_main_admin(uid)

    def set_main_admin(self, uid: str, email: str, name: str) -> None:
        self.users.set(
            uid,
            {
                "id": uid,
                "email": email,
                "name": name,
                "role": Role.MAIN_ADMIN.value,
                "isMainAdmin": True,
                "createdAt": firestore.SERVER_TIMESTAMP,
                "updatedAt": firestore.SERVER_TIMESTAMP,
            },
            merge=True,
        )
        log.info("main_admin_set", extra={"extra": {"event": "main_admin_set", "uid": uid}})

    def convert_to_main_admin(self, email: str) -> Dict[str, Any]:
        user = self.users.find_by_email(email)
        if user is None:
            raise AdminNotFound(email)
        self.users.update(user["id"], {"role": Role.MAIN_ADMIN.value, "isMainAdmin": True, "canBeDeleted": False})
        log.info("main_admin_converted", extra={"extra": {"event": "main_admin_converted", "uid": user["id"]}})
        return {"success": True, "userId": user["id"], "email": user.get("email")}

    # -------- Admin accounts --------
    def create_admin(self, email: str, password: str, name: str, created_by: str = "") -> Dict[str, Any]:
        email = (email or "").strip().lower()
        name = (name or "").strip()
        if not email:
            raise ValueError("email_required")
        if not name:
            raise ValueError("name_required")
        check = validate_password(password)
        if not check["is_valid"]:
            raise WeakPassword(check["errors"])
        if self.users.find_by_email(email) is not None:
            raise AdminAlreadyExists(email)

        try:
            uid = self.identity.create_user(email, password, name)
        except auth.EmailAlreadyExistsError:
            raise AdminAlreadyExists(email)

        profile = {
            "id": uid,
            "email": email,
            "name": name,
            "role": Role.ADMIN.value,
            "isActive": True,
            "isMainAdmin": False,
            "createdBy": created_by or None,
            "createdAt": firestore.SERVER_TIMESTAMP,
            "updatedAt": firestore.SERVER_TIMESTAMP,
        }
        self.users.set(uid, profile)
        log.info("admin_created", extra={"extra": {"event": "admin_created", "uid": uid, "created_by": created_by}})
        return {"ok": True, "uid": uid, "email": email, "name": name, "role": Role.ADMIN.value}

    def delete_admin(self, uid: str) -> Dict[str, Any]:
        user = self.users.get(uid)
        if user is None or not is_admin_role(user.get("role")):
            raise AdminNotFound(uid)
        if is_main_admin_profile(user):
            raise MainAdminProtected(uid)
        self.users.delete(uid)
        self.identity.delete_user(uid)
        log.info("admin_deleted", extra={"extra": {"event": "admin_deleted", "uid": uid}})
        return {"ok": True, "uid": uid}
