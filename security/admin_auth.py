from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from admins.management import is_main_admin_profile
from config.settings import settings
from models.roles import is_admin_role
from repos.user_repo import UserRepository
from utils.request_context import set_actor_uid

log = logging.getLogger("kolekkita.admin_auth")


def _bearer_token(request: Request) -> str:
    auth = request.headers.get("authorization", "")
    if not auth.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="missing_bearer_token")
    token = auth.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="missing_bearer_token")
    return token


def verify_admin_request(request: Request) -> Dict[str, Any]:
    """Verify the Firebase ID token and return the caller's admin profile (with ``uid``)."""
    token = _bearer_token(request)
    audience = settings.FIREBASE_PROJECT_ID
    if not audience:
        # Fail closed: the token audience must be configured.
        raise HTTPException(status_code=500, detail="firebase_project_not_configured")

    try:
        claims = id_token.verify_firebase_token(token, google_requests.Request(), audience=audience)
    except Exception as e:
        log.warning("admin_auth verify failed", extra={"extra": {"error": str(e)}})
        raise HTTPException(status_code=401, detail="invalid_id_token")
    if not claims:
        raise HTTPException(status_code=401, detail="invalid_id_token")

    uid = claims.get("user_id") or claims.get("sub") or ""
    profile = UserRepository().get(uid) if uid else None
    if profile is None or not is_admin_role(profile.get("role")):
        log.warning("admin_auth role denied", extra={"extra": {"uid": uid}})
        raise HTTPException(status_code=403, detail="admin_required")

    return {**profile, "uid": uid, "email": profile.get("email") or claims.get("email", "")}


async def require_admin(request: Request) -> Dict[str, Any]:
    # Set on the request task so threadpool route code inherits it.
    admin = await run_in_threadpool(verify_admin_request, request)
    set_actor_uid(admin["uid"])
    return admin


def require_main_admin(admin: Dict[str, Any] = Depends(require_admin)) -> Dict[str, Any]:
    if not is_main_admin_profile(admin):
        raise HTTPException(status_code=403, detail="main_admin_required")
    return admin

