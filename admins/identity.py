from __future__ import annotations

import logging
from typing import Optional

import firebase_admin
from firebase_admin import auth

from storage.firebase_app import get_firebase_app

log = logging.getLogger("kolekkita.identity")


class IdentityClient:
    """Firebase Authentication account operations used by admin management."""

    def __init__(self, app: Optional[firebase_admin.App] = None):
        self._app = app

    @property
    def app(self) -> firebase_admin.App:
        if self._app is None:
            self._app = get_firebase_app()
        return self._app

    def create_user(self, email: str, password: str, display_name: str) -> str:
        record = auth.create_user(email=email, password=password, display_name=display_name, app=self.app)
        log.info("identity_user_created", extra={"extra": {"event": "identity_user_created", "uid": record.uid}})
        return record.uid

    def delete_user(self, uid: str) -> None:
        try:
            auth.delete_user(uid, app=self.app)
        except auth.UserNotFoundError:
            # Profile without an auth account.
            log.warning("identity_user_missing", extra={"extra": {"event": "identity_user_missing", "uid": uid}})
            return
        log.info("identity_user_deleted", extra={"extra": {"event": "identity_user_deleted", "uid": uid}})
