"""
Push delivery to device tokens stored on user profiles (``users.fcmToken``).

Every payload carries the caller's data plus ``clickAction`` and an ISO
``timestamp``; FCM only accepts string data values, so non-strings are JSON
encoded. Multicast sends are split into batches of at most
``PUSH_MULTICAST_BATCH_SIZE`` tokens.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from config.settings import settings
from models.roles import USER_TYPE_FILTERS, canonical_role, is_admin_role
from push.fcm_client import FcmClient, _dest_hint, is_invalid_token_error
from repos.user_repo import UserRepository

log = logging.getLogger("kolekkita.push")


class PushUserNotFound(LookupError):
    def __init__(self, user_id: str):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


def push_data(data: Optional[Dict[str, Any]], click_action: str, now: Optional[datetime] = None) -> Dict[str, str]:
    now = now or datetime.now(timezone.utc)
    out: Dict[str, str] = {}
    for k, v in (data or {}).items():
        if v is None:
            continue
        out[str(k)] = v if isinstance(v, str) else json.dumps(v, default=str)
    out["clickAction"] = click_action
    out["timestamp"] = now.isoformat()
    return out


def chunks(items: List[str], size: int) -> Iterable[List[str]]:
    size = max(1, int(size))
    for i in range(0, len(items), size):
        yield items[i:i + size]


class PushService:
    def __init__(self, users: Optional[UserRepository] = None, fcm: Optional[FcmClient] = None):
        self.users = users or UserRepository()
        self.fcm = fcm or FcmClient()

    # -------- Device side --------
    def register_token(self, user_id: str, token: str) -> None:
        if not user_id or not token:
            raise ValueError("user_id_and_token_required")
        self.users.save_fcm_token(user_id, token)
        log.info("push_token_registered", extra={"extra": {"event": "push_token_registered", "user_id": user_id, "dest": _dest_hint(token)}})

    def remove_token(self, user_id: str) -> None:
        self.users.clear_fcm_token(user_id)
        log.info("push_token_removed", extra={"extra": {"event": "push_token_removed", "user_id": user_id}})

    # -------- Sends --------
    def send_to_user(self, user_id: str, title: str, body: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        user = self.users.get(user_id)
        if user is None:
            raise PushUserNotFound(user_id)
        token = user.get("fcmToken")
        if not token:
            log.info("push_skipped_no_token", extra={"extra": {"event": "push_skipped_no_token", "user_id": user_id}})
            return {"success": False, "reason": "no_token"}

        try:
            message_id = self.fcm.send(token, title, body, push_data(data, settings.PUSH_CLICK_ACTION))
        except Exception as e:
            if is_invalid_token_error(e):
                self.remove_token(user_id)
            raise
        return {"success": True, "messageId": message_id}

    def send_to_multiple(
        self, user_ids: List[str], title: str, body: str, data: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        owners: Dict[str, str] = {}
        for uid in dict.fromkeys(u for u in user_ids if u):
            user = self.users.get(uid)
            if user and user.get("fcmToken"):
                owners[user["fcmToken"]] = uid

        if not owners:
            log.info("push_no_tokens", extra={"extra": {"event": "push_no_tokens", "requested": len(user_ids)}})
            return {"success": False, "reason": "no_tokens"}

        totals = self._multicast(owners, title, body, data)
        return {"success": True, "successCount": totals["success_count"], "failureCount": totals["failure_count"]}

    def send_to_all(
        self, title: str, body: str, user_type_filter: str = "all", data: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        user_type_filter = user_type_filter or "all"
        if user_type_filter not in USER_TYPE_FILTERS:
            raise ValueError("invalid_user_type_filter")
        wanted = USER_TYPE_FILTERS[user_type_filter]

        owners: Dict[str, str] = {}
        for user in self.users.list_where("notificationsEnabled", "==", True):
            role = user.get("role")
            if is_admin_role(role) or not user.get("fcmToken"):
                continue
            if wanted is not None and canonical_role(role) != wanted:
                continue
            owners[user["fcmToken"]] = user["id"]

        if not owners:
            log.info("push_no_tokens", extra={"extra": {"event": "push_no_tokens", "filter": user_type_filter}})
            return {"success": False, "reason": "no_tokens", "sentCount": 0}

        totals = self._multicast(owners, title, body, data)
        return {
            "success": True,
            "sentCount": totals["success_count"],
            "failedCount": totals["failure_count"],
            "totalUsers": len(owners),
        }

    def _multicast(self, owners: Dict[str, str], title: str, body: str, data: Optional[Dict[str, Any]]) -> Dict[str, int]:
        payload = push_data(data, settings.PUSH_CLICK_ACTION)
        success = failure = 0
        for n, batch in enumerate(chunks(list(owners), settings.PUSH_MULTICAST_BATCH_SIZE), start=1):
            resp = self.fcm.send_multicast(batch, title, body, payload)
            success += resp["success_count"]
            failure += resp["failure_count"]
            for token in resp.get("invalid_tokens") or []:
                self.remove_token(owners[token])
            log.info(
                "push_batch_sent",
                extra={"extra": {"event": "push_batch_sent", "batch": n, "success_count": resp["success_count"], "failure_count": resp["failure_count"]}},
            )
        log.info("push_multicast_total", extra={"extra": {"event": "push_multicast_total", "success_count": success, "failure_count": failure}})
        return {"success_count": success, "failure_count": failure}
