from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import firebase_admin
from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging

from ops.metrics import Timer
from storage.firebase_app import get_firebase_app

log = logging.getLogger("kolekkita.fcm")


def _dest_hint(v: str, keep: int = 4) -> str:
    v = (v or "").strip()
    if not v:
        return ""
    if len(v) <= keep:
        return v
    return f"...{v[-keep:]}"


def is_invalid_token_error(exc: BaseException) -> bool:
    # Unregistered and malformed registration tokens; both mean the stored token is dead.
    return isinstance(exc, (messaging.UnregisteredError, firebase_exceptions.InvalidArgumentError))


class FcmClient:
    """Thin wrapper over firebase_admin.messaging; payload shaping lives in PushService."""

    def __init__(self, app: Optional[firebase_admin.App] = None):
        self._app = app

    @property
    def app(self) -> firebase_admin.App:
        if self._app is None:
            self._app = get_firebase_app()
        return self._app

    def send(self, token: str, title: str, body: str, data: Dict[str, str]) -> str:
        timer = Timer()
        message = messaging.Message(
            notification=messaging.Notification(title=title, body=body),
            data=data,
            token=token,
        )
        try:
            message_id = messaging.send(message, app=self.app)
        except Exception as e:
            log.warning(
                "push_send_exception",
                extra={"extra": {"event": "push_send_exception", "dest": _dest_hint(token), "error_type": type(e).__name__, "message": str(e), "latency_ms": timer.ms()}},
            )
            raise
        log.info(
            "push_send_result",
            extra={"extra": {"event": "push_send_result", "dest": _dest_hint(token), "ok": True, "latency_ms": timer.ms()}},
        )
        return message_id

    def send_multicast(self, tokens: List[str], title: str, body: str, data: Dict[str, str]) -> Dict[str, Any]:
        """Send one multicast request (caller keeps tokens within the 500 limit)."""
        timer = Timer()
        message = messaging.MulticastMessage(
            notification=messaging.Notification(title=title, body=body),
            data=data,
            tokens=tokens,
        )
        resp = messaging.send_each_for_multicast(message, app=self.app)
        failed = [tokens[i] for i, r in enumerate(resp.responses) if not r.success]
        invalid = [tokens[i] for i, r in enumerate(resp.responses) if not r.success and r.exception and is_invalid_token_error(r.exception)]
        log.info(
            "push_multicast_result",
            extra={
                "extra": {
                    "event": "push_multicast_result",
                    "tokens": len(tokens),
                    "success_count": resp.success_count,
                    "failure_count": resp.failure_count,
                    "latency_ms": timer.ms(),
                }
            },
        )
        return {
            "success_count": resp.success_count,
            "failure_count": resp.failure_count,
            "failed_tokens": failed,
            "invalid_tokens": invalid,
        }
