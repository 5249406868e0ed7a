from __future__ import annotations

from contextvars import ContextVar

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")
_actor_uid_var: ContextVar[str] = ContextVar("actor_uid", default="")


def set_request_id(rid: str) -> None:
    _request_id_var.set(rid or "")


def get_request_id() -> str:
    return _request_id_var.get() or ""


def set_actor_uid(uid: str) -> None:
    # Admin uid resolved by security.admin_auth for the current request.
    _actor_uid_var.set(uid or "")


def get_actor_uid() -> str:
    return _actor_uid_var.get() or ""


def clear_request_context() -> None:
    _request_id_var.set("")
    _actor_uid_var.set("")
