from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from google.cloud import firestore

from models.statuses import NotificationType, VerificationStatus
from repos.notification_repo import NotificationRepository
from utils.ids import new_batch_id

log = logging.getLogger("kolekkita.notifications")


def _clean_data(data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    return {k: v for k, v in (data or {}).items() if v is not None}


def notification_doc(
    user_id: str, title: str, message: str, notification_type: str, data: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    return {
        "userId": user_id or "",
        "title": title or "Untitled",
        "message": message or "",
        "type": notification_type or NotificationType.SYSTEM.value,
        "isRead": False,
        "data": _clean_data(data),
        "createdAt": firestore.SERVER_TIMESTAMP,
        "sentAt": firestore.SERVER_TIMESTAMP,
    }


def verification_message(status: str, shop_name: Optional[str], reason: Optional[str]) -> Dict[str, str]:
    subject = f'Your junk shop "{shop_name}" verification' if shop_name else "Your verification"
    if status == VerificationStatus.APPROVED.value:
        lead = (
            f'Congratulations! Your junk shop "{shop_name}" verification' if shop_name
            else "Congratulations! Your verification"
        )
        return {
            "title": "✅ Verification Approved",
            "message": f"{lead} has been approved! You can now access all verified features.",
            "type": NotificationType.VERIFICATION_APPROVED.value,
        }
    if status == VerificationStatus.REJECTED.value:
        return {
            "title": "❌ Verification Denied",
            "message": (
                f"{subject} has been denied.\n\nReason: {reason}\n\n"
                "Please fix the issues mentioned and reapply."
            ),
            "type": NotificationType.VERIFICATION_DENIED.value,
        }
    return {
        "title": "⏳ Verification Under Review",
        "message": f"{subject} has been returned to pending review. We will notify you once a decision is made.",
        "type": NotificationType.VERIFICATION_PENDING.value,
    }


class NotificationService:
    def __init__(self, repo: Optional[NotificationRepository] = None):
        self.repo = repo or NotificationRepository()

    def send(
        self,
        user_id: str,
        title: str,
        message: str,
        notification_type: str = NotificationType.SYSTEM.value,
        data: Optional[Dict[str, Any]] = None,
    ) -> str:
        notification_id = self.repo.create(notification_doc(user_id, title, message, notification_type, data))
        log.info(
            "notification_sent",
            extra={"extra": {"event": "notification_sent", "user_id": user_id, "type": notification_type, "notification_id": notification_id}},
        )
        return notification_id

    def send_batch(
        self,
        user_ids: Iterable[str],
        title: str,
        message: str,
        notification_type: str = NotificationType.SYSTEM.value,
        data: Optional[Dict[str, Any]] = None,
    ) -> int:
        batch_id = new_batch_id()
        shared = {**_clean_data(data), "batchId": batch_id}
        docs = (notification_doc(uid, title, message, notification_type, shared) for uid in user_ids)
        count = self.repo.create_many(docs)
        log.info(
            "notification_batch_committed",
            extra={"extra": {"event": "notification_batch_committed", "batch_id": batch_id, "count": count}},
        )
        return count

    def send_verification_decision(
        self,
        user_id: str,
        verification_id: str,
        status: str,
        shop_name: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> str:
        tmpl = verification_message(status, shop_name, reason)
        data: Dict[str, Any] = {
            "verificationId": verification_id,
            "shopName": shop_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if status == VerificationStatus.REJECTED.value:
            data["reason"] = reason
        return self.send(user_id, tmpl["title"], tmpl["message"], tmpl["type"], data)

    def list(
        self,
        user_id: Optional[str] = None,
        notification_type: Optional[str] = None,
        is_read: Optional[bool] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        return self.repo.list(user_id=user_id, notification_type=notification_type, is_read=is_read, limit=limit)

    def mark_as_read(self, notification_id: str) -> None:
        self.repo.mark_read(notification_id)

    def delete(self, notification_id: str) -> None:
        self.repo.delete(notification_id)
        log.info("notification_deleted", extra={"extra": {"event": "notification_deleted", "notification_id": notification_id}})
