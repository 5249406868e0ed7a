"""
Campaign fan-out: one message to every non-admin user.

Writes one ``notification_campaigns`` summary record and one ``notifications``
record per recipient. The summary is created in status ``sending`` and moved
to ``completed`` (with ``actualSentCount``) only after every notification
batch committed; a campaign left in ``sending`` without ``actualSentCount``
is the signal of a partial failure. Nothing is rolled back or retried.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from config.settings import settings
from models.roles import (
    BUCKET_ADMINS,
    BUCKET_COLLECTORS,
    BUCKET_JUNK_SHOPS,
    BUCKET_RESIDENTS,
    is_admin_role,
    role_bucket,
)
from models.statuses import CAMPAIGN_TYPES, CampaignStatus, NotificationType
from notifications.dedup import SendDeduplicator
from notifications.service import NotificationService
from ops.metrics import Timer
from repos.campaign_repo import CampaignRepository
from repos.user_repo import UserRepository
from utils.ids import campaign_operation_id

log = logging.getLogger("kolekkita.campaigns")


class CampaignNotFound(LookupError):
    def __init__(self, campaign_id: str):
        super().__init__("campaign_not_found")
        self.campaign_id = campaign_id


def partition_recipients(users: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Split users into the recipient list (admins excluded) and per-role counts."""
    recipients = [u for u in users if not is_admin_role(u.get("role"))]
    counts = {BUCKET_JUNK_SHOPS: 0, BUCKET_COLLECTORS: 0, BUCKET_RESIDENTS: 0}
    for u in recipients:
        bucket = role_bucket(u.get("role"))
        if bucket in counts:
            counts[bucket] += 1
    breakdown = {"total": len(recipients), BUCKET_ADMINS: 0, **counts}
    return {
        "recipients": recipients,
        "breakdown": breakdown,
        "admins_excluded": len(users) - len(recipients),
    }


def recipient_snapshot(user: Dict[str, Any]) -> Dict[str, str]:
    return {
        "id": user.get("id") or "unknown",
        "role": user.get("role") or "unknown",
        "email": user.get("email") or "",
        "name": user.get("name") or "Unknown User",
    }


class CampaignFanOut:
    def __init__(
        self,
        users: Optional[UserRepository] = None,
        campaigns: Optional[CampaignRepository] = None,
        notifications: Optional[NotificationService] = None,
        dedup: Optional[SendDeduplicator] = None,
    ):
        self.users = users or UserRepository()
        self.campaigns = campaigns or CampaignRepository()
        self.notifications = notifications or NotificationService()
        self.dedup = dedup or SendDeduplicator(
            window_sec=settings.CAMPAIGN_DEDUP_WINDOW_SEC,
            retention_sec=settings.CAMPAIGN_DEDUP_RETENTION_SEC,
        )

    def send_to_all(
        self,
        title: str,
        message: str,
        notification_type: str = NotificationType.ANNOUNCEMENT.value,
        sent_by: str = "system",
        sent_by_name: str = "System",
        idempotency_token: Any = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        title = (title or "").strip()
        message = (message or "").strip()
        if not title:
            raise ValueError("title_required")
        if not message:
            raise ValueError("message_required")
        if notification_type not in {t.value for t in CAMPAIGN_TYPES}:
            raise ValueError("invalid_notification_type")

        operation_id = campaign_operation_id(title, notification_type, idempotency_token)
        self.dedup.acquire(operation_id)

        timer = Timer()
        try:
            log.info(
                "campaign_send_started",
                extra={"extra": {"event": "campaign_send_started", "type": notification_type, "sent_by": sent_by}},
            )
            part = partition_recipients(self.users.list_all())
            recipients = part["recipients"]
            breakdown = part["breakdown"]
            log.info(
                "campaign_recipients_enumerated",
                extra={"extra": {"event": "campaign_recipients_enumerated", "admins_excluded": part["admins_excluded"], **breakdown}},
            )

            if not recipients:
                log.warning("campaign_no_recipients", extra={"extra": {"event": "campaign_no_recipients"}})
                return {"ok": True, "sent_count": 0, "campaign_id": None}

            campaign_id = self.campaigns.create(
                {
                    "title": title,
                    "message": message,
                    "type": notification_type,
                    "sentBy": sent_by or "system",
                    "sentByName": sent_by_name or "System",
                    "userBreakdown": breakdown,
                    "recipients": [recipient_snapshot(u) for u in recipients],
                    "status": CampaignStatus.SENDING.value,
                }
            )

            sent = self.notifications.send_batch(
                [u["id"] for u in recipients],
                title,
                message,
                notification_type,
                {**(data or {}), "operationId": operation_id, "campaignId": campaign_id},
            )
        except Exception as e:
            self.dedup.release(operation_id)
            log.error(
                "campaign_send_failed",
                extra={"extra": {"event": "campaign_send_failed", "error_type": type(e).__name__, "message": str(e), "latency_ms": timer.ms()}},
                exc_info=True,
            )
            raise

        # All notifications are written; a failed status update keeps the dedup key.
        try:
            self.campaigns.update_status(campaign_id, CampaignStatus.COMPLETED.value, sent)
        except Exception as e:
            log.error(
                "campaign_status_update_failed",
                extra={"extra": {"event": "campaign_status_update_failed", "campaign_id": campaign_id, "error_type": type(e).__name__, "message": str(e)}},
                exc_info=True,
            )
            raise

        self.dedup.prune()
        log.info(
            "campaign_send_completed",
            extra={"extra": {"event": "campaign_send_completed", "campaign_id": campaign_id, "sent_count": sent, "latency_ms": timer.ms()}},
        )
        return {"ok": True, "sent_count": sent, "campaign_id": campaign_id}

    def list_campaigns(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return self.campaigns.list(limit=limit)

    def get_campaign(self, campaign_id: str) -> Dict[str, Any]:
        campaign = self.campaigns.get(campaign_id)
        if campaign is None:
            raise CampaignNotFound(campaign_id)
        return campaign
