from __future__ import annotations

from enum import Enum
from typing import Any


class VerificationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Shown by the dashboard but never a decision target.
VERIFICATION_UNDER_REVIEW = "under_review"


def verification_status_of(doc: dict) -> str:
    # Absent or empty status reads as pending.
    return str((doc or {}).get("status") or VerificationStatus.PENDING.value)


class NotificationType(str, Enum):
    ANNOUNCEMENT = "announcement"
    SYSTEM = "system"
    VERIFICATION_APPROVED = "verification_approved"
    VERIFICATION_DENIED = "verification_denied"
    VERIFICATION_PENDING = "verification_pending"


CAMPAIGN_TYPES = frozenset({NotificationType.ANNOUNCEMENT, NotificationType.SYSTEM})


class CampaignStatus(str, Enum):
    PENDING = "pending"
    SENDING = "sending"
    COMPLETED = "completed"


class ReportStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


def is_pending_report(status: Any) -> bool:
    return not status or status == ReportStatus.PENDING.value
