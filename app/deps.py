from __future__ import annotations

from functools import lru_cache

from admins.management import AdminService
from analytics.service import AnalyticsService
from moderation.queue import ModerationService
from notifications.fanout import CampaignFanOut
from notifications.service import NotificationService
from push.service import PushService
from verification.workflow import VerificationWorkflow


# One per process: it owns the dedup cache.
@lru_cache(maxsize=1)
def get_fanout() -> CampaignFanOut:
    return CampaignFanOut()


def get_notification_service() -> NotificationService:
    return NotificationService()


def get_verification_workflow() -> VerificationWorkflow:
    return VerificationWorkflow()


def get_moderation_service() -> ModerationService:
    return ModerationService()


def get_analytics_service() -> AnalyticsService:
    return AnalyticsService()


def get_admin_service() -> AdminService:
    return AdminService()


@lru_cache(maxsize=1)
def get_push_service() -> PushService:
    return PushService()
