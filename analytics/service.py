from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from analytics import aggregation
from ops.metrics import Timer
from repos.activity_repo import ActivityRepository
from repos.user_repo import UserRepository
from repos.verification_repo import VerificationRepository

log = logging.getLogger("kolekkita.analytics")


class AnalyticsService:
    """Loads full collections on every call and hands them to the pure aggregations."""

    def __init__(
        self,
        users: Optional[UserRepository] = None,
        activity: Optional[ActivityRepository] = None,
        verifications: Optional[VerificationRepository] = None,
    ):
        self.users = users or UserRepository()
        self.activity = activity or ActivityRepository()
        self.verifications = verifications or VerificationRepository()

    def _load(self) -> Dict[str, List[Dict[str, Any]]]:
        timer = Timer()
        users = self.users.list_all()
        bookings = self.activity.list_bookings()
        log.info(
            "analytics_collections_loaded",
            extra={"extra": {"event": "analytics_collections_loaded", "users": len(users), "bookings": len(bookings), "latency_ms": timer.ms()}},
        )
        return {"users": users, "bookings": bookings}

    def overview(self, now: Optional[datetime] = None, fallback_to_now: bool = False) -> Dict[str, Any]:
        data = self._load()
        users, bookings = data["users"], data["bookings"]
        return {
            "totals": aggregation.total_stats(users, bookings),
            "weights": aggregation.weight_summary(bookings),
            "roles": aggregation.role_breakdown(users),
            "trends": aggregation.growth_trends(users, bookings, now=now, fallback_to_now=fallback_to_now),
            "userGrowth": aggregation.user_growth(users),
            "verifications": aggregation.verification_counts(self.verifications.list_all()),
        }

    def time_series(self, view: str, now: Optional[datetime] = None, fallback_to_now: bool = False) -> List[Dict[str, Any]]:
        data = self._load()
        return aggregation.time_series(data["users"], data["bookings"], view=view, now=now, fallback_to_now=fallback_to_now)

    def dimension(self, dimension: str, year: Optional[int] = None, now: Optional[datetime] = None) -> Any:
        if dimension not in aggregation.DIMENSIONS:
            raise ValueError("invalid_dimension")
        data = self._load()
        municipalities = self.activity.municipalities() if dimension == "municipality" else []
        return aggregation.aggregate(
            data["bookings"], data["users"], dimension, municipalities=municipalities, year=year, now=now
        )
