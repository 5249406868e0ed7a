from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from analytics.service import AnalyticsService
from app.deps import get_analytics_service
from security.admin_auth import require_admin

router = APIRouter()


@router.get("/analytics/overview")
def overview(
    fallback_to_now: bool = False,
    admin: dict = Depends(require_admin),
    svc: AnalyticsService = Depends(get_analytics_service),
):
    return {"ok": True, **svc.overview(fallback_to_now=fallback_to_now)}


@router.get("/analytics/time-series")
def time_series(
    view: str = "monthly",
    fallback_to_now: bool = False,
    admin: dict = Depends(require_admin),
    svc: AnalyticsService = Depends(get_analytics_service),
):
    return {"ok": True, "view": view, "series": svc.time_series(view, fallback_to_now=fallback_to_now)}


@router.get("/analytics/{dimension}")
def by_dimension(
    dimension: str,
    year: Optional[int] = None,
    admin: dict = Depends(require_admin),
    svc: AnalyticsService = Depends(get_analytics_service),
):
    return {"ok": True, "dimension": dimension, "data": svc.dimension(dimension, year=year)}
