"""
Gateway and view dependencies for FastAPI.

One process-wide gateway is shared by every request. Tests swap it out with
app.dependency_overrides[get_gateway].
"""
from datetime import datetime
from typing import Optional

from fastapi import Depends

from core.config import settings
from services.api_gateway import APIGateway, InMemoryGateway
from services.dashboard_metrics import MetricsConfig
from services.dashboard_view import DashboardView, TrainingBlockView
from services.time_windows import resolve_timezone

_gateway: Optional[APIGateway] = None


def get_gateway() -> APIGateway:
    """Dependency for FastAPI to get the API gateway."""
    global _gateway
    if _gateway is None:
        _gateway = InMemoryGateway()
    return _gateway


def get_dashboard_view(gateway: APIGateway = Depends(get_gateway)) -> DashboardView:
    tz = resolve_timezone(settings.TIMEZONE)
    return DashboardView(
        gateway,
        metrics_config=MetricsConfig(
            week_start=settings.dashboard_week_start,
            consistency_lookback_weeks=settings.CONSISTENCY_LOOKBACK_WEEKS,
        ),
        volume_weeks=settings.VOLUME_CHART_WEEKS,
        pace_trend_limit=settings.PACE_TREND_LIMIT,
        tz=tz,
        clock=lambda: datetime.now(tz),
    )


def get_training_block_view(gateway: APIGateway = Depends(get_gateway)) -> TrainingBlockView:
    tz = resolve_timezone(settings.TIMEZONE)
    return TrainingBlockView(
        gateway,
        length_days=settings.TRAINING_BLOCK_DAYS,
        week_start=settings.calendar_week_start,
        tz=tz,
        today=lambda: datetime.now(tz).date(),
    )
