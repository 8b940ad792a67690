"""
Dashboard API Router

Endpoints:
- GET /dashboard - Metrics, coach insight, race countdown, training zones and chart series
"""

import logging

from fastapi import APIRouter, Depends

from core.exceptions import ServiceUnavailableError
from core.gateway import get_dashboard_view
from schemas import (
    DashboardResponse,
    DerivedMetricsResponse,
    InsightResponse,
    PacePointResponse,
    PaceZoneResponse,
    RaceCountdownResponse,
    RunTypeSliceResponse,
    SplitCheckpointResponse,
    VolumePointResponse,
)
from services.api_gateway import GatewayError
from services.dashboard_view import DashboardSnapshot, DashboardView
from services.units import format_pace

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


def _to_response(snapshot: DashboardSnapshot) -> DashboardResponse:
    m = snapshot.metrics
    countdown = None
    if snapshot.countdown is not None and snapshot.goal is not None:
        countdown = RaceCountdownResponse(
            race_name=snapshot.goal.race_name,
            race_date=snapshot.goal.race_date,
            total_days=snapshot.countdown.total_days,
            weeks=snapshot.countdown.weeks,
            days=snapshot.countdown.days,
        )
    return DashboardResponse(
        generated_at=snapshot.generated_at,
        goal=snapshot.goal,
        metrics=DerivedMetricsResponse(
            weekly_mileage_miles=m.weekly_mileage_miles,
            current_pace_sec_per_mile=m.current_pace_sec_per_mile,
            target_pace_sec_per_mile=m.target_pace_sec_per_mile,
            pace_diff_sec_per_mile=m.pace_diff_sec_per_mile,
            training_progress_pct=m.training_progress_pct,
            weekly_mileage_target_miles=m.weekly_mileage_target_miles,
            readiness_score=m.readiness_score,
            consistency_score=m.consistency_score,
            runs_this_week=m.runs_this_week,
            days_to_race=m.days_to_race,
            current_pace_label=format_pace(m.current_pace_sec_per_mile),
            target_pace_label=format_pace(m.target_pace_sec_per_mile),
        ),
        insight=InsightResponse(rule_id=snapshot.insight.rule_id, message=snapshot.insight.message),
        countdown=countdown,
        goal_pace=snapshot.goal_pace,
        splits=[SplitCheckpointResponse(label=s.label, miles=s.miles, time=s.time) for s in snapshot.splits],
        zones=[
            PaceZoneResponse(
                zone=z.zone,
                name=z.name,
                pace_range=z.pace_range,
                fast_pace_sec_per_mile=z.fast_pace_sec_per_mile,
                slow_pace_sec_per_mile=z.slow_pace_sec_per_mile,
                hr_low=z.hr_low,
                hr_high=z.hr_high,
            )
            for z in snapshot.zones
        ],
        readiness_label=snapshot.readiness_label,
        weekly_volume=[
            VolumePointResponse(week_start=p.week_start, week=p.week, miles=p.miles)
            for p in snapshot.weekly_volume
        ],
        pace_trend=[PacePointResponse(date=p.date, pace=p.pace, label=p.label) for p in snapshot.pace_trend],
        run_types=[RunTypeSliceResponse(name=s.name, value=s.value) for s in snapshot.run_types],
    )


@router.get("", response_model=DashboardResponse)
def get_dashboard(view: DashboardView = Depends(get_dashboard_view)):
    """
    Recompute the dashboard from a fresh (activities, goal, now) snapshot.

    Returns 503 when the gateway cannot be reached.
    """
    try:
        snapshot = view.refresh()
    except GatewayError as e:
        logger.warning(f"Dashboard unavailable: {e}")
        raise ServiceUnavailableError()
    return _to_response(snapshot)
