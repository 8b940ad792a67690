"""
Dashboard and training block views.

The pure services compute; these views own the fetch-compute cycle against
the API gateway and hold on to the last good result. When a gateway call
fails the error goes to the caller and the previous snapshot or grid stays
exactly as it was: never a half-updated or empty result.

Every refresh fetches activities, goal and "now" together before computing,
so the metrics always come from one consistent snapshot.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union
from uuid import UUID

from core.exceptions import NotFoundError
from schemas import Activity, CalendarEntry, Goal
from services.api_gateway import APIGateway, GatewayError
from services.chart_data import (
    PACE_TREND_LIMIT,
    VOLUME_WEEKS,
    PacePoint,
    RunTypeSlice,
    VolumePoint,
    pace_trend_series,
    run_type_breakdown,
    weekly_volume_series,
)
from services.coach_insight import CoachInsight, InsightThresholds, select_insight
from services.dashboard_metrics import (
    DerivedMetrics,
    MetricsConfig,
    PaceZone,
    RaceCountdown,
    SplitCheckpoint,
    compute_metrics,
    goal_pace_per_mile,
    goal_pace_splits,
    pace_zones,
    race_countdown,
    readiness_label,
)
from services.time_windows import MONDAY, local_date
from services.training_block import (
    DEFAULT_BLOCK_DAYS,
    TrainingBlock,
    block_start,
    build_training_block,
    date_key,
    toggled_status,
    validate_entry,
    week_starts_for_block,
)
from services.units import format_pace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardSnapshot:
    generated_at: datetime
    goal: Optional[Goal]
    metrics: DerivedMetrics
    insight: CoachInsight
    countdown: Optional[RaceCountdown]
    goal_pace: Optional[str]
    splits: List[SplitCheckpoint]
    zones: List[PaceZone]
    readiness_label: str
    weekly_volume: List[VolumePoint]
    pace_trend: List[PacePoint]
    run_types: List[RunTypeSlice]


def build_dashboard(
    activities: Sequence[Activity],
    goal: Optional[Goal],
    now: datetime,
    metrics_config: Optional[MetricsConfig] = None,
    thresholds: Optional[InsightThresholds] = None,
    volume_weeks: int = VOLUME_WEEKS,
    pace_trend_limit: int = PACE_TREND_LIMIT,
    tz: Optional[tzinfo] = None,
) -> DashboardSnapshot:
    """Everything the dashboard shows, from one (activities, goal, now) snapshot."""
    config = metrics_config or MetricsConfig()
    metrics = compute_metrics(activities, goal, now, config, tz)
    goal_pace = goal_pace_per_mile(goal)
    return DashboardSnapshot(
        generated_at=now,
        goal=goal,
        metrics=metrics,
        insight=select_insight(metrics, goal, thresholds),
        countdown=race_countdown(goal, now, tz),
        goal_pace=format_pace(goal_pace) if goal_pace is not None else None,
        splits=goal_pace_splits(goal),
        zones=pace_zones(goal, metrics.current_pace_sec_per_km),
        readiness_label=readiness_label(metrics.readiness_score),
        weekly_volume=weekly_volume_series(activities, now, volume_weeks, config.week_start, tz),
        pace_trend=pace_trend_series(activities, pace_trend_limit, tz),
        run_types=run_type_breakdown(activities, metrics.target_pace_sec_per_km),
    )


class DashboardView:
    """Holds the last good dashboard snapshot for one athlete."""

    def __init__(
        self,
        gateway: APIGateway,
        metrics_config: Optional[MetricsConfig] = None,
        thresholds: Optional[InsightThresholds] = None,
        volume_weeks: int = VOLUME_WEEKS,
        pace_trend_limit: int = PACE_TREND_LIMIT,
        tz: Optional[tzinfo] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.gateway = gateway
        self.metrics_config = metrics_config or MetricsConfig()
        self.thresholds = thresholds
        self.volume_weeks = volume_weeks
        self.pace_trend_limit = pace_trend_limit
        self.tz = tz
        self.clock = clock
        self._snapshot: Optional[DashboardSnapshot] = None

    @property
    def snapshot(self) -> Optional[DashboardSnapshot]:
        return self._snapshot

    def refresh(self, now: Optional[datetime] = None) -> DashboardSnapshot:
        """
        Fetch activities and goal, recompute everything, swap in the result.

        Raises GatewayError with the previous snapshot left in place.
        """
        try:
            activities = self.gateway.list_activities()
            goal = self.gateway.get_active_goal()
        except GatewayError as e:
            logger.warning(f"Dashboard refresh failed, keeping previous snapshot: {e}")
            raise

        snapshot = build_dashboard(
            activities,
            goal,
            now or self.clock(),
            self.metrics_config,
            self.thresholds,
            self.volume_weeks,
            self.pace_trend_limit,
            self.tz,
        )
        self._snapshot = snapshot
        logger.info(
            f"Dashboard refreshed: {len(activities)} activities, "
            f"goal={'yes' if goal else 'no'}, insight={snapshot.insight.rule_id}"
        )
        return snapshot


class TrainingBlockView:
    """
    The N-day training block grid plus the calendar mutations behind it.

    Mutations go through the gateway and are followed by a full reload of
    the block; the grid is never patched locally.
    """

    def __init__(
        self,
        gateway: APIGateway,
        length_days: int = DEFAULT_BLOCK_DAYS,
        week_start: int = MONDAY,
        tz: Optional[tzinfo] = None,
        today: Callable[[], date] = date.today,
    ):
        self.gateway = gateway
        self.length_days = length_days
        self.week_start = week_start
        self.tz = tz
        self.today = today
        self._start: Optional[date] = None
        self._block: Optional[TrainingBlock] = None

    @property
    def block(self) -> Optional[TrainingBlock]:
        return self._block

    @property
    def start(self) -> date:
        if self._start is None:
            return block_start(self.today(), self.week_start)
        return self._start

    def load(self, anchor: Optional[Union[date, datetime]] = None) -> TrainingBlock:
        """Fetch the block containing anchor (default: the current one) and rebuild the grid."""
        start = block_start(anchor, self.week_start, self.tz) if anchor is not None else self.start
        end = start + timedelta(days=self.length_days)
        try:
            entries: List[CalendarEntry] = []
            for week in week_starts_for_block(start, self.length_days):
                entries.extend(self.gateway.get_calendar_week(date_key(week)))
            activities = [
                a for a in self.gateway.list_activities()
                if start <= local_date(a.start_time, self.tz) < end
            ]
        except GatewayError as e:
            logger.warning(f"Training block load for {date_key(start)} failed, keeping previous grid: {e}")
            raise

        block = build_training_block(
            start,
            [e for e in entries if e.date < end],
            activities,
            today=self.today(),
            length_days=self.length_days,
            week_start=self.week_start,
            tz=self.tz,
        )
        self._start, self._block = start, block
        return block

    def navigate(self, direction: int) -> TrainingBlock:
        """Move a whole block backward (-1) or forward (+1)."""
        return self.load(self.start + timedelta(days=direction * self.length_days))

    def save_entry(self, payload: Mapping[str, Any]) -> CalendarEntry:
        entry = validate_entry(payload)
        stored = self.gateway.upsert_calendar_entry(entry)
        self.load(self.start)
        return stored

    def delete_entry(self, entry_id: UUID) -> None:
        self.gateway.delete_calendar_entry(entry_id)
        self.load(self.start)

    def toggle_status(self, entry_id: UUID) -> CalendarEntry:
        """Flip completed <-> planned for an entry in the loaded block."""
        entry = self._entry_in_block(entry_id)
        status = toggled_status(entry)
        self.gateway.update_calendar_entry_status(entry_id, status)
        self.load(self.start)
        return entry.model_copy(update={"status": status})

    def _entry_in_block(self, entry_id: UUID) -> CalendarEntry:
        block = self._block or self.load(self.start)
        for cell in block.cells:
            if cell.entry is not None and cell.entry.id == entry_id:
                return cell.entry
        raise NotFoundError("Calendar entry", str(entry_id))
