"""
Dashboard Metrics Engine

Turns an activity snapshot and the active race goal into the numbers the
dashboard shows: weekly mileage, current vs goal pace, training progress,
the ramped weekly mileage target, readiness and consistency, plus the goal
pace card and training zones.

Everything here is a pure function of (activities, goal, now). Nothing is
cached; callers recompute the whole set whenever any input changes and must
pass a mutually consistent snapshot.

Readiness is a heuristic composite:
    min(100, mileage / target * 100) * 0.5     volume vs ramped target
  + 20 / 10 / 0                                runs this week (>=3 / >=1 / 0)
  + 15 / 5 / 0                                 pace on target / known / unknown
  + training_progress * 0.15                   time served in the build

The weights are cold-start hypotheses, so they live in MetricsConfig where
callers and tests can override them.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import List, Optional, Sequence

from schemas import Activity, Goal
from services.time_windows import (
    SUNDAY,
    activities_in_window,
    current_week,
    local_midnight,
    rolling_weeks,
    to_local,
)
from services.units import (
    KM_PER_MILE,
    format_clock,
    format_pace,
    meters_to_miles,
    pace_per_km_to_per_mile,
    round_half_up,
)

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


@dataclass(frozen=True)
class MetricsConfig:
    """Empirical constants behind the dashboard metrics."""
    week_start: int = SUNDAY

    # Weekly mileage ramp
    min_weekly_target_miles: float = 10.0
    peak_mileage_race_multiplier: float = 3.0
    peak_mileage_cap_miles: float = 60.0
    default_race_distance_miles: float = 26.2
    ramp_floor: float = 0.5                 # share of peak at progress 0
    ramp_full_at_progress_pct: float = 80.0

    # Readiness
    readiness_volume_weight: float = 0.5
    readiness_progress_weight: float = 0.15
    consistency_bonus_full: int = 20
    consistency_bonus_partial: int = 10
    pace_bonus_on_target: int = 15
    pace_bonus_known: int = 5
    pace_on_target_seconds: float = 10.0    # |pace diff| below this is "on target"

    # Consistency
    consistent_week_runs: int = 3
    consistency_lookback_weeks: int = 4
    consistency_points_per_week: int = 25


DEFAULT_METRICS_CONFIG = MetricsConfig()


@dataclass(frozen=True)
class DerivedMetrics:
    """Dashboard numbers for one (activities, goal, now) snapshot. Never persisted."""
    weekly_mileage_miles: float
    current_pace_sec_per_km: Optional[float]
    current_pace_sec_per_mile: Optional[float]
    target_pace_sec_per_km: Optional[float]
    target_pace_sec_per_mile: Optional[float]
    pace_diff_sec_per_mile: Optional[int]   # negative = faster than goal
    training_progress_pct: int
    weekly_mileage_target_miles: int
    readiness_score: int
    consistency_score: int
    runs_this_week: int
    days_to_race: Optional[int]             # None without a goal


@dataclass(frozen=True)
class RaceCountdown:
    total_days: int
    weeks: int
    days: int


@dataclass(frozen=True)
class SplitCheckpoint:
    label: str
    miles: float
    time: str


# Cumulative checkpoints shown on the goal pace card; "Finish" is appended
SPLIT_CHECKPOINTS = (
    ("5K", 3.10686),
    ("13.1 mi", 13.1),
    ("20 mi", 20.0),
)


@dataclass(frozen=True)
class PaceZone:
    zone: str
    name: str
    fast_pace_sec_per_mile: int
    slow_pace_sec_per_mile: int
    pace_range: str                         # "slow - fast", M:SS per mile
    hr_low: int
    hr_high: int


# (zone, name, fast offset, slow offset, HR low, HR high); offsets in sec/mile
PACE_ZONES = (
    ("Z1", "Recovery", 60, 90, 120, 140),
    ("Z2", "Aerobic", 20, 60, 140, 155),
    ("Z3", "Threshold", -10, 20, 155, 170),
    ("Z4", "VO2 Max", -40, -10, 170, 185),
)
DEFAULT_ZONE_BASE_SEC_PER_MILE = 540.0

# Readiness gauge bands
READINESS_ON_TRACK = 70
READINESS_BUILDING = 40


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# =============================================================================
# VOLUME
# =============================================================================

def weekly_mileage(
    activities: Sequence[Activity],
    now: datetime,
    week_start: int = SUNDAY,
    tz: Optional[tzinfo] = None,
) -> float:
    """Miles in the current anchored week, to one decimal."""
    window = current_week(now, week_start, tz)
    meters = sum(a.distance_meters or 0 for a in activities_in_window(activities, window, tz))
    return round_half_up(meters_to_miles(meters), 1)


def runs_this_week(
    activities: Sequence[Activity],
    now: datetime,
    week_start: int = SUNDAY,
    tz: Optional[tzinfo] = None,
) -> int:
    return len(activities_in_window(activities, current_week(now, week_start, tz), tz))


# =============================================================================
# PACE
# =============================================================================

def current_pace(activities: Sequence[Activity]) -> Optional[float]:
    """
    Plain mean of average pace (sec/km) over every supplied activity with a pace.

    No recency weighting and no window: the caller decides which activities
    count.
    """
    paces = [a.average_pace_seconds_per_km for a in activities if a.average_pace_seconds_per_km]
    if not paces:
        return None
    return sum(paces) / len(paces)


def target_pace(goal: Optional[Goal]) -> Optional[float]:
    """Goal pace in sec/km, or None for a "just finish" goal."""
    if goal is None or not goal.target_time_seconds or not goal.distance_meters:
        return None
    return goal.target_time_seconds / (goal.distance_meters / 1000)


def pace_diff(current_sec_per_km: Optional[float], target_sec_per_km: Optional[float]) -> Optional[int]:
    """Whole seconds per mile between current and goal pace."""
    if current_sec_per_km is None or target_sec_per_km is None:
        return None
    return int(round_half_up((current_sec_per_km - target_sec_per_km) * KM_PER_MILE))


# =============================================================================
# GOAL TIMELINE
# =============================================================================

def training_progress(goal: Optional[Goal], now: datetime, tz: Optional[tzinfo] = None) -> int:
    """Percent of the time between goal creation and race day that has elapsed."""
    if goal is None:
        return 0
    created = to_local(goal.created_at, tz)
    total = (local_midnight(goal.race_date) - created).total_seconds()
    if total <= 0:
        return 100
    elapsed = (to_local(now, tz) - created).total_seconds()
    return int(_clamp(round_half_up(elapsed / total * 100), 0, 100))


def days_to_race(goal: Optional[Goal], now: datetime, tz: Optional[tzinfo] = None) -> Optional[int]:
    """Whole days until race day starts, never negative."""
    if goal is None:
        return None
    remaining = (local_midnight(goal.race_date) - to_local(now, tz)).total_seconds()
    return max(0, math.ceil(remaining / SECONDS_PER_DAY))


def race_countdown(goal: Optional[Goal], now: datetime, tz: Optional[tzinfo] = None) -> Optional[RaceCountdown]:
    total = days_to_race(goal, now, tz)
    if total is None:
        return None
    weeks, days = divmod(total, 7)
    return RaceCountdown(total_days=total, weeks=weeks, days=days)


def weekly_mileage_target(
    goal: Optional[Goal],
    progress_pct: float,
    config: MetricsConfig = DEFAULT_METRICS_CONFIG,
) -> int:
    """
    Ramp from ramp_floor of estimated peak volume toward 100% as progress
    approaches ramp_full_at_progress_pct.

    Peak volume is race distance x3, capped at 60 miles.
    """
    race_miles = meters_to_miles(goal.distance_meters) if goal else config.default_race_distance_miles
    peak = min(race_miles * config.peak_mileage_race_multiplier, config.peak_mileage_cap_miles)
    ramp = config.ramp_floor + (1 - config.ramp_floor) * min(1, progress_pct / config.ramp_full_at_progress_pct)
    return int(round_half_up(max(config.min_weekly_target_miles, peak * ramp)))


# =============================================================================
# SCORES
# =============================================================================

def readiness_score(
    mileage: float,
    mileage_target: float,
    week_runs: int,
    diff_sec_per_mile: Optional[int],
    progress_pct: float,
    config: MetricsConfig = DEFAULT_METRICS_CONFIG,
) -> int:
    volume_pct = min(100, mileage / mileage_target * 100) if mileage_target > 0 else 0

    if week_runs >= config.consistent_week_runs:
        consistency_bonus = config.consistency_bonus_full
    elif week_runs >= 1:
        consistency_bonus = config.consistency_bonus_partial
    else:
        consistency_bonus = 0

    if diff_sec_per_mile is None:
        pace_bonus = 0
    elif abs(diff_sec_per_mile) < config.pace_on_target_seconds:
        pace_bonus = config.pace_bonus_on_target
    else:
        pace_bonus = config.pace_bonus_known

    raw = (
        volume_pct * config.readiness_volume_weight
        + consistency_bonus
        + pace_bonus
        + progress_pct * config.readiness_progress_weight
    )
    return int(_clamp(round_half_up(raw), 0, 100))


def consistency_score(
    activities: Sequence[Activity],
    now: datetime,
    config: MetricsConfig = DEFAULT_METRICS_CONFIG,
    tz: Optional[tzinfo] = None,
) -> int:
    """25 points for each of the last 4 rolling weeks with at least 3 runs."""
    if not activities:
        return 0
    consistent_weeks = sum(
        1
        for window in rolling_weeks(now, config.consistency_lookback_weeks, tz)
        if len(activities_in_window(activities, window, tz)) >= config.consistent_week_runs
    )
    return int(_clamp(consistent_weeks * config.consistency_points_per_week, 0, 100))


# =============================================================================
# GOAL PACE CARD
# =============================================================================

def goal_pace_per_mile(goal: Optional[Goal]) -> Optional[float]:
    pace = target_pace(goal)
    return pace_per_km_to_per_mile(pace) if pace is not None else None


def goal_pace_splits(goal: Optional[Goal]) -> List[SplitCheckpoint]:
    """Cumulative checkpoint times at even goal pace."""
    pace = goal_pace_per_mile(goal)
    if pace is None:
        return []
    race_miles = meters_to_miles(goal.distance_meters)
    checkpoints = [(label, miles) for label, miles in SPLIT_CHECKPOINTS if miles <= race_miles + 0.1]
    checkpoints.append(("Finish", race_miles))
    return [
        SplitCheckpoint(label=label, miles=round_half_up(miles, 2), time=format_clock(miles * pace))
        for label, miles in checkpoints
    ]


# =============================================================================
# TRAINING ZONES
# =============================================================================

def pace_zone_base(goal: Optional[Goal], current_pace_sec_per_km: Optional[float] = None) -> float:
    """Seconds per mile the zones hang off: goal pace, else current pace, else 9:00."""
    goal_pace = goal_pace_per_mile(goal)
    if goal_pace is not None:
        return goal_pace
    if current_pace_sec_per_km:
        return pace_per_km_to_per_mile(current_pace_sec_per_km)
    return DEFAULT_ZONE_BASE_SEC_PER_MILE


def pace_zones(goal: Optional[Goal], current_pace_sec_per_km: Optional[float] = None) -> List[PaceZone]:
    """
    Four effort zones as pace bands around the base pace, with approximate
    heart rate bands.

    Offsets are seconds per mile added to the base pace; Z3 straddles it.
    """
    base = pace_zone_base(goal, current_pace_sec_per_km)
    zones = []
    for zone, name, fast_offset, slow_offset, hr_low, hr_high in PACE_ZONES:
        fast = max(0, int(round_half_up(base + fast_offset)))
        slow = max(0, int(round_half_up(base + slow_offset)))
        zones.append(PaceZone(
            zone=zone,
            name=name,
            fast_pace_sec_per_mile=fast,
            slow_pace_sec_per_mile=slow,
            pace_range=f"{format_pace(slow)} - {format_pace(fast)}",
            hr_low=hr_low,
            hr_high=hr_high,
        ))
    return zones


def readiness_label(score: int) -> str:
    if score >= READINESS_ON_TRACK:
        return "On Track"
    if score >= READINESS_BUILDING:
        return "Building"
    return "Behind"


# =============================================================================
# ASSEMBLY
# =============================================================================

def compute_metrics(
    activities: Sequence[Activity],
    goal: Optional[Goal],
    now: datetime,
    config: Optional[MetricsConfig] = None,
    tz: Optional[tzinfo] = None,
) -> DerivedMetrics:
    """Compute the full dashboard metric set from one consistent snapshot."""
    config = config or DEFAULT_METRICS_CONFIG

    mileage = weekly_mileage(activities, now, config.week_start, tz)
    week_runs = runs_this_week(activities, now, config.week_start, tz)
    current = current_pace(activities)
    target = target_pace(goal)
    diff = pace_diff(current, target)
    progress = training_progress(goal, now, tz)
    mileage_target = weekly_mileage_target(goal, progress, config)

    metrics = DerivedMetrics(
        weekly_mileage_miles=mileage,
        current_pace_sec_per_km=current,
        current_pace_sec_per_mile=pace_per_km_to_per_mile(current) if current is not None else None,
        target_pace_sec_per_km=target,
        target_pace_sec_per_mile=pace_per_km_to_per_mile(target) if target is not None else None,
        pace_diff_sec_per_mile=diff,
        training_progress_pct=progress,
        weekly_mileage_target_miles=mileage_target,
        readiness_score=readiness_score(mileage, mileage_target, week_runs, diff, progress, config),
        consistency_score=consistency_score(activities, now, config, tz),
        runs_this_week=week_runs,
        days_to_race=days_to_race(goal, now, tz),
    )

    logger.debug(
        f"Metrics at {now.isoformat()}: {mileage}/{mileage_target} mi, "
        f"{week_runs} runs, pace diff {diff}, readiness {metrics.readiness_score}, "
        f"consistency {metrics.consistency_score}"
    )
    return metrics
