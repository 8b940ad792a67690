"""
Chart Data Shaper

Shapes activities into the series the dashboard charts plot:
- weekly volume: dense, one bucket per anchored week, zero weeks included
- pace trend: the most recent paced runs, oldest first
- run type breakdown: how the athlete's runs split by effort
"""

from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import List, Optional, Sequence

from schemas import Activity
from services.time_windows import SUNDAY, activities_in_window, local_date, to_local, week_buckets
from services.units import format_pace, meters_to_miles, pace_per_km_to_per_mile, round_half_up


VOLUME_WEEKS = 8
PACE_TREND_LIMIT = 15

# Run type classification, relative to goal pace (sec/km)
DEFAULT_TARGET_PACE_PER_KM = 360
LONG_RUN_MILES = 8.0
EASY_PACE_RATIO = 1.2
TEMPO_PACE_BAND = (0.95, 1.05)

RUN_TYPE_LABELS = {
    "easy": "Easy",
    "tempo": "Tempo",
    "speed": "Speed",
    "long": "Long",
}


@dataclass(frozen=True)
class VolumePoint:
    week_start: date
    week: str       # axis label, e.g. "Jan 7"
    miles: float


@dataclass(frozen=True)
class PacePoint:
    date: date
    pace: float     # minutes per mile, 2 decimals
    label: str      # M:SS per mile


@dataclass(frozen=True)
class RunTypeSlice:
    name: str
    value: int


def weekly_volume_series(
    activities: Sequence[Activity],
    now: datetime,
    weeks: int = VOLUME_WEEKS,
    week_start: int = SUNDAY,
    tz: Optional[tzinfo] = None,
) -> List[VolumePoint]:
    """Miles per anchored week for the last `weeks` weeks, oldest first."""
    series = []
    for window in week_buckets(now, weeks, week_start, tz):
        meters = sum(a.distance_meters or 0 for a in activities_in_window(activities, window, tz))
        start = window.start_date
        series.append(VolumePoint(
            week_start=start,
            week=f"{start:%b} {start.day}",
            miles=round_half_up(meters_to_miles(meters), 1),
        ))
    return series


def pace_trend_series(
    activities: Sequence[Activity],
    limit: int = PACE_TREND_LIMIT,
    tz: Optional[tzinfo] = None,
) -> List[PacePoint]:
    """
    Pace of the most recent `limit` paced activities, ascending by time.

    Both the number and the label come from the same whole-second pace, so a
    point plotted at 8.0 is always labelled 8:00.
    """
    paced = sorted(
        (a for a in activities if a.average_pace_seconds_per_km),
        key=lambda a: to_local(a.start_time, tz),
    )
    series = []
    for activity in paced[-limit:] if limit > 0 else []:
        seconds_per_mile = round_half_up(pace_per_km_to_per_mile(activity.average_pace_seconds_per_km))
        series.append(PacePoint(
            date=local_date(activity.start_time, tz),
            pace=round_half_up(seconds_per_mile / 60, 2),
            label=format_pace(seconds_per_mile),
        ))
    return series


def classify_run(activity: Activity, target_pace_per_km: float) -> str:
    """long / easy / tempo / speed, by distance first and then pace vs goal."""
    if meters_to_miles(activity.distance_meters) > LONG_RUN_MILES:
        return "long"
    pace = activity.average_pace_seconds_per_km
    if not pace:
        return "easy"
    if pace > target_pace_per_km * EASY_PACE_RATIO:
        return "easy"
    low, high = TEMPO_PACE_BAND
    if target_pace_per_km * low <= pace <= target_pace_per_km * high:
        return "tempo"
    if pace < target_pace_per_km * low:
        return "speed"
    # Between tempo and easy: steady running counts as easy
    return "easy"


def run_type_breakdown(
    activities: Sequence[Activity],
    target_pace_per_km: Optional[float] = None,
) -> List[RunTypeSlice]:
    """Counts per run type, non-empty types only, in a fixed order."""
    target = target_pace_per_km or DEFAULT_TARGET_PACE_PER_KM
    counts = {run_type: 0 for run_type in RUN_TYPE_LABELS}
    for activity in activities:
        counts[classify_run(activity, target)] += 1
    return [
        RunTypeSlice(name=RUN_TYPE_LABELS[run_type], value=count)
        for run_type, count in counts.items()
        if count > 0
    ]
