"""
Training Block Calendar

Builds the day grid behind the week calendar and the two-week training
block: one cell per day from a Monday anchor, persisted calendar entries and
completed activities both merged in by date key, plus block and per-week
aggregates.

Entries are unique per date. Upserts are last-write-wins on the whole entry
(no field-level merge). "missed" is never stored by anything here; it is a
display state derived from (date < today and still planned).
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from core.exceptions import ValidationError
from schemas import Activity, CalendarEntry, CalendarEntryUpsert, EntryStatus, WorkoutType
from services.time_windows import DAYS_PER_WEEK, MONDAY, local_date, to_local, week_start_date
from services.units import format_pace_per_mile, meters_to_miles, parse_pace, round_half_up

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_DAYS = 14


# =============================================================================
# DATE KEYS
# =============================================================================

def date_key(day: Union[date, datetime]) -> str:
    """Zero-padded YYYY-MM-DD. Datetimes use their own wall-clock date."""
    if isinstance(day, datetime):
        day = day.date()
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}"


def parse_date_key(key: str) -> date:
    try:
        return date.fromisoformat(key)
    except (TypeError, ValueError):
        raise ValidationError("invalid date format, use YYYY-MM-DD", field="date") from None


def block_start(
    anchor: Union[date, datetime],
    week_start: int = MONDAY,
    tz: Optional[tzinfo] = None,
) -> date:
    """Normalize any day to the start of its calendar week."""
    if isinstance(anchor, datetime):
        anchor = local_date(anchor, tz)
    return week_start_date(anchor, week_start)


def week_starts_for_block(start: date, length_days: int = DEFAULT_BLOCK_DAYS) -> List[date]:
    """Week-sized fetch keys covering [start, start + length_days)."""
    return [start + timedelta(days=DAYS_PER_WEEK * i) for i in range(math.ceil(length_days / DAYS_PER_WEEK))]


# =============================================================================
# ENTRY STATE
# =============================================================================

def effective_status(entry: CalendarEntry, today: date) -> EntryStatus:
    if entry.status == EntryStatus.PLANNED and entry.date < today:
        return EntryStatus.MISSED
    return entry.status


def toggled_status(entry: CalendarEntry) -> EntryStatus:
    """The check-mark toggle: completed goes back to planned, anything else completes."""
    if entry.status == EntryStatus.COMPLETED:
        return EntryStatus.PLANNED
    return EntryStatus.COMPLETED


def validate_entry(payload: Mapping[str, Any]) -> CalendarEntryUpsert:
    """
    Reject bad upsert payloads before they reach the merge step.

    A "planned_pace" given as M:SS per mile is converted to
    planned_pace_per_km; blank means no pace.
    """
    data = dict(payload)
    if "planned_pace" in data:
        try:
            data["planned_pace_per_km"] = parse_pace(data.pop("planned_pace"))
        except (AttributeError, ValueError) as e:
            raise ValidationError(f"planned_pace: {e}", field="planned_pace") from None
    try:
        return CalendarEntryUpsert.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        message = first.get("msg", "invalid calendar entry")
        logger.info(f"Rejected calendar entry payload: {field}: {message}")
        raise ValidationError(f"{field}: {message}" if field else message, field=field) from None


def index_entries(entries: Iterable[CalendarEntry]) -> Dict[str, CalendarEntry]:
    """Entries by date key; if two share a date the later one wins."""
    indexed: Dict[str, CalendarEntry] = {}
    for entry in entries:
        indexed[date_key(entry.date)] = entry
    return indexed


def upsert_entry(entries: Iterable[CalendarEntry], entry: CalendarEntry) -> List[CalendarEntry]:
    """New entry list with entry replacing whatever was on its date."""
    indexed = index_entries(entries)
    indexed[date_key(entry.date)] = entry
    return sorted(indexed.values(), key=lambda e: e.date)


def remove_entry(entries: Iterable[CalendarEntry], entry_id: UUID) -> List[CalendarEntry]:
    return [e for e in entries if e.id != entry_id]


# =============================================================================
# GRID
# =============================================================================

@dataclass(frozen=True)
class CalendarCell:
    date: date
    date_key: str
    entry: Optional[CalendarEntry]
    is_today: bool
    activities: tuple = ()
    effective_status: Optional[EntryStatus] = None

    @property
    def planned_miles(self) -> Optional[float]:
        if self.entry is None or self.entry.planned_distance_meters is None:
            return None
        return round_half_up(meters_to_miles(self.entry.planned_distance_meters), 1)

    @property
    def planned_pace(self) -> Optional[str]:
        if self.entry is None or self.entry.planned_pace_per_km is None:
            return None
        return format_pace_per_mile(self.entry.planned_pace_per_km)

    @property
    def completed_miles(self) -> float:
        return round_half_up(meters_to_miles(sum(a.distance_meters or 0 for a in self.activities)), 1)


def build_grid(
    anchor_date: Union[date, datetime],
    length_days: int = DEFAULT_BLOCK_DAYS,
    entries: Iterable[CalendarEntry] = (),
    activities: Iterable[Activity] = (),
    today: Optional[date] = None,
    week_start: int = MONDAY,
    tz: Optional[tzinfo] = None,
) -> List[CalendarCell]:
    """
    length_days ordered cells starting at the week start on or before anchor_date.

    Each cell carries the entry for its date key (or None) and the activities
    whose local start date matches.
    """
    if length_days < 1:
        raise ValueError(f"length_days must be at least 1, got {length_days}")
    start = block_start(anchor_date, week_start, tz)
    today = today or date.today()
    by_key = index_entries(entries)

    activities_by_key: Dict[str, List[Activity]] = {}
    for activity in activities:
        activities_by_key.setdefault(date_key(local_date(activity.start_time, tz)), []).append(activity)

    cells = []
    for offset in range(length_days):
        day = start + timedelta(days=offset)
        key = date_key(day)
        entry = by_key.get(key)
        cells.append(CalendarCell(
            date=day,
            date_key=key,
            entry=entry,
            is_today=day == today,
            activities=tuple(sorted(activities_by_key.get(key, ()), key=lambda a: to_local(a.start_time, tz))),
            effective_status=effective_status(entry, today) if entry else None,
        ))
    return cells


# =============================================================================
# AGGREGATES
# =============================================================================

@dataclass(frozen=True)
class WeekSummary:
    week_start: date
    planned_sessions: int       # every entry, rest days included
    training_sessions: int      # entries that are not rest days
    completed_sessions: int     # entries marked completed
    planned_miles: float
    completed_runs: int         # synced activities
    completed_miles: float


@dataclass(frozen=True)
class TrainingBlock:
    start_date: date
    end_date: date
    label: str
    block_volume_miles: float
    cells: List[CalendarCell]
    weeks: List[WeekSummary]


def block_volume_miles(cells: Sequence[CalendarCell]) -> float:
    """Planned distance across the whole grid window, in miles."""
    meters = sum(c.entry.planned_distance_meters or 0 for c in cells if c.entry is not None)
    return round_half_up(meters_to_miles(meters), 1)


def summarize_week(cells: Sequence[CalendarCell]) -> WeekSummary:
    entries = [c.entry for c in cells if c.entry is not None]
    activities = [a for c in cells for a in c.activities]
    return WeekSummary(
        week_start=cells[0].date,
        planned_sessions=len(entries),
        training_sessions=sum(1 for e in entries if e.workout_type != WorkoutType.REST),
        completed_sessions=sum(1 for e in entries if e.status == EntryStatus.COMPLETED),
        planned_miles=block_volume_miles(cells),
        completed_runs=len(activities),
        completed_miles=round_half_up(meters_to_miles(sum(a.distance_meters or 0 for a in activities)), 1),
    )


def summarize_weeks(cells: Sequence[CalendarCell]) -> List[WeekSummary]:
    return [
        summarize_week(cells[i:i + DAYS_PER_WEEK])
        for i in range(0, len(cells), DAYS_PER_WEEK)
    ]


def range_label(start: date, end: date) -> str:
    """Block navigator label, e.g. "Jan 1 - Jan 14"."""
    return f"{start:%b} {start.day} - {end:%b} {end.day}"


def build_training_block(
    anchor_date: Union[date, datetime],
    entries: Iterable[CalendarEntry],
    activities: Iterable[Activity] = (),
    today: Optional[date] = None,
    length_days: int = DEFAULT_BLOCK_DAYS,
    week_start: int = MONDAY,
    tz: Optional[tzinfo] = None,
) -> TrainingBlock:
    cells = build_grid(anchor_date, length_days, entries, activities, today, week_start, tz)
    start, end = cells[0].date, cells[-1].date
    return TrainingBlock(
        start_date=start,
        end_date=end,
        label=range_label(start, end),
        block_volume_miles=block_volume_miles(cells),
        cells=cells,
        weeks=summarize_weeks(cells),
    )
