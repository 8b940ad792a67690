"""
Time-Window Aggregator

Week-anchored windows and rolling lookbacks over activity collections.

The anchor weekday is always a parameter. The dashboard counts its week from
Sunday while the training block calendar counts from Monday, and the two
must never be conflated.

Day boundaries are local wall-clock time. Timezone-aware instants are
converted into the requested zone (host local time when none is given) and
compared naive; naive instants are assumed to already be local.
"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Iterable, List, Optional
from zoneinfo import ZoneInfo


MONDAY = calendar.MONDAY
SUNDAY = calendar.SUNDAY

DAYS_PER_WEEK = 7


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """IANA name to tzinfo; None keeps host local time."""
    if not name:
        return None
    return ZoneInfo(name)


def to_local(instant: datetime, tz: Optional[tzinfo] = None) -> datetime:
    if instant.tzinfo is None:
        return instant
    return instant.astimezone(tz).replace(tzinfo=None)


def local_date(instant: datetime, tz: Optional[tzinfo] = None) -> date:
    return to_local(instant, tz).date()


def local_midnight(day: date) -> datetime:
    return datetime.combine(day, time.min)


def week_start_date(day: date, anchor_weekday: int) -> date:
    """Most recent occurrence of anchor_weekday on or before day."""
    offset = (day.weekday() - anchor_weekday) % DAYS_PER_WEEK
    return day - timedelta(days=offset)


@dataclass(frozen=True)
class TimeWindow:
    """Half-open window [start, end) in local wall-clock time."""
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    @property
    def start_date(self) -> date:
        return self.start.date()


def current_week(
    now: datetime,
    anchor_weekday: int,
    tz: Optional[tzinfo] = None,
) -> TimeWindow:
    """[anchor day at local midnight, +7 days) around now."""
    start = local_midnight(week_start_date(local_date(now, tz), anchor_weekday))
    return TimeWindow(start=start, end=start + timedelta(days=DAYS_PER_WEEK))


def rolling_weeks(
    now: datetime,
    count: int,
    tz: Optional[tzinfo] = None,
) -> List[TimeWindow]:
    """
    count consecutive, non-overlapping 7-day windows ending at now.

    Most recent first. These ignore weekday anchors entirely.
    """
    end = to_local(now, tz)
    windows = []
    for _ in range(count):
        start = end - timedelta(days=DAYS_PER_WEEK)
        windows.append(TimeWindow(start=start, end=end))
        end = start
    return windows


def week_buckets(
    now: datetime,
    count: int,
    anchor_weekday: int,
    tz: Optional[tzinfo] = None,
) -> List[TimeWindow]:
    """The count most recent anchored weeks, current week included, oldest first."""
    current = current_week(now, anchor_weekday, tz)
    return [
        TimeWindow(
            start=current.start - timedelta(weeks=weeks_back),
            end=current.end - timedelta(weeks=weeks_back),
        )
        for weeks_back in reversed(range(count))
    ]


def activities_in_window(
    activities: Iterable,
    window: TimeWindow,
    tz: Optional[tzinfo] = None,
) -> list:
    """Activities whose local start time falls inside window."""
    return [a for a in activities if window.contains(to_local(a.start_time, tz))]
