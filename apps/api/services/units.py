"""
Unit Converter & Pace Normalizer

Distance, pace and duration conversions shared by the dashboard, the
training block calendar and the chart shaper.

Gateway units are meters, seconds per kilometer and minutes. Everything the
athlete sees is miles and min/mile. Conversions happen here and converted
values are never written back upstream.
"""

import math
from typing import Optional


METERS_TO_MILES = 0.000621371
KM_PER_MILE = 1.60934

MISSING_PACE_LABEL = "--:--"


def round_half_up(value: float, ndigits: int = 0) -> float:
    """
    Round halves toward positive infinity: 2.5 -> 3, -2.5 -> -2.

    Python's round() is banker's rounding (round(2.5) == 2). Every metric in
    the core goes through this helper.
    """
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def meters_to_miles(meters: float) -> float:
    return (meters or 0) * METERS_TO_MILES


def miles_to_meters(miles: float) -> int:
    return int(round_half_up(miles / METERS_TO_MILES))


def pace_per_km_to_per_mile(seconds_per_km: float) -> float:
    return seconds_per_km * KM_PER_MILE


def pace_per_mile_to_per_km(seconds_per_mile: float) -> float:
    return seconds_per_mile / KM_PER_MILE


def format_pace(seconds: Optional[float]) -> str:
    """
    Format a pace (or any sub-hour duration) as M:SS.

    Seconds are rounded independently of minutes, so 59.6 would read "0:60"
    without the rollover guard below.
    """
    if seconds is None or seconds <= 0:
        return MISSING_PACE_LABEL
    mins = int(seconds // 60)
    secs = int(round_half_up(seconds % 60))
    if secs == 60:
        mins += 1
        secs = 0
    return f"{mins}:{secs:02d}"


def format_pace_per_mile(seconds_per_km: Optional[float]) -> str:
    """sec/km in, M:SS per mile out."""
    if seconds_per_km is None:
        return MISSING_PACE_LABEL
    return format_pace(pace_per_km_to_per_mile(seconds_per_km))


def format_clock(total_seconds: float) -> str:
    """H:MM:SS when at least an hour, otherwise M:SS."""
    total = int(round_half_up(max(total_seconds or 0, 0)))
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def parse_pace(pace: Optional[str]) -> Optional[int]:
    """
    Parse an "M:SS" per-mile pace into whole seconds per kilometer.

    Blank input means "no pace" and returns None. Anything else that is not
    M:SS raises ValueError.
    """
    if pace is None or not pace.strip():
        return None
    parts = pace.strip().split(":")
    if len(parts) != 2:
        raise ValueError(f"pace must look like M:SS, got {pace!r}")
    try:
        mins = int(parts[0])
        secs = int(parts[1])
    except ValueError:
        raise ValueError(f"pace must look like M:SS, got {pace!r}") from None
    if mins < 0 or not 0 <= secs < 60 or (mins == 0 and secs == 0):
        raise ValueError(f"pace out of range: {pace!r}")
    return int(round_half_up(pace_per_mile_to_per_km(mins * 60 + secs)))
