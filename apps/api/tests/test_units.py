"""
Tests for Unit Converter & Pace Normalizer

Conversions, half-up rounding, pace/clock formatting and pace parsing.
"""
import pytest
from services.units import (
    MISSING_PACE_LABEL,
    format_clock,
    format_pace,
    format_pace_per_mile,
    meters_to_miles,
    miles_to_meters,
    pace_per_km_to_per_mile,
    pace_per_mile_to_per_km,
    parse_pace,
    round_half_up,
)


class TestRoundHalfUp:
    """Halves always go up, unlike Python's banker's rounding"""

    def test_positive_half_rounds_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4

    def test_negative_half_rounds_toward_positive(self):
        assert round_half_up(-2.5) == -2

    def test_decimal_places(self):
        assert round_half_up(1.25, 1) == 1.3
        assert round_half_up(14.94, 1) == 14.9

    def test_non_halves_round_to_nearest(self):
        assert round_half_up(2.4) == 2
        assert round_half_up(-2.6) == -3


class TestConversions:
    """Distance and pace conversions"""

    def test_meters_to_miles(self):
        assert meters_to_miles(10000) == pytest.approx(6.21371)

    def test_missing_distance_is_zero_miles(self):
        assert meters_to_miles(None) == 0

    def test_miles_to_meters_is_whole_meters(self):
        assert miles_to_meters(1) == 1609
        assert miles_to_meters(26.2) == 42165

    def test_pace_per_km_to_per_mile(self):
        assert pace_per_km_to_per_mile(300) == pytest.approx(482.802)

    def test_pace_conversions_invert(self):
        assert pace_per_mile_to_per_km(pace_per_km_to_per_mile(320)) == pytest.approx(320)


class TestFormatPace:
    """M:SS formatting"""

    def test_whole_minutes(self):
        assert format_pace(480) == "8:00"

    def test_seconds_are_zero_padded(self):
        assert format_pace(485) == "8:05"

    def test_seconds_rollover_never_shows_60(self):
        assert format_pace(59.6) == "1:00"
        assert format_pace(479.7) == "8:00"

    def test_missing_pace(self):
        assert format_pace(None) == MISSING_PACE_LABEL
        assert format_pace(0) == MISSING_PACE_LABEL

    def test_per_mile_from_per_km(self):
        # 300 s/km = 482.8 s/mile
        assert format_pace_per_mile(300) == "8:03"
        assert format_pace_per_mile(None) == MISSING_PACE_LABEL


class TestFormatClock:
    """h:mm:ss above an hour, m:ss below"""

    def test_under_an_hour(self):
        assert format_clock(125) == "2:05"

    def test_over_an_hour(self):
        assert format_clock(3661) == "1:01:01"

    def test_marathon_time(self):
        assert format_clock(4 * 3600) == "4:00:00"

    def test_negative_is_zero(self):
        assert format_clock(-5) == "0:00"


class TestParsePace:
    """M:SS per mile in, whole seconds per km out"""

    def test_parses_per_mile_pace(self):
        # 480 s/mile / 1.60934 = 298.3 s/km
        assert parse_pace("8:00") == 298

    def test_surrounding_whitespace_is_ignored(self):
        assert parse_pace(" 8:00 ") == 298

    def test_blank_means_no_pace(self):
        assert parse_pace("") is None
        assert parse_pace("   ") is None
        assert parse_pace(None) is None

    @pytest.mark.parametrize("bad", ["8", "8:00:00", "a:bc", "8:60", "0:00", "-1:30"])
    def test_malformed_pace_raises(self, bad):
        with pytest.raises(ValueError):
            parse_pace(bad)
