"""
Tests for observation quality checks and local time helpers.
"""

from datetime import date, datetime, timezone

import pytest

from valleywx.utils.quality import is_clean, validate_observation
from valleywx.utils.timeutils import as_utc, local_day_bounds, overnight_window, round_half_away


class TestValidateObservation:

    def test_plausible_reading(self):
        assert validate_observation({"temperature": 18.4, "humidity": 62, "pressure": 1012.0}) == []

    def test_every_check(self):
        flags = validate_observation({
            "temperature": -15.0,
            "humidity": 104,
            "wind_direction": -5,
            "wind_speed": 250.0,
            "pressure": 850.0,
            "solar_radiation": -1.0,
            "precip_total": -0.2,
        })

        assert flags == [
            "temp_out_of_range",
            "humidity_invalid",
            "wind_dir_invalid",
            "wind_speed_unlikely",
            "pressure_out_of_range",
            "solar_negative",
            "precip_negative",
        ]

    def test_missing_fields_are_not_flagged(self):
        assert validate_observation({"temperature": None}) == []


class TestIsClean:

    @pytest.mark.parametrize("flags,qc,expected", [
        (None, 1, True),
        ([], 2, True),
        (None, 0, False),
        (None, -1, False),
        (["solar_negative"], 1, False),
    ])
    def test_predicate(self, flags, qc, expected):
        assert is_clean(flags, qc) is expected


class TestTimeHelpers:

    @pytest.mark.parametrize("value,expected", [
        (2.5, 3.0), (-2.5, -3.0), (27.3, 27.0), (28.5, 29.0), (-0.4, 0.0), (0.5, 1.0),
    ])
    def test_round_half_away(self, value, expected):
        assert round_half_away(value) == expected

    def test_no_negative_zero(self):
        assert str(round_half_away(-0.4)) == "0.0"

    def test_day_bounds_follow_dst(self):
        # Daylight saving ends on the first Sunday of April in Victoria
        start, end = local_day_bounds(date(2026, 4, 5))

        assert (end - start).total_seconds() == 25 * 3600

    def test_overnight_window(self):
        start, end = overnight_window(date(2026, 6, 20))

        # AEST is UTC+10 in June
        assert start == datetime(2026, 6, 19, 9, 0, tzinfo=timezone.utc)
        assert end == datetime(2026, 6, 19, 22, 0, tzinfo=timezone.utc)

    def test_as_utc_assumes_naive_is_utc(self):
        assert as_utc(datetime(2026, 1, 1, 12, 0)) == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
