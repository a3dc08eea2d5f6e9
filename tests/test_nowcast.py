"""
Tests for the morning nowcast.
"""

import math
from datetime import date

import pytest

from valleywx import crud
from valleywx.config import Settings, settings
from valleywx.utils.nowcast import compute_nowcast, fetch_morning_temperatures, log_nowcast
from valleywx.utils.timeutils import local_instant
from tests.conftest import add_observation, add_station

MORNING = (18.0, 18.5, 19.0, 19.5, 20.0, 20.5)


class TestComputeNowcast:

    def test_disabled(self):
        assert compute_nowcast(MORNING, 30.0, 0.0, 11, enabled=False) is None

    def test_too_early(self):
        assert compute_nowcast(MORNING, 30.0, 0.0, 9, enabled=True) is None

    def test_too_few_readings(self):
        assert compute_nowcast(MORNING[:5], 30.0, 0.0, 11, enabled=True) is None

    def test_missing_and_nan_readings_are_ignored(self):
        temps = MORNING[:5] + (None, float("nan"))
        assert compute_nowcast(temps, 30.0, 0.0, 11, enabled=True) is None

    def test_adjustment(self):
        nowcast = compute_nowcast(MORNING, 30.0, 1.0, 10, enabled=True)

        # mean 19.25 vs 21.0 expected
        assert nowcast.observed_morning == pytest.approx(19.25)
        assert nowcast.forecast_morning == pytest.approx(21.0)
        assert nowcast.delta == pytest.approx(-1.75)
        assert nowcast.adjustment == pytest.approx(-1.225)
        assert nowcast.corrected_max == pytest.approx(30.0 - 1.0 - 1.225)
        assert nowcast.readings == 6

    def test_adjustment_is_capped(self):
        nowcast = compute_nowcast((35.0,) * 6, 30.0, 0.0, 12, enabled=True)

        assert nowcast.raw_adjustment == pytest.approx(0.7 * 14.0)
        assert nowcast.adjustment == settings.MAX_NOWCAST_ADJUSTMENT
        assert nowcast.corrected_max == pytest.approx(34.0)

    def test_total_correction_is_capped(self):
        nowcast = compute_nowcast((0.0,) * 6, 30.0, 6.0, 12, enabled=True)

        # -6 bias and -4 nowcast would total -10; 9 bias pushes past the cap
        assert nowcast.corrected_max == pytest.approx(20.0)
        assert abs(nowcast.corrected_max - 30.0) <= settings.MAX_TOTAL_CORRECTION

        nowcast = compute_nowcast((0.0,) * 6, 30.0, 9.0, 12, enabled=True)
        assert nowcast.corrected_max == pytest.approx(20.0)

    def test_custom_settings(self):
        tuned = Settings(NOWCAST_ALPHA=0.5, NOWCAST_MIN_READINGS=3, NOWCAST_START_HOUR=8)
        nowcast = compute_nowcast((20.0, 20.0, 20.0), 20.0, 0.0, 8, enabled=True, settings=tuned)

        assert nowcast.adjustment == pytest.approx(0.5 * (20.0 - 14.0))

    @pytest.mark.parametrize("morning", [-20.0, 0.0, 14.0, 45.0])
    def test_bounds_hold(self, morning):
        nowcast = compute_nowcast((morning,) * 8, 24.0, 3.0, 11, enabled=True)

        assert abs(nowcast.adjustment) <= settings.MAX_NOWCAST_ADJUSTMENT
        assert abs(nowcast.corrected_max - 24.0) <= settings.MAX_TOTAL_CORRECTION
        assert math.isfinite(nowcast.corrected_max)


@pytest.mark.asyncio
async def test_fetch_morning_temperatures_uses_clean_window(db):
    """Only clean readings between 09:00 and 11:00 local are used."""
    station = await add_station(db, "IWANDI23", is_primary=True)
    day = date(2026, 1, 15)

    await add_observation(db, station.id, local_instant(day, 8, 55), 15.0)
    await add_observation(db, station.id, local_instant(day, 9, 0), 16.0)
    await add_observation(db, station.id, local_instant(day, 9, 30), 17.0)
    await add_observation(db, station.id, local_instant(day, 10, 0), 18.0, qc_status=0)
    await add_observation(db, station.id, local_instant(day, 10, 15), 55.0, quality_flags=["temp_out_of_range"])
    await add_observation(db, station.id, local_instant(day, 10, 30), 19.0)
    await add_observation(db, station.id, local_instant(day, 11, 0), 20.0)

    temps = await fetch_morning_temperatures(db, station.id, day)

    assert temps == [16.0, 17.0, 19.0]


@pytest.mark.asyncio
async def test_log_nowcast_upserts(db):
    station = await add_station(db, "IWANDI23", is_primary=True)
    day = date(2026, 1, 15)

    first = compute_nowcast(MORNING, 30.0, 0.0, 10, enabled=True)
    await log_nowcast(db, station_id=station.id, local_date=day, forecast_max_raw=30.0, correction=first)
    second = compute_nowcast((25.0,) * 6, 30.0, 0.0, 11, enabled=True)
    await log_nowcast(db, station_id=station.id, local_date=day, forecast_max_raw=30.0, correction=second)

    row = await crud.nowcast_log.get_for_date(db, station_id=station.id, day=day)
    await db.refresh(row)

    assert row.observed_morning == pytest.approx(25.0)
    assert row.forecast_max_corrected == pytest.approx(second.corrected_max)
    assert row.actual_max is None

    updated = await crud.nowcast_log.update_actual_max(db, station_id=station.id, day=day, actual_max=31.4)
    await db.refresh(row)

    assert updated == 1
    assert row.actual_max == pytest.approx(31.4)
