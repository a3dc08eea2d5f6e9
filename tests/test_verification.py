"""
Tests for forecast verification.
"""

from datetime import date, datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from valleywx import crud
from valleywx.models.verification import ForecastVerification
from valleywx.utils.timeutils import local_instant
from valleywx.utils.verification import verify_forecasts
from tests.conftest import add_forecast, add_observation, add_station

DAY = date(2026, 1, 15)


async def seed_day(db):
    """Primary station with a full day of readings and one forecast per source."""
    primary = await add_station(db, "IWANDI23", is_primary=True)
    await add_observation(db, primary.id, local_instant(DAY, 6), 12.0, precip_total=0.0)
    await add_observation(db, primary.id, local_instant(DAY, 15), 30.5, wind_gust=8.0, precip_total=1.2)
    await add_observation(db, primary.id, local_instant(DAY, 23), 15.0, precip_total=2.4)
    # Outside the local day
    await add_observation(db, primary.id, local_instant(date(2026, 1, 16), 12), 40.0)

    await add_forecast(
        db, "bom", DAY, 28.0, 10.0,
        fetched_at=datetime(2026, 1, 13, 0, 0, tzinfo=timezone.utc),
    )
    await add_forecast(
        db, "bom", DAY, 32.0, 13.0,
        fetched_at=datetime(2026, 1, 14, 0, 0, tzinfo=timezone.utc),
        wind_speed=5.0, precip_amount=1.0,
    )
    await add_forecast(
        db, "wu", DAY, 29.0, 11.0, day_of_forecast=2,
        fetched_at=datetime(2026, 1, 13, 6, 0, tzinfo=timezone.utc),
    )
    return primary


@pytest.mark.asyncio
async def test_verify_scores_newest_forecast_per_source(db):
    await seed_day(db)

    inserted = await verify_forecasts(db, DAY)
    records = await crud.verification.get_for_date(db, valid_date=DAY)

    assert inserted == 2
    assert [r.source for r in records] == ["bom", "wu"]

    bom, wu = records
    assert bom.forecast_temp_max == 32.0
    assert bom.actual_temp_max == 30.5
    assert bom.actual_temp_min == 12.0
    assert bom.bias_temp_max == pytest.approx(1.5)
    assert bom.bias_temp_min == pytest.approx(1.0)
    assert bom.bias_wind == pytest.approx(-3.0)
    assert bom.bias_precip == pytest.approx(-1.4)
    assert bom.day_of_forecast == 1

    assert wu.bias_temp_max == pytest.approx(-1.5)
    assert wu.bias_temp_min == pytest.approx(-1.0)
    assert wu.bias_wind is None
    assert wu.bias_precip is None
    assert wu.day_of_forecast == 2


@pytest.mark.asyncio
async def test_verify_is_idempotent(db):
    await seed_day(db)

    assert await verify_forecasts(db, DAY) == 2
    assert await verify_forecasts(db, DAY) == 0

    records = await crud.verification.get_for_date(db, valid_date=DAY)
    assert len(records) == 2


@pytest.mark.asyncio
async def test_verify_without_primary(db):
    station = await add_station(db, "IBRIGH180")
    await add_observation(db, station.id, local_instant(DAY, 15), 30.0)
    await add_forecast(db, "bom", DAY, 31.0, 12.0)

    assert await verify_forecasts(db, DAY) == 0
    assert await crud.verification.has_for_date(db, valid_date=DAY) is False


@pytest.mark.asyncio
async def test_verify_without_actuals(db):
    await add_station(db, "IWANDI23", is_primary=True)
    await add_forecast(db, "bom", DAY, 31.0, 12.0)

    assert await verify_forecasts(db, DAY) == 0


@pytest.mark.asyncio
async def test_verify_backfills_nowcast_actual(db):
    primary = await seed_day(db)
    await crud.nowcast_log.upsert(
        db,
        obj_in={
            "date": DAY,
            "station_id": primary.id,
            "observed_morning": 20.0,
            "forecast_morning": 22.4,
            "delta": -2.4,
            "adjustment": -1.68,
            "forecast_max_raw": 32.0,
            "forecast_max_corrected": 30.32,
        },
    )

    await verify_forecasts(db, DAY)

    row = await crud.nowcast_log.get_for_date(db, station_id=primary.id, day=DAY)
    await db.refresh(row)
    assert row.actual_max == 30.5


@pytest.mark.asyncio
async def test_verify_ignores_flagged_readings(db):
    primary = await add_station(db, "IWANDI23", is_primary=True)
    await add_observation(db, primary.id, local_instant(DAY, 6), 12.0)
    await add_observation(db, primary.id, local_instant(DAY, 15), 30.0)
    await add_observation(db, primary.id, local_instant(DAY, 16), 65.0, quality_flags=["temp_out_of_range"])
    await add_forecast(db, "bom", DAY, 31.0, 12.0)

    assert await verify_forecasts(db, DAY) == 1

    record = (await crud.verification.get_for_date(db, valid_date=DAY))[0]
    assert record.actual_temp_max == 30.0
    assert record.bias_temp_max == pytest.approx(1.0)


async def _never_verified(db, *, valid_date):
    return False


@pytest.mark.asyncio
async def test_verify_concurrent_row_is_skipped(db, monkeypatch):
    """A row written by another run after the guard is left alone."""
    await seed_day(db)
    bom = (await crud.forecast.get_for_valid_date(db, valid_date=DAY))[0]
    db.add(ForecastVerification(
        forecast_id=bom.id, source="bom", day_of_forecast=1, valid_date=DAY, bias_temp_max=9.0,
    ))
    await db.commit()
    monkeypatch.setattr(crud.verification, "has_for_date", _never_verified)

    inserted = await verify_forecasts(db, DAY)

    assert inserted == 1
    records = await crud.verification.get_for_date(db, valid_date=DAY)
    assert [r.source for r in records] == ["bom", "wu"]
    assert records[0].bias_temp_max == 9.0


@pytest.mark.asyncio
async def test_verify_failed_insert_does_not_stop_other_sources(db, monkeypatch):
    await seed_day(db)
    real_commit = AsyncSession.commit
    calls = []

    async def flaky_commit(self):
        calls.append(1)
        if len(calls) == 1:
            raise OperationalError("INSERT INTO forecast_verification", {}, Exception("disk I/O error"))
        await real_commit(self)

    monkeypatch.setattr(AsyncSession, "commit", flaky_commit)

    inserted = await verify_forecasts(db, DAY)

    assert inserted == 1
    records = await crud.verification.get_for_date(db, valid_date=DAY)
    assert [r.source for r in records] == ["wu"]


@pytest.mark.asyncio
async def test_verify_reraises_lost_connection(db, monkeypatch):
    await seed_day(db)

    async def dropped_commit(self):
        raise OperationalError(
            "INSERT INTO forecast_verification", {}, Exception("server closed the connection"),
            connection_invalidated=True,
        )

    monkeypatch.setattr(AsyncSession, "commit", dropped_commit)

    with pytest.raises(OperationalError):
        await verify_forecasts(db, DAY)
