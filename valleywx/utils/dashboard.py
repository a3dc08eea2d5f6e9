"""
Dashboard assembly.

Gathers everything the temperature resolver needs from storage, runs it,
and persists the provenance record (and nowcast log when a nowcast fired).
Also reports per-station freshness and the live inversion status.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from valleywx import crud
from valleywx.config import settings
from valleywx.models.forecast import SOURCE_BOM, SOURCE_WU
from valleywx.utils.bias import load_stats_table
from valleywx.utils.inversion import InversionStatus, TierReading, detect_inversion
from valleywx.utils.logging_config import get_logger
from valleywx.utils.nowcast import fetch_morning_temperatures, log_nowcast
from valleywx.utils.regimes import classify_regime
from valleywx.utils.timeutils import as_utc, local_instant, local_now, utc_now
from valleywx.utils.today_temps import (
    ForecastSnapshot,
    TodayTempInput,
    TodayTempResult,
    build_displayed_forecast,
    resolve_today_temps,
)

logger = get_logger(__name__)

# °C per hour below which the temperature counts as falling
FALLING_RATE = -0.5


@dataclass
class StationHealth:
    code: str
    name: str
    elevation_tier: str
    is_primary: bool
    last_seen: Optional[datetime]
    age_minutes: Optional[float]
    stale: bool


@dataclass
class TodayForecast:
    valid_date: date
    local_hour: int
    regime: str
    result: TodayTempResult
    inversion: Optional[InversionStatus] = None
    primary_station: Optional[str] = None
    current_temp: Optional[float] = None
    observed_max: Optional[float] = None
    observed_min: Optional[float] = None
    temp_change_rate: Optional[float] = None
    warnings: List[str] = field(default_factory=list)


async def station_health(db: AsyncSession, now: Optional[datetime] = None) -> List[StationHealth]:
    """
    Freshness of each active station's latest observation.

    A station is stale when its latest reading is older than
    STALE_OBSERVATION_MINUTES, or when it has never reported.
    """
    now = as_utc(now or utc_now())
    health = []
    for st in await crud.station.get_active(db):
        latest = await crud.observation.get_latest_for_station(db, station_id=st.id)
        last_seen = as_utc(latest.observed_at) if latest is not None else None
        age = (now - last_seen).total_seconds() / 60 if last_seen is not None else None
        health.append(
            StationHealth(
                code=st.code,
                name=st.name,
                elevation_tier=st.elevation_tier,
                is_primary=bool(st.is_primary),
                last_seen=last_seen,
                age_minutes=age,
                stale=age is None or age > settings.STALE_OBSERVATION_MINUTES,
            )
        )
    return health


async def live_inversion(db: AsyncSession, now: Optional[datetime] = None) -> Optional[InversionStatus]:
    """Inversion status from the latest reading of every active station."""
    readings = []
    for st in await crud.station.get_active(db):
        latest = await crud.observation.get_latest_for_station(db, station_id=st.id)
        if latest is None:
            continue
        readings.append(
            TierReading(
                tier=st.elevation_tier,
                temperature=latest.temperature,
                elevation=st.elevation,
                observed_at=latest.observed_at,
            )
        )
    return detect_inversion(readings, now=now)


async def build_today_forecast(
    db: AsyncSession,
    now: Optional[datetime] = None,
    persist: bool = True,
) -> TodayForecast:
    """
    Compute today's displayed temperatures from stored data.

    Args:
        db: Database session
        now: Reference time (defaults to current UTC)
        persist: Write the provenance record and nowcast log

    Returns:
        TodayForecast with the resolver result and supporting context
    """
    now = as_utc(now or utc_now())
    local = local_now(now)
    today = local.date()
    warnings = []

    wu_model = await crud.forecast.get_latest_for_date(db, valid_date=today, source=SOURCE_WU)
    bom_model = await crud.forecast.get_latest_for_date(db, valid_date=today, source=SOURCE_BOM)
    wu = ForecastSnapshot.from_model(wu_model)
    bom = ForecastSnapshot.from_model(bom_model)
    if wu is None and bom is None:
        warnings.append(f"No forecasts stored for {today}")

    stats = await load_stats_table(db)

    primary = await crud.station.get_primary(db)
    primary_id = primary.id if primary is not None else None
    primary_code = primary.code if primary is not None else None
    current_temp = observed_max = observed_min = rate = None
    morning_temps: List[float] = []
    regime_flags = classify_regime(bom or wu, None, ())

    if primary is None:
        warnings.append("No primary station configured")
    else:
        latest = await crud.observation.get_latest_for_station(db, station_id=primary_id)
        if latest is not None and now - as_utc(latest.observed_at) <= timedelta(minutes=settings.STALE_OBSERVATION_MINUTES):
            current_temp = latest.temperature

        extremes = await crud.observation.get_extremes(
            db, station_id=primary_id, start=local_instant(today), end=now + timedelta(seconds=1)
        )
        observed_max, observed_min = extremes.temp_max, extremes.temp_min

        rate = await crud.observation.get_temp_change_rate(db, station_id=primary_id, now=now)

        if settings.NOWCAST_ENABLED:
            morning_temps = await fetch_morning_temperatures(db, primary_id, today)

        summary = await crud.daily_summary.get_for_date(db, station_id=primary_id, day=today)
        previous = await crud.daily_summary.get_previous(db, station_id=primary_id, before=today)
        regime_flags = classify_regime(bom or wu, summary, previous)

    inputs = TodayTempInput(
        wu_forecast=wu,
        bom_forecast=bom,
        correction_stats=stats,
        primary_station_id=primary_id,
        current_temp=current_temp,
        observed_max=observed_max,
        observed_min=observed_min,
        hour=local.hour,
        temp_falling=rate is not None and rate < FALLING_RATE,
        regime=regime_flags.regime,
        morning_temps=tuple(morning_temps),
        nowcast_enabled=settings.NOWCAST_ENABLED,
    )
    result = resolve_today_temps(inputs)

    if persist and (result.have_max or result.have_min):
        row = build_displayed_forecast(result, today, wu, bom, now)
        await crud.displayed_forecast.upsert(db, obj_in=row)
        if result.nowcast is not None and primary_id is not None:
            await log_nowcast(
                db,
                station_id=primary_id,
                local_date=today,
                forecast_max_raw=result.explanation.max_raw,
                correction=result.nowcast,
            )

    return TodayForecast(
        valid_date=today,
        local_hour=local.hour,
        regime=regime_flags.regime,
        result=result,
        inversion=await live_inversion(db, now=now),
        primary_station=primary_code,
        current_temp=current_temp,
        observed_max=observed_max,
        observed_min=observed_min,
        temp_change_rate=rate,
        warnings=warnings,
    )
