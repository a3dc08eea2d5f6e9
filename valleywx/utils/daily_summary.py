"""
Daily summary computation.

Aggregates each active station's observations over a local calendar day,
derives the regime features (night calm fraction, solar integral, overnight
inversion) and tags the day's regime.

RULES:
1. PRECIPITATION: `precip_total` accumulates from local midnight, so the
   daily total is its maximum, never a sum
2. SOLAR INTEGRAL: readings are ~5 minutes apart; each W/m² sample
   contributes 300 s of energy, reported in MJ/m²
3. NIGHT: 18:00 on the previous local day to 06:00
4. CALM: wind speed below 1.5 m/s
"""

from datetime import date, timedelta
from statistics import mean
from types import SimpleNamespace
from typing import Any, Dict, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from valleywx import crud
from valleywx.models.forecast import SOURCE_BOM, SOURCE_WU
from valleywx.utils.inversion import VALLEY_TIERS, detect_overnight_inversion
from valleywx.utils.logging_config import get_logger
from valleywx.utils.quality import is_clean
from valleywx.utils.regimes import classify_regime
from valleywx.utils.timeutils import as_utc, local_day_bounds, local_instant, overnight_window

logger = get_logger(__name__)

CALM_WIND_THRESHOLD = 1.5  # m/s
SOLAR_SAMPLE_SECONDS = 300
NIGHT_START_HOUR = 18
NIGHT_END_HOUR = 6


def _avg(values) -> Optional[float]:
    values = [v for v in values if v is not None]
    return mean(values) if values else None


def summarize_observations(observations: Sequence[Any], day: date) -> Dict[str, Any]:
    """
    Aggregate one station's observations for a local day.

    Args:
        observations: Readings covering at least the previous evening
            through the end of `day`; unclean readings are skipped
        day: Local calendar date

    Returns:
        Summary fields keyed by DailySummary column name (no station_id)
    """
    day_start, day_end = local_day_bounds(day)
    night_start = local_instant(day - timedelta(days=1), NIGHT_START_HOUR)
    night_end = local_instant(day, NIGHT_END_HOUR)

    observations = [o for o in observations if is_clean(o.quality_flags, o.qc_status)]
    today = [o for o in observations if day_start <= as_utc(o.observed_at) < day_end]
    night = [o for o in observations if night_start <= as_utc(o.observed_at) < night_end]

    temps = [o for o in today if o.temperature is not None]
    summary: Dict[str, Any] = {"date": day}

    if temps:
        # earliest reading wins a tie
        hottest = min(temps, key=lambda o: (-o.temperature, as_utc(o.observed_at)))
        coldest = min(temps, key=lambda o: (o.temperature, as_utc(o.observed_at)))
        summary.update(
            temp_max=hottest.temperature,
            temp_max_time=as_utc(hottest.observed_at),
            temp_min=coldest.temperature,
            temp_min_time=as_utc(coldest.observed_at),
            temp_avg=mean(o.temperature for o in temps),
            diurnal_range=hottest.temperature - coldest.temperature,
        )
    else:
        summary.update(
            temp_max=None, temp_max_time=None, temp_min=None, temp_min_time=None,
            temp_avg=None, diurnal_range=None,
        )

    precip = [o.precip_total for o in today if o.precip_total is not None]
    gusts = [o.wind_gust for o in today if o.wind_gust is not None]
    solar = [o.solar_radiation for o in today if o.solar_radiation is not None]
    night_wind = [o.wind_speed for o in night if o.wind_speed is not None]

    summary.update(
        humidity_avg=_avg(o.humidity for o in today),
        pressure_avg=_avg(o.pressure for o in today),
        dewpoint_avg=_avg(o.dewpoint for o in today),
        precip_total=max(precip) if precip else None,
        wind_max_gust=max(gusts) if gusts else None,
        solar_integral=sum(s * SOLAR_SAMPLE_SECONDS for s in solar) / 1_000_000 if solar else None,
        solar_max=max(solar) if solar else None,
        wind_mean_night=mean(night_wind) if night_wind else None,
        calm_fraction_night=(
            sum(1 for w in night_wind if w < CALM_WIND_THRESHOLD) / len(night_wind)
            if night_wind else None
        ),
    )
    return summary


async def compute_daily_summaries(db: AsyncSession, day: date) -> int:
    """
    Compute and store summaries for every active station for a local day.

    Valley stations also carry the overnight inversion flag, computed from
    tier minima between 19:00 the previous evening and 08:00. Each summary
    is tagged with its regime using the day's forecast and the station's
    two previous summaries.

    Args:
        db: Database session
        day: Local calendar date

    Returns:
        Number of summaries written (stations without temperatures are skipped)
    """
    stations = await crud.station.get_active(db)

    night_start, night_end = overnight_window(day)
    tier_minima = await crud.observation.get_overnight_min_by_tier(db, start=night_start, end=night_end)
    inversion_detected, inversion_strength = detect_overnight_inversion(tier_minima)

    forecast = await crud.forecast.get_latest_for_date(db, valid_date=day, source=SOURCE_BOM)
    if forecast is None:
        forecast = await crud.forecast.get_latest_for_date(db, valid_date=day, source=SOURCE_WU)

    evening_before = local_instant(day - timedelta(days=1), NIGHT_START_HOUR)
    _, day_end = local_day_bounds(day)

    computed = 0
    for st in stations:
        observations = await crud.observation.get_observations_in_range(
            db, station_id=st.id, start=evening_before, end=day_end
        )
        summary = summarize_observations(observations, day)
        if summary["temp_max"] is None:
            continue

        if st.elevation_tier in VALLEY_TIERS:
            summary["inversion_detected"] = inversion_detected
            summary["inversion_strength"] = inversion_strength if inversion_detected else None

        previous = await crud.daily_summary.get_previous(db, station_id=st.id, before=day)
        flags = classify_regime(
            forecast,
            SimpleNamespace(**{"inversion_detected": None, **summary}),
            previous,
        )
        summary.update(
            station_id=st.id,
            regime_heatwave=flags.heatwave,
            regime_inversion=flags.inversion,
            regime_clear_calm=flags.clear_calm,
            regime=flags.regime,
        )

        await crud.daily_summary.upsert(db, obj_in=summary)
        computed += 1

    await db.commit()
    logger.info(f"Computed {computed} daily summaries for {day}")
    return computed
