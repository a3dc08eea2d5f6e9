"""
Morning nowcast for today's maximum temperature.

By mid-morning the station has already seen how warm the day is running.
Comparing the mean morning temperature against the morning temperature the
forecast max implies gives a bounded adjustment to the corrected max.

The feature is off by default (NOWCAST_ENABLED) until the nowcast log has
enough history to validate it.
"""

import math
from dataclasses import dataclass
from datetime import date
from statistics import mean
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from valleywx import crud
from valleywx.config import Settings, settings as default_settings
from valleywx.utils.bias import cap_correction
from valleywx.utils.logging_config import get_logger
from valleywx.utils.quality import is_clean
from valleywx.utils.timeutils import local_window

logger = get_logger(__name__)


@dataclass(frozen=True)
class NowcastCorrection:
    observed_morning: float
    forecast_morning: float
    delta: float
    raw_adjustment: float
    adjustment: float
    corrected_max: float
    readings: int


def compute_nowcast(
    morning_temps: Sequence[Optional[float]],
    forecast_max: float,
    bias_applied: float,
    local_hour: int,
    enabled: bool,
    settings: Settings = default_settings,
) -> Optional[NowcastCorrection]:
    """
    Compute the nowcast adjustment for today's max.

    Args:
        morning_temps: Temperatures from the morning window (None = missing)
        forecast_max: Raw forecast maximum
        bias_applied: Bias already subtracted from the raw forecast
        local_hour: Current local hour
        enabled: Feature gate
        settings: Tuning knobs

    Returns:
        NowcastCorrection, or None when gated off, too early, or with fewer
        than NOWCAST_MIN_READINGS valid readings
    """
    if not enabled:
        return None
    if local_hour < settings.NOWCAST_START_HOUR:
        return None

    temps = [t for t in morning_temps if t is not None and math.isfinite(t)]
    if len(temps) < settings.NOWCAST_MIN_READINGS:
        return None

    observed_morning = mean(temps)
    forecast_morning = forecast_max * settings.NOWCAST_MORNING_RATIO

    delta = observed_morning - forecast_morning
    raw_adjustment = settings.NOWCAST_ALPHA * delta
    adjustment = cap_correction(raw_adjustment, settings.MAX_NOWCAST_ADJUSTMENT)

    corrected_max = forecast_max - bias_applied + adjustment

    # Total correction relative to the raw forecast is bounded too
    total = cap_correction(corrected_max - forecast_max, settings.MAX_TOTAL_CORRECTION)
    corrected_max = forecast_max + total

    return NowcastCorrection(
        observed_morning=observed_morning,
        forecast_morning=forecast_morning,
        delta=delta,
        raw_adjustment=raw_adjustment,
        adjustment=adjustment,
        corrected_max=corrected_max,
        readings=len(temps),
    )


async def fetch_morning_temperatures(
    db: AsyncSession,
    station_id: int,
    local_date: date,
) -> List[float]:
    """
    Clean temperature readings from the station's local morning window.

    Args:
        db: Database session
        station_id: Station ID (normally the primary)
        local_date: Local calendar date

    Returns:
        Temperatures in chronological order
    """
    start, end = local_window(
        local_date,
        default_settings.NOWCAST_WINDOW_START_HOUR,
        default_settings.NOWCAST_WINDOW_END_HOUR,
    )
    observations = await crud.observation.get_observations_in_range(
        db, station_id=station_id, start=start, end=end
    )
    return [
        obs.temperature
        for obs in observations
        if obs.temperature is not None and is_clean(obs.quality_flags, obs.qc_status)
    ]


async def log_nowcast(
    db: AsyncSession,
    *,
    station_id: int,
    local_date: date,
    forecast_max_raw: float,
    correction: NowcastCorrection,
) -> None:
    """
    Persist a nowcast with all its intermediates.

    One row per station and day; a later nowcast the same day replaces it.
    """
    logger.info(
        f"Nowcast {local_date} station={station_id}: observed_morning={correction.observed_morning:.1f} "
        f"forecast_morning={correction.forecast_morning:.1f} delta={correction.delta:+.1f} "
        f"adjustment={correction.adjustment:+.1f} raw_max={forecast_max_raw:.1f} "
        f"corrected_max={correction.corrected_max:.1f}"
    )
    await crud.nowcast_log.upsert(
        db,
        obj_in={
            "date": local_date,
            "station_id": station_id,
            "observed_morning": correction.observed_morning,
            "forecast_morning": correction.forecast_morning,
            "delta": correction.delta,
            "adjustment": correction.adjustment,
            "forecast_max_raw": forecast_max_raw,
            "forecast_max_corrected": correction.corrected_max,
        },
    )
