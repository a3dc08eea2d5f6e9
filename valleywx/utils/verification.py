"""
Forecast verification.

Once a local day is over, each provider's forecast for that day is scored
against the primary station's observed extremes. The resulting records feed
the bias statistics.
"""

from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from valleywx import crud
from valleywx.models.verification import ForecastVerification
from valleywx.utils.logging_config import get_logger
from valleywx.utils.timeutils import local_day_bounds

logger = get_logger(__name__)


@dataclass(frozen=True)
class _ForecastValues:
    """Plain copy of a forecast so a rollback cannot expire it mid-loop."""

    id: int
    source: str
    day_of_forecast: int
    temp_max: Optional[float]
    temp_min: Optional[float]
    wind_speed: Optional[float]
    precip_amount: Optional[float]


def _bias(forecast: Optional[float], actual: Optional[float]) -> Optional[float]:
    if forecast is None or actual is None:
        return None
    return forecast - actual


def _dedupe_newest_per_source(forecasts) -> List[_ForecastValues]:
    """Keep the first forecast seen per source; input is newest fetch first."""
    seen: Dict[str, _ForecastValues] = {}
    for fc in forecasts:
        if fc.source in seen:
            continue
        seen[fc.source] = _ForecastValues(
            id=fc.id,
            source=fc.source,
            day_of_forecast=fc.day_of_forecast,
            temp_max=fc.temp_max,
            temp_min=fc.temp_min,
            wind_speed=fc.wind_speed,
            precip_amount=fc.precip_amount,
        )
    return list(seen.values())


async def verify_forecasts(db: AsyncSession, valid_date: date) -> int:
    """
    Score each provider's forecast for a completed local day.

    Steps:
    1. Skip when any verification record already exists for the date
    2. Resolve the primary station (no-op when none)
    3. Read observed max/min, peak gust and precipitation for the local day
    4. Fetch forecasts for the date, newest fetch first
    5. Keep the newest forecast per source
    6. Compute forecast minus actual for each metric
    7. Insert one record per source

    A failed insert is rolled back and logged; other sources still run. A
    unique-constraint clash means a concurrent run got there first. A lost
    database connection is re-raised.

    Args:
        db: Database session
        valid_date: Local calendar date to verify

    Returns:
        Number of verification records inserted
    """
    if await crud.verification.has_for_date(db, valid_date=valid_date):
        logger.info(f"Verification already exists for {valid_date}")
        return 0

    primary = await crud.station.get_primary(db)
    if primary is None:
        logger.warning("No primary station configured, skipping verification")
        return 0
    primary_id = primary.id
    primary_code = primary.code

    start, end = local_day_bounds(valid_date)
    actuals = await crud.observation.get_extremes(db, station_id=primary_id, start=start, end=end)
    if actuals.temp_max is None or actuals.temp_min is None:
        logger.info(f"No actuals for {primary_code} on {valid_date}")
        return 0

    forecasts = _dedupe_newest_per_source(
        await crud.forecast.get_for_valid_date(db, valid_date=valid_date)
    )

    verified = 0
    for fc in forecasts:
        biases = {
            "bias_temp_max": _bias(fc.temp_max, actuals.temp_max),
            "bias_temp_min": _bias(fc.temp_min, actuals.temp_min),
            "bias_wind": _bias(fc.wind_speed, actuals.wind_gust),
            "bias_precip": _bias(fc.precip_amount, actuals.precip_total),
        }
        record = ForecastVerification(
            forecast_id=fc.id,
            source=fc.source,
            day_of_forecast=fc.day_of_forecast,
            valid_date=valid_date,
            forecast_temp_max=fc.temp_max,
            forecast_temp_min=fc.temp_min,
            actual_temp_max=actuals.temp_max,
            actual_temp_min=actuals.temp_min,
            forecast_wind_speed=fc.wind_speed,
            actual_wind_gust=actuals.wind_gust,
            forecast_precip=fc.precip_amount,
            actual_precip=actuals.precip_total,
            **biases,
        )

        try:
            db.add(record)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.info(f"{fc.source} forecast for {valid_date} already verified by a concurrent run")
            continue
        except DBAPIError as e:
            await db.rollback()
            if e.connection_invalidated:
                raise
            logger.error(f"Failed to insert verification for {fc.source} on {valid_date}: {e}")
            continue
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to insert verification for {fc.source} on {valid_date}: {e}")
            continue

        logger.info(
            f"Verified {fc.source} forecast for {valid_date}: "
            f"temp bias={biases['bias_temp_max']}/{biases['bias_temp_min']}°C, "
            f"wind bias={biases['bias_wind']}, precip bias={biases['bias_precip']}"
        )
        verified += 1

    if await crud.nowcast_log.update_actual_max(
        db, station_id=primary_id, day=valid_date, actual_max=actuals.temp_max
    ):
        logger.info(f"Back-filled nowcast actual max {actuals.temp_max:.1f}°C for {valid_date}")

    logger.info(f"Verified {verified} forecasts for {valid_date}")
    return verified
