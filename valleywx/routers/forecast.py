"""
Forecast router.

This module contains endpoints for today's corrected forecast, the live
inversion status and the provenance log.
"""

from dataclasses import asdict
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from valleywx import crud
from valleywx.database import get_db
from valleywx.schemas.forecast import DisplayedForecast, InversionStatus, TodayForecastResponse
from valleywx.utils.dashboard import build_today_forecast, live_inversion
from valleywx.utils.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/forecast",
    tags=["forecast"],
    responses={
        404: {"description": "Not found"}
    },
)

limiter = Limiter(key_func=get_remote_address)


@router.get("/today", response_model=TodayForecastResponse)
@limiter.limit("100/minute")
async def get_today_forecast(
    request: Request,
    persist: bool = Query(True, description="Record the displayed values in the provenance log"),
    db: AsyncSession = Depends(get_db),
):
    """
    Today's bias-corrected max and min temperatures.

    Includes the full explanation of how each value was derived, the live
    inversion status and any warnings about missing inputs.

    Rate limit: 100 requests per minute
    """
    today = await build_today_forecast(db, persist=persist)
    logger.info(
        f"Today {today.valid_date}: max={today.result.temp_max} min={today.result.temp_min} "
        f"regime={today.regime}"
    )

    result = today.result
    return {
        "valid_date": today.valid_date,
        "local_hour": today.local_hour,
        "regime": today.regime,
        "temp_max": result.temp_max,
        "temp_min": result.temp_min,
        "have_max": result.have_max,
        "have_min": result.have_min,
        "temp_max_pre_nowcast": result.temp_max_pre_nowcast,
        "nowcast_applied": result.nowcast_applied,
        "nowcast_adjustment": result.nowcast_adjustment,
        "explanation": asdict(result.explanation),
        "inversion": asdict(today.inversion) if today.inversion is not None else None,
        "primary_station": today.primary_station,
        "current_temp": today.current_temp,
        "observed_max": today.observed_max,
        "observed_min": today.observed_min,
        "temp_change_rate": today.temp_change_rate,
        "warnings": today.warnings,
    }


@router.get("/inversion", response_model=Optional[InversionStatus])
@limiter.limit("100/minute")
async def get_inversion(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """
    Live inversion status from the latest reading of each station.

    Returns null when either the valley floor or the upper tier has no
    fresh reading.

    Rate limit: 100 requests per minute
    """
    inversion = await live_inversion(db)
    return asdict(inversion) if inversion is not None else None


@router.get("/displayed/{valid_date}", response_model=List[DisplayedForecast])
@limiter.limit("100/minute")
async def get_displayed_forecasts(
    request: Request,
    valid_date: date,
    db: AsyncSession = Depends(get_db),
):
    """
    Provenance records for a date.

    Rate limit: 100 requests per minute
    """
    rows = await crud.displayed_forecast.get_for_date(db, valid_date=valid_date)
    if not rows:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No displayed forecast recorded for {valid_date}"
        )
    return rows
