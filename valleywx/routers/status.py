"""
Status router.

This module contains endpoints for station freshness checks.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from valleywx.config import settings
from valleywx.database import get_db
from valleywx.schemas.weather import StationStatusResponse
from valleywx.utils.dashboard import station_health

router = APIRouter(
    prefix="/status",
    tags=["status"],
)

limiter = Limiter(key_func=get_remote_address)


@router.get("/stations", response_model=StationStatusResponse)
@limiter.limit("60/minute")
async def get_station_status(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """
    Freshness of every active station.

    The overall status is degraded when any station is stale or has never
    reported.

    Rate limit: 60 requests per minute
    """
    health = await station_health(db)
    return {
        "status": "degraded" if any(h.stale for h in health) else "ok",
        "stale_threshold_minutes": settings.STALE_OBSERVATION_MINUTES,
        "stations": [asdict(h) for h in health],
    }
