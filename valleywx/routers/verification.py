"""
Verification router.

This module contains endpoints for forecast accuracy: the bias store, raw
verification records and how well the corrected pipeline performed.
"""

from dataclasses import asdict
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from valleywx import crud
from valleywx.database import get_db
from valleywx.schemas.forecast import ForecastVerification, VerificationStatsResponse
from valleywx.utils.errors import NoPrimaryStationError
from valleywx.utils.logging_config import get_logger
from valleywx.utils.timeutils import local_today

logger = get_logger(__name__)

router = APIRouter(
    prefix="/verification",
    tags=["verification"],
    responses={
        404: {"description": "Not found"},
        503: {"description": "No primary station configured"}
    },
)

limiter = Limiter(key_func=get_remote_address)


@router.get("/stats", response_model=VerificationStatsResponse)
@limiter.limit("30/minute")
async def get_verification_stats(
    request: Request,
    days: int = Query(30, ge=1, le=365, description="Window for corrected accuracy"),
    db: AsyncSession = Depends(get_db),
):
    """
    Bias store contents and the accuracy of displayed forecasts.

    Rate limit: 30 requests per minute
    """
    try:
        primary = await crud.station.require_primary(db)
    except NoPrimaryStationError as e:
        logger.warning(f"Verification stats requested without a primary station: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e)
        )

    accuracy = await crud.displayed_forecast.corrected_accuracy(
        db, station_id=primary.id, days=days, today=local_today()
    )
    stats = await crud.correction_stat.get_all(db)

    return {
        "window_days": days,
        "correction_stats": stats,
        "corrected_accuracy": asdict(accuracy) if accuracy.count else None,
    }


@router.get("/{valid_date}", response_model=List[ForecastVerification])
@limiter.limit("100/minute")
async def get_verification_for_date(
    request: Request,
    valid_date: date,
    db: AsyncSession = Depends(get_db),
):
    """
    Verification records for one local date.

    Rate limit: 100 requests per minute
    """
    records = await crud.verification.get_for_date(db, valid_date=valid_date)
    if not records:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No verification records for {valid_date}"
        )
    return records
