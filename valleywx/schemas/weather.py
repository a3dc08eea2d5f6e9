"""
Weather data schemas.

This module contains Pydantic schemas for stations, observations and
forecasts as handed over by the ingestion collaborators.
"""

import logging
from datetime import date as DateType
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from valleywx.schemas.base import BaseSchema

logger = logging.getLogger(__name__)

ElevationTier = Literal["valley_floor", "mid_slope", "upper", "local"]
ForecastSource = Literal["wu", "bom"]
ObservationType = Literal["instant", "hourly_aggregate", "daily_aggregate", "unknown"]


class StationBase(BaseSchema):
    """Base weather station schema."""
    code: str = Field(..., description="Upstream station identifier")
    name: str
    latitude: float = Field(..., ge=-90, le=90, description="Latitude in degrees")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude in degrees")
    elevation: Optional[float] = Field(None, description="Elevation in metres")
    elevation_tier: ElevationTier


class StationCreate(StationBase):
    """Schema for creating a weather station."""
    is_primary: bool = False
    active: bool = True


class ObservationCreate(BaseSchema):
    """
    Observation payload with plausibility checks.

    Hard limits reject obviously broken payloads. Softer valley-climate
    limits only log; the quality flags stored with the reading carry them.
    """
    station_id: int
    observed_at: datetime

    temperature: Optional[float] = Field(None, description="Air temperature in °C")
    humidity: Optional[int] = Field(None, description="Relative humidity %")
    dewpoint: Optional[float] = None
    pressure: Optional[float] = Field(None, description="Pressure in hPa")
    wind_speed: Optional[float] = Field(None, description="Wind speed in m/s")
    wind_gust: Optional[float] = Field(None, description="Wind gust in m/s")
    wind_direction: Optional[int] = Field(None, description="Wind direction in degrees")
    precip_rate: Optional[float] = None
    precip_total: Optional[float] = None
    solar_radiation: Optional[float] = None
    uv: Optional[float] = None
    heat_index: Optional[float] = None
    wind_chill: Optional[float] = None

    obs_type: ObservationType = "instant"
    aggregation_period: Optional[int] = Field(None, ge=0, description="Aggregation period in minutes")
    qc_status: int = 0

    @field_validator('temperature')
    @classmethod
    def validate_temperature(cls, v):
        """
        Validate temperature is physically possible.

        Alpine valley climate: typical range -10°C to 45°C
        """
        if v is not None:
            if v < -60 or v > 70:
                raise ValueError(
                    f'Temperature {v}°C is not physically plausible (-60°C to 70°C).'
                )
            if v < -10 or v > 45:
                logger.warning(
                    f'Temperature {v}°C is unusual for the valley (typical: -10 to 45°C). '
                    'The reading will be flagged.'
                )
        return v

    @field_validator('observed_at')
    @classmethod
    def validate_observed_at(cls, v):
        """Observation times must carry a timezone."""
        if v.tzinfo is None:
            raise ValueError('observed_at must be timezone-aware')
        return v


class ForecastCreate(BaseSchema):
    """Provider forecast for one valid date."""
    source: ForecastSource
    fetched_at: datetime
    valid_date: DateType
    day_of_forecast: int = Field(..., ge=0, le=14, description="Lead day (0 = today)")

    temp_max: Optional[float] = None
    temp_min: Optional[float] = None
    humidity: Optional[int] = Field(None, ge=0, le=100)
    precip_chance: Optional[int] = Field(None, ge=0, le=100)
    precip_amount: Optional[float] = Field(None, ge=0)
    precip_range: Optional[str] = None
    wind_speed: Optional[float] = Field(None, ge=0)
    wind_direction: Optional[str] = None
    narrative: Optional[str] = None
    location_id: Optional[str] = None

    @field_validator('temp_min')
    @classmethod
    def validate_temp_min(cls, v, info):
        """Minimum cannot exceed maximum."""
        temp_max = info.data.get('temp_max')
        if v is not None and temp_max is not None and v > temp_max:
            raise ValueError(f'temp_min {v}°C exceeds temp_max {temp_max}°C')
        return v


class StationHealth(BaseSchema):
    code: str
    name: str
    elevation_tier: str
    is_primary: bool
    last_seen: Optional[datetime] = None
    age_minutes: Optional[float] = None
    stale: bool


class StationStatusResponse(BaseSchema):
    """Overall station freshness."""
    status: Literal["ok", "degraded"]
    stale_threshold_minutes: int
    stations: List[StationHealth]
