"""
Forecast correction schemas.

Response models for today's corrected forecast, its explanation and the
verification statistics.
"""

from datetime import date as DateType
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from valleywx.schemas.base import BaseSchema


class TempExplanation(BaseSchema):
    """How the displayed max and min were derived."""
    max_source: Optional[str] = Field(None, description="bom or wu")
    max_raw: Optional[float] = None
    max_bias_applied: float = 0.0
    max_bias_day_used: int = Field(-1, description="Lead day whose statistics were used, -1 for none")
    max_bias_samples: int = 0
    max_bias_fallback: bool = False
    max_bias_regime: Optional[str] = None
    max_bias_rejected: bool = Field(False, description="Correction rejected by the overcorrection check")
    max_nowcast: float = 0.0
    max_final: Optional[float] = None

    min_source: Optional[str] = None
    min_raw: Optional[float] = None
    min_bias_applied: float = 0.0
    min_bias_day_used: int = -1
    min_bias_samples: int = 0
    min_bias_fallback: bool = False
    min_bias_regime: Optional[str] = None
    min_final: Optional[float] = None


class InversionStatus(BaseSchema):
    active: bool
    strength: float
    expected_lapse: float
    valley_avg: float
    upper_avg: float
    mid_avg: Optional[float] = None


class TodayForecastResponse(BaseSchema):
    """Today's displayed temperatures."""
    valid_date: DateType
    local_hour: int
    regime: str
    temp_max: Optional[float] = None
    temp_min: Optional[float] = None
    have_max: bool
    have_min: bool
    temp_max_pre_nowcast: Optional[float] = None
    nowcast_applied: bool = False
    nowcast_adjustment: float = 0.0
    explanation: TempExplanation
    inversion: Optional[InversionStatus] = None
    primary_station: Optional[str] = None
    current_temp: Optional[float] = None
    observed_max: Optional[float] = None
    observed_min: Optional[float] = None
    temp_change_rate: Optional[float] = None
    warnings: List[str] = []


class CorrectionStat(BaseSchema):
    """One bias store entry."""
    source: str
    target: str
    day_of_forecast: int
    regime: str
    window_days: int
    sample_size: int
    mean_bias: float
    mae: float
    updated_at: Optional[datetime] = None


class CorrectedAccuracy(BaseSchema):
    count: int
    avg_max_bias: Optional[float] = None
    avg_min_bias: Optional[float] = None
    mae_max: Optional[float] = None
    mae_min: Optional[float] = None


class VerificationStatsResponse(BaseSchema):
    """Bias store and corrected-pipeline accuracy."""
    window_days: int
    correction_stats: List[CorrectionStat]
    corrected_accuracy: Optional[CorrectedAccuracy] = None


class ForecastVerification(BaseSchema):
    """Scored provider forecast. Biases are forecast minus actual."""
    source: str
    day_of_forecast: int
    valid_date: DateType
    forecast_temp_max: Optional[float] = None
    forecast_temp_min: Optional[float] = None
    actual_temp_max: Optional[float] = None
    actual_temp_min: Optional[float] = None
    bias_temp_max: Optional[float] = None
    bias_temp_min: Optional[float] = None
    bias_wind: Optional[float] = None
    bias_precip: Optional[float] = None


class DisplayedForecast(BaseSchema):
    """Provenance record for a displayed forecast."""
    displayed_at: datetime
    valid_date: DateType
    day_of_forecast: int
    source_max: Optional[str] = None
    raw_temp_max: Optional[float] = None
    bias_applied_max: Optional[float] = None
    bias_day_used_max: Optional[int] = None
    bias_samples_max: Optional[int] = None
    bias_fallback_max: Optional[bool] = None
    bias_rejected_max: Optional[bool] = None
    temp_max_pre_nowcast: Optional[float] = None
    nowcast_applied: bool
    nowcast_adjustment: Optional[float] = None
    corrected_temp_max: Optional[float] = None
    source_min: Optional[str] = None
    raw_temp_min: Optional[float] = None
    bias_applied_min: Optional[float] = None
    bias_day_used_min: Optional[int] = None
    bias_samples_min: Optional[int] = None
    bias_fallback_min: Optional[bool] = None
    corrected_temp_min: Optional[float] = None
