"""
Today's displayed max/min temperatures.

`resolve_today_temps` is a pure function: it takes both providers' forecasts
for today, the bias store and what the primary station has observed so far,
and returns the corrected values together with an explanation of every step.
It performs no I/O and never raises for missing inputs; an absent value is
reported through `have_max` / `have_min`.

Max pipeline: choose source (prefer BOM) → subtract bias → nowcast (lead 0,
BOM only) → round → observed floor → afternoon falling override →
overcorrection check.

Min pipeline: choose source (prefer WU) → subtract bias → round → observed
ceiling.
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence

from valleywx.config import Settings, settings as default_settings
from valleywx.models.correction_stat import TARGET_TMAX, TARGET_TMIN, StatsTable
from valleywx.models.forecast import SOURCE_BOM, SOURCE_WU
from valleywx.utils.bias import NO_BIAS_DAY, BiasLookupResult, lookup_bias_for_regime
from valleywx.utils.nowcast import NowcastCorrection, compute_nowcast
from valleywx.utils.timeutils import round_half_away

# Reject BOM's max when the live temperature already exceeds it by this much
LIVE_OVERSHOOT = 3.0
# Reject BOM's max when the providers disagree by more than this
PROVIDER_DIVERGENCE = 10.0
# Hour after which a falling temperature means the peak has passed
AFTERNOON_HOUR = 15
# Overcorrection check margin above raw and observed max
OVERCORRECTION_MARGIN = 3.0


@dataclass(frozen=True)
class ForecastSnapshot:
    """The fields of a provider forecast the resolver needs."""

    source: str
    day_of_forecast: int = 0
    temp_max: Optional[float] = None
    temp_min: Optional[float] = None
    id: Optional[int] = None
    valid_date: Optional[date] = None

    @classmethod
    def from_model(cls, forecast: Any) -> Optional["ForecastSnapshot"]:
        if forecast is None:
            return None
        return cls(
            source=forecast.source,
            day_of_forecast=forecast.day_of_forecast,
            temp_max=forecast.temp_max,
            temp_min=forecast.temp_min,
            id=forecast.id,
            valid_date=forecast.valid_date,
        )


@dataclass(frozen=True)
class TodayTempInput:
    wu_forecast: Optional[ForecastSnapshot] = None
    bom_forecast: Optional[ForecastSnapshot] = None
    correction_stats: StatsTable = field(default_factory=dict)
    primary_station_id: Optional[int] = None
    current_temp: Optional[float] = None
    observed_max: Optional[float] = None
    observed_min: Optional[float] = None
    hour: int = 0
    temp_falling: bool = False
    regime: Optional[str] = None
    morning_temps: Sequence[float] = ()
    nowcast_enabled: bool = False


@dataclass
class TempExplanation:
    """
    How each displayed value was derived.

    `*_bias_day_used` is -1 when no bias statistics qualified.
    `max_bias_rejected` marks a correction thrown out by the overcorrection
    check; `max_bias_applied` is then 0.
    """

    max_source: Optional[str] = None
    max_raw: Optional[float] = None
    max_bias_applied: float = 0.0
    max_bias_day_used: int = NO_BIAS_DAY
    max_bias_samples: int = 0
    max_bias_fallback: bool = False
    max_bias_regime: Optional[str] = None
    max_bias_rejected: bool = False
    max_nowcast: float = 0.0
    max_final: Optional[float] = None

    min_source: Optional[str] = None
    min_raw: Optional[float] = None
    min_bias_applied: float = 0.0
    min_bias_day_used: int = NO_BIAS_DAY
    min_bias_samples: int = 0
    min_bias_fallback: bool = False
    min_bias_regime: Optional[str] = None
    min_final: Optional[float] = None


@dataclass
class TodayTempResult:
    temp_max: Optional[float] = None
    temp_min: Optional[float] = None
    have_max: bool = False
    have_min: bool = False
    temp_max_pre_nowcast: Optional[float] = None
    nowcast_applied: bool = False
    nowcast_adjustment: float = 0.0
    nowcast: Optional[NowcastCorrection] = None
    explanation: TempExplanation = field(default_factory=TempExplanation)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _choose_max_forecast(inputs: TodayTempInput) -> Optional[ForecastSnapshot]:
    bom, wu = inputs.bom_forecast, inputs.wu_forecast

    use_bom = bom is not None and bom.temp_max is not None
    if use_bom and inputs.current_temp is not None and inputs.current_temp > bom.temp_max + LIVE_OVERSHOOT:
        use_bom = False
    if use_bom and wu is not None and wu.temp_max is not None:
        if abs(wu.temp_max - bom.temp_max) > PROVIDER_DIVERGENCE:
            use_bom = False

    if use_bom:
        return bom
    if wu is not None and wu.temp_max is not None:
        return wu
    return None


def _choose_min_forecast(inputs: TodayTempInput) -> Optional[ForecastSnapshot]:
    for candidate in (inputs.wu_forecast, inputs.bom_forecast):
        if candidate is not None and candidate.temp_min is not None:
            return candidate
    return None


def _source_of(inputs: TodayTempInput, chosen: ForecastSnapshot) -> str:
    return SOURCE_BOM if chosen is inputs.bom_forecast else SOURCE_WU


def _resolve_max(inputs: TodayTempInput, result: TodayTempResult, config: Settings) -> None:
    exp = result.explanation
    chosen = _choose_max_forecast(inputs)
    if chosen is None:
        return

    source = _source_of(inputs, chosen)
    raw = chosen.temp_max
    exp.max_source = source
    exp.max_raw = raw
    result.have_max = True

    lookup: BiasLookupResult = lookup_bias_for_regime(
        inputs.correction_stats, source, TARGET_TMAX, chosen.day_of_forecast, inputs.regime, config
    )
    value = raw
    if lookup.found:
        exp.max_bias_applied = lookup.bias
        exp.max_bias_day_used = lookup.day_used
        exp.max_bias_samples = lookup.samples
        exp.max_bias_fallback = lookup.is_fallback
        exp.max_bias_regime = lookup.regime
        value = raw - lookup.bias
    result.temp_max_pre_nowcast = round_half_away(value)

    if source == SOURCE_BOM and chosen.day_of_forecast == 0 and inputs.primary_station_id is not None:
        nowcast = compute_nowcast(
            inputs.morning_temps,
            raw,
            lookup.bias,
            inputs.hour,
            inputs.nowcast_enabled,
            config,
        )
        if nowcast is not None:
            value = nowcast.corrected_max
            exp.max_nowcast = nowcast.adjustment
            result.nowcast = nowcast
            result.nowcast_applied = True
            result.nowcast_adjustment = nowcast.adjustment

    value = round_half_away(value)

    observed = inputs.observed_max
    if observed is not None:
        # Observed max so far is a floor
        if observed > value:
            value = round_half_away(observed)

        # Peak presumed passed
        if inputs.hour >= AFTERNOON_HOUR and inputs.temp_falling:
            value = round_half_away(observed)

        if value > raw + OVERCORRECTION_MARGIN and value > observed + OVERCORRECTION_MARGIN:
            value = round_half_away(max(observed, raw))
            exp.max_bias_applied = 0.0
            exp.max_bias_rejected = True

    result.temp_max = value
    exp.max_final = value


def _resolve_min(inputs: TodayTempInput, result: TodayTempResult, config: Settings) -> None:
    exp = result.explanation
    chosen = _choose_min_forecast(inputs)
    if chosen is None:
        return

    source = _source_of(inputs, chosen)
    raw = chosen.temp_min
    exp.min_source = source
    exp.min_raw = raw
    result.have_min = True

    lookup = lookup_bias_for_regime(
        inputs.correction_stats, source, TARGET_TMIN, chosen.day_of_forecast, inputs.regime, config
    )
    value = raw
    if lookup.found:
        exp.min_bias_applied = lookup.bias
        exp.min_bias_day_used = lookup.day_used
        exp.min_bias_samples = lookup.samples
        exp.min_bias_fallback = lookup.is_fallback
        exp.min_bias_regime = lookup.regime
        value = raw - lookup.bias
    value = round_half_away(value)

    # Observed min so far is a ceiling
    if inputs.observed_min is not None and inputs.observed_min < value:
        value = round_half_away(inputs.observed_min)

    result.temp_min = value
    exp.min_final = value


def resolve_today_temps(
    inputs: TodayTempInput,
    config: Optional[Settings] = None,
) -> TodayTempResult:
    """
    Compute today's displayed max and min with full provenance.

    Args:
        inputs: Forecasts, bias store and observations so far
        config: Tuning knobs (defaults to the application settings)

    Returns:
        TodayTempResult; identical inputs always give an identical result
    """
    result = TodayTempResult()
    config = config or default_settings
    _resolve_max(inputs, result, config)
    _resolve_min(inputs, result, config)
    return result


def build_displayed_forecast(
    result: TodayTempResult,
    valid_date: date,
    wu: Optional[ForecastSnapshot],
    bom: Optional[ForecastSnapshot],
    displayed_at: datetime,
) -> Dict[str, Any]:
    """
    Map a resolver result to a provenance log row.

    Fields that are not valid for this result are left NULL: everything for
    a missing max or min, and the bias columns when no bias qualified.

    Args:
        result: Resolver output
        valid_date: Local date displayed
        wu: WU forecast passed to the resolver
        bom: BOM forecast passed to the resolver
        displayed_at: Computation time

    Returns:
        Column values for DisplayedForecast
    """
    exp = result.explanation

    chosen = bom if exp.max_source == SOURCE_BOM else wu
    if chosen is None:
        chosen = wu if exp.min_source == SOURCE_WU else bom
    lead_day = chosen.day_of_forecast if chosen is not None else 0

    row: Dict[str, Any] = {
        "displayed_at": displayed_at,
        "valid_date": valid_date,
        "day_of_forecast": lead_day,
        "wu_forecast_id": wu.id if wu is not None else None,
        "bom_forecast_id": bom.id if bom is not None else None,
        "source_max": None,
        "raw_temp_max": None,
        "bias_applied_max": None,
        "bias_day_used_max": None,
        "bias_samples_max": None,
        "bias_fallback_max": None,
        "bias_rejected_max": None,
        "temp_max_pre_nowcast": None,
        "nowcast_applied": result.nowcast_applied,
        "nowcast_adjustment": result.nowcast_adjustment if result.nowcast_applied else None,
        "corrected_temp_max": None,
        "source_min": None,
        "raw_temp_min": None,
        "bias_applied_min": None,
        "bias_day_used_min": None,
        "bias_samples_min": None,
        "bias_fallback_min": None,
        "corrected_temp_min": None,
    }

    if result.have_max:
        row.update(
            source_max=exp.max_source,
            raw_temp_max=exp.max_raw,
            corrected_temp_max=result.temp_max,
            temp_max_pre_nowcast=result.temp_max_pre_nowcast,
            bias_rejected_max=exp.max_bias_rejected,
        )
        if exp.max_bias_day_used >= 0:
            row.update(
                bias_applied_max=exp.max_bias_applied,
                bias_day_used_max=exp.max_bias_day_used,
                bias_samples_max=exp.max_bias_samples,
                bias_fallback_max=exp.max_bias_fallback,
            )

    if result.have_min:
        row.update(
            source_min=exp.min_source,
            raw_temp_min=exp.min_raw,
            corrected_temp_min=result.temp_min,
        )
        if exp.min_bias_day_used >= 0:
            row.update(
                bias_applied_min=exp.min_bias_applied,
                bias_day_used_min=exp.min_bias_day_used,
                bias_samples_min=exp.min_bias_samples,
                bias_fallback_min=exp.min_bias_fallback,
            )

    return row
