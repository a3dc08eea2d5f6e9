"""
Weather regime classification.

A regime tags the meteorological character of a day so bias statistics can
be partitioned: providers miss differently during heatwaves, inversion
nights and clear calm days than on an ordinary day.
"""

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from valleywx.models.daily_summary import (
    REGIME_ALL,
    REGIME_CLEAR_CALM,
    REGIME_HEATWAVE,
    REGIME_INVERSION,
)

HEATWAVE_FORECAST_MAX = 35.0  # °C
HEATWAVE_OBSERVED_MAX = 32.0  # °C, two consecutive days
DRY_PRECIP_MM = 0.5
HIGH_SOLAR_MJ = 10.0
CALM_NIGHT_FRACTION = 0.4


@dataclass(frozen=True)
class RegimeFlags:
    """Individual regime flags for one day."""

    heatwave: bool = False
    inversion: bool = False
    clear_calm: bool = False

    @property
    def regime(self) -> str:
        """Single regime tag, heatwave > inversion > clear_calm > all."""
        if self.heatwave:
            return REGIME_HEATWAVE
        if self.inversion:
            return REGIME_INVERSION
        if self.clear_calm:
            return REGIME_CLEAR_CALM
        return REGIME_ALL


def classify_regime(
    forecast: Optional[Any],
    summary: Optional[Any],
    prev_days: Sequence[Any] = (),
) -> RegimeFlags:
    """
    Classify a day from its forecast and observed summaries.

    Args:
        forecast: Today's forecast (anything with `temp_max`), or None
        summary: Today's daily summary, or None
        prev_days: Prior daily summaries, most recent first

    Returns:
        RegimeFlags; use `.regime` for the single tag
    """
    return RegimeFlags(
        heatwave=is_heatwave(forecast, prev_days),
        inversion=bool(summary is not None and summary.inversion_detected),
        clear_calm=is_clear_calm(summary),
    )


def is_heatwave(forecast: Optional[Any], prev_days: Sequence[Any]) -> bool:
    if forecast is not None and forecast.temp_max is not None and forecast.temp_max >= HEATWAVE_FORECAST_MAX:
        return True

    if len(prev_days) >= 2:
        return all(
            day.temp_max is not None and day.temp_max >= HEATWAVE_OBSERVED_MAX
            for day in prev_days[:2]
        )
    return False


def is_clear_calm(summary: Optional[Any]) -> bool:
    """
    Good radiative conditions: dry, sunny and calm overnight.

    All three are required; a missing feature means not clear-calm.
    """
    if summary is None:
        return False

    dry = summary.precip_total is not None and summary.precip_total < DRY_PRECIP_MM
    sunny = summary.solar_integral is not None and summary.solar_integral > HIGH_SOLAR_MJ
    calm = summary.calm_fraction_night is not None and summary.calm_fraction_night > CALM_NIGHT_FRACTION
    return dry and sunny and calm
