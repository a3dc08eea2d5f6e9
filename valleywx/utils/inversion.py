"""
Temperature inversion detection across elevation tiers.

Two flavours:
- live: latest reading per station, compared against the expected lapse
  between the valley floor and the upper tier
- overnight: tier minima over the night window, used for regime tagging
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from statistics import mean
from typing import Mapping, Optional, Sequence, Tuple

from valleywx.config import settings
from valleywx.models.station import TIER_LOCAL, TIER_MID_SLOPE, TIER_UPPER, TIER_VALLEY_FLOOR
from valleywx.utils.logging_config import get_logger
from valleywx.utils.timeutils import as_utc, utc_now

logger = get_logger(__name__)

# The house station sits on the valley floor
VALLEY_TIERS = (TIER_VALLEY_FLOOR, TIER_LOCAL)


@dataclass(frozen=True)
class TierReading:
    """Latest temperature from one station."""

    tier: str
    temperature: Optional[float]
    elevation: Optional[float] = None
    observed_at: Optional[datetime] = None


@dataclass(frozen=True)
class InversionStatus:
    active: bool
    strength: float
    expected_lapse: float
    valley_avg: float
    upper_avg: float
    mid_avg: Optional[float] = None


def _tier_stats(readings: Sequence[TierReading]) -> Tuple[Optional[float], Optional[float]]:
    temps = [r.temperature for r in readings]
    elevations = [r.elevation for r in readings if r.elevation is not None]
    return (
        mean(temps) if temps else None,
        mean(elevations) if elevations else None,
    )


def detect_inversion(
    readings: Sequence[TierReading],
    now: Optional[datetime] = None,
) -> Optional[InversionStatus]:
    """
    Detect a live inversion from simultaneous per-tier readings.

    Expected lapse = Δelevation / 1000 · 6.5 °C between the valley and upper
    tier means. The inversion is active when the upper tier is warmer than
    the valley by more than the expected lapse plus the strength threshold.

    Args:
        readings: Latest reading per station
        now: Reference time for staleness (defaults to current UTC)

    Returns:
        InversionStatus, or None without at least one fresh valley and one
        fresh upper reading
    """
    now = as_utc(now or utc_now())
    max_age = timedelta(minutes=settings.STALE_OBSERVATION_MINUTES)

    fresh = [
        r for r in readings
        if r.temperature is not None
        and (r.observed_at is None or now - as_utc(r.observed_at) <= max_age)
    ]

    valley = [r for r in fresh if r.tier in VALLEY_TIERS]
    mid = [r for r in fresh if r.tier == TIER_MID_SLOPE]
    upper = [r for r in fresh if r.tier == TIER_UPPER]
    if not valley or not upper:
        return None

    valley_avg, valley_elev = _tier_stats(valley)
    upper_avg, upper_elev = _tier_stats(upper)
    mid_avg, _ = _tier_stats(mid)

    if valley_elev is not None and upper_elev is not None:
        expected = (upper_elev - valley_elev) / 1000.0 * settings.LAPSE_RATE_PER_KM
    else:
        expected = 0.0

    actual = upper_avg - valley_avg
    strength = actual - expected

    return InversionStatus(
        active=strength > settings.INVERSION_STRENGTH_THRESHOLD,
        strength=strength,
        expected_lapse=expected,
        valley_avg=valley_avg,
        upper_avg=upper_avg,
        mid_avg=mid_avg,
    )


def detect_overnight_inversion(tier_minima: Mapping[str, float]) -> Tuple[bool, Optional[float]]:
    """
    Flag an overnight inversion from tier minima.

    Args:
        tier_minima: Minimum temperature per elevation tier over the night

    Returns:
        (detected, strength); strength is upper min minus the coldest valley
        tier min, or None when either side has no readings
    """
    valley_mins = [tier_minima[t] for t in VALLEY_TIERS if tier_minima.get(t) is not None]
    valley_min = min(valley_mins) if valley_mins else None
    upper_min = tier_minima.get(TIER_UPPER)
    if valley_min is None or upper_min is None:
        return False, None

    strength = upper_min - valley_min
    detected = strength > settings.OVERNIGHT_INVERSION_THRESHOLD
    if detected:
        logger.info(
            f"Overnight inversion: valley={valley_min:.1f}°C upper={upper_min:.1f}°C "
            f"strength={strength:.1f}°C"
        )
    return detected, strength
