"""
Bias lookup and correction statistics.

The bias store holds, per (source, target, lead day, regime), the mean of
forecast minus actual over a sliding window of verification records. This
module reads it for display (with lead-day fallback and magnitude capping)
and rebuilds it from verification records once a day.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from statistics import mean
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from valleywx import crud
from valleywx.config import Settings, settings as default_settings
from valleywx.models.correction_stat import (
    TARGET_TMAX,
    TARGET_TMIN,
    StatEntry,
    StatsKey,
    StatsTable,
)
from valleywx.models.daily_summary import REGIME_ALL
from valleywx.utils.logging_config import get_logger
from valleywx.utils.timeutils import local_today

logger = get_logger(__name__)

NO_BIAS_DAY = -1

__all__ = [
    "BiasLookupResult",
    "StatEntry",
    "StatsKey",
    "StatsTable",
    "cap_correction",
    "fallback_order",
    "lookup_bias",
    "lookup_bias_for_regime",
    "load_stats_table",
    "recompute_correction_stats",
]


@dataclass(frozen=True)
class BiasLookupResult:
    """Bias to subtract from a raw forecast and where it came from."""

    bias: float = 0.0
    day_used: int = NO_BIAS_DAY
    samples: int = 0
    is_fallback: bool = False
    regime: str = REGIME_ALL

    @property
    def found(self) -> bool:
        return self.day_used >= 0


def cap_correction(value: float, limit: float) -> float:
    """Clamp a correction to ±limit."""
    return max(-limit, min(limit, value))


def fallback_order(
    lead_day: int,
    max_day: Optional[int] = None,
    settings: Settings = default_settings,
) -> List[int]:
    """
    Lead days to try when the requested day lacks samples.

    Scans outward by distance, lower lead day first on a tie:
    d-1, d+1, d-2, d+2, ... skipping days outside [0, max_day].

    Example:
        >>> fallback_order(2, max_day=4)
        [1, 3, 0, 4]
    """
    max_day = settings.MAX_LEAD_DAY if max_day is None else max_day
    order = []
    for delta in range(1, max_day + 1):
        if lead_day - delta >= 0:
            order.append(lead_day - delta)
        if lead_day + delta <= max_day:
            order.append(lead_day + delta)
    return order


def lookup_bias(
    stats: Optional[StatsTable],
    source: str,
    target: str,
    lead_day: int,
    settings: Settings = default_settings,
) -> BiasLookupResult:
    """
    Find the bias for a source/target/lead day in the "all" regime.

    The exact lead day is used when it has at least MIN_BIAS_SAMPLES;
    otherwise the nearest qualifying lead day (see `fallback_order`).
    The bias magnitude is capped at MAX_BIAS_CORRECTION.

    Args:
        stats: In-memory bias store (None or empty means no bias)
        source: Forecast provider
        target: "tmax" or "tmin"
        lead_day: Lead day of the forecast being corrected
        settings: Sample thresholds and caps

    Returns:
        BiasLookupResult; `day_used == -1` and `bias == 0` when nothing qualifies
    """
    if not stats:
        return BiasLookupResult()

    def qualifying(day: int) -> Optional[StatEntry]:
        entry = stats.get(StatsKey(source, target, day, REGIME_ALL))
        if entry is not None and entry.sample_size >= settings.MIN_BIAS_SAMPLES:
            return entry
        return None

    entry = qualifying(lead_day)
    if entry is not None:
        return BiasLookupResult(
            bias=cap_correction(entry.mean_bias, settings.MAX_BIAS_CORRECTION),
            day_used=lead_day,
            samples=entry.sample_size,
        )

    for day in fallback_order(lead_day, settings=settings):
        entry = qualifying(day)
        if entry is not None:
            return BiasLookupResult(
                bias=cap_correction(entry.mean_bias, settings.MAX_BIAS_CORRECTION),
                day_used=day,
                samples=entry.sample_size,
                is_fallback=True,
            )

    return BiasLookupResult()


def lookup_bias_for_regime(
    stats: Optional[StatsTable],
    source: str,
    target: str,
    lead_day: int,
    regime: Optional[str],
    settings: Settings = default_settings,
) -> BiasLookupResult:
    """
    Regime-aware bias lookup.

    A specific regime is used only for the exact lead day and only with at
    least MIN_REGIME_SAMPLES; otherwise this is `lookup_bias` on "all".
    """
    if stats and regime and regime != REGIME_ALL:
        entry = stats.get(StatsKey(source, target, lead_day, regime))
        if entry is not None and entry.sample_size >= settings.MIN_REGIME_SAMPLES:
            return BiasLookupResult(
                bias=cap_correction(entry.mean_bias, settings.MAX_BIAS_CORRECTION),
                day_used=lead_day,
                samples=entry.sample_size,
                regime=regime,
            )
    return lookup_bias(stats, source, target, lead_day, settings)


async def load_stats_table(db: AsyncSession) -> StatsTable:
    """
    Load the bias store for display.

    A failed read is logged and treated as an empty store so the dashboard
    still shows uncorrected values.
    """
    try:
        return await crud.correction_stat.get_table(db)
    except Exception as e:
        logger.error(f"Failed to load correction stats, displaying without bias: {e}")
        await db.rollback()
        return {}


# ============================================================================
# Statistics computation
# ============================================================================

async def recompute_correction_stats(
    db: AsyncSession,
    window_days: Optional[int] = None,
    as_of: Optional[date] = None,
) -> int:
    """
    Rebuild the bias store from verification records in the window.

    For each (source, lead day) with verification records whose valid date
    falls within the last `window_days`, computes sample count, mean bias
    and MAE separately for tmax and tmin, and writes them under regime
    "all". The same aggregation is repeated per regime, using the regime of
    each valid date from the primary station's daily summaries.

    Args:
        db: Database session
        window_days: Sliding window length (defaults to BIAS_WINDOW_DAYS)
        as_of: Window end date (defaults to today, local)

    Returns:
        Number of bias store rows written
    """
    if window_days is None:
        window_days = default_settings.BIAS_WINDOW_DAYS
    as_of = as_of or local_today()
    start = as_of - timedelta(days=window_days)

    records = await crud.verification.get_since(db, start=start)

    regimes: Dict[date, str] = {}
    primary = await crud.station.get_primary(db)
    if primary is not None:
        regimes = await crud.daily_summary.get_regimes(db, station_id=primary.id, start=start)
    else:
        logger.warning("No primary station; computing regime 'all' statistics only")

    samples: Dict[StatsKey, List[float]] = defaultdict(list)
    for record in records:
        regime = regimes.get(record.valid_date, REGIME_ALL)
        for target, bias in ((TARGET_TMAX, record.bias_temp_max), (TARGET_TMIN, record.bias_temp_min)):
            if bias is None:
                continue
            samples[StatsKey(record.source, target, record.day_of_forecast, REGIME_ALL)].append(bias)
            if regime != REGIME_ALL:
                samples[StatsKey(record.source, target, record.day_of_forecast, regime)].append(bias)

    entries = [
        {
            "source": key.source,
            "target": key.target,
            "day_of_forecast": key.lead_day,
            "regime": key.regime,
            "window_days": window_days,
            "sample_size": len(biases),
            "mean_bias": mean(biases),
            "mae": mean(abs(b) for b in biases),
        }
        for key, biases in sorted(samples.items())
    ]

    written = await crud.correction_stat.upsert_many(db, entries=entries)
    logger.info(
        f"Recomputed correction stats over {window_days} days to {as_of}: "
        f"{len(records)} verification records, {written} entries"
    )
    return written
