"""
Forecast correction statistics (the bias store).

Rows are keyed by (source, target, day_of_forecast, regime) and overwritten
wholesale each time the statistics are recomputed.
"""

from dataclasses import dataclass
from typing import Dict, NamedTuple

from sqlalchemy import Column, DateTime, Float, Integer, String
from sqlalchemy.sql import func

from valleywx.database import Base
from valleywx.models.daily_summary import REGIME_ALL


TARGET_TMAX = "tmax"
TARGET_TMIN = "tmin"

TARGETS = (TARGET_TMAX, TARGET_TMIN)


class StatsKey(NamedTuple):
    """Key of one bias store entry."""

    source: str
    target: str
    lead_day: int
    regime: str = REGIME_ALL


@dataclass(frozen=True)
class StatEntry:
    """In-memory snapshot of one bias store row."""

    sample_size: int
    mean_bias: float
    mae: float = 0.0


# Whole bias store loaded for a display request
StatsTable = Dict[StatsKey, StatEntry]


class CorrectionStat(Base):
    """Rolling bias statistics for one provider, target, lead day and regime."""

    __tablename__ = "forecast_correction_stats"

    source = Column(String(10), primary_key=True, comment="wu or bom")
    target = Column(String(10), primary_key=True, comment="tmax or tmin")
    day_of_forecast = Column(Integer, primary_key=True, comment="Lead day 0-14")
    regime = Column(String(20), primary_key=True, default=REGIME_ALL, comment="Regime partition")

    window_days = Column(Integer, nullable=False, comment="Sliding window length in days")
    sample_size = Column(Integer, nullable=False, comment="Verification records in window")
    mean_bias = Column(Float, nullable=False, comment="Mean forecast minus actual in °C")
    mae = Column(Float, nullable=False, comment="Mean absolute error in °C")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return (
            f"<CorrectionStat(source='{self.source}', target='{self.target}', "
            f"day={self.day_of_forecast}, regime='{self.regime}', n={self.sample_size}, "
            f"bias={self.mean_bias})>"
        )
