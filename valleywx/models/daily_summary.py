"""
Daily summary database model.

This module contains the DailySummary model for storing per-station daily
aggregates computed from observations over the local calendar day, plus the
regime features used to partition bias statistics.
"""

from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from valleywx.models.base import BaseModel


REGIME_HEATWAVE = "heatwave"
REGIME_INVERSION = "inversion"
REGIME_CLEAR_CALM = "clear_calm"
REGIME_ALL = "all"

# Highest priority first
REGIMES = (REGIME_HEATWAVE, REGIME_INVERSION, REGIME_CLEAR_CALM, REGIME_ALL)


class DailySummary(BaseModel):
    """
    Daily weather summary for one station.

    The day runs from local midnight to local midnight. Fields include:
    - Maximum and minimum temperatures with timestamps
    - Mean humidity and pressure
    - Precipitation total and maximum gust
    - Night wind statistics and the calm fraction (wind < 1.5 m/s)
    - Solar integral in MJ/m²
    - Overnight inversion flag and regime tags
    """

    __tablename__ = "daily_summaries"

    station_id = Column(
        Integer,
        ForeignKey("stations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Reference to the weather station"
    )
    date = Column(
        Date,
        nullable=False,
        index=True,
        comment="Local calendar date"
    )

    # Temperature statistics
    temp_max = Column(Float, nullable=True, comment="Maximum temperature in °C")
    temp_max_time = Column(DateTime(timezone=True), nullable=True, comment="Time of maximum (UTC)")
    temp_min = Column(Float, nullable=True, comment="Minimum temperature in °C")
    temp_min_time = Column(DateTime(timezone=True), nullable=True, comment="Time of minimum (UTC)")
    temp_avg = Column(Float, nullable=True, comment="Mean temperature in °C")
    diurnal_range = Column(Float, nullable=True, comment="Max minus min in °C")

    # Other statistics
    humidity_avg = Column(Float, nullable=True, comment="Mean relative humidity %")
    pressure_avg = Column(Float, nullable=True, comment="Mean pressure in hPa")
    precip_total = Column(Float, nullable=True, comment="Precipitation total in mm")
    wind_max_gust = Column(Float, nullable=True, comment="Maximum gust in m/s")
    dewpoint_avg = Column(Float, nullable=True, comment="Mean dewpoint in °C")

    # Regime features
    wind_mean_night = Column(Float, nullable=True, comment="Mean wind 18:00-06:00 local in m/s")
    calm_fraction_night = Column(Float, nullable=True, comment="Fraction of night readings below 1.5 m/s")
    solar_integral = Column(Float, nullable=True, comment="Integrated solar radiation in MJ/m²")
    solar_max = Column(Float, nullable=True, comment="Peak solar radiation in W/m²")

    # Inversion and regime tags
    inversion_detected = Column(Boolean, nullable=True, comment="Overnight inversion (valley floor stations)")
    inversion_strength = Column(Float, nullable=True, comment="Upper minus valley overnight minimum in °C")
    regime_heatwave = Column(Boolean, nullable=True)
    regime_inversion = Column(Boolean, nullable=True)
    regime_clear_calm = Column(Boolean, nullable=True)
    regime = Column(String(20), nullable=True, comment="Single regime tag by priority")

    station = relationship("Station", back_populates="daily_summaries")

    __table_args__ = (
        UniqueConstraint('station_id', 'date', name='uq_daily_summary_station_date'),
        Index('idx_daily_summary_date_station', 'date', 'station_id'),
    )

    def __repr__(self):
        return (
            f"<DailySummary(station_id={self.station_id}, date='{self.date}', "
            f"max={self.temp_max}, min={self.temp_min}, regime='{self.regime}')>"
        )
