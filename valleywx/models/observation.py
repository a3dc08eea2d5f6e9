"""
Station observation database model.

Observations arrive from the ingestion collaborators roughly every five
minutes per station. Rows are insert-only: a second reading for the same
station and instant is ignored rather than overwriting the first.
"""

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, JSON, String, UniqueConstraint, Index
from sqlalchemy.orm import relationship

from valleywx.models.base import BaseModel


# Upstream QC status codes
QC_UNKNOWN = 0
QC_VALID = 1
QC_VERIFIED = 2
QC_SUSPECT = -1

CLEAN_QC_STATUSES = (QC_VALID, QC_VERIFIED)

# Observation types
OBS_INSTANT = "instant"
OBS_HOURLY_AGGREGATE = "hourly_aggregate"
OBS_DAILY_AGGREGATE = "daily_aggregate"
OBS_UNKNOWN = "unknown"


class Observation(BaseModel):
    """
    A single reading from one station at one UTC instant.

    Every measurement is optional; upstream feeds routinely omit fields
    (no solar sensor, no rain gauge). `quality_flags` holds the internal
    range-check flags and `qc_status` the upstream QC code.
    """

    __tablename__ = "observations"

    station_id = Column(
        Integer,
        ForeignKey("stations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Reference to the weather station"
    )
    observed_at = Column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
        comment="Observation instant (UTC)"
    )

    temperature = Column(Float, nullable=True, comment="Air temperature in °C")
    humidity = Column(Integer, nullable=True, comment="Relative humidity %")
    dewpoint = Column(Float, nullable=True, comment="Dewpoint in °C")
    pressure = Column(Float, nullable=True, comment="Pressure in hPa")
    wind_speed = Column(Float, nullable=True, comment="Wind speed in m/s")
    wind_gust = Column(Float, nullable=True, comment="Wind gust in m/s")
    wind_direction = Column(Integer, nullable=True, comment="Wind direction in degrees")
    precip_rate = Column(Float, nullable=True, comment="Precipitation rate in mm/h")
    precip_total = Column(Float, nullable=True, comment="Accumulated precipitation since local midnight in mm")
    solar_radiation = Column(Float, nullable=True, comment="Solar radiation in W/m²")
    uv = Column(Float, nullable=True, comment="UV index")
    heat_index = Column(Float, nullable=True, comment="Heat index in °C")
    wind_chill = Column(Float, nullable=True, comment="Wind chill in °C")

    obs_type = Column(String(20), nullable=False, default=OBS_INSTANT, comment="instant or aggregate")
    aggregation_period = Column(Integer, nullable=True, comment="Aggregation period in minutes")
    qc_status = Column(Integer, nullable=False, default=QC_UNKNOWN, comment="Upstream QC status")
    quality_flags = Column(JSON(none_as_null=True), nullable=True, comment="Internal quality flags")

    station = relationship("Station", back_populates="observations")

    __table_args__ = (
        UniqueConstraint('station_id', 'observed_at', name='uq_observation_station_time'),
        Index('idx_observation_station_time', 'station_id', 'observed_at'),
    )

    def __repr__(self):
        return f"<Observation(station_id={self.station_id}, observed_at='{self.observed_at}', temp={self.temperature})>"
