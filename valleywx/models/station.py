"""
Weather station database model.

This module contains the Station model representing the personal weather
stations spread across the valley's elevation tiers.
"""

from sqlalchemy import Boolean, Column, Float, Index, String
from sqlalchemy.orm import relationship

from valleywx.models.base import BaseModel


# Elevation tiers
TIER_VALLEY_FLOOR = "valley_floor"
TIER_MID_SLOPE = "mid_slope"
TIER_UPPER = "upper"
TIER_LOCAL = "local"

ELEVATION_TIERS = (TIER_VALLEY_FLOOR, TIER_MID_SLOPE, TIER_UPPER, TIER_LOCAL)


class Station(BaseModel):
    """
    Weather station information.

    Each station carries the opaque upstream code (e.g. the PWS network id),
    its elevation in metres and the coarse elevation tier used for inversion
    detection. At most one active station is flagged primary; its observations
    are ground truth for verification and the live display.
    """

    __tablename__ = "stations"

    code = Column(String(50), unique=True, index=True, nullable=False, comment="Upstream station identifier")
    name = Column(String(200), nullable=False, comment="Display name")
    latitude = Column(Float, nullable=False, comment="Latitude in degrees")
    longitude = Column(Float, nullable=False, comment="Longitude in degrees")
    elevation = Column(Float, nullable=True, comment="Elevation in metres")
    elevation_tier = Column(
        String(20),
        nullable=False,
        index=True,
        comment="valley_floor, mid_slope, upper or local"
    )
    is_primary = Column(Boolean, nullable=False, default=False, comment="Ground-truth station")
    active = Column(Boolean, nullable=False, default=True, comment="Included in ingestion and display")

    # Relationships
    observations = relationship(
        "Observation",
        back_populates="station",
        cascade="all, delete-orphan"
    )
    daily_summaries = relationship(
        "DailySummary",
        back_populates="station",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index('idx_station_tier_active', 'elevation_tier', 'active'),
    )

    def __repr__(self):
        return f"<Station(id={self.id}, code='{self.code}', tier='{self.elevation_tier}')>"
