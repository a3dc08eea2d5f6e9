"""
Nowcast log database model.

Records every nowcast adjustment with its intermediates. `actual_max` is
back-filled by the daily job once the day is over, so the adjustment can be
validated before the feature is switched on by default.
"""

from sqlalchemy import Column, Date, Float, ForeignKey, Integer, UniqueConstraint

from valleywx.models.base import BaseModel


class NowcastLog(BaseModel):
    """One nowcast per station per local day."""

    __tablename__ = "nowcast_log"

    date = Column(Date, nullable=False, index=True, comment="Local calendar date")
    station_id = Column(
        Integer,
        ForeignKey("stations.id", ondelete="CASCADE"),
        nullable=False,
        comment="Station whose morning readings were used"
    )
    observed_morning = Column(Float, nullable=True, comment="Mean morning temperature in °C")
    forecast_morning = Column(Float, nullable=True, comment="Morning temperature implied by the forecast max")
    delta = Column(Float, nullable=True)
    adjustment = Column(Float, nullable=True, comment="Capped adjustment in °C")
    forecast_max_raw = Column(Float, nullable=True)
    forecast_max_corrected = Column(Float, nullable=True)
    actual_max = Column(Float, nullable=True, comment="Observed max, filled in after the day ends")

    __table_args__ = (
        UniqueConstraint('date', 'station_id', name='uq_nowcast_log_date_station'),
    )

    def __repr__(self):
        return f"<NowcastLog(date='{self.date}', station_id={self.station_id}, adjustment={self.adjustment})>"
