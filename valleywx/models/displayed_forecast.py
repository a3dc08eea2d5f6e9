"""
Displayed forecast (provenance) database model.

Every time the dashboard computes today's temperatures, the full explanation
is upserted here so the corrected pipeline can be scored later against what
actually happened.
"""

from sqlalchemy import Boolean, Column, Date, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint

from valleywx.models.base import BaseModel


class DisplayedForecast(BaseModel):
    """
    Provenance of one displayed forecast.

    Columns are NULL when the matching explanation field is not valid, e.g.
    no max was displayed or no bias statistics were found.
    """

    __tablename__ = "displayed_forecasts"

    displayed_at = Column(DateTime(timezone=True), nullable=False, comment="When the value was computed (UTC)")
    valid_date = Column(Date, nullable=False, index=True, comment="Local calendar day displayed")
    day_of_forecast = Column(Integer, nullable=False, comment="Lead day")

    wu_forecast_id = Column(Integer, ForeignKey("forecasts.id", ondelete="SET NULL"), nullable=True)
    bom_forecast_id = Column(Integer, ForeignKey("forecasts.id", ondelete="SET NULL"), nullable=True)

    # Max
    source_max = Column(String(10), nullable=True)
    raw_temp_max = Column(Float, nullable=True)
    bias_applied_max = Column(Float, nullable=True)
    bias_day_used_max = Column(Integer, nullable=True)
    bias_samples_max = Column(Integer, nullable=True)
    bias_fallback_max = Column(Boolean, nullable=True)
    bias_rejected_max = Column(Boolean, nullable=True, comment="Correction distrusted by the overcorrection check")
    temp_max_pre_nowcast = Column(Float, nullable=True)
    nowcast_applied = Column(Boolean, nullable=False, default=False)
    nowcast_adjustment = Column(Float, nullable=True)
    corrected_temp_max = Column(Float, nullable=True)

    # Min
    source_min = Column(String(10), nullable=True)
    raw_temp_min = Column(Float, nullable=True)
    bias_applied_min = Column(Float, nullable=True)
    bias_day_used_min = Column(Integer, nullable=True)
    bias_samples_min = Column(Integer, nullable=True)
    bias_fallback_min = Column(Boolean, nullable=True)
    corrected_temp_min = Column(Float, nullable=True)

    __table_args__ = (
        UniqueConstraint('valid_date', 'day_of_forecast', name='uq_displayed_forecast_date_day'),
    )

    def __repr__(self):
        return (
            f"<DisplayedForecast(valid_date='{self.valid_date}', day={self.day_of_forecast}, "
            f"max={self.corrected_temp_max}, min={self.corrected_temp_min})>"
        )
