"""
Forecast verification database model.

One row per (source, valid_date): the provider forecast that was scored and
the primary station's observed extremes for that local day.
"""

from sqlalchemy import Column, Date, Float, ForeignKey, Integer, String, UniqueConstraint

from valleywx.models.base import BaseModel


class ForecastVerification(BaseModel):
    """
    Scored forecast. Every bias is forecast minus actual.

    A null bias means one of its operands was missing.
    """

    __tablename__ = "forecast_verification"

    forecast_id = Column(
        Integer,
        ForeignKey("forecasts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Scored forecast"
    )
    source = Column(String(10), nullable=False, comment="wu or bom")
    day_of_forecast = Column(Integer, nullable=False, comment="Lead day of the scored forecast")
    valid_date = Column(Date, nullable=False, index=True, comment="Local calendar day verified")

    forecast_temp_max = Column(Float, nullable=True)
    forecast_temp_min = Column(Float, nullable=True)
    actual_temp_max = Column(Float, nullable=True)
    actual_temp_min = Column(Float, nullable=True)
    bias_temp_max = Column(Float, nullable=True)
    bias_temp_min = Column(Float, nullable=True)

    forecast_wind_speed = Column(Float, nullable=True)
    actual_wind_gust = Column(Float, nullable=True)
    bias_wind = Column(Float, nullable=True)

    forecast_precip = Column(Float, nullable=True)
    actual_precip = Column(Float, nullable=True)
    bias_precip = Column(Float, nullable=True)

    __table_args__ = (
        UniqueConstraint('source', 'valid_date', name='uq_verification_source_date'),
    )

    def __repr__(self):
        return (
            f"<ForecastVerification(source='{self.source}', valid_date='{self.valid_date}', "
            f"bias_max={self.bias_temp_max}, bias_min={self.bias_temp_min})>"
        )
