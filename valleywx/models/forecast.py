"""
Provider forecast database model.

Each fetch from a provider produces one row per valid date. Rows are never
updated, so several fetches during a day leave several rows behind.
"""

from sqlalchemy import Column, Date, DateTime, Float, Integer, String, Text, UniqueConstraint, Index

from valleywx.models.base import BaseModel


SOURCE_WU = "wu"
SOURCE_BOM = "bom"

FORECAST_SOURCES = (SOURCE_WU, SOURCE_BOM)


class Forecast(BaseModel):
    """
    Raw daily forecast from one provider.

    `valid_date` is the local calendar day predicted; `day_of_forecast` is
    the lead day at fetch time (0 = today).
    """

    __tablename__ = "forecasts"

    source = Column(String(10), nullable=False, index=True, comment="wu or bom")
    fetched_at = Column(DateTime(timezone=True), nullable=False, comment="Fetch instant (UTC)")
    valid_date = Column(Date, nullable=False, index=True, comment="Local calendar day predicted")
    day_of_forecast = Column(Integer, nullable=False, comment="Lead day (0 = today)")

    temp_max = Column(Float, nullable=True, comment="Forecast maximum in °C")
    temp_min = Column(Float, nullable=True, comment="Forecast minimum in °C")
    humidity = Column(Integer, nullable=True, comment="Forecast humidity %")
    precip_chance = Column(Integer, nullable=True, comment="Chance of precipitation %")
    precip_amount = Column(Float, nullable=True, comment="Forecast precipitation in mm")
    precip_range = Column(String(30), nullable=True, comment="Precipitation range text, e.g. '0 to 2 mm'")
    wind_speed = Column(Float, nullable=True, comment="Forecast wind speed in m/s")
    wind_direction = Column(String(10), nullable=True, comment="Forecast wind direction")
    narrative = Column(Text, nullable=True, comment="Provider narrative text")
    location_id = Column(String(50), nullable=True, comment="Provider geocode or area code")

    __table_args__ = (
        UniqueConstraint('source', 'fetched_at', 'valid_date', name='uq_forecast_source_fetch_date'),
        Index('idx_forecast_valid_source', 'valid_date', 'source'),
    )

    def __repr__(self):
        return (
            f"<Forecast(source='{self.source}', valid_date='{self.valid_date}', "
            f"day={self.day_of_forecast}, max={self.temp_max}, min={self.temp_min})>"
        )
