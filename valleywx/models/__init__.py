# Database models package

from valleywx.models.base import BaseModel
from valleywx.models.station import Station
from valleywx.models.observation import Observation
from valleywx.models.forecast import Forecast
from valleywx.models.daily_summary import DailySummary
from valleywx.models.verification import ForecastVerification
from valleywx.models.correction_stat import CorrectionStat
from valleywx.models.displayed_forecast import DisplayedForecast
from valleywx.models.nowcast_log import NowcastLog

__all__ = [
    "BaseModel",
    "Station",
    "Observation",
    "Forecast",
    "DailySummary",
    "ForecastVerification",
    "CorrectionStat",
    "DisplayedForecast",
    "NowcastLog",
]

# Configure all mappers after all models are imported
# This resolves bidirectional relationships defined with string references
from sqlalchemy.orm import configure_mappers
configure_mappers()
