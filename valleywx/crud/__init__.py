# CRUD operations package

from valleywx.crud.base import CRUDBase
from valleywx.crud.weather import (
    CRUDStation, CRUDObservation, CRUDDailySummary,
    station, observation, daily_summary,
)
from valleywx.crud.forecast import (
    CRUDForecast, CRUDVerification, CRUDCorrectionStat, CRUDDisplayedForecast, CRUDNowcastLog,
    forecast, verification, correction_stat, displayed_forecast, nowcast_log,
)

__all__ = [
    "CRUDBase",
    "CRUDStation", "CRUDObservation", "CRUDDailySummary",
    "station", "observation", "daily_summary",
    "CRUDForecast", "CRUDVerification", "CRUDCorrectionStat", "CRUDDisplayedForecast", "CRUDNowcastLog",
    "forecast", "verification", "correction_stat", "displayed_forecast", "nowcast_log",
]
