"""
Observation quality control.

Range checks run at ingestion time. Readings are never rejected here; the
flags are stored with the observation and anything flagged is excluded from
the "clean" set used for summaries and verification.
"""

from typing import Any, List, Mapping, Optional

from valleywx.models.observation import CLEAN_QC_STATUSES

FLAG_TEMP_OUT_OF_RANGE = "temp_out_of_range"
FLAG_HUMIDITY_INVALID = "humidity_invalid"
FLAG_WIND_DIR_INVALID = "wind_dir_invalid"
FLAG_WIND_SPEED_UNLIKELY = "wind_speed_unlikely"
FLAG_PRESSURE_OUT_OF_RANGE = "pressure_out_of_range"
FLAG_SOLAR_NEGATIVE = "solar_negative"
FLAG_PRECIP_NEGATIVE = "precip_negative"

# Valley climate limits
TEMP_RANGE = (-10.0, 50.0)
PRESSURE_RANGE = (900.0, 1100.0)
MAX_WIND_SPEED = 200.0


def _outside(value: Optional[float], low: float, high: float) -> bool:
    return value is not None and (value < low or value > high)


def validate_observation(obs: Mapping[str, Any]) -> List[str]:
    """
    Run range checks over an observation payload.

    Args:
        obs: Observation fields keyed by column name

    Returns:
        List of quality flags (empty when the reading looks plausible)
    """
    flags = []

    if _outside(obs.get("temperature"), *TEMP_RANGE):
        flags.append(FLAG_TEMP_OUT_OF_RANGE)
    if _outside(obs.get("humidity"), 0, 100):
        flags.append(FLAG_HUMIDITY_INVALID)
    if _outside(obs.get("wind_direction"), 0, 360):
        flags.append(FLAG_WIND_DIR_INVALID)
    if _outside(obs.get("wind_speed"), 0, MAX_WIND_SPEED):
        flags.append(FLAG_WIND_SPEED_UNLIKELY)
    if _outside(obs.get("pressure"), *PRESSURE_RANGE):
        flags.append(FLAG_PRESSURE_OUT_OF_RANGE)

    solar = obs.get("solar_radiation")
    if solar is not None and solar < 0:
        flags.append(FLAG_SOLAR_NEGATIVE)

    precip_rate = obs.get("precip_rate")
    precip_total = obs.get("precip_total")
    if (precip_rate is not None and precip_rate < 0) or (precip_total is not None and precip_total < 0):
        flags.append(FLAG_PRECIP_NEGATIVE)

    return flags


def is_clean(quality_flags: Optional[List[str]], qc_status: Optional[int]) -> bool:
    """True iff no quality flags are set and the upstream QC status is valid or verified."""
    return not quality_flags and qc_status in CLEAN_QC_STATUSES
