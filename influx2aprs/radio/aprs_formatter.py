"""APRS weather report formatting."""

from datetime import datetime, timezone
from typing import Optional

from ..processing.observation import Observation


def _degrees_minutes(value: float, degree_width: int) -> str:
    """decimal degrees -> zero padded ``DDMM.mm``"""
    hundredths = int(round(abs(value) * 6000))
    degrees, minutes = divmod(hundredths, 6000)
    return f"{degrees:0{degree_width}d}{minutes // 100:02d}.{minutes % 100:02d}"


def format_position(lat: float, lon: float, symbol_table: str = '/', symbol: str = '_') -> str:
    """Uncompressed APRS position, ``ddmm.mmN/dddmm.mmW_`` for a weather station."""
    ns = 'N' if lat >= 0 else 'S'
    ew = 'E' if lon >= 0 else 'W'
    return f"{_degrees_minutes(lat, 2)}{ns}{symbol_table}{_degrees_minutes(lon, 3)}{ew}{symbol}"


def format_timestamp(timestamp: datetime) -> str:
    """Day/hour/minute zulu timestamp, ``DDHHMMz``."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc).strftime("%d%H%Mz")


def _field(value: Optional[int], width: int) -> str:
    if value is None:
        return '.' * width
    return f"{value:0{width}d}"


def _humidity(value: Optional[int]) -> str:
    if value is None:
        return ""
    # h00 means 100%
    if value >= 100:
        return "h00"
    return f"h{max(value, 1):02d}"


def _luminosity(value: Optional[int]) -> str:
    if value is None:
        return ""
    value = max(value, 0)
    if value >= 1000:
        return f"l{min(value - 1000, 999):03d}"
    return f"L{value:03d}"


def format_weather_report(observation: Observation) -> str:
    """Render an observation as an APRS position-with-timestamp weather report.

    Wind direction, speed, gust and temperature are mandatory in the report
    and render as dots when unset; humidity and luminosity are omitted.

    Args:
        observation: Observation with a timestamp

    Returns:
        APRS information field text
    """
    if observation.timestamp is None:
        raise ValueError("cannot format an observation without a timestamp")

    wind_direction = observation.wind_direction
    if wind_direction is not None:
        wind_direction %= 360

    return "".join([
        "@",
        format_timestamp(observation.timestamp),
        format_position(observation.lat, observation.lon),
        _field(wind_direction, 3),
        "/",
        _field(observation.wind_speed, 3),
        "g",
        _field(observation.wind_gust, 3),
        "t",
        _field(observation.temperature, 3),
        _humidity(observation.humidity),
        _luminosity(observation.solar_radiation),
        observation.comment or "",
    ])
