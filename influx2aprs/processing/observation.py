"""Observation and sample types shared by the reader and the transformer."""

from dataclasses import dataclass
from datetime import datetime
from typing import NamedTuple, Optional


class SampleTuple(NamedTuple):
    """A single (field, value, time) row read from the store."""
    field: str
    value: float
    time: Optional[datetime]


@dataclass
class Observation:
    """Weather observation assembled over one polling cycle.

    Numeric fields are ``None`` until a sample sets them. ``timestamp`` is
    ``None`` until the first sample of the cycle is seen.
    """
    lat: float = 0.0
    lon: float = 0.0
    comment: str = ""
    timestamp: Optional[datetime] = None
    temperature: Optional[int] = None
    humidity: Optional[int] = None
    solar_radiation: Optional[int] = None
    wind_direction: Optional[int] = None
    wind_gust: Optional[int] = None
    wind_speed: Optional[int] = None

    def is_observed(self) -> bool:
        return self.timestamp is not None


class DedupState:
    """Timestamp of the last observation handed to the transmitter."""

    def __init__(self, last_timestamp: Optional[datetime] = None) -> None:
        self.last_timestamp = last_timestamp

    def is_duplicate(self, timestamp: Optional[datetime]) -> bool:
        return timestamp == self.last_timestamp

    def commit(self, timestamp: datetime) -> None:
        self.last_timestamp = timestamp

    def __repr__(self) -> str:
        return f"DedupState(last_timestamp={self.last_timestamp!r})"
