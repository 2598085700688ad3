"""Data processor that turns station samples into deduplicated observations."""

import math
import logging
from typing import Callable, Dict, Iterable, Optional, Tuple

from ..config.config_manager import ConfigManager
from .observation import DedupState, Observation, SampleTuple


MPS_TO_MPH = 2.23694

# lux / 126 = W/m^2
LUX_PER_WATT_M2 = 126


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def celsius_to_fahrenheit(celsius: float) -> int:
    return round_half_away(celsius * 1.8 + 32)


def lux_to_solar_radiation(lux: float) -> int:
    # Round the lux value first, then truncate the quotient.
    return int(round_half_away(lux) / LUX_PER_WATT_M2)


def mps_to_mph(mps: float) -> int:
    return round_half_away(mps * MPS_TO_MPH)


# rtl_433 field name -> (Observation attribute, conversion)
FIELD_CONVERSIONS: Dict[str, Tuple[str, Callable[[float], int]]] = {
    'temperature_C': ('temperature', celsius_to_fahrenheit),
    'humidity': ('humidity', round_half_away),
    'light_lux': ('solar_radiation', lux_to_solar_radiation),
    'wind_dir_deg': ('wind_direction', round_half_away),
    'wind_max_m_s': ('wind_gust', mps_to_mph),
    'wind_avg_m_s': ('wind_speed', mps_to_mph),
}


class DataProcessor:
    """Builds one Observation per cycle from a stream of samples."""

    def __init__(self, config: ConfigManager,
                 conversions: Optional[Dict[str, Tuple[str, Callable[[float], int]]]] = None) -> None:
        """Initialize data processor with configuration.

        Args:
            config: Configuration manager instance
            conversions: Field conversion table (defaults to FIELD_CONVERSIONS)
        """
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.conversions = conversions if conversions is not None else FIELD_CONVERSIONS

    def new_observation(self) -> Observation:
        """Create an empty observation carrying the station location and comment."""
        station = self.config.get_station_config()
        return Observation(
            lat=station['lat'],
            lon=station['lon'],
            comment=station['comment'],
        )

    def build_observation(self, samples: Iterable[SampleTuple],
                          state: DedupState) -> Optional[Observation]:
        """Assemble an observation from one cycle's samples.

        The first sample decides the observation timestamp. If it has no
        timestamp, or repeats the last committed one, the cycle is abandoned
        immediately and the remaining samples are never read. Otherwise every
        sample is converted into its observation field and, once the stream is
        exhausted, the timestamp is committed to ``state``.

        Args:
            samples: Samples for this cycle, consumed at most once
            state: Deduplication state carried between cycles

        Returns:
            The new observation, or None if the cycle produced nothing new
        """
        observation = self.new_observation()

        for sample in samples:
            if observation.timestamp is None:
                observation.timestamp = sample.time
                if observation.timestamp is None or state.is_duplicate(observation.timestamp):
                    self.logger.debug(
                        f"Skipping cycle: timestamp={observation.timestamp} last={state.last_timestamp}"
                    )
                    return None

            self.apply_sample(observation, sample)

        if not observation.is_observed():
            self.logger.debug("empty observation")
            return None

        state.commit(observation.timestamp)
        self.logger.debug(f"observation: {observation!r}")
        return observation

    def apply_sample(self, observation: Observation, sample: SampleTuple) -> None:
        """Convert a single sample into its observation field, if known."""
        mapping = self.conversions.get(sample.field)
        if mapping is None:
            return

        attribute, convert = mapping
        setattr(observation, attribute, convert(sample.value))
