"""InfluxDB reader for the latest weather station samples."""

import logging
from datetime import timedelta
from typing import Dict, Any, Iterator, Optional

from influxdb_client import InfluxDBClient
from influxdb_client.rest import ApiException

from ..config.config_manager import ConfigManager
from ..processing.observation import SampleTuple


class InfluxDBError(Exception):
    """Raised when InfluxDB operations fail."""
    pass


def format_flux_duration(duration: timedelta) -> str:
    """Render a timedelta as a Flux duration literal, e.g. ``1200s``."""
    total_ms = int(round(duration.total_seconds() * 1000))
    if total_ms % 1000:
        return f"{total_ms}ms"
    return f"{total_ms // 1000}s"


class InfluxDBReader:
    """Queries InfluxDB for one recent sample of every station field."""

    def __init__(self, config: ConfigManager, client: Optional[InfluxDBClient] = None) -> None:
        """Initialize InfluxDB reader with configuration.

        Args:
            config: Configuration manager instance
            client: Pre-built client (used by tests); created from config if None
        """
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.influxdb_config = config.get_influxdb_config()
        self.client: Optional[InfluxDBClient] = client
        self.query_api = None

        self._initialize_client()

    def _initialize_client(self) -> None:
        """Initialize InfluxDB client and query API."""
        try:
            if self.client is None:
                self.client = InfluxDBClient(
                    url=self.influxdb_config['url'],
                    token=self.influxdb_config.get('token') or '',
                    org=self.influxdb_config.get('org') or '',
                    timeout=self.influxdb_config.get('timeout', 10000)
                )
            self.query_api = self.client.query_api()
            self.logger.debug(f"InfluxDB client created for {self.influxdb_config['url']}")

        except Exception as e:
            self.logger.error(f"Failed to initialize InfluxDB client: {e}")
            raise InfluxDBError(f"InfluxDB initialization failed: {e}")

    @property
    def bucket(self) -> str:
        """Bucket name in InfluxDB 1.8 ``database/retention-policy`` form."""
        return f"{self.influxdb_config['db']}/{self.influxdb_config['rp']}"

    def build_query(self, lookback: timedelta) -> str:
        """Build the Flux query for one sample of each field.

        Rows come back time ascending, so ``limit(n:1)`` picks the oldest
        sample of each field inside the window rather than the newest. The
        window is only two intervals wide, and deduplication keys on that
        first timestamp, so swapping in ``last()`` changes which
        observations are sent.

        Args:
            lookback: How far back from now to search

        Returns:
            Flux query text
        """
        return (
            f'from(bucket: "{self.bucket}")\n'
            f'  |> range(start: -{format_flux_duration(lookback)})\n'
            f'  |> filter(fn: (r) => r._measurement == "{self.influxdb_config["measurement"]}"'
            f' and r.id == "{self.influxdb_config["station"]}")\n'
            f'  |> limit(n:1)'
        )

    def query_samples(self, lookback: timedelta) -> Iterator[SampleTuple]:
        """Stream one sample per field from within the lookback window.

        The returned iterator is lazy and can only be consumed once.

        Args:
            lookback: How far back from now to search

        Returns:
            Iterator of SampleTuple

        Raises:
            InfluxDBError: If the query fails, either when issued or while
                the result stream is consumed
        """
        if not self.query_api:
            raise InfluxDBError("InfluxDB query API not initialized")

        query = self.build_query(lookback)
        self.logger.debug(f"Running query: {query}")

        try:
            records = self.query_api.query_stream(query)
        except ApiException as e:
            raise InfluxDBError(f"InfluxDB API error: {e}")
        except Exception as e:
            raise InfluxDBError(f"InfluxDB query failed: {e}")

        return self._iter_samples(records)

    def _iter_samples(self, records) -> Iterator[SampleTuple]:
        """Convert FluxRecords into SampleTuples, translating stream errors."""
        try:
            for record in records:
                value = record.get_value()
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    self.logger.debug(f"Skipping non-numeric value for {record.get_field()}: {value!r}")
                    continue
                yield SampleTuple(record.get_field(), float(value), record.get_time())
        except ApiException as e:
            raise InfluxDBError(f"InfluxDB API error while reading results: {e}")
        except InfluxDBError:
            raise
        except Exception as e:
            raise InfluxDBError(f"InfluxDB result error: {e}")

    def test_connection(self) -> bool:
        """Test InfluxDB connection.

        Returns:
            True if connection is healthy, False otherwise
        """
        try:
            if not self.client:
                return False

            return bool(self.client.ping())

        except Exception as e:
            self.logger.error(f"InfluxDB connection test failed: {e}")
            return False

    def get_database_info(self) -> Dict[str, Any]:
        """Describe the configured data source."""
        return {
            "url": self.influxdb_config['url'],
            "bucket": self.bucket,
            "measurement": self.influxdb_config['measurement'],
            "station": self.influxdb_config['station'],
            "reachable": self.test_connection(),
        }

    def close(self) -> None:
        """Close InfluxDB client connection."""
        try:
            if self.client:
                self.client.close()
                self.logger.info("InfluxDB connection closed")
        except Exception as e:
            self.logger.error(f"Error closing InfluxDB connection: {e}")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
