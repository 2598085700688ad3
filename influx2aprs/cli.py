"""Polling loop and command line entry point for the InfluxDB to APRS-IS gateway."""

import sys
import time
import logging
import signal
import threading
from enum import Enum
from typing import Optional

from .config import ConfigManager, ConfigError
from .database import InfluxDBReader, InfluxDBError
from .processing import DataProcessor, DedupState
from .radio import APRSISClient, APRSError, format_weather_report


class CycleResult(Enum):
    """Outcome of a single polling cycle."""
    SENT = "sent"
    SUPPRESSED = "suppressed"
    QUERY_FAILED = "query_failed"
    SEND_FAILED = "send_failed"


def setup_logging(config: ConfigManager, debug: bool = False) -> None:
    """Setup logging configuration."""
    log_config = config.get_logging_config()
    level = 'DEBUG' if debug else str(log_config.get('level') or 'INFO').upper()

    handlers = [logging.StreamHandler()]
    if log_config.get('file'):
        handlers.append(logging.FileHandler(log_config['file']))

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=log_config.get('format') or '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


class Influx2APRSApp:
    """Polls InfluxDB and forwards new weather observations to APRS-IS."""

    def __init__(self, config: ConfigManager,
                 influxdb_reader: Optional[InfluxDBReader] = None,
                 data_processor: Optional[DataProcessor] = None,
                 aprs_client: Optional[APRSISClient] = None,
                 run_once: bool = False) -> None:
        """Initialize the gateway.

        Args:
            config: Loaded configuration
            influxdb_reader: Reader to use (created from config if None)
            data_processor: Transformer to use (created from config if None)
            aprs_client: Transmitter to use (created from config if None)
            run_once: Stop after the first successful transmission
        """
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.interval = config.get_interval()
        self.run_once = run_once
        self.state = DedupState()
        self.running = False
        self._stop_event = threading.Event()

        self.data_processor = data_processor or DataProcessor(config)
        self.influxdb_reader = influxdb_reader or InfluxDBReader(config)
        self.aprs_client = aprs_client or APRSISClient(config)

        self.logger.info("InfluxDB to APRS-IS gateway initialized")

    def install_signal_handlers(self) -> None:
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def _signal_handler(self, signum, frame) -> None:
        """Handle shutdown signals."""
        self.logger.info(f"Received signal {signum}, shutting down gracefully...")
        self.running = False
        self._stop_event.set()

    def run_single_cycle(self) -> CycleResult:
        """Query, transform and, if there is a new observation, transmit it."""
        try:
            samples = self.influxdb_reader.query_samples(self.interval * 2)
            observation = self.data_processor.build_observation(samples, self.state)
        except InfluxDBError as e:
            self.logger.error(f"Query error: {e}")
            return CycleResult.QUERY_FAILED

        if observation is None:
            return CycleResult.SUPPRESSED

        # the dedup state is already committed; a failed send is not retried
        try:
            frame = self.aprs_client.send_text(format_weather_report(observation))
        except APRSError as e:
            self.logger.error(f"APRS-IS error: {e}")
            return CycleResult.SEND_FAILED

        self.logger.info(f"Sent to APRS-IS: {frame}")
        return CycleResult.SENT

    def run_continuous(self) -> bool:
        """Run cycles one interval apart, starting immediately.

        Returns:
            True if run-once mode finished with a successful transmission
        """
        interval = self.interval.total_seconds()
        self.logger.info(f"Starting polling with {interval:g}s interval")
        self.running = True
        self._stop_event.clear()

        while self.running:
            start_time = time.monotonic()

            try:
                result = self.run_single_cycle()
                self.logger.debug(f"Cycle finished: {result.value}")
            except Exception as e:
                self.logger.exception(f"Unexpected error in polling cycle: {e}")
                result = None

            if result is CycleResult.SENT and self.run_once:
                self.running = False
                return True

            elapsed = time.monotonic() - start_time
            sleep_time = max(0.0, interval - elapsed)

            if sleep_time > 0 and self.running:
                self.logger.debug(f"Sleeping for {sleep_time:.1f} seconds")
                self._stop_event.wait(sleep_time)

        self.logger.info("Polling stopped")
        return False

    def cleanup(self) -> None:
        """Cleanup resources."""
        if self.influxdb_reader:
            self.influxdb_reader.close()

        self.logger.info("Gateway shutdown complete")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.cleanup()


def main(argv=None):
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description='Send InfluxDB weather station data to APRS-IS')
    parser.add_argument('--config', '-c', help='Path to configuration file')
    parser.add_argument('--debug', '-d', action='store_true',
                        help='Enable debug output')
    parser.add_argument('--once', '-o', action='store_true',
                        help='Exit after the first successful transmission')
    parser.add_argument('--print-config', '-P', action='store_true',
                        help='Print the effective configuration then exit')

    args = parser.parse_args(argv)

    try:
        config = ConfigManager(args.config)
    except (ConfigError, FileNotFoundError) as e:
        print(f"Failed to load configuration: {e}", file=sys.stderr)
        sys.exit(1)

    if args.print_config:
        print(config.to_yaml(), end='')
        sys.exit(0)

    if args.debug:
        print(config.to_yaml(), end='')

    setup_logging(config, args.debug)
    logger = logging.getLogger(__name__)
    logger.info(f"Using configuration file {config.config_path or '(built-in defaults)'}")

    try:
        app = Influx2APRSApp(config, run_once=args.once)
    except Exception as e:
        logger.error(f"Failed to initialize gateway: {e}")
        sys.exit(1)

    if args.debug:
        logger.debug(f"InfluxDB source: {app.influxdb_reader.get_database_info()}")

    with app:
        app.install_signal_handlers()
        app.run_continuous()

    sys.exit(0)

