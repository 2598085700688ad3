"""Configuration manager for the InfluxDB to APRS-IS gateway."""

import os
import re
import yaml
from datetime import timedelta
from typing import Dict, Any, Optional


DEFAULT_CONFIG = """
callsign: ""
ssid: 13
interval: 10m
lat: 0.0
lon: 0.0
comment: github.com/acobaugh/aprs-tools
influxdb:
  url: http://localhost:8086
  db: rtl_433_wx
  measurement: Fineoffset-WH24
  rp: autogen
  station: "10"
  token: ""
  org: ""
  timeout: 10000
aprs:
  server: rotate.aprs.net
  port: 14580
  timeout: 15
logging:
  level: INFO
  format: "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
  file: null
"""

_DURATION_UNITS = {
    'ns': 1e-9,
    'us': 1e-6,
    'µs': 1e-6,
    'ms': 1e-3,
    's': 1.0,
    'm': 60.0,
    'h': 3600.0,
}

_DURATION_PART = re.compile(r'(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)')


class ConfigError(Exception):
    """Raised when the configuration cannot be parsed or is invalid."""
    pass


def parse_duration(value: str) -> timedelta:
    """Parse a Go-style duration string such as ``10m``, ``1h30m`` or ``90s``.

    Args:
        value: Duration string

    Returns:
        Parsed duration

    Raises:
        ConfigError: If the string is not a valid duration
    """
    text = str(value).strip()
    if not text:
        raise ConfigError("invalid duration: empty string")

    sign = 1
    if text[0] in '+-':
        sign = -1 if text[0] == '-' else 1
        text = text[1:]

    if text == '0':
        return timedelta(0)

    seconds = 0.0
    position = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        number, unit = match.groups()
        seconds += float(number) * _DURATION_UNITS[unit]
        position = match.end()

    if position == 0 or position != len(text):
        raise ConfigError(f"invalid duration: {value!r}")

    return timedelta(seconds=sign * seconds)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into base recursively, returning base."""
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_path: Optional[str] = None) -> None:
        """Initialize configuration manager.

        Args:
            config_path: Path to configuration file. If None, looks at
                        CONFIG_PATH and config.yaml in the current directory,
                        falling back to built-in defaults.
        """
        if config_path and not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        self._config_path = config_path or self._find_config_file()
        self._config: Dict[str, Any] = {}
        self._interval: Optional[timedelta] = None
        self._load_config()

    def _find_config_file(self) -> Optional[str]:
        """Find configuration file in standard locations."""
        possible_paths = [
            os.environ.get('CONFIG_PATH'),
            'config.yaml',
        ]

        for path in possible_paths:
            if path and os.path.exists(path):
                return os.path.abspath(path)

        return None

    def _load_config(self) -> None:
        """Load defaults, merge the YAML file and apply environment variables."""
        try:
            self._config = yaml.safe_load(DEFAULT_CONFIG)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse default configuration: {e}")

        if self._config_path:
            try:
                with open(self._config_path, 'r') as file:
                    file_config = yaml.safe_load(file) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(f"Failed to load configuration file {self._config_path}: {e}")

            if not isinstance(file_config, dict):
                raise ConfigError(f"Configuration file {self._config_path} must contain a mapping")

            _deep_merge(self._config, file_config)

        # Override with environment variables
        self._apply_env_overrides()

        # Validate configuration
        self._validate_config()

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides."""
        env_mappings = {
            'CALLSIGN': ['callsign'],
            'SSID': ['ssid'],
            'INTERVAL': ['interval'],
            'LAT': ['lat'],
            'LON': ['lon'],
            'COMMENT': ['comment'],
            'INFLUXDB_URL': ['influxdb', 'url'],
            'INFLUXDB_DB': ['influxdb', 'db'],
            'INFLUXDB_RP': ['influxdb', 'rp'],
            'INFLUXDB_MEASUREMENT': ['influxdb', 'measurement'],
            'INFLUXDB_STATION': ['influxdb', 'station'],
            'INFLUXDB_TOKEN': ['influxdb', 'token'],
            'INFLUXDB_ORG': ['influxdb', 'org'],
            'LOG_LEVEL': ['logging', 'level'],
        }

        for env_var, config_path in env_mappings.items():
            value = os.environ.get(env_var)
            if value:
                self._set_nested_value(config_path, value)

    def _set_nested_value(self, path: list, value: str) -> None:
        """Set nested configuration value."""
        current = self._config
        for key in path[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]
        current[path[-1]] = value

    def _validate_config(self) -> None:
        """Validate and normalize configuration values."""
        for section in ('influxdb', 'aprs', 'logging'):
            if not isinstance(self._config.get(section), dict):
                raise ConfigError(f"Configuration section '{section}' must be a mapping")

        self._interval = parse_duration(self._config.get('interval', ''))
        if self._interval <= timedelta(0):
            raise ConfigError(f"interval must be positive, got {self._config['interval']!r}")

        for key in ('lat', 'lon'):
            try:
                self._config[key] = float(self._config.get(key) or 0.0)
            except (TypeError, ValueError):
                raise ConfigError(f"{key} must be a number, got {self._config.get(key)!r}")

        try:
            self._config['ssid'] = int(self._config.get('ssid') or 0)
        except (TypeError, ValueError):
            raise ConfigError(f"ssid must be an integer, got {self._config.get('ssid')!r}")

        # rtl_433 writes the station id as a tag, which is always a string
        self._config['influxdb']['station'] = str(self._config['influxdb'].get('station', ''))

    def get(self, path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.

        Args:
            path: Configuration path using dot notation (e.g., 'influxdb.url')
            default: Default value if path not found

        Returns:
            Configuration value or default
        """
        keys = path.split('.')
        current = self._config

        try:
            for key in keys:
                current = current[key]
            return current
        except (KeyError, TypeError):
            return default

    def get_interval(self) -> timedelta:
        """Get the polling interval."""
        return self._interval

    def get_station_config(self) -> Dict[str, Any]:
        """Get station identity and location configuration."""
        return {
            'callsign': str(self._config.get('callsign') or ''),
            'ssid': self._config['ssid'],
            'lat': self._config['lat'],
            'lon': self._config['lon'],
            'comment': str(self._config.get('comment') or ''),
        }

    def get_influxdb_config(self) -> Dict[str, Any]:
        """Get InfluxDB configuration."""
        return self._config['influxdb'].copy()

    def get_aprs_config(self) -> Dict[str, Any]:
        """Get APRS-IS configuration."""
        return self._config['aprs'].copy()

    def get_logging_config(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return self._config['logging'].copy()

    def to_yaml(self) -> str:
        """Render the effective configuration as YAML."""
        return yaml.safe_dump(self._config, default_flow_style=False, sort_keys=True)

    @property
    def config_path(self) -> Optional[str]:
        """Get path to configuration file."""
        return self._config_path
