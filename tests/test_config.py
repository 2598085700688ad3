"""Tests for configuration manager."""

import pytest
import tempfile
import os
import yaml
from datetime import timedelta
from unittest.mock import patch

from influx2aprs.config.config_manager import ConfigManager, ConfigError, parse_duration


def write_config(config_data):
    """Write config data to a temporary YAML file and return its path."""
    with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
        if isinstance(config_data, str):
            f.write(config_data)
        else:
            yaml.dump(config_data, f)
        return f.name


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Keep the developer's environment and working directory out of the tests."""
    for var in ('CONFIG_PATH', 'CALLSIGN', 'SSID', 'INTERVAL', 'LAT', 'LON', 'COMMENT',
                'INFLUXDB_URL', 'INFLUXDB_DB', 'INFLUXDB_RP', 'INFLUXDB_MEASUREMENT',
                'INFLUXDB_STATION', 'INFLUXDB_TOKEN', 'INFLUXDB_ORG', 'LOG_LEVEL'):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


class TestParseDuration:
    """Test cases for Go-style duration parsing."""

    def test_minutes(self):
        assert parse_duration('10m') == timedelta(minutes=10)

    def test_compound(self):
        assert parse_duration('1h30m') == timedelta(hours=1, minutes=30)
        assert parse_duration('1m30s') == timedelta(seconds=90)

    def test_fractional_and_milliseconds(self):
        assert parse_duration('1.5h') == timedelta(minutes=90)
        assert parse_duration('250ms') == timedelta(milliseconds=250)

    def test_zero(self):
        assert parse_duration('0') == timedelta(0)

    @pytest.mark.parametrize('value', ['', '10', 'ten minutes', '10x', 'm10', '10m garbage'])
    def test_invalid(self, value):
        with pytest.raises(ConfigError, match="invalid duration"):
            parse_duration(value)


class TestConfigManager:
    """Test cases for ConfigManager."""

    def test_defaults_without_file(self):
        """Test built-in defaults when no config file exists."""
        config = ConfigManager()

        assert config.config_path is None
        assert config.get_interval() == timedelta(minutes=10)
        assert config.get('ssid') == 13
        assert config.get('influxdb.db') == 'rtl_433_wx'
        assert config.get('influxdb.rp') == 'autogen'
        assert config.get('influxdb.measurement') == 'Fineoffset-WH24'
        assert config.get('influxdb.station') == '10'
        assert config.get_aprs_config()['server'] == 'rotate.aprs.net'
        assert config.get_aprs_config()['port'] == 14580

    def test_load_config_merges_defaults(self):
        """Test that a partial config file is merged over the defaults."""
        config_path = write_config({
            'callsign': 'N0CALL',
            'lat': 40.7128,
            'lon': -74.006,
            'interval': '5m',
            'influxdb': {'url': 'http://influx:8086', 'station': 42},
        })

        try:
            config = ConfigManager(config_path)
            assert config.get_interval() == timedelta(minutes=5)
            assert config.get('influxdb.url') == 'http://influx:8086'
            assert config.get('influxdb.station') == '42'
            # untouched defaults survive the merge
            assert config.get('influxdb.db') == 'rtl_433_wx'

            station = config.get_station_config()
            assert station['callsign'] == 'N0CALL'
            assert station['ssid'] == 13
            assert station['lat'] == 40.7128
            assert station['lon'] == -74.006
        finally:
            os.unlink(config_path)

    def test_config_file_not_found(self):
        """Test handling of missing configuration file."""
        with pytest.raises(FileNotFoundError):
            ConfigManager('/nonexistent/config.yaml')

    def test_config_path_env(self, monkeypatch):
        """Test locating the config file through CONFIG_PATH."""
        config_path = write_config({'callsign': 'N0CALL'})

        try:
            monkeypatch.setenv('CONFIG_PATH', config_path)
            config = ConfigManager()
            assert config.config_path == os.path.abspath(config_path)
            assert config.get('callsign') == 'N0CALL'
        finally:
            os.unlink(config_path)

    def test_env_override(self):
        """Test environment variable override."""
        config_path = write_config({'callsign': 'N0CALL', 'influxdb': {'url': 'http://a:8086'}})

        try:
            with patch.dict(os.environ, {'INFLUXDB_URL': 'http://b:8086', 'SSID': '7',
                                         'LAT': '12.5', 'INTERVAL': '2m'}):
                config = ConfigManager(config_path)
                assert config.get('influxdb.url') == 'http://b:8086'
                assert config.get('ssid') == 7
                assert config.get('lat') == 12.5
                assert config.get_interval() == timedelta(minutes=2)
        finally:
            os.unlink(config_path)

    def test_get_with_default(self):
        """Test getting configuration with default values."""
        config = ConfigManager()
        assert config.get('nonexistent.key', 'default') == 'default'
        assert config.get('influxdb.nonexistent', 123) == 123

    def test_invalid_interval(self):
        """Test that a bad interval is fatal."""
        config_path = write_config({'interval': 'often'})

        try:
            with pytest.raises(ConfigError, match="invalid duration"):
                ConfigManager(config_path)
        finally:
            os.unlink(config_path)

    def test_non_positive_interval(self):
        config_path = write_config({'interval': '0'})

        try:
            with pytest.raises(ConfigError, match="interval must be positive"):
                ConfigManager(config_path)
        finally:
            os.unlink(config_path)

    def test_invalid_coordinates(self):
        config_path = write_config({'lat': 'north'})

        try:
            with pytest.raises(ConfigError, match="lat must be a number"):
                ConfigManager(config_path)
        finally:
            os.unlink(config_path)

    def test_invalid_yaml(self):
        """Test that an unparseable config file is fatal."""
        config_path = write_config("callsign: [unclosed\n")

        try:
            with pytest.raises(ConfigError, match="Failed to load configuration file"):
                ConfigManager(config_path)
        finally:
            os.unlink(config_path)

    def test_non_mapping_yaml(self):
        config_path = write_config("- just\n- a list\n")

        try:
            with pytest.raises(ConfigError, match="must contain a mapping"):
                ConfigManager(config_path)
        finally:
            os.unlink(config_path)

    def test_to_yaml_round_trips_effective_config(self):
        """Test rendering of the effective configuration."""
        config_path = write_config({'callsign': 'N0CALL', 'interval': '15m'})

        try:
            config = ConfigManager(config_path)
            rendered = yaml.safe_load(config.to_yaml())
            assert rendered['callsign'] == 'N0CALL'
            assert rendered['interval'] == '15m'
            assert rendered['influxdb']['measurement'] == 'Fineoffset-WH24'
        finally:
            os.unlink(config_path)
