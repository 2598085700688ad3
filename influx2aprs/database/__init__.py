from .influxdb_client import InfluxDBReader, InfluxDBError

__all__ = ['InfluxDBReader', 'InfluxDBError']
