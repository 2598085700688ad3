"""
InfluxDB to APRS-IS weather gateway

Polls InfluxDB for the latest readings of a single weather station and
sends them to the APRS-IS network as APRS weather reports.
"""

__version__ = "1.0.0"
__author__ = "Weather Monitor Team"
