"""Tests for the InfluxDB to APRS-IS weather gateway."""
