"""Main application for the InfluxDB to APRS-IS weather gateway."""

from influx2aprs.cli import main


if __name__ == '__main__':
    main()
