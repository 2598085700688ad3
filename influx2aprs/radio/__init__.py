from .aprs_formatter import format_weather_report
from .aprs_is_client import APRSISClient, APRSFrame, APRSError, aprs_passcode

__all__ = ['format_weather_report', 'APRSISClient', 'APRSFrame', 'APRSError', 'aprs_passcode']
