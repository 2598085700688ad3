"""APRS-IS client for transmitting weather reports."""

import socket
import logging
from typing import Optional

from .. import __version__
from ..config.config_manager import ConfigManager


class APRSError(Exception):
    """Raised when APRS-IS operations fail."""
    pass


def aprs_passcode(callsign: str) -> int:
    """Compute the APRS-IS passcode for a callsign (SSID is ignored)."""
    base = callsign.split('-', 1)[0].upper()
    code = 0x73e2
    for i, char in enumerate(base):
        code ^= ord(char) << (8 if i % 2 == 0 else 0)
    return code & 0x7fff


class APRSFrame:
    """A TNC2-style APRS packet."""

    def __init__(self, callsign: str, ssid: int, text: str,
                 destination: str = 'APRS', path: str = 'TCPIP*') -> None:
        self.callsign = callsign.upper()
        self.ssid = ssid
        self.destination = destination
        self.path = path
        self.text = text

    @property
    def source(self) -> str:
        if self.ssid:
            return f"{self.callsign}-{self.ssid}"
        return self.callsign

    def __str__(self) -> str:
        return f"{self.source}>{self.destination},{self.path}:{self.text}"


class APRSISClient:
    """Sends frames to an APRS-IS server, one connection per send."""

    def __init__(self, config: ConfigManager) -> None:
        """Initialize APRS-IS client with configuration.

        Args:
            config: Configuration manager instance
        """
        self.config = config
        self.logger = logging.getLogger(__name__)
        aprs_config = config.get_aprs_config()
        self.server = aprs_config.get('server', 'rotate.aprs.net')
        self.port = int(aprs_config.get('port', 14580))
        self.timeout = float(aprs_config.get('timeout', 15))

    def build_frame(self, text: str) -> APRSFrame:
        """Build a frame from the configured station identity."""
        station = self.config.get_station_config()
        if not station['callsign']:
            raise APRSError("callsign is not configured")
        return APRSFrame(station['callsign'], station['ssid'], text)

    def login_line(self, frame: APRSFrame, passcode: Optional[int] = None) -> str:
        if passcode is None:
            passcode = aprs_passcode(frame.callsign)
        return f"user {frame.source} pass {passcode} vers influx2aprs {__version__}\r\n"

    def send(self, frame: APRSFrame) -> None:
        """Log in and send a single frame.

        Args:
            frame: Frame to transmit

        Raises:
            APRSError: If the connection or write fails
        """
        login = self.login_line(frame)
        packet = f"{frame}\r\n"

        try:
            with socket.create_connection((self.server, self.port), timeout=self.timeout) as sock:
                # server greets with a banner line
                try:
                    banner = sock.recv(1024)
                    self.logger.debug(f"APRS-IS banner: {banner!r}")
                except socket.timeout:
                    self.logger.debug("No banner received from APRS-IS server")

                sock.sendall(login.encode('ascii', errors='replace'))
                sock.sendall(packet.encode('ascii', errors='replace'))

        except OSError as e:
            raise APRSError(f"APRS-IS send to {self.server}:{self.port} failed: {e}")

        self.logger.debug(f"Sent frame to {self.server}:{self.port}")

    def send_text(self, text: str) -> APRSFrame:
        """Build a frame for text, send it and return it."""
        frame = self.build_frame(text)
        self.send(frame)
        return frame
