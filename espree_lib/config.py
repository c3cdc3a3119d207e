"""Collector configuration."""

import os
import socket
from dataclasses import dataclass, field

from espree_lib import protocol
from espree_lib.models import TerminalGeometry


def _default_name() -> str:
    return socket.gethostname()


@dataclass
class CollectorConfig:
    """Settings for one Espree panel.

    Attributes:
        name: Instrument name reported as the ``name`` tag. Defaults to the
              host name of the collecting machine.
        port: Serial port device (e.g., "COM1" or "/dev/ttyUSB0").
        baud: Baud rate (panel runs at 9600 8N1).
        read_timeout_s: Serial read timeout; a timed-out read ends the window.
        key_delay_s: Fixed wait after each navigation key.
        response_window: Bytes decoded after navigation.
        geometry: Terminal size.
    """

    name: str = field(default_factory=_default_name)
    port: str = protocol.DEFAULT_PORT
    baud: int = protocol.DEFAULT_BAUD
    read_timeout_s: float = 5.0
    key_delay_s: float = protocol.KEY_DELAY_S
    response_window: int = protocol.RESPONSE_WINDOW
    geometry: TerminalGeometry = field(default_factory=TerminalGeometry)

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if not self.port:
            raise ValueError("port must not be empty")
        if self.baud <= 0:
            raise ValueError(f"baud must be positive, got {self.baud}")
        if self.read_timeout_s <= 0:
            raise ValueError(f"read_timeout_s must be positive, got {self.read_timeout_s}")
        if self.key_delay_s < 0:
            raise ValueError(f"key_delay_s must be >= 0, got {self.key_delay_s}")
        if self.response_window <= 0:
            raise ValueError(f"response_window must be positive, got {self.response_window}")

    @classmethod
    def from_env(cls) -> "CollectorConfig":
        """Build configuration from environment variables.

        ESPREE_NAME, SERIAL_PORT, SERIAL_BAUD, ESPREE_READ_TIMEOUT_S,
        ESPREE_KEY_DELAY_S and ESPREE_RESPONSE_WINDOW override the defaults.
        """
        return cls(
            name=os.getenv("ESPREE_NAME") or _default_name(),
            port=os.getenv("SERIAL_PORT", protocol.DEFAULT_PORT),
            baud=int(os.getenv("SERIAL_BAUD", str(protocol.DEFAULT_BAUD))),
            read_timeout_s=float(os.getenv("ESPREE_READ_TIMEOUT_S", "5.0")),
            key_delay_s=float(os.getenv("ESPREE_KEY_DELAY_S", str(protocol.KEY_DELAY_S))),
            response_window=int(
                os.getenv("ESPREE_RESPONSE_WINDOW", str(protocol.RESPONSE_WINDOW))
            ),
        )
