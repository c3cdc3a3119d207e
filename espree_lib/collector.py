"""Gather cycle: navigate the panel menu, decode the screen, scrape fields."""

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from espree_lib import parsing, protocol
from espree_lib.config import CollectorConfig
from espree_lib.emulator import TerminalEmulator
from espree_lib.errors import ChannelError, FieldNotFound, TerminalError
from espree_lib.models import Reading
from espree_lib.screen import Snapshot
from espree_lib.transport import SerialLike, Transport

logger = logging.getLogger(__name__)

SerialFactory = Callable[[], SerialLike]


class EspreeCollector:
    """Collects one telemetry reading per call to gather().

    Each cycle opens the port, drives the menu to the status screen,
    decodes a fixed response window and scrapes the settled screen. The
    port is released on every exit path. There is no retry here: a failed
    cycle raises, and the next cycle starts again from a fresh connection.
    """

    def __init__(
        self,
        config: Optional[CollectorConfig] = None,
        serial_factory: Optional[SerialFactory] = None,
    ) -> None:
        """Initialize collector.

        Args:
            config: Panel settings. Defaults to CollectorConfig().
            serial_factory: Returns an already-open SerialLike (for testing).
                            If None, the configured port is opened with pyserial.
        """
        self._config = config or CollectorConfig()
        self._serial_factory = serial_factory
        self._last_reading: Optional[Reading] = None
        self._last_screen: Optional[Snapshot] = None

    @property
    def config(self) -> CollectorConfig:
        return self._config

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def last_reading(self) -> Optional[Reading]:
        return self._last_reading

    @property
    def last_screen(self) -> Optional[Snapshot]:
        """Settled screen from the most recent cycle that decoded cleanly."""
        return self._last_screen

    def gather(self) -> Reading:
        """Run one navigate-decode-scrape cycle.

        Returns:
            Reading tagged with the instrument name

        Raises:
            ChannelError: If the port cannot be opened, written or read
            TerminalError: If the response window cannot be decoded
            FieldNotFound: If a field is missing from the settled screen
        """
        cfg = self._config
        logger.info(f"[{cfg.name}] Gathering from {cfg.port}")

        try:
            transport = self._open_transport()
        except ChannelError as e:
            logger.error(f"[{cfg.name}] Failed to open serial port {cfg.port!r}: {e}")
            raise

        with transport:
            transport.flush_input()
            emulator = TerminalEmulator(transport, cfg.geometry)
            self._navigate(emulator)
            try:
                emulator.decode(cfg.response_window)
            except TerminalError as e:
                logger.error(f"[{cfg.name}] Failed to decode screen from {cfg.port!r}: {e}")
                raise
            screen = emulator.last_snapshot()

        self._last_screen = screen

        try:
            fields = parsing.parse_status_screen(screen.as_text())
        except FieldNotFound as e:
            logger.error(f"[{cfg.name}] Failed to parse data from serial port {cfg.port!r}: {e}")
            raise

        reading = Reading(ts=datetime.now(timezone.utc), name=cfg.name, fields=fields)
        self._last_reading = reading
        logger.info(f"[{cfg.name}] Gathered {reading.fields}")
        return reading

    def _open_transport(self) -> Transport:
        if self._serial_factory is not None:
            try:
                return Transport(self._serial_factory())
            except Exception as e:
                raise ChannelError(f"Failed to open {self._config.port}: {e}") from e
        return Transport.open(
            self._config.port, self._config.baud, self._config.read_timeout_s
        )

    def _navigate(self, emulator: TerminalEmulator) -> None:
        """Send the fixed keystroke sequence that brings up the status screen."""
        for key in protocol.NAVIGATION_KEYS:
            emulator.send_key(key)
            time.sleep(self._config.key_delay_s)
