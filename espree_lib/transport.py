"""Serial transport layer for the Espree control panel."""

import logging
from typing import Protocol

from espree_lib.errors import ChannelError

logger = logging.getLogger(__name__)


class SerialLike(Protocol):
    """Protocol for serial port interface (allows test doubles)."""

    def write(self, data: bytes) -> int:
        """Write bytes to serial port."""
        ...

    def read(self, size: int = 1) -> bytes:
        """Read up to size bytes; fewer (or none) on timeout."""
        ...

    def flush(self) -> None:
        """Flush output buffer (force transmission)."""
        ...

    def reset_input_buffer(self) -> None:
        """Flush input buffer."""
        ...

    def close(self) -> None:
        """Close serial port."""
        ...

    @property
    def is_open(self) -> bool:
        """Check if port is open."""
        ...


class Transport:
    """Duplex byte channel over pyserial.

    Writes single keypress bytes and reads fixed-size response windows.
    Every I/O failure surfaces as ChannelError. Usable as a context manager
    so the port is released on every exit path.
    """

    def __init__(self, serial_port: SerialLike) -> None:
        """Initialize transport with a serial port instance.

        Args:
            serial_port: Object implementing SerialLike protocol
                        (e.g., serial.Serial or FakeEspree for testing)
        """
        self._port = serial_port

    @classmethod
    def open(
        cls, port: str, baud: int = 9600, timeout_s: float = 5.0
    ) -> "Transport":
        """Open a real serial port (requires pyserial).

        Args:
            port: Serial port device name (e.g., "COM1" or "/dev/ttyUSB0")
            baud: Baud rate. The panel runs at 9600 8N1.
            timeout_s: Read timeout in seconds. A read that times out
                       returns short, which ends the response window.

        Returns:
            Transport instance wrapping opened serial port

        Raises:
            ChannelError: If port cannot be opened
        """
        try:
            import serial  # type: ignore
        except ImportError as e:
            raise ChannelError("pyserial not installed. Run: pip install pyserial") from e

        try:
            ser = serial.Serial(
                port=port,
                baudrate=baud,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                timeout=timeout_s,
                rtscts=False,
                dsrdtr=False,
                xonxoff=False
            )
            logger.info(f"Opened serial port {port} at {baud} baud, timeout={timeout_s}s")
            return cls(ser)
        except Exception as e:
            raise ChannelError(f"Failed to open {port} at {baud} baud: {e}") from e

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the serial port."""
        if self._port.is_open:
            self._port.close()
            logger.info("Closed serial port")

    @property
    def is_open(self) -> bool:
        """Check if port is currently open."""
        return self._port.is_open

    def write_bytes(self, data: bytes) -> None:
        """Write raw bytes to port.

        Raises:
            ChannelError: If write fails
        """
        if not self._port.is_open:
            raise ChannelError("Serial port is not open")

        try:
            sent = self._port.write(data)
            self._port.flush()
            logger.debug(f"Sent {sent} bytes: {data!r}")
        except Exception as e:
            raise ChannelError(f"Failed to write to port: {e}") from e

    def read_window(self, size: int) -> bytes:
        """Read up to ``size`` bytes, stopping early on an empty read.

        An empty read means the port timed out or reached end of stream;
        either way the window is simply short, not an error.

        Args:
            size: Window size in bytes

        Returns:
            The bytes received (possibly fewer than size)

        Raises:
            ChannelError: If port is closed or read fails
        """
        if not self._port.is_open:
            raise ChannelError("Serial port is not open")

        buf = bytearray()
        try:
            while len(buf) < size:
                chunk = self._port.read(size - len(buf))
                if not chunk:
                    break
                buf.extend(chunk)
        except Exception as e:
            raise ChannelError(f"Failed to read from port: {e}") from e

        if len(buf) < size:
            logger.debug(f"Short read: {len(buf)}/{size} bytes")
        return bytes(buf)

    def flush_input(self) -> None:
        """Discard all pending input from the panel.

        Raises:
            ChannelError: If port is closed
        """
        if not self._port.is_open:
            raise ChannelError("Serial port is not open")

        try:
            self._port.reset_input_buffer()
            logger.debug("Flushed input buffer")
        except Exception as e:
            raise ChannelError(f"Failed to flush input: {e}") from e
