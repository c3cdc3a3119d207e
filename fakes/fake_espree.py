"""Fake serial port that simulates the Espree cryogen control panel.

The panel answers keystrokes with full-screen VT100 redraws: ESC shows the
main menu, Enter the selection prompt, and "r" + Enter the status readout,
which the panel then keeps refreshing in place for as long as the port is
read. The escape stream matches what the real panel sends, so the decoder
and snapshot logic are exercised end to end without hardware.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

logger = logging.getLogger(__name__)

CSI = "\x1b["
HOME_AND_CLEAR = CSI + "H" + CSI + "2J"


@dataclass
class PanelValues:
    """Readings shown on the status screen."""

    helium_level1: float = 71.3
    helium_level2: float = 71.1
    coldhead_temperature: float = 38.2
    shield_temperature: float = 41.0
    shield_sensor2: float = 44.5
    magnet_power: float = 1.234
    magnet_psi: float = 1.25
    compressor: bool = True


def status_lines(values: PanelValues) -> List[Tuple[int, int, str]]:
    """Status screen content as (row, col, text), 1-based like CUP."""
    compressor = "ON" if values.compressor else "OFF"
    return [
        (1, 40, CSI + "1m" + "ESPREE MAGNET MONITOR" + CSI + "0m"),
        (5, 2, "Helium Level"),
        (6, 2, "   Limits    Alarm  Warn"),
        (
            7,
            2,
            "   000 100   05 10  15 20      Values :  "
            f"{values.helium_level1:.1f}%   {values.helium_level2:.1f}%",
        ),
        (10, 2, "Temperatures"),
        (12, 2, f"Cold Head    Sensor1:{values.coldhead_temperature:.1f}K"),
        (
            13,
            2,
            f"Shield       Sensor1:{values.shield_temperature:.1f}K  "
            f"Sensor2:{values.shield_sensor2:.1f}K",
        ),
        (16, 2, "Magnet"),
        (17, 2, f"Average Power   :{values.magnet_power:.3f}W"),
        (18, 2, f"Mag psiA        :{values.magnet_psi:.2f}  "),
        (20, 2, f"Compressor:  {compressor}"),
        (23, 2, "ESC = Main Menu"),
    ]


def render_lines(lines: List[Tuple[int, int, str]]) -> bytes:
    """Encode (row, col, text) lines as CUP-positioned text."""
    return "".join(f"{CSI}{row};{col}H{text}" for row, col, text in lines).encode("ascii")


def render_status_screen(values: Optional[PanelValues] = None, clear: bool = True) -> bytes:
    """Escape stream for one status frame.

    Args:
        values: Readings to show. Defaults to PanelValues().
        clear: Home and erase first (full redraw). Refresh frames skip this
               and overwrite in place.

    Returns:
        Bytes ending with the cursor parked on the last row
    """
    body = render_lines(status_lines(values or PanelValues()))
    prefix = HOME_AND_CLEAR.encode("ascii") if clear else b""
    return prefix + body + f"{CSI}24;1H".encode("ascii")


MAIN_MENU = render_lines(
    [
        (2, 40, "MAIN MENU"),
        (4, 10, "Press ENTER to select a function"),
    ]
)

SELECT_MENU = render_lines(
    [
        (2, 40, "FUNCTIONS"),
        (4, 10, "(r) Readout   (l) Log   (s) Setup"),
        (20, 2, "Select: "),
    ]
)


class FakeEspree:
    """Deterministic simulator of the Espree panel's serial terminal.

    Attributes:
        values: Readings drawn on the status screen.
        refresh: Keep emitting in-place refresh frames once the status
                 screen is up (the real panel does). If False the panel
                 goes quiet after one frame and reads time out.
        inject: Extra bytes emitted right after the first status frame,
                for feeding malformed or unsupported sequences.
        chunk_size: Largest number of bytes returned by one read().
        fail_writes / fail_reads: Raise OSError as a disconnected port would.
        keys_received: Every byte written by the host, in order.
    """

    def __init__(
        self,
        values: Optional[PanelValues] = None,
        refresh: bool = True,
        inject: bytes = b"",
        chunk_size: int = 256,
    ) -> None:
        self.values = values or PanelValues()
        self.refresh = refresh
        self.inject = inject
        self.chunk_size = chunk_size
        self.fail_writes = False
        self.fail_reads = False
        self.keys_received: List[int] = []

        # "idle" -> "main" -> "select" -> "readout" -> "status"
        self._state = "idle"
        self._output = bytearray()

        self.is_open = True

    def close(self) -> None:
        """Close the fake serial port."""
        self.is_open = False
        logger.debug("FakeEspree closed")

    def write(self, data: bytes) -> int:
        """Receive keystrokes from the host."""
        if not self.is_open:
            raise RuntimeError("Port is closed")
        if self.fail_writes:
            raise OSError("Write failed: device disconnected")

        for key in data:
            self.keys_received.append(key)
            self._handle_key(key)
        return len(data)

    def read(self, size: int = 1) -> bytes:
        """Return up to size bytes of panel output; b"" when the panel is quiet."""
        if not self.is_open:
            raise RuntimeError("Port is closed")
        if self.fail_reads:
            raise OSError("Read failed: device disconnected")

        if self._state == "status" and self.refresh:
            while len(self._output) < size:
                self._output.extend(render_status_screen(self.values, clear=False))

        count = min(size, self.chunk_size)
        chunk = bytes(self._output[:count])
        del self._output[:count]
        return chunk

    def flush(self) -> None:
        """Flush output buffer (no-op for fake serial)."""
        pass

    def reset_input_buffer(self) -> None:
        """Discard panel output not yet read."""
        self._output.clear()

    # ========================================================================
    # Internal: Menu Handling
    # ========================================================================

    def _handle_key(self, key: int) -> None:
        if key == 27:
            self._state = "main"
            self._send(HOME_AND_CLEAR.encode("ascii") + MAIN_MENU)
        elif key == 13 and self._state == "main":
            self._state = "select"
            self._send(HOME_AND_CLEAR.encode("ascii") + SELECT_MENU)
        elif key == ord("r") and self._state == "select":
            self._state = "readout"
            self._send(b"r")
        elif key == 13 and self._state == "readout":
            self._state = "status"
            self._send(render_status_screen(self.values) + self.inject)
        else:
            # Unknown key: the panel beeps
            self._send(b"\x07")

    def _send(self, data: bytes) -> None:
        self._output.extend(data)
        logger.debug(f"FakeEspree queued {len(data)} bytes")


class ReplaySerial:
    """Serial double that plays back a captured byte stream.

    Writes are recorded and otherwise ignored; reads drain the capture and
    then return b"" like a timed-out port.
    """

    def __init__(self, data: bytes, chunk_size: int = 512) -> None:
        self._data = bytearray(data)
        self.chunk_size = chunk_size
        self.written = bytearray()
        self.is_open = True

    def write(self, data: bytes) -> int:
        if not self.is_open:
            raise RuntimeError("Port is closed")
        self.written.extend(data)
        return len(data)

    def read(self, size: int = 1) -> bytes:
        if not self.is_open:
            raise RuntimeError("Port is closed")
        count = min(size, self.chunk_size)
        chunk = bytes(self._data[:count])
        del self._data[:count]
        return chunk

    def flush(self) -> None:
        pass

    def reset_input_buffer(self) -> None:
        # Captures start at the first byte the panel sent
        pass

    def close(self) -> None:
        self.is_open = False
