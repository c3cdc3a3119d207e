"""Terminal state machine that rebuilds the panel screen from escape codes.

The panel redraws by erasing and reprinting, so the live grid is often
blank or half drawn. The emulator therefore keeps a snapshot taken just
before each erase and at each absolute or line-based cursor move, and
callers read that snapshot rather than the live grid.

Snapshot points:
    CursorNextLine / CursorPrecedingLine   always
    CursorHorizontalAbsolute               always
    CursorPosition                         unless it is the (1, 1) home
    EraseInDisplay 0/2/3                   before the erase is applied
Relative moves, prints, line feeds and carriage returns never snapshot.
"""

import base64
import logging
from typing import Callable, Dict, Optional, Type

from espree_lib import events
from espree_lib.decoder import EscapeDecoder
from espree_lib.errors import (
    CursorRangeError,
    TerminalError,
    UnsupportedOperationError,
)
from espree_lib.models import TerminalGeometry
from espree_lib.screen import Cursor, Grid, Snapshot
from espree_lib.transport import Transport

logger = logging.getLogger(__name__)

ESCAPE_KEY = 27
ENTER_KEY = 13


class TerminalEmulator:
    """Impersonates a VT100 terminal attached to the panel.

    Single-threaded: one caller drives navigation and decoding for a
    whole gather cycle.
    """

    def __init__(
        self,
        channel: Optional[Transport] = None,
        geometry: TerminalGeometry = TerminalGeometry(),
    ) -> None:
        """Initialize emulator.

        Args:
            channel: Duplex byte channel. May be bound later via initialize().
            geometry: Screen size; the Espree panel is 24x120.
        """
        self._geometry = geometry
        self._channel: Optional[Transport] = None
        self._decoder = EscapeDecoder(self.apply)
        self._handlers: Dict[Type, Callable] = {
            events.Print: self._print,
            events.CursorForward: self._cursor_forward,
            events.CursorBack: self._cursor_back,
            events.CursorUp: self._cursor_up,
            events.CursorDown: self._cursor_down,
            events.CursorNextLine: self._cursor_next_line,
            events.CursorPrecedingLine: self._cursor_preceding_line,
            events.CursorHorizontalAbsolute: self._cursor_horizontal_absolute,
            events.CursorPosition: self._cursor_position,
            events.EraseInDisplay: self._erase_in_display,
            events.LineFeed: self._line_feed,
            events.CarriageReturn: self._carriage_return,
            events.SelectGraphicRendition: self._select_graphic_rendition,
            events.IgnoredControl: self._ignored_control,
            events.Unsupported: self._unsupported,
        }
        missing = set(events.CONTROL_EVENTS) - set(self._handlers)
        assert not missing, f"No handler for {sorted(t.__name__ for t in missing)}"

        self.initialize(channel)

    @property
    def geometry(self) -> TerminalGeometry:
        return self._geometry

    @property
    def cursor(self) -> Cursor:
        return self._cursor

    @property
    def grid(self) -> Grid:
        """Live grid. Callers should read last_snapshot() instead."""
        return self._grid

    # ========================================================================
    # Command / query surface
    # ========================================================================

    def initialize(self, channel: Optional[Transport]) -> None:
        """Bind to a channel and reset grid, cursor and snapshot."""
        self._channel = channel
        self._grid = Grid(self._geometry)
        self._cursor = Cursor(self._geometry)
        self._snapshot = self._grid.snapshot()
        self._decoder.reset()

    def send_key(self, key: int) -> None:
        """Write one raw byte, simulating a keypress.

        Raises:
            ChannelError: If the write fails
        """
        if self._channel is None:
            raise RuntimeError("Emulator is not bound to a channel")
        logger.debug(f"Key {key!r}")
        self._channel.write_bytes(bytes([key]))

    def escape(self) -> None:
        self.send_key(ESCAPE_KEY)

    def enter(self) -> None:
        self.send_key(ENTER_KEY)

    def decode(self, n: int) -> None:
        """Read a response window of up to n bytes and apply it.

        Short reads are fine. Consumed bytes are never revisited, so after
        a failure the caller must reconnect and navigate again.

        Raises:
            ChannelError: If the read fails
            TerminalError: If the window cannot be decoded or applied. The raw
                           bytes are logged base64-encoded and attached as
                           ``exc.raw``; the snapshot is left as it was before
                           the call.
        """
        if self._channel is None:
            raise RuntimeError("Emulator is not bound to a channel")
        data = self._channel.read_window(n)
        logger.debug(f"Decoding {len(data)} byte window")
        self.feed(data)

    def feed(self, data: bytes) -> None:
        """Apply an in-memory window. See decode() for failure semantics."""
        previous = self._snapshot
        try:
            self._decoder.feed(data)
        except TerminalError as e:
            self._snapshot = previous
            self._decoder.reset()
            e.raw = data
            logger.error(f"Failed to decode window: {e}")
            logger.error(f"Raw window (base64): {base64.b64encode(data).decode('ascii')}")
            raise

    def last_snapshot(self) -> Snapshot:
        """Most recent settled copy of the screen."""
        return self._snapshot

    # ========================================================================
    # Event handling
    # ========================================================================

    def apply(self, event: events.ControlEvent) -> None:
        """Apply one decoded control event to grid and cursor."""
        self._handlers[type(event)](event)

    def _take_snapshot(self) -> None:
        self._snapshot = self._grid.snapshot()

    def _print(self, event: events.Print) -> None:
        if self._cursor.at_margin:
            logger.warning(
                f"Overprinting line {self._cursor.row}: dropped {event.char!r}"
            )
            return
        self._grid.put(event.char, self._cursor.position)
        self._cursor.advance()

    def _cursor_forward(self, event: events.CursorForward) -> None:
        # The panel only ever steps one cell, whatever count it sends
        self._cursor.move_by(cols=1)

    def _cursor_back(self, event: events.CursorBack) -> None:
        self._cursor.move_by(cols=-event.n)

    def _cursor_up(self, event: events.CursorUp) -> None:
        self._cursor.move_by(rows=-event.n)

    def _cursor_down(self, event: events.CursorDown) -> None:
        self._cursor.move_by(rows=event.n)

    def _cursor_next_line(self, event: events.CursorNextLine) -> None:
        self._cursor.move_to(self._cursor.row + event.n, 0)
        self._take_snapshot()

    def _cursor_preceding_line(self, event: events.CursorPrecedingLine) -> None:
        self._cursor.move_to(self._cursor.row - event.n, 0)
        self._take_snapshot()

    def _cursor_horizontal_absolute(self, event: events.CursorHorizontalAbsolute) -> None:
        if event.n < 1:
            raise CursorRangeError(f"column underflow: {event.n}")
        if event.n > self._geometry.cols:
            raise CursorRangeError(f"column overflow: {event.n}")
        self._cursor.col = event.n - 1
        self._take_snapshot()

    def _cursor_position(self, event: events.CursorPosition) -> None:
        self._cursor.move_to(event.row - 1, event.col - 1)
        # Home is a no-op redraw anchor, not a settled frame
        if not (event.row == 1 and event.col == 1):
            self._take_snapshot()

    def _erase_in_display(self, event: events.EraseInDisplay) -> None:
        if event.mode not in (0, 2, 3):
            raise UnsupportedOperationError(f"unsupported ED: {event.mode}")

        self._take_snapshot()
        if event.mode == 0:
            self._grid.erase_line_from(self._cursor.position)
        elif event.mode == 2:
            self._grid.erase()
            self._cursor.reset()
        else:
            self._grid.erase()

    def _line_feed(self, event: events.LineFeed) -> None:
        if not self._cursor.on_last_row:
            self._cursor.row += 1

    def _carriage_return(self, event: events.CarriageReturn) -> None:
        self._cursor.col = 0

    def _select_graphic_rendition(self, event: events.SelectGraphicRendition) -> None:
        pass

    def _ignored_control(self, event: events.IgnoredControl) -> None:
        logger.debug(f"Ignoring {event.name}")

    def _unsupported(self, event: events.Unsupported) -> None:
        raise UnsupportedOperationError(f"{event.name} not supported")
