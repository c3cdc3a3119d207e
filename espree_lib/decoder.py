"""Escape-sequence decoding on top of pyte.

pyte tokenizes the VT100/ANSI byte stream and calls listener methods by
name. ``EventTranslator`` is that listener: each callback becomes one
control event handed to a sink, normally ``TerminalEmulator.apply``.
pyte's own Screen is not used; the emulator keeps its own grid.
"""

import itertools
import logging
from typing import Any, Callable

import pyte
from pyte import escape as esc

from espree_lib import events
from espree_lib.errors import DecodeError

logger = logging.getLogger(__name__)

# The panel only sends 7-bit ASCII
ENCODING = "ascii"

EventSink = Callable[[events.ControlEvent], None]

# Callbacks that change nothing on a status screen
IGNORED_CALLBACKS = frozenset(
    {
        "bell",
        "backspace",
        "tab",
        "shift_in",
        "shift_out",
        "set_title",
        "set_icon_name",
        "define_charset",
    }
)


class PanelStream(pyte.Stream):
    """pyte stream that keeps look-alike operations apart.

    Stock pyte folds HVP into CUP, HPR into CUF, VPR into CUD, HPA into CHA
    and NEL into LF. The panel never sends those variants, so each gets its
    own callback name and surfaces as Unsupported instead of being applied.
    """

    csi = dict(pyte.Stream.csi)
    csi.update(
        {
            esc.HVP: "hvp",
            esc.HPR: "hpr",
            esc.VPR: "vpr",
            esc.HPA: "hpa",
        }
    )

    escape = dict(pyte.Stream.escape)
    escape[esc.NEL] = "next_line"

    events = frozenset(
        itertools.chain(pyte.Stream.events, csi.values(), escape.values())
    )


def _count(n: int) -> int:
    """VT default: an omitted or zero parameter means 1."""
    return n or 1


class EventTranslator:
    """pyte listener that forwards every callback as a control event.

    Callbacks for the handful of operations the panel uses have explicit
    methods below. Every other pyte event name resolves through
    ``__getattr__`` to an Unsupported (or IgnoredControl) event, so pyte's
    strict listener check passes and nothing is silently dropped.
    """

    def __init__(self, sink: EventSink) -> None:
        self._sink = sink

    def __getattr__(self, name: str) -> Callable[..., None]:
        if name not in PanelStream.events:
            raise AttributeError(name)

        def forward(*params: Any, **kwargs: Any) -> None:
            if name in IGNORED_CALLBACKS:
                self._sink(events.IgnoredControl(name))
            else:
                self._sink(events.Unsupported(name, tuple(params)))

        return forward

    def _emit(self, event: events.ControlEvent, name: str, private: bool) -> None:
        if private:
            # DEC private variants (ESC [ ? ...) are never part of the menu flow
            self._sink(events.Unsupported(f"{name} (private)"))
        else:
            self._sink(event)

    def draw(self, data: str) -> None:
        for char in data:
            if char.isprintable():
                self._sink(events.Print(char))
            else:
                logger.debug(f"Dropping non-printable character {char!r}")

    def linefeed(self) -> None:
        self._sink(events.LineFeed())

    def carriage_return(self) -> None:
        self._sink(events.CarriageReturn())

    def cursor_forward(self, count: int = 0, *rest: int, private: bool = False) -> None:
        self._emit(events.CursorForward(_count(count)), "cursor_forward", private)

    def cursor_back(self, count: int = 0, *rest: int, private: bool = False) -> None:
        self._emit(events.CursorBack(_count(count)), "cursor_back", private)

    def cursor_up(self, count: int = 0, *rest: int, private: bool = False) -> None:
        self._emit(events.CursorUp(_count(count)), "cursor_up", private)

    def cursor_down(self, count: int = 0, *rest: int, private: bool = False) -> None:
        self._emit(events.CursorDown(_count(count)), "cursor_down", private)

    def cursor_down1(self, count: int = 0, *rest: int, private: bool = False) -> None:
        self._emit(events.CursorNextLine(_count(count)), "cursor_down1", private)

    def cursor_up1(self, count: int = 0, *rest: int, private: bool = False) -> None:
        self._emit(events.CursorPrecedingLine(_count(count)), "cursor_up1", private)

    def cursor_to_column(self, column: int = 0, *rest: int, private: bool = False) -> None:
        self._emit(
            events.CursorHorizontalAbsolute(_count(column)), "cursor_to_column", private
        )

    def cursor_position(
        self, line: int = 0, column: int = 0, *rest: int, private: bool = False
    ) -> None:
        self._emit(
            events.CursorPosition(_count(line), _count(column)), "cursor_position", private
        )

    def erase_in_display(self, how: int = 0, *rest: int, private: bool = False) -> None:
        self._emit(events.EraseInDisplay(how), "erase_in_display", private)

    def select_graphic_rendition(self, *attrs: int, private: bool = False) -> None:
        self._sink(events.SelectGraphicRendition(tuple(attrs)))

    def debug(self, *params: Any, **kwargs: Any) -> None:
        # pyte routes every sequence it cannot map to a known operation here
        raise DecodeError(f"Unrecognized control sequence (params={params!r})")


class EscapeDecoder:
    """Feeds raw bytes through pyte and emits control events to a sink."""

    def __init__(self, sink: EventSink) -> None:
        self._sink = sink
        self._stream = PanelStream(EventTranslator(sink))

    def feed(self, data: bytes) -> None:
        """Decode a chunk of bytes.

        Raises:
            DecodeError: On an unrecognized sequence
            TerminalError: Whatever the sink raises, uninterpreted
        """
        self._stream.feed(data.decode(ENCODING, errors="replace"))

    def reset(self) -> None:
        """Drop any half-parsed sequence and start from the ground state."""
        self._stream = PanelStream(EventTranslator(self._sink))
