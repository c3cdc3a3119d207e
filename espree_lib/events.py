"""Control events produced by the decoder and applied by the emulator.

The set is closed: every decoded operation becomes exactly one of the
types in ``CONTROL_EVENTS``, and the emulator keeps one handler per type.
"""

from dataclasses import dataclass
from typing import Tuple, Union, get_args


@dataclass(frozen=True)
class Print:
    char: str


@dataclass(frozen=True)
class CursorForward:
    n: int = 1


@dataclass(frozen=True)
class CursorBack:
    n: int = 1


@dataclass(frozen=True)
class CursorUp:
    n: int = 1


@dataclass(frozen=True)
class CursorDown:
    n: int = 1


@dataclass(frozen=True)
class CursorNextLine:
    n: int = 1


@dataclass(frozen=True)
class CursorPrecedingLine:
    n: int = 1


@dataclass(frozen=True)
class CursorHorizontalAbsolute:
    """1-based target column."""

    n: int = 1


@dataclass(frozen=True)
class CursorPosition:
    """1-based target row and column."""

    row: int = 1
    col: int = 1


@dataclass(frozen=True)
class EraseInDisplay:
    mode: int = 0


@dataclass(frozen=True)
class LineFeed:
    pass


@dataclass(frozen=True)
class CarriageReturn:
    pass


@dataclass(frozen=True)
class SelectGraphicRendition:
    params: Tuple[int, ...] = ()


@dataclass(frozen=True)
class IgnoredControl:
    """Harmless control (bell, backspace, tab, window title)."""

    name: str


@dataclass(frozen=True)
class Unsupported:
    """A well-formed operation this instrument is not expected to send."""

    name: str
    params: Tuple[int, ...] = ()


ControlEvent = Union[
    Print,
    CursorForward,
    CursorBack,
    CursorUp,
    CursorDown,
    CursorNextLine,
    CursorPrecedingLine,
    CursorHorizontalAbsolute,
    CursorPosition,
    EraseInDisplay,
    LineFeed,
    CarriageReturn,
    SelectGraphicRendition,
    IgnoredControl,
    Unsupported,
]

CONTROL_EVENTS = get_args(ControlEvent)
