"""Custom exceptions for the Espree terminal collector."""


class EspreeError(Exception):
    """Base exception for all Espree collector errors."""

    pass


class ChannelError(EspreeError):
    """Raised when the serial channel cannot be opened, read or written."""

    pass


class TerminalError(EspreeError):
    """Raised when a response window cannot be applied to the screen.

    Attributes:
        raw: The undecoded bytes of the window being processed, attached by
            ``TerminalEmulator.decode`` for offline diagnosis.
    """

    def __init__(self, message: str, raw: bytes = b"") -> None:
        super().__init__(message)
        self.raw = raw


class DecodeError(TerminalError):
    """Raised when the decoder meets a sequence it cannot tokenize."""

    pass


class UnsupportedOperationError(TerminalError):
    """Raised for a valid control sequence this instrument never emits."""

    pass


class CursorRangeError(TerminalError):
    """Raised when an absolute cursor target lies outside the screen."""

    pass


class BoundsViolation(EspreeError):
    """Raised when a direct screen write lands outside the grid.

    The cursor is always clamped, so this signals a logic defect rather
    than bad input from the instrument.
    """

    pass


class FieldNotFound(EspreeError):
    """Raised when a labelled field is missing from the screen text."""

    def __init__(self, field: str, message: str = "") -> None:
        super().__init__(message or f"Failed to parse {field}")
        self.field = field
