"""
espree_lib - Terminal-scraping collector for Siemens Espree MRI cryogen panels.

The panel exposes only a VT100 menu over RS-232; this library drives the
menu, rebuilds the screen from its escape codes and scrapes the telemetry.
"""

from espree_lib.collector import EspreeCollector
from espree_lib.config import CollectorConfig
from espree_lib.emulator import TerminalEmulator
from espree_lib.errors import (
    BoundsViolation,
    ChannelError,
    CursorRangeError,
    DecodeError,
    EspreeError,
    FieldNotFound,
    TerminalError,
    UnsupportedOperationError,
)
from espree_lib.models import Reading, TerminalGeometry
from espree_lib.parsing import parse_status_screen
from espree_lib.screen import Cursor, Grid, Position, Snapshot

__version__ = "0.1.0"

__all__ = [
    "EspreeCollector",
    "CollectorConfig",
    "TerminalEmulator",
    "TerminalGeometry",
    "Reading",
    "Grid",
    "Cursor",
    "Position",
    "Snapshot",
    "parse_status_screen",
    "EspreeError",
    "ChannelError",
    "TerminalError",
    "DecodeError",
    "UnsupportedOperationError",
    "CursorRangeError",
    "BoundsViolation",
    "FieldNotFound",
]
