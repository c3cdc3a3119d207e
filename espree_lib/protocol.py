"""Keystrokes, timing and screen patterns for the Espree control panel.

The panel has no data protocol; values are read off its status screen,
reached from the main menu with a fixed keystroke sequence.
"""

import re
from typing import Final, Tuple

# ============================================================================
# Serial Settings (9600 8N1, no flow control)
# ============================================================================

DEFAULT_PORT: Final[str] = "COM1"
DEFAULT_BAUD: Final[int] = 9600

# ============================================================================
# Keys
# ============================================================================

KEY_ESCAPE: Final[int] = 27  # Back out to the main menu
KEY_ENTER: Final[int] = 13
KEY_READOUT: Final[int] = ord("r")  # Status readout menu entry

# Keys sent in order to bring up the status screen. The panel never
# acknowledges a key, so each one is followed by a fixed delay.
NAVIGATION_KEYS: Final[Tuple[int, ...]] = (KEY_ESCAPE, KEY_ENTER, KEY_READOUT, KEY_ENTER)

# ============================================================================
# Timing and Sizes
# ============================================================================

# Time the panel needs to redraw after each key
KEY_DELAY_S: Final[float] = 2.0

# Bytes read after navigation; holds a full status frame plus at least one
# in-place refresh
RESPONSE_WINDOW: Final[int] = 4000

# ============================================================================
# Status Screen Patterns
# ============================================================================

# "Helium Level Values ...   71.3%   71.1%"
RE_HELIUM_LEVEL: Final[re.Pattern[str]] = re.compile(
    r"Values.+\s+(?P<level1>\d{1,2}\.\d)%+\s+(?P<level2>\d{1,2}\.\d)%"
)

# "Cold Head   Sensor1:38.2K"
RE_COLDHEAD_TEMP: Final[re.Pattern[str]] = re.compile(
    r"Cold Head\s+Sensor1:(?P<sensor1>\d{1,2}\.\d)K"
)

# "Shield   Sensor1:41.0K  Sensor2:44.5K" (only sensor 1 is reported)
RE_SHIELD_TEMP: Final[re.Pattern[str]] = re.compile(
    r"Shield\s+Sensor1:(?P<sensor1>\d{1,2}\.\d)K\s+Sensor2:(?P<sensor2>\d{1,2}\.\d)K"
)

# "Average Power   :1.234W"
RE_MAGNET_POWER: Final[re.Pattern[str]] = re.compile(
    r"Average Power\s+:(?P<power>\d+\.\d+)W"
)

# "Mag psiA   :1.25 "
RE_MAGNET_PSI: Final[re.Pattern[str]] = re.compile(r"Mag psiA\s+:(?P<psi>\d+\.\d+)\s+")

# "Compressor:  ON"
RE_COMPRESSOR: Final[re.Pattern[str]] = re.compile(r"Compressor:\s+(?P<compressor>OFF|ON)")
