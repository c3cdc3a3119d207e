"""Data models for the Espree terminal collector."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Union

# Field values scraped from the status screen
FieldValue = Union[float, bool]

READING_FIELDS = (
    "helium_level1",
    "helium_level2",
    "coldhead_temperature",
    "shield_temperature",
    "magnet_power",
    "magnet_psi",
    "compressor",
)


@dataclass(frozen=True)
class TerminalGeometry:
    """Fixed size of the emulated terminal.

    Attributes:
        rows: Number of screen rows. The Espree panel uses 24.
        cols: Number of screen columns. The Espree panel uses 120.
    """

    rows: int = 24
    cols: int = 120

    def __post_init__(self) -> None:
        """Validate geometry."""
        if self.rows <= 0:
            raise ValueError(f"rows must be positive, got {self.rows}")
        if self.cols <= 0:
            raise ValueError(f"cols must be positive, got {self.cols}")


@dataclass
class Reading:
    """One gathered telemetry sample.

    Attributes:
        ts: UTC timestamp when the screen was scraped.
        name: Instrument name, reported as a tag.
        fields: Values keyed by READING_FIELDS. ``compressor`` is a bool,
                everything else a float.
    """

    ts: datetime
    name: str
    fields: Dict[str, FieldValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate reading fields."""
        missing = [key for key in READING_FIELDS if key not in self.fields]
        if missing:
            raise ValueError(f"Reading is missing fields: {', '.join(missing)}")

    @property
    def tags(self) -> Dict[str, str]:
        """Tags attached to every sample."""
        return {"name": self.name}
