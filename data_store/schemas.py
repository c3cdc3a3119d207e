"""Schema normalization for Espree readings to DataFrame format.

Every gathered reading carries the full field set, so all columns are
always populated; the timestamp is stored as a UTC ISO 8601 string.
"""

from datetime import timezone
from typing import Any, Dict

from espree_lib.models import READING_FIELDS, Reading

# DataFrame schema: column names and their dtypes
SCHEMA = {
    "timestamp": str,  # UTC ISO 8601 format
    "name": str,  # Instrument name tag
    "helium_level1": float,  # Percent
    "helium_level2": float,  # Percent
    "coldhead_temperature": float,  # Kelvin
    "shield_temperature": float,  # Kelvin
    "magnet_power": float,  # Watts
    "magnet_psi": float,  # psiA
    "compressor": bool,
}


def reading_to_row(reading: Reading) -> Dict[str, Any]:
    """Convert a Reading instance to a DataFrame row dictionary.

    Args:
        reading: A Reading returned by EspreeCollector.gather()

    Returns:
        Dictionary with all SCHEMA keys, ready for DataFrame append
    """
    ts = reading.ts
    if ts.tzinfo is None:
        # Collector stamps with datetime.now(timezone.utc); treat naive as UTC
        ts = ts.replace(tzinfo=timezone.utc)
    elif ts.tzinfo != timezone.utc:
        ts = ts.astimezone(timezone.utc)

    row: Dict[str, Any] = {"timestamp": ts.isoformat(), "name": reading.name}
    for key in READING_FIELDS:
        row[key] = reading.fields[key]
    return row
