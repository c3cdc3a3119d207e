"""Pure functions for scraping sensor fields off the settled status screen."""

import logging
import re
from typing import Dict

from espree_lib import protocol
from espree_lib.errors import FieldNotFound
from espree_lib.models import FieldValue

logger = logging.getLogger(__name__)


def _search(pattern: "re.Pattern[str]", text: str, field: str) -> "re.Match[str]":
    match = pattern.search(text)
    if match is None:
        raise FieldNotFound(field)
    return match


def parse_status_screen(text: str) -> Dict[str, FieldValue]:
    """Extract telemetry from the status screen text.

    Args:
        text: Newline-joined screen rows, as returned by Snapshot.as_text()

    Returns:
        Dictionary with keys:
            - "helium_level1", "helium_level2": Helium level in percent
            - "coldhead_temperature": Cold head sensor 1 in Kelvin
            - "shield_temperature": Shield sensor 1 in Kelvin
            - "magnet_power": Average power in Watts
            - "magnet_psi": Magnet pressure in psiA
            - "compressor": True when the compressor is ON

    Raises:
        FieldNotFound: For the first labelled field missing from the screen
    """
    fields: Dict[str, FieldValue] = {}

    helium = _search(protocol.RE_HELIUM_LEVEL, text, "helium level")
    fields["helium_level1"] = float(helium.group("level1"))
    fields["helium_level2"] = float(helium.group("level2"))

    coldhead = _search(protocol.RE_COLDHEAD_TEMP, text, "cold head temperature")
    fields["coldhead_temperature"] = float(coldhead.group("sensor1"))

    shield = _search(protocol.RE_SHIELD_TEMP, text, "shield temperature")
    fields["shield_temperature"] = float(shield.group("sensor1"))

    power = _search(protocol.RE_MAGNET_POWER, text, "magnet power")
    fields["magnet_power"] = float(power.group("power"))

    psi = _search(protocol.RE_MAGNET_PSI, text, "magnet psi")
    fields["magnet_psi"] = float(psi.group("psi"))

    compressor = _search(protocol.RE_COMPRESSOR, text, "compressor status")
    fields["compressor"] = compressor.group("compressor") == "ON"

    logger.debug(f"Parsed status screen: {fields}")
    return fields
