"""Tests for scraping fields off the status screen text."""

import pytest

from espree_lib.errors import FieldNotFound
from espree_lib.models import READING_FIELDS
from espree_lib.parsing import parse_status_screen
from fakes.fake_espree import PanelValues, status_lines


def screen_text(values: PanelValues = PanelValues(), drop: str = "") -> str:
    """Lay status lines out on a blank 24x120 screen, optionally dropping one."""
    rows = [[" "] * 120 for _ in range(24)]
    for row, col, text in status_lines(values):
        text = text.replace("\x1b[1m", "").replace("\x1b[0m", "")
        if drop and text.lstrip().startswith(drop):
            continue
        for offset, char in enumerate(text):
            rows[row - 1][col - 1 + offset] = char
    return "\n".join("".join(row) for row in rows)


def test_parse_default_screen() -> None:
    fields = parse_status_screen(screen_text())

    assert fields == {
        "helium_level1": 71.3,
        "helium_level2": 71.1,
        "coldhead_temperature": 38.2,
        "shield_temperature": 41.0,
        "magnet_power": 1.234,
        "magnet_psi": 1.25,
        "compressor": True,
    }
    assert set(fields) == set(READING_FIELDS)


def test_parse_compressor_off() -> None:
    fields = parse_status_screen(screen_text(PanelValues(compressor=False)))

    assert fields["compressor"] is False


def test_parse_single_digit_levels() -> None:
    values = PanelValues(helium_level1=5.5, helium_level2=9.0, coldhead_temperature=4.2)

    fields = parse_status_screen(screen_text(values))

    assert fields["helium_level1"] == 5.5
    assert fields["helium_level2"] == 9.0
    assert fields["coldhead_temperature"] == 4.2


def test_shield_reports_sensor_one() -> None:
    values = PanelValues(shield_temperature=40.1, shield_sensor2=48.9)

    fields = parse_status_screen(screen_text(values))

    assert fields["shield_temperature"] == 40.1


@pytest.mark.parametrize(
    "label, field",
    [
        ("000 100", "helium level"),
        ("Cold Head", "cold head temperature"),
        ("Shield", "shield temperature"),
        ("Average Power", "magnet power"),
        ("Mag psiA", "magnet psi"),
        ("Compressor", "compressor status"),
    ],
)
def test_missing_field_raises(label: str, field: str) -> None:
    with pytest.raises(FieldNotFound) as exc_info:
        parse_status_screen(screen_text(drop=label))

    assert exc_info.value.field == field
    assert field in str(exc_info.value)


def test_blank_screen_reports_first_field() -> None:
    with pytest.raises(FieldNotFound) as exc_info:
        parse_status_screen("\n".join([" " * 120] * 24))

    assert exc_info.value.field == "helium level"
