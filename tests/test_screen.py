"""Tests for the character grid, cursor and snapshots."""

import pytest

from espree_lib.errors import BoundsViolation
from espree_lib.models import TerminalGeometry
from espree_lib.screen import Cursor, Grid, Position, Snapshot


def test_default_geometry_is_panel_size() -> None:
    """Test that the grid defaults to the 24x120 Espree screen."""
    grid = Grid()
    snapshot = grid.snapshot()

    assert (grid.rows, grid.cols) == (24, 120)
    assert snapshot.rows == 24
    assert snapshot.cols == 120
    assert all(line == " " * 120 for line in snapshot.lines)


def test_invalid_geometry_rejected() -> None:
    """Test that non-positive geometry is rejected."""
    with pytest.raises(ValueError):
        TerminalGeometry(rows=0, cols=120)
    with pytest.raises(ValueError):
        TerminalGeometry(rows=24, cols=-1)


def test_put_and_get() -> None:
    grid = Grid()
    grid.put("X", Position(3, 7))

    assert grid.get(Position(3, 7)) == "X"
    assert grid.snapshot().char_at(Position(3, 7)) == "X"


@pytest.mark.parametrize(
    "position",
    [Position(24, 0), Position(-1, 0), Position(0, 120), Position(0, -1)],
)
def test_put_out_of_bounds_leaves_grid_untouched(position: Position) -> None:
    """Test that writes outside the grid raise and never wrap."""
    grid = Grid()
    before = grid.snapshot()

    with pytest.raises(BoundsViolation):
        grid.put("X", position)

    assert grid.snapshot() == before


def test_put_rejects_non_printable() -> None:
    """Test that cells only ever hold printable characters."""
    grid = Grid()

    with pytest.raises(ValueError):
        grid.put("\x1b", Position(0, 0))
    with pytest.raises(ValueError):
        grid.put("AB", Position(0, 0))


def test_erase_line_from_clears_to_end_of_row_only() -> None:
    grid = Grid(TerminalGeometry(rows=3, cols=6))
    grid.fill("#")

    grid.erase_line_from(Position(1, 2))

    assert grid.snapshot().lines == ("######", "##    ", "######")


def test_erase_blanks_every_cell() -> None:
    grid = Grid(TerminalGeometry(rows=2, cols=4))
    grid.fill("#")

    grid.erase()

    assert grid.as_text() == "    \n    "


def test_snapshot_is_independent_of_later_writes() -> None:
    """Test that a snapshot is a copy, not a view of the live grid."""
    grid = Grid()
    grid.put("A", Position(0, 0))
    snapshot = grid.snapshot()

    grid.put("B", Position(0, 0))

    assert snapshot.char_at(Position(0, 0)) == "A"


def test_snapshot_text_shape() -> None:
    """Test that as_text() joins fixed-width rows with newlines."""
    snapshot = Grid().snapshot()
    text = snapshot.as_text()

    assert text.count("\n") == 23
    assert all(len(line) == 120 for line in text.split("\n"))
    assert str(snapshot) == text


def test_snapshot_equality_by_content() -> None:
    assert Snapshot(("ab", "cd")) == Snapshot(("ab", "cd"))
    assert Snapshot(("ab", "cd")) != Snapshot(("ab", "ce"))


def test_cursor_clamps_into_grid() -> None:
    cursor = Cursor()

    cursor.move_to(100, 500)
    assert cursor.position == Position(23, 119)

    cursor.move_by(rows=-50, cols=-500)
    assert cursor.position == Position(0, 0)


def test_cursor_advance_stops_at_last_column() -> None:
    """Test that advancing past the margin sets the flag instead of wrapping."""
    cursor = Cursor(TerminalGeometry(rows=2, cols=3))

    cursor.advance()
    cursor.advance()
    assert cursor.col == 2
    assert not cursor.at_margin

    cursor.advance()
    assert cursor.position == Position(0, 2)
    assert cursor.at_margin


def test_explicit_move_clears_margin_flag() -> None:
    cursor = Cursor(TerminalGeometry(rows=2, cols=3))
    cursor.col = 2
    cursor.advance()
    assert cursor.at_margin

    cursor.move_by(cols=-1)

    assert not cursor.at_margin
    assert cursor.col == 1


def test_cursor_last_row_and_reset() -> None:
    cursor = Cursor()
    cursor.row = 23
    assert cursor.on_last_row

    cursor.reset()
    assert cursor.position == Position(0, 0)
    assert not cursor.on_last_row
