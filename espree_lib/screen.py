"""Character grid, cursor and snapshots backing the emulated terminal."""

from dataclasses import dataclass
from typing import List, Tuple

from espree_lib.errors import BoundsViolation
from espree_lib.models import TerminalGeometry


@dataclass(frozen=True)
class Position:
    """Zero-based (row, col) screen coordinate."""

    row: int = 0
    col: int = 0


def _check_char(char: str) -> None:
    if len(char) != 1 or not (char.isprintable() or char == " "):
        raise ValueError(f"Screen cells hold one printable character, got {char!r}")


@dataclass(frozen=True)
class Snapshot:
    """Immutable copy of the grid at a settled point.

    Attributes:
        lines: One string per row, each exactly ``cols`` characters wide.
    """

    lines: Tuple[str, ...]

    @property
    def rows(self) -> int:
        return len(self.lines)

    @property
    def cols(self) -> int:
        return len(self.lines[0]) if self.lines else 0

    def char_at(self, position: Position) -> str:
        return self.lines[position.row][position.col]

    def as_text(self) -> str:
        """Render rows joined by newline, the form the field extractor reads."""
        return "\n".join(self.lines)

    def __str__(self) -> str:
        return self.as_text()


class Grid:
    """Fixed-size character matrix.

    Every cell always holds a printable character or a space. Writes outside
    the grid are rejected with BoundsViolation and never wrap.
    """

    def __init__(self, geometry: TerminalGeometry = TerminalGeometry()) -> None:
        self._geometry = geometry
        self._cells: List[List[str]] = [
            [" "] * geometry.cols for _ in range(geometry.rows)
        ]

    @property
    def rows(self) -> int:
        return self._geometry.rows

    @property
    def cols(self) -> int:
        return self._geometry.cols

    def contains(self, position: Position) -> bool:
        return 0 <= position.row < self.rows and 0 <= position.col < self.cols

    def _require(self, position: Position) -> None:
        if position.row < 0 or position.row >= self.rows:
            raise BoundsViolation(f"row overflow: {position.row} not in [0, {self.rows})")
        if position.col < 0 or position.col >= self.cols:
            raise BoundsViolation(f"col overflow: {position.col} not in [0, {self.cols})")

    def put(self, char: str, position: Position) -> None:
        """Write one character at position.

        Raises:
            BoundsViolation: If position lies outside the grid (grid untouched)
            ValueError: If char is not a single printable character
        """
        self._require(position)
        _check_char(char)
        self._cells[position.row][position.col] = char

    def get(self, position: Position) -> str:
        self._require(position)
        return self._cells[position.row][position.col]

    def fill(self, char: str) -> None:
        _check_char(char)
        for row in self._cells:
            row[:] = [char] * self.cols

    def erase(self) -> None:
        self.fill(" ")

    def erase_line_from(self, position: Position) -> None:
        """Blank row ``position.row`` from ``position.col`` to the end of the row."""
        self._require(position)
        row = self._cells[position.row]
        row[position.col:] = [" "] * (self.cols - position.col)

    def as_text(self) -> str:
        return "\n".join("".join(row) for row in self._cells)

    def snapshot(self) -> Snapshot:
        return Snapshot(lines=tuple("".join(row) for row in self._cells))


class Cursor:
    """Mutable (row, col) position clamped into the grid.

    ``at_margin`` is set when a character has just been written in the last
    column. The column itself never leaves the grid; the flag lets the next
    Print know the cell was already used. Only setting the column clears it;
    a purely vertical move such as a bare line feed keeps it.
    """

    def __init__(self, geometry: TerminalGeometry = TerminalGeometry()) -> None:
        self._rows = geometry.rows
        self._cols = geometry.cols
        self._row = 0
        self._col = 0
        self.at_margin = False

    @property
    def row(self) -> int:
        return self._row

    @row.setter
    def row(self, value: int) -> None:
        self._row = min(max(value, 0), self._rows - 1)

    @property
    def col(self) -> int:
        return self._col

    @col.setter
    def col(self, value: int) -> None:
        self._col = min(max(value, 0), self._cols - 1)
        self.at_margin = False

    @property
    def position(self) -> Position:
        return Position(self._row, self._col)

    def move_to(self, row: int, col: int) -> None:
        self.row = row
        self.col = col

    def move_by(self, rows: int = 0, cols: int = 0) -> None:
        self.row = self._row + rows
        if cols:
            self.col = self._col + cols

    def advance(self) -> None:
        """Step one column right after a Print; stops at the last column."""
        if self._col + 1 < self._cols:
            self._col += 1
        else:
            self.at_margin = True

    @property
    def on_last_row(self) -> bool:
        return self._row == self._rows - 1

    def reset(self) -> None:
        self.move_to(0, 0)

    def __repr__(self) -> str:
        return f"Cursor(row={self._row}, col={self._col})"
