"""
Cell grid primitives: the immutable in-memory snapshot of a worksheet.

A worksheet is a :class:`CellGrid` of :class:`Cell` values, each of which is
exactly one of ``EMPTY``, ``NUMBER`` or ``TEXT``.  Merge ranges and
coordinates are plain frozen records.  Nothing here is ever mutated after
construction.
"""

from __future__ import annotations

import numbers
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterator, List, Optional, Sequence, Tuple

import pandas as pd


_A1_RE = re.compile(r"^\s*([A-Za-z]+)(\d+)\s*$")


class CellKind(str, Enum):
    EMPTY = "empty"
    NUMBER = "number"
    TEXT = "text"


@dataclass(frozen=True)
class Cell:
    """One worksheet value; ``number`` is set for NUMBER, ``text`` for TEXT."""

    kind: CellKind = CellKind.EMPTY
    number: Optional[float] = None
    text: str = ""

    @property
    def is_empty(self) -> bool:
        return self.kind is CellKind.EMPTY

    @property
    def is_number(self) -> bool:
        return self.kind is CellKind.NUMBER

    @property
    def is_text(self) -> bool:
        return self.kind is CellKind.TEXT

    def display(self) -> str:
        """Render the cell the way a spreadsheet would show it unformatted."""
        if self.kind is CellKind.NUMBER:
            value = float(self.number or 0.0)
            if value.is_integer():
                return str(int(value))
            return repr(value)
        if self.kind is CellKind.TEXT:
            return self.text
        return ""

    # ----- constructors ----------------------------------------------------

    @staticmethod
    def from_value(value: Any) -> "Cell":
        """Classify an arbitrary reader value into the closed cell type."""
        if isinstance(value, Cell):
            return value
        if value is None:
            return EMPTY_CELL
        if isinstance(value, bool):
            return Cell(CellKind.TEXT, text=str(value))
        if isinstance(value, numbers.Number):
            if pd.isna(value):
                return EMPTY_CELL
            return Cell(CellKind.NUMBER, number=float(value))
        if isinstance(value, (datetime, date, pd.Timestamp)):
            if pd.isna(value):
                return EMPTY_CELL
            if isinstance(value, datetime) and (value.hour or value.minute or value.second):
                return Cell(CellKind.TEXT, text=value.isoformat(sep=" ", timespec="seconds"))
            if isinstance(value, datetime):
                return Cell(CellKind.TEXT, text=value.date().isoformat())
            return Cell(CellKind.TEXT, text=value.isoformat())
        text = str(value).strip()
        if not text or text.lower() in {"nan", "none", "nat"}:
            return EMPTY_CELL
        return Cell(CellKind.TEXT, text=text)


EMPTY_CELL = Cell()


# ---------------------------------------------------------------------------
# Coordinates
# ---------------------------------------------------------------------------

def column_letter(col: int) -> str:
    """0-based column index -> spreadsheet letters (0 -> A, 26 -> AA)."""
    if col < 0:
        raise ValueError(f"column index must be >= 0, got {col}")
    letters = ""
    n = col + 1
    while n:
        n, rem = divmod(n - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def encode_cell(row: int, col: int) -> str:
    """0-based (row, col) -> A1 reference."""
    if row < 0:
        raise ValueError(f"row index must be >= 0, got {row}")
    return f"{column_letter(col)}{row + 1}"


def decode_cell(ref: str) -> Tuple[int, int]:
    """A1 reference -> 0-based (row, col)."""
    m = _A1_RE.match(ref or "")
    if not m:
        raise ValueError(f"not an A1 cell reference: {ref!r}")
    col = 0
    for ch in m.group(1).upper():
        col = col * 26 + (ord(ch) - ord("A") + 1)
    return int(m.group(2)) - 1, col - 1


@dataclass(frozen=True)
class CellRange:
    """Inclusive rectangle of 0-based coordinates."""

    start_row: int
    start_col: int
    end_row: int
    end_col: int

    def __post_init__(self) -> None:
        if self.start_row < 0 or self.start_col < 0:
            raise ValueError(f"negative range origin: {self}")
        if self.end_row < self.start_row or self.end_col < self.start_col:
            raise ValueError(f"inverted range: {self}")

    @property
    def start_ref(self) -> str:
        return encode_cell(self.start_row, self.start_col)

    @property
    def end_ref(self) -> str:
        return encode_cell(self.end_row, self.end_col)

    @property
    def a1(self) -> str:
        return f"{self.start_ref}:{self.end_ref}"

    def contains(self, row: int, col: int) -> bool:
        return self.start_row <= row <= self.end_row and self.start_col <= col <= self.end_col

    def coordinates(self) -> Iterator[Tuple[int, int]]:
        for r in range(self.start_row, self.end_row + 1):
            for c in range(self.start_col, self.end_col + 1):
                yield r, c

    @staticmethod
    def from_a1(ref: str) -> "CellRange":
        start, _, end = (ref or "").partition(":")
        r1, c1 = decode_cell(start)
        r2, c2 = decode_cell(end or start)
        return CellRange(r1, c1, r2, c2)


@dataclass(frozen=True)
class MergeRange:
    """A merged region and the value carried by its anchor (top-left) cell."""

    region: CellRange
    value: Cell = EMPTY_CELL


# ---------------------------------------------------------------------------
# Grid
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CellGrid:
    """Rows of cells; ragged rows are allowed, missing cells read as empty."""

    rows: Tuple[Tuple[Cell, ...], ...] = ()

    @property
    def n_rows(self) -> int:
        return len(self.rows)

    @property
    def n_cols(self) -> int:
        return max((len(r) for r in self.rows), default=0)

    def cell(self, row: int, col: int) -> Cell:
        if row < 0 or col < 0 or row >= len(self.rows):
            return EMPTY_CELL
        data = self.rows[row]
        if col >= len(data):
            return EMPTY_CELL
        return data[col]

    def text(self, row: int, col: int) -> str:
        return self.cell(row, col).display()

    def row(self, row: int) -> Tuple[Cell, ...]:
        if 0 <= row < len(self.rows):
            return self.rows[row]
        return ()

    def row_width(self, row: int) -> int:
        return len(self.row(row))

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.n_rows and 0 <= col < self.n_cols

    def is_row_empty(self, row: int) -> bool:
        return all(c.is_empty for c in self.row(row))

    @staticmethod
    def from_rows(rows: Sequence[Sequence[Any]]) -> "CellGrid":
        return CellGrid(tuple(tuple(Cell.from_value(v) for v in r) for r in rows))

    @staticmethod
    def from_dataframe(df: pd.DataFrame, include_header: bool = False) -> "CellGrid":
        """
        Build a grid from a ``header=None`` style DataFrame.

        With *include_header* the column labels become the first row, for
        frames that were read with the default header handling.
        """
        data: List[List[Any]] = []
        if include_header:
            data.append(list(df.columns))
        data.extend(df.itertuples(index=False, name=None))
        return CellGrid.from_rows(data)


@dataclass(frozen=True)
class Sheet:
    name: str
    grid: CellGrid
    merges: Tuple[MergeRange, ...] = ()


@dataclass(frozen=True)
class Workbook:
    sheets: Tuple[Sheet, ...] = field(default_factory=tuple)

    @property
    def sheet_names(self) -> List[str]:
        return [s.name for s in self.sheets]

    def sheet(self, name: Optional[str] = None) -> Optional[Sheet]:
        """Sheet called *name*, or the first sheet when no name is given."""
        if not self.sheets:
            return None
        if name is None:
            return self.sheets[0]
        for s in self.sheets:
            if s.name == name:
                return s
        return None

    @staticmethod
    def from_grids(grids: Sequence[Tuple[str, Sequence[Sequence[Any]]]]) -> "Workbook":
        """Convenience constructor from ``(sheet_name, rows)`` pairs."""
        return Workbook(tuple(Sheet(name, CellGrid.from_rows(rows)) for name, rows in grids))
