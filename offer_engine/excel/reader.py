"""
WorkbookReader: load spreadsheet files into immutable :class:`Workbook` snapshots.

This is the only module in the package that touches files.  It handles:
- openpyxl for ``.xlsx`` / ``.xlsm`` (values with ``data_only=True``, merges)
- xlrd for legacy ``.xls`` (``formatting_info=True`` so merges are reported)
- pandas for ``.csv``
- raw ``bytes`` input, sniffed by magic number when no filename is given

Numeric cells whose number format carries a currency symbol are rendered as
text (``"€150.00"``) so that the currency survives into the grid.
"""

from __future__ import annotations

import io
import re
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple, Union

import pandas as pd
from openpyxl import load_workbook

from offer_engine.excel.grid import Cell, CellGrid, CellRange, MergeRange, Sheet, Workbook
from offer_engine.logger import get_logger

logger = get_logger(__name__)

Source = Union[str, Path, bytes]

_XLS_MAGIC = b"\xd0\xcf\x11\xe0"
_ZIP_MAGIC = b"PK"

_LOCALE_TAG_RE = re.compile(r"\[\$-[0-9A-Fa-f]+\]")

# Checked in order: "C$" before "$"
_FORMAT_SYMBOLS: Tuple[str, ...] = ("€", "£", "¥", "CHF", "C$", "$")


def currency_symbol_in_format(number_format: Optional[str]) -> Optional[str]:
    """Currency symbol used by an Excel number format string, if any."""
    fmt = _LOCALE_TAG_RE.sub("", number_format or "")
    for symbol in _FORMAT_SYMBOLS:
        if symbol in fmt:
            return symbol
    return None


def render_value(value: Any, number_format: Optional[str] = None) -> Any:
    """Reader value -> grid value; currency-formatted numbers become text."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    symbol = currency_symbol_in_format(number_format)
    if symbol is None:
        return value
    return f"{symbol}{value:.2f}"


class WorkbookReader:
    """Stateless file -> :class:`Workbook` adapter."""

    def read(self, source: Source, filename: Optional[str] = None) -> Workbook:
        kind = self._detect_kind(source, filename)
        label = filename or (str(source) if not isinstance(source, bytes) else "<bytes>")
        logger.info("Reading workbook %s (%s)", label, kind)
        if kind == "xls":
            return self._read_xls(source)
        if kind == "csv":
            return self._read_csv(source, filename)
        return self._read_xlsx(source)

    def list_sheet_names(self, source: Source, filename: Optional[str] = None) -> List[str]:
        return self.read(source, filename).sheet_names

    # ------------------------------------------------------------------
    # Format detection
    # ------------------------------------------------------------------

    @staticmethod
    def _detect_kind(source: Source, filename: Optional[str]) -> str:
        name = filename or ("" if isinstance(source, bytes) else str(source))
        suffix = Path(name).suffix.lower() if name else ""
        if suffix == ".xls":
            return "xls"
        if suffix == ".csv":
            return "csv"
        if suffix in (".xlsx", ".xlsm"):
            return "xlsx"
        if isinstance(source, bytes):
            if source.startswith(_XLS_MAGIC):
                return "xls"
            if source.startswith(_ZIP_MAGIC):
                return "xlsx"
            return "csv"
        raise ValueError(f"unsupported spreadsheet type: {name!r}")

    @staticmethod
    def _as_stream(source: Source) -> Union[str, io.BytesIO]:
        if isinstance(source, bytes):
            return io.BytesIO(source)
        return str(source)

    # ------------------------------------------------------------------
    # xlsx (openpyxl)
    # ------------------------------------------------------------------

    def _read_xlsx(self, source: Source) -> Workbook:
        wb = load_workbook(self._as_stream(source), data_only=True, read_only=False)
        try:
            sheets = [self._xlsx_sheet(ws) for ws in wb.worksheets]
        finally:
            try:
                wb.close()
            except Exception:
                pass
        return Workbook(tuple(sheets))

    @staticmethod
    def _xlsx_sheet(ws) -> Sheet:
        ranges = list(ws.merged_cells.ranges)
        n_rows = max([ws.max_row] + [r.max_row for r in ranges]) if ws.max_row else 0
        n_cols = max([ws.max_column] + [r.max_col for r in ranges]) if ws.max_column else 0

        rows: List[List[Any]] = []
        for row in ws.iter_rows(min_row=1, max_row=n_rows, max_col=n_cols):
            rows.append([render_value(c.value, getattr(c, "number_format", None)) for c in row])
        # a sheet with a single empty A1 is an empty sheet
        if len(rows) == 1 and all(v is None for v in rows[0]):
            rows = []
        grid = CellGrid.from_rows(rows)

        merges: List[MergeRange] = []
        for r in ranges:
            anchor = ws.cell(row=r.min_row, column=r.min_col)
            merges.append(MergeRange(
                region=CellRange(r.min_row - 1, r.min_col - 1, r.max_row - 1, r.max_col - 1),
                value=Cell.from_value(render_value(anchor.value, anchor.number_format)),
            ))
        logger.debug("Sheet %r: %dx%d, %d merge(s)", ws.title, grid.n_rows, grid.n_cols, len(merges))
        return Sheet(ws.title, grid, tuple(merges))

    # ------------------------------------------------------------------
    # xls (xlrd)
    # ------------------------------------------------------------------

    def _read_xls(self, source: Source) -> Workbook:
        import xlrd

        if isinstance(source, bytes):
            book = xlrd.open_workbook(file_contents=source, formatting_info=True)
        else:
            book = xlrd.open_workbook(str(source), formatting_info=True)
        try:
            sheets = [self._xls_sheet(book, book.sheet_by_index(i)) for i in range(book.nsheets)]
        finally:
            book.release_resources()
        return Workbook(tuple(sheets))

    @staticmethod
    def _xls_sheet(book, sh) -> Sheet:
        import xlrd

        def value_at(r: int, c: int) -> Any:
            cell = sh.cell(r, c)
            if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
                return None
            if cell.ctype == xlrd.XL_CELL_DATE:
                return xlrd.xldate.xldate_as_datetime(cell.value, book.datemode)
            if cell.ctype == xlrd.XL_CELL_BOOLEAN:
                return bool(cell.value)
            if cell.ctype == xlrd.XL_CELL_ERROR:
                return None
            if cell.ctype == xlrd.XL_CELL_NUMBER:
                fmt = book.format_map.get(book.xf_list[cell.xf_index].format_key)
                return render_value(cell.value, fmt.format_str if fmt else None)
            return cell.value

        rows = [[value_at(r, c) for c in range(sh.ncols)] for r in range(sh.nrows)]
        grid = CellGrid.from_rows(rows)
        merges = tuple(
            MergeRange(
                region=CellRange(rlo, clo, rhi - 1, chi - 1),
                value=Cell.from_value(value_at(rlo, clo)),
            )
            for rlo, rhi, clo, chi in sh.merged_cells
        )
        return Sheet(sh.name, grid, merges)

    # ------------------------------------------------------------------
    # csv (pandas)
    # ------------------------------------------------------------------

    @staticmethod
    def _read_csv(source: Source, filename: Optional[str]) -> Workbook:
        stream = io.BytesIO(source) if isinstance(source, bytes) else str(source)
        df = pd.read_csv(stream, header=None, dtype=str, keep_default_na=False)
        name = Path(filename or (source if not isinstance(source, bytes) else "csv")).stem
        return Workbook((Sheet(name or "csv", CellGrid.from_dataframe(df)),))


def read_workbook(source: Source, filename: Optional[str] = None) -> Workbook:
    return WorkbookReader().read(source, filename)


def read_workbooks(paths: Sequence[Union[str, Path]]) -> List[Tuple[str, Workbook]]:
    return [(str(p), read_workbook(p)) for p in paths]


__all__ = [
    "WorkbookReader",
    "currency_symbol_in_format",
    "read_workbook",
    "read_workbooks",
    "render_value",
]

