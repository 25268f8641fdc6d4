from datetime import date, datetime

import pandas as pd
import pytest

from offer_engine.excel.grid import (
    EMPTY_CELL,
    Cell,
    CellGrid,
    CellKind,
    CellRange,
    MergeRange,
    Sheet,
    Workbook,
    column_letter,
    decode_cell,
    encode_cell,
)


class TestCellFromValue:
    def test_none_and_blank_text_are_empty(self):
        assert Cell.from_value(None).is_empty
        assert Cell.from_value("   ").is_empty
        assert Cell.from_value("nan").is_empty

    def test_numbers(self):
        cell = Cell.from_value(150)
        assert cell.kind is CellKind.NUMBER
        assert cell.number == 150.0
        assert cell.display() == "150"
        assert Cell.from_value(12.5).display() == "12.5"

    def test_nan_number_is_empty(self):
        assert Cell.from_value(float("nan")).is_empty

    def test_text_is_stripped(self):
        cell = Cell.from_value("  January ")
        assert cell.is_text
        assert cell.text == "January"

    def test_bool_becomes_text(self):
        cell = Cell.from_value(True)
        assert cell.is_text
        assert cell.text == "True"

    def test_dates_become_iso_text(self):
        assert Cell.from_value(date(2025, 4, 1)).text == "2025-04-01"
        assert Cell.from_value(datetime(2025, 4, 1)).text == "2025-04-01"
        assert Cell.from_value(datetime(2025, 4, 1, 9, 30)).text == "2025-04-01 09:30:00"

    def test_unknown_objects_are_stringified(self):
        class Thing:
            def __str__(self):
                return "thing"

        cell = Cell.from_value(Thing())
        assert cell.is_text
        assert cell.text == "thing"

    def test_cell_passes_through(self):
        cell = Cell(CellKind.TEXT, text="x")
        assert Cell.from_value(cell) is cell


class TestCoordinates:
    def test_column_letters(self):
        assert column_letter(0) == "A"
        assert column_letter(25) == "Z"
        assert column_letter(26) == "AA"
        assert column_letter(701) == "ZZ"

    def test_encode_decode(self):
        assert encode_cell(0, 0) == "A1"
        assert encode_cell(9, 27) == "AB10"
        assert decode_cell("AB10") == (9, 27)
        assert decode_cell("a1") == (0, 0)

    def test_decode_rejects_garbage(self):
        with pytest.raises(ValueError):
            decode_cell("1A")

    def test_negative_index_rejected(self):
        with pytest.raises(ValueError):
            encode_cell(-1, 0)


class TestCellRange:
    def test_a1_and_contains(self):
        rng = CellRange(1, 1, 2, 3)
        assert rng.a1 == "B2:D3"
        assert rng.contains(2, 3)
        assert not rng.contains(0, 1)
        assert len(list(rng.coordinates())) == 6

    def test_from_a1(self):
        assert CellRange.from_a1("B2:C3") == CellRange(1, 1, 2, 2)
        assert CellRange.from_a1("C5") == CellRange(4, 2, 4, 2)

    def test_inverted_range_rejected(self):
        with pytest.raises(ValueError):
            CellRange(3, 0, 1, 0)


class TestCellGrid:
    def test_out_of_range_reads_empty(self):
        grid = CellGrid.from_rows([["a", "b"], ["c"]])
        assert grid.n_rows == 2
        assert grid.n_cols == 2
        assert grid.cell(1, 1) is EMPTY_CELL
        assert grid.cell(-1, 0) is EMPTY_CELL
        assert grid.cell(50, 50) is EMPTY_CELL
        assert grid.text(0, 1) == "b"

    def test_row_helpers(self):
        grid = CellGrid.from_rows([["a"], [None, None]])
        assert grid.row_width(0) == 1
        assert grid.is_row_empty(1)
        assert grid.is_row_empty(7)
        assert grid.in_bounds(0, 0)
        assert not grid.in_bounds(2, 0)

    def test_from_dataframe(self):
        df = pd.DataFrame([["January", "€150.00"], ["February", ""]])
        grid = CellGrid.from_dataframe(df)
        assert grid.n_rows == 2
        assert grid.cell(0, 1).text == "€150.00"
        assert grid.cell(1, 1).is_empty

    def test_from_dataframe_with_header(self):
        df = pd.DataFrame({"Month": ["January"], "Hotel": [150]})
        grid = CellGrid.from_dataframe(df, include_header=True)
        assert grid.text(0, 0) == "Month"
        assert grid.cell(1, 1).number == 150.0

    def test_grid_is_immutable(self):
        grid = CellGrid.from_rows([["a"]])
        with pytest.raises(Exception):
            grid.rows = ()


class TestWorkbook:
    def test_sheet_lookup(self):
        wb = Workbook.from_grids([("First", [["a"]]), ("Second", [["b"]])])
        assert wb.sheet_names == ["First", "Second"]
        assert wb.sheet().name == "First"
        assert wb.sheet("Second").grid.text(0, 0) == "b"
        assert wb.sheet("Missing") is None

    def test_empty_workbook(self):
        assert Workbook().sheet() is None

    def test_merge_range_defaults_to_empty_anchor(self):
        merge = MergeRange(CellRange(0, 0, 0, 1))
        sheet = Sheet("S", CellGrid.from_rows([["x", None]]), (merge,))
        assert sheet.merges[0].value.is_empty
