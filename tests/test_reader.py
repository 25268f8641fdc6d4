from datetime import datetime

import pytest
from openpyxl import Workbook as XlsxWorkbook

from offer_engine.excel.grid import CellRange
from offer_engine.excel.reader import (
    WorkbookReader,
    currency_symbol_in_format,
    read_workbook,
    read_workbooks,
    render_value,
)


@pytest.fixture
def offer_xlsx(tmp_path):
    wb = XlsxWorkbook()
    ws = wb.active
    ws.title = "Offer"
    ws["A1"] = "Resort: Sunny Side"
    ws.merge_cells("A1:C1")
    ws["A2"] = "January"
    ws["B2"] = 150
    ws["B2"].number_format = '"€"#,##0.00'
    ws["C2"] = datetime(2025, 4, 1)
    wb.create_sheet("Empty")
    path = tmp_path / "offer.xlsx"
    wb.save(path)
    return path


class TestNumberFormats:
    @pytest.mark.parametrize(
        "fmt, symbol",
        [
            ('"€"#,##0.00', "€"),
            ("[$€-2] #,##0.00", "€"),
            ('"C$"#,##0.00', "C$"),
            ("£#,##0", "£"),
            ("[$-409]#,##0.00", None),
            ("0.00", None),
            (None, None),
        ],
    )
    def test_currency_symbol_in_format(self, fmt, symbol):
        assert currency_symbol_in_format(fmt) == symbol

    def test_render_value(self):
        assert render_value(150, '"€"#,##0.00') == "€150.00"
        assert render_value(150, "General") == 150
        assert render_value(True, '"€"#,##0.00') is True
        assert render_value("N/A", '"€"#,##0.00') == "N/A"


class TestXlsx:
    def test_values_and_merges(self, offer_xlsx):
        workbook = read_workbook(offer_xlsx)
        assert workbook.sheet_names == ["Offer", "Empty"]

        sheet = workbook.sheet("Offer")
        assert sheet.grid.text(0, 0) == "Resort: Sunny Side"
        assert sheet.grid.text(1, 1) == "€150.00"
        assert sheet.grid.text(1, 2) == "2025-04-01"

        assert len(sheet.merges) == 1
        assert sheet.merges[0].region == CellRange(0, 0, 0, 2)
        assert sheet.merges[0].value.text == "Resort: Sunny Side"

    def test_empty_sheet(self, offer_xlsx):
        assert read_workbook(offer_xlsx).sheet("Empty").grid.n_rows == 0

    def test_bytes_are_sniffed(self, offer_xlsx):
        workbook = WorkbookReader().read(offer_xlsx.read_bytes())
        assert workbook.sheet_names == ["Offer", "Empty"]

    def test_list_sheet_names(self, offer_xlsx):
        assert WorkbookReader().list_sheet_names(str(offer_xlsx)) == ["Offer", "Empty"]

    def test_read_workbooks(self, offer_xlsx):
        [(source, workbook)] = read_workbooks([offer_xlsx])
        assert source == str(offer_xlsx)
        assert workbook.sheet().name == "Offer"


class TestCsv:
    def test_csv_file(self, tmp_path):
        path = tmp_path / "prices.csv"
        path.write_text("Month,Price\nJanuary,€150\nFebruary,\n", encoding="utf-8")
        workbook = read_workbook(path)
        sheet = workbook.sheet()
        assert sheet.name == "prices"
        assert sheet.grid.text(1, 1) == "€150"
        assert sheet.grid.cell(2, 1).is_empty

    def test_csv_bytes(self):
        workbook = WorkbookReader().read("Month,Price\nJanuary,€150\n".encode("utf-8"))
        assert workbook.sheet().grid.text(1, 0) == "January"

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello", encoding="utf-8")
        with pytest.raises(ValueError, match="unsupported"):
            read_workbook(path)


class TestXls:
    def test_xls_uses_xlrd(self, monkeypatch, tmp_path):
        import xlrd

        path = tmp_path / "legacy.xls"
        path.write_bytes(b"")
        called = {"formatting_info": None, "released": False}

        class FakeCell:
            def __init__(self, ctype, value="", xf_index=0):
                self.ctype = ctype
                self.value = value
                self.xf_index = xf_index

        class FakeXf:
            def __init__(self, format_key):
                self.format_key = format_key

        class FakeFormat:
            def __init__(self, format_str):
                self.format_str = format_str

        class FakeSheet:
            name = "Legacy"
            nrows = 2
            ncols = 3
            # xlrd reports merges as half-open (rlo, rhi, clo, chi)
            merged_cells = [(0, 1, 0, 3)]
            _cells = [
                [FakeCell(xlrd.XL_CELL_TEXT, "Resort: Old Town"), FakeCell(xlrd.XL_CELL_BLANK),
                 FakeCell(xlrd.XL_CELL_BLANK)],
                [FakeCell(xlrd.XL_CELL_TEXT, "January"), FakeCell(xlrd.XL_CELL_NUMBER, 99.0, 1),
                 FakeCell(xlrd.XL_CELL_NUMBER, 12.0, 0)],
            ]

            def cell(self, r, c):
                return self._cells[r][c]

        class FakeBook:
            nsheets = 1
            datemode = 0
            xf_list = [FakeXf(0), FakeXf(1)]
            format_map = {0: FakeFormat("General"), 1: FakeFormat('"£"#,##0.00')}

            def sheet_by_index(self, i):
                return FakeSheet()

            def release_resources(self):
                called["released"] = True

        def fake_open_workbook(file_path, formatting_info=False):
            called["formatting_info"] = formatting_info
            return FakeBook()

        monkeypatch.setattr(xlrd, "open_workbook", fake_open_workbook)

        workbook = read_workbook(path)
        sheet = workbook.sheet()
        assert sheet.name == "Legacy"
        assert sheet.grid.text(1, 1) == "£99.00"
        assert sheet.grid.cell(1, 2).number == 12.0
        assert sheet.grid.cell(0, 1).is_empty
        assert sheet.merges[0].region == CellRange(0, 0, 0, 2)
        assert sheet.merges[0].value.text == "Resort: Old Town"
        assert called == {"formatting_info": True, "released": True}
