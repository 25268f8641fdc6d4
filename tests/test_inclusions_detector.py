import pytest

from offer_engine.excel.grid import CellGrid
from offer_engine.excel.inclusions_detector import (
    HeaderCandidate,
    InclusionsDetector,
    accommodation_mention,
    detect_inclusions_sections,
)


TYPED_ROWS = [
    ["Hotel Package Includes"],
    ["• Daily breakfast buffet"],
    ["• Room cleaning twice weekly"],
    ["• Sea view balcony"],
    [],
    [],
    [],
    [],
    [],
    [],
    ["Apartment Inclusions"],
    ["1. Fully equipped kitchen"],
    ["2. Weekly linen change"],
    ["3. Private parking space"],
]


class TestGlobalSection:
    def test_single_untyped_section(self):
        grid = CellGrid.from_rows([
            ["What's Included"],
            ["- Daily breakfast"],
            ["- Free wifi access"],
            ["- Airport transfer"],
        ])
        result = detect_inclusions_sections(grid)
        assert len(result.sections) == 1
        section = result.global_section
        assert section is not None
        assert section.header == "What's Included"
        assert section.content == ["- Daily breakfast", "- Free wifi access", "- Airport transfer"]
        assert section.format == "bullet-points"
        assert section.accommodation_type is None
        assert section.region.a1 == "A1:A4"
        assert result.by_accommodation_type == {}
        assert result.confidence == pytest.approx(1.0)

    def test_offer_sheet(self, offer_rows):
        result = detect_inclusions_sections(CellGrid.from_rows(offer_rows))
        assert result.global_section.header == "Package Includes"
        assert len(result.global_section.content) == 3


class TestTypedSections:
    def test_sections_are_filed_by_type(self):
        result = detect_inclusions_sections(CellGrid.from_rows(TYPED_ROWS))
        assert set(result.by_accommodation_type) == {"Hotel", "Apartment"}
        assert result.global_section is None
        hotel = result.by_accommodation_type["Hotel"]
        apartment = result.by_accommodation_type["Apartment"]
        assert hotel.format == "bullet-points"
        assert apartment.format == "numbered"
        assert apartment.content[0] == "1. Fully equipped kitchen"
        assert result.confidence == pytest.approx(min(1.0, result.sections[0].confidence + 0.1))

    def test_scan_stops_at_next_header(self):
        rows = [
            ["Included services"],
            ["- Beach towels on request"],
            ["Package features"],
            ["- Kids club access"],
        ]
        detector = InclusionsDetector()
        section = detector.analyze_section(CellGrid.from_rows(rows), HeaderCandidate(0, 0, "Included services", "keyword"))
        assert section.content == ["- Beach towels on request"]

    def test_scan_stops_after_three_empty_rows(self):
        rows = [["Inclusions"], ["- Late checkout"], [], [], [], ["- Far away item"]]
        detector = InclusionsDetector()
        section = detector.analyze_section(CellGrid.from_rows(rows), HeaderCandidate(0, 0, "Inclusions", "keyword"))
        assert section.content == ["- Late checkout"]

    def test_neighbouring_columns_are_read(self):
        rows = [["Inclusions", None], [None, "Welcome drink on arrival"], [None, "Free parking on site"]]
        detector = InclusionsDetector()
        section = detector.analyze_section(CellGrid.from_rows(rows), HeaderCandidate(0, 0, "Inclusions", "keyword"))
        assert section.content == ["Welcome drink on arrival", "Free parking on site"]
        assert section.region.end == "B3"


class TestDiscovery:
    def test_marker_without_header_is_dropped(self):
        grid = CellGrid.from_rows([["- orphan bullet"], ["- another one"]])
        assert InclusionsDetector().find_headers(grid) == []

    def test_near_duplicates_are_merged(self):
        grid = CellGrid.from_rows([
            ["Inclusions", "Features"],
            ["- Daily breakfast"],
        ])
        headers = InclusionsDetector().find_headers(grid)
        assert [(h.row, h.col, h.method) for h in headers] == [(0, 0, "keyword")]

    def test_items_filter_prices_and_months(self):
        grid = CellGrid.from_rows([
            ["Inclusions"],
            ["€150"],
            ["January"],
            ["Daily breakfast"],
            ["Hotel"],
        ])
        section = InclusionsDetector().best_section(grid)
        assert section.content == ["Daily breakfast"]

    def test_empty_grid(self):
        result = detect_inclusions_sections(CellGrid.from_rows([]))
        assert result.sections == []
        assert result.confidence == 0.0
        assert len(result.suggestions) == 2
        assert not InclusionsDetector().has_inclusions(CellGrid.from_rows([]))

    def test_accommodation_mention(self):
        assert accommodation_mention("Villa extras", []) == "Villa"
        assert accommodation_mention("Extras", ["Studio cleaning"]) == "Studio"
        assert accommodation_mention("Extras", ["Towels"]) is None
