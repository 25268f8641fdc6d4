"""
PricingExtractor: turn a :class:`PricingSection` into pricing records.

The extractor trusts the section it is given.  For every month on the month
axis it walks the other axis in a fixed nested order (accommodation type,
then nights, then party size), one cell per combination, and never
cross-checks that order against the header text of each column or row.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from offer_engine.excel.config import (
    DEFAULT_ACCOMMODATION_NAME,
    DetectorConfig,
    DEFAULT_CONFIG,
)
from offer_engine.excel.grid import Cell, CellGrid, MergeRange, encode_cell
from offer_engine.excel.matchers import (
    accommodation_code,
    cell_currency,
    extract_note,
    find_accommodation_types,
    match_month,
    normalize_month,
    parse_price,
    special_period_for,
)
from offer_engine.excel.metadata_extractor import count_currencies
from offer_engine.ir import (
    AccommodationType,
    PriceCell,
    PricingMatrix,
    PricingRecord,
    PricingSection,
    ValidityWindow,
)
from offer_engine.logger import get_logger

logger = get_logger(__name__)

# (month label, row, col) of a month on the month axis
MonthPosition = Tuple[str, int, int]


class MergeIndex:
    """Coordinate -> anchor value lookup over a sheet's merge ranges."""

    def __init__(self, grid: CellGrid, merges: Sequence[MergeRange] = ()):
        self._cells: Dict[Tuple[int, int], Cell] = {}
        n_rows, n_cols = grid.n_rows, grid.n_cols
        for merge in merges:
            rng = merge.region
            if rng.end_row >= n_rows or rng.end_col >= n_cols:
                raise ValueError(
                    f"merge range {rng.a1} lies outside the {n_rows}x{n_cols} grid"
                )
            anchor = merge.value
            if anchor.is_empty:
                anchor = grid.cell(rng.start_row, rng.start_col)
            for coord in rng.coordinates():
                self._cells.setdefault(coord, anchor)

    def get(self, row: int, col: int) -> Optional[Cell]:
        return self._cells.get((row, col))

    def __len__(self) -> int:
        return len(self._cells)


class PricingExtractor:
    def __init__(self, cfg: DetectorConfig = DEFAULT_CONFIG):
        self._cfg = cfg

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def detect_currency(self, grid: CellGrid) -> str:
        """Most frequent currency in the top-left window, default EUR."""
        c = self._cfg
        counts, locations = count_currencies(grid, c.sheet_currency_scan_rows, c.sheet_currency_scan_cols)
        if not counts:
            return c.default_currency
        order = list(locations)
        return max(counts, key=lambda code: (counts[code], -order.index(code)))

    def extract_matrix(
        self,
        grid: CellGrid,
        section: Optional[PricingSection],
        merges: Sequence[MergeRange] = (),
    ) -> Optional[PricingMatrix]:
        if section is None:
            return None
        merge_index = MergeIndex(grid, merges)
        currency = self.detect_currency(grid)
        months = self.month_positions(grid, section)
        types = self.accommodation_types(grid, section)
        nights = list(section.nights_options) or list(self._cfg.default_nights)
        pax = list(section.pax_options) or list(self._cfg.default_pax)

        cells: List[List[PriceCell]] = []
        for _label, m_row, m_col in months:
            line: List[PriceCell] = []
            for row, col in self._walk(section, m_row, m_col, len(types) * len(nights) * len(pax)):
                line.append(self.price_cell(grid, merge_index, row, col, currency))
            cells.append(line)

        return PricingMatrix(
            months=[label for label, _, _ in months],
            accommodation_types=types,
            nights_options=nights,
            pax_options=pax,
            currency=currency,
            cells=cells,
        )

    def extract_pricing_matrix(
        self,
        grid: CellGrid,
        section: Optional[PricingSection],
        merges: Sequence[MergeRange] = (),
        validity: Optional[ValidityWindow] = None,
    ) -> Optional[List[PricingRecord]]:
        """Flattened records, or ``None`` when there is no pricing section."""
        matrix = self.extract_matrix(grid, section, merges)
        if matrix is None:
            return None
        records = self.flatten(matrix, validity)
        logger.info(
            "Extracted %d pricing record(s) over %d month(s), currency=%s",
            len(records), len(matrix.months), matrix.currency,
        )
        return records

    # -----------------------------------------------------------------
    # Axes
    # -----------------------------------------------------------------

    @staticmethod
    def month_positions(grid: CellGrid, section: PricingSection) -> List[MonthPosition]:
        """Matcher-confirmed months inside the section, first occurrence kept."""
        region = section.region
        seen = set()
        out: List[MonthPosition] = []
        if section.orientation == "months-rows":
            coords = [(r, region.start_col) for r in range(region.start_row, region.end_row + 1)]
        else:
            coords = [(region.start_row, c) for c in range(region.start_col + 1, region.end_col + 1)]
        for row, col in coords:
            cell = grid.cell(row, col)
            if not match_month(cell):
                continue
            label = normalize_month(cell.text)
            if label in seen:
                continue
            seen.add(label)
            out.append((label, row, col))
        return out

    @staticmethod
    def accommodation_types(grid: CellGrid, section: PricingSection) -> List[AccommodationType]:
        names = list(dict.fromkeys(section.accommodation_types))
        if not names:
            region = section.region
            labels = [
                grid.cell(r, region.start_col).text
                for r in range(region.start_row, region.end_row + 1)
                if grid.cell(r, region.start_col).is_text
            ]
            names = find_accommodation_types(labels)
        if not names:
            names = [DEFAULT_ACCOMMODATION_NAME]
        return [AccommodationType(name=n, code=accommodation_code(n)) for n in names]

    @staticmethod
    def _walk(section: PricingSection, m_row: int, m_col: int, count: int) -> List[Tuple[int, int]]:
        """Coordinates of the *count* consecutive cells belonging to one month."""
        region = section.region
        out: List[Tuple[int, int]] = []
        if section.orientation == "months-rows":
            col = region.start_col + 1
            while len(out) < count and col <= region.end_col:
                out.append((m_row, col))
                col += 1
        else:
            row = region.start_row + 1
            while len(out) < count and row <= region.end_row:
                out.append((row, m_col))
                row += 1
        return out

    # -----------------------------------------------------------------
    # Cells
    # -----------------------------------------------------------------

    @staticmethod
    def price_cell(
        grid: CellGrid,
        merge_index: MergeIndex,
        row: int,
        col: int,
        sheet_currency: str,
    ) -> PriceCell:
        own = grid.cell(row, col)
        anchor = merge_index.get(row, col)
        source = anchor if anchor is not None else own
        value, available = parse_price(source)
        text = source.display()
        return PriceCell(
            value=value,
            currency=cell_currency(source) or sheet_currency,
            available=available,
            note=extract_note(text) if source.is_text else None,
            coordinate=encode_cell(row, col),
            is_merged=anchor is not None,
            raw=own.display(),
        )

    @staticmethod
    def flatten(matrix: PricingMatrix, validity: Optional[ValidityWindow] = None) -> List[PricingRecord]:
        combos = [
            (t.name, n, p)
            for t in matrix.accommodation_types
            for n in matrix.nights_options
            for p in matrix.pax_options
        ]
        records: List[PricingRecord] = []
        for month, line in zip(matrix.months, matrix.cells):
            special = special_period_for(month)
            for (type_name, nights, pax), cell in zip(combos, line):
                records.append(PricingRecord(
                    month=month,
                    accommodation_type=type_name,
                    nights=nights,
                    pax=pax,
                    price=cell.value,
                    currency=cell.currency,
                    available=cell.available,
                    special_period=special,
                    valid_from=validity.valid_from if validity else None,
                    valid_to=validity.valid_to if validity else None,
                    note=cell.note,
                    coordinate=cell.coordinate,
                ))
        return records


# ---------------------------------------------------------------------------
# Module-level convenience wrappers
# ---------------------------------------------------------------------------

def extract_pricing_matrix(
    grid: CellGrid,
    section: Optional[PricingSection],
    merges: Sequence[MergeRange] = (),
    validity: Optional[ValidityWindow] = None,
    cfg: DetectorConfig = DEFAULT_CONFIG,
) -> Optional[List[PricingRecord]]:
    return PricingExtractor(cfg).extract_pricing_matrix(grid, section, merges, validity)


def detect_currency(grid: CellGrid, cfg: DetectorConfig = DEFAULT_CONFIG) -> str:
    return PricingExtractor(cfg).detect_currency(grid)
