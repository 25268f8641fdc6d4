"""
LayoutDetector: find where the pricing grid and inclusion list sit.

Four independent scanners propose scored :class:`LayoutPattern` candidates
(months down the first column, months across a header row, a bare block of
prices, and an inclusions list).  Overlapping candidates of the same family
are suppressed and the survivors are averaged into one confidence.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from offer_engine.excel.config import (
    LAYOUT_INCLUSION_KEYWORDS,
    DetectorConfig,
    DEFAULT_CONFIG,
)
from offer_engine.excel.grid import Cell, CellGrid
from offer_engine.excel.matchers import (
    extract_nights,
    extract_pax,
    find_accommodation_types,
    is_bullet,
    is_numbered,
    is_price_like,
    list_format,
    looks_like_header,
    match_month,
    normalize_month,
)
from offer_engine.excel.scoring import (
    FAMILY_PRIORITY,
    PRICING_FAMILIES,
    CandidateFeatures,
    overall_confidence,
    score,
)
from offer_engine.ir import (
    InclusionsSection,
    LayoutDetection,
    LayoutMetadata,
    LayoutPattern,
    PricingSection,
    Region,
)
from offer_engine.logger import get_logger

logger = get_logger(__name__)


def _structure(types: List[str], nights: List[int], pax: List[int]) -> Optional[str]:
    axes = [name for name, values in (("type", types), ("nights", nights), ("pax", pax)) if values]
    return "-".join(axes) or None


class LayoutDetector:
    """
    Stateless layout detector.

    Every public method takes the grid explicitly; the instance only holds
    the :class:`DetectorConfig`.
    """

    def __init__(self, cfg: DetectorConfig = DEFAULT_CONFIG):
        self._cfg = cfg

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def detect_layout(self, grid: CellGrid) -> LayoutDetection:
        candidates: List[LayoutPattern] = []
        candidates.extend(self.scan_months_rows(grid))
        candidates.extend(self.scan_months_columns(grid))
        candidates.extend(self.scan_pricing_matrix(grid))
        candidates.extend(self.scan_inclusions(grid))
        logger.debug("Layout candidates: %d", len(candidates))

        kept = self.suppress_overlaps(candidates)
        has_pricing = any(p.kind in PRICING_FAMILIES for p in kept)

        if not has_pricing:
            best = self._degenerate_pattern()
            others = kept
            confidence = self._cfg.degenerate_confidence
        else:
            best, others = kept[0], kept[1:]
            best_by_family: Dict[str, float] = {}
            for p in kept:
                best_by_family.setdefault(p.kind, p.confidence)
            confidence = overall_confidence(best_by_family)

        suggestions = self._suggestions(kept, best)
        logger.info(
            "Layout detected: best=%s at %s conf=%.2f (%d patterns kept)",
            best.kind, best.region.a1, confidence, len(kept),
        )
        return LayoutDetection(
            best_pattern=best,
            other_patterns=others,
            suggestions=suggestions,
            confidence=confidence,
        )

    def find_pricing_section(self, grid: CellGrid) -> Optional[PricingSection]:
        """Highest-confidence pricing-family pattern as a frozen section."""
        return self.pricing_section_of(self.detect_layout(grid))

    def find_inclusions_section(self, grid: CellGrid) -> Optional[InclusionsSection]:
        return self.inclusions_section_of(self.detect_layout(grid))

    def pricing_section_of(self, detection: LayoutDetection) -> Optional[PricingSection]:
        """Same as :meth:`find_pricing_section`, over an existing detection."""
        pattern = next(
            (p for p in detection.patterns if p.kind in PRICING_FAMILIES and self._is_real(p)),
            None,
        )
        if pattern is None:
            logger.info("No pricing section found")
            return None
        return self.section_from_pattern(pattern)

    @staticmethod
    def inclusions_section_of(detection: LayoutDetection) -> Optional[InclusionsSection]:
        pattern = next((p for p in detection.patterns if p.kind == "inclusions-list"), None)
        if pattern is None:
            return None
        content = list(pattern.metadata.items)
        return InclusionsSection(
            region=pattern.region,
            header=pattern.headers[0] if pattern.headers else "",
            content=content,
            format=list_format(content),
            accommodation_type=(find_accommodation_types(pattern.headers) or [None])[0],
            confidence=pattern.confidence,
        )

    def section_from_pattern(self, pattern: LayoutPattern) -> PricingSection:
        texts = list(pattern.headers) + list(pattern.metadata.axis_labels)
        nights = extract_nights(texts) or list(self._cfg.default_nights)
        pax = extract_pax(texts) or list(self._cfg.default_pax)
        if pattern.kind == "months-rows":
            orientation = "months-rows"
        elif pattern.kind == "months-columns":
            orientation = "months-columns"
        else:
            labels = pattern.metadata.axis_labels
            months_in_rows = bool(labels) and all(
                match_month(Cell.from_value(label)) for label in labels
            )
            orientation = "months-rows" if months_in_rows else "months-columns"
        return PricingSection(
            region=pattern.region,
            orientation=orientation,
            accommodation_types=tuple(pattern.metadata.accommodation_types),
            nights_options=tuple(nights),
            pax_options=tuple(pax),
        )

    # -----------------------------------------------------------------
    # Scanners
    # -----------------------------------------------------------------

    def scan_months_rows(self, grid: CellGrid) -> List[LayoutPattern]:
        c = self._cfg
        n_rows, n_cols = grid.n_rows, grid.n_cols
        out: List[LayoutPattern] = []
        row = 0
        limit = min(n_rows, c.months_rows_scan_rows)
        while row < limit:
            if not match_month(grid.cell(row, 0)):
                row += 1
                continue
            start = row
            labels: List[str] = []
            while (
                row < n_rows
                and row - start < c.months_rows_max_run
                and match_month(grid.cell(row, 0))
            ):
                labels.append(normalize_month(grid.cell(row, 0).text))
                row += 1
            distinct = list(dict.fromkeys(labels))
            if len(distinct) < c.months_rows_min_months:
                continue

            end_col = max(0, min(c.months_rows_header_cols, n_cols - 1))
            headers: List[str] = []
            if start > 0:
                headers = [
                    grid.text(start - 1, col)
                    for col in range(1, end_col + 1)
                    if not grid.cell(start - 1, col).is_empty
                ]
            types = find_accommodation_types(headers)
            nights, pax = extract_nights(headers), extract_pax(headers)
            conf = score("months-rows", CandidateFeatures(
                matches=len(labels), has_headers=bool(headers), has_types=bool(types),
            ))
            out.append(LayoutPattern(
                kind="months-rows",
                confidence=conf,
                region=Region.from_bounds(start, 0, row - 1, end_col),
                headers=headers,
                data_pattern="month-per-row",
                metadata=LayoutMetadata(
                    months_detected=distinct,
                    accommodation_types=types,
                    pricing_structure=_structure(types, nights, pax),
                ),
            ))
            logger.debug("months-rows candidate rows %d-%d conf=%.2f", start, row - 1, conf)
        return out

    def scan_months_columns(self, grid: CellGrid) -> List[LayoutPattern]:
        c = self._cfg
        n_rows, n_cols = grid.n_rows, grid.n_cols
        out: List[LayoutPattern] = []
        for row in range(min(n_rows, c.months_columns_scan_rows)):
            month_cols = [col for col in range(1, n_cols) if match_month(grid.cell(row, col))]
            if len(month_cols) < c.months_columns_min_months:
                continue
            headers = [grid.text(row, col) for col in month_cols]

            labels: List[str] = []
            last_row = row
            for r in range(row + 1, min(n_rows, row + 1 + c.months_columns_label_rows)):
                if grid.is_row_empty(r):
                    break
                first = grid.cell(r, 0)
                if first.is_text and not is_price_like(first):
                    labels.append(first.text)
                    last_row = r

            types = find_accommodation_types(labels)
            nights = extract_nights(headers + labels)
            pax = extract_pax(headers + labels)
            conf = score("months-columns", CandidateFeatures(
                matches=len(month_cols), has_row_labels=bool(labels), has_types=bool(types),
            ))
            out.append(LayoutPattern(
                kind="months-columns",
                confidence=conf,
                region=Region.from_bounds(row, 0, last_row, month_cols[-1]),
                headers=headers,
                data_pattern="month-per-column",
                metadata=LayoutMetadata(
                    months_detected=list(dict.fromkeys(normalize_month(h) for h in headers)),
                    accommodation_types=types,
                    axis_labels=labels,
                    pricing_structure=_structure(types, nights, pax),
                ),
            ))
            logger.debug("months-columns candidate header row %d conf=%.2f", row, conf)
        return out

    def scan_pricing_matrix(self, grid: CellGrid) -> List[LayoutPattern]:
        c = self._cfg
        n_rows, n_cols = grid.n_rows, grid.n_cols
        limit = min(n_rows, c.matrix_scan_rows)
        out: List[LayoutPattern] = []
        row = 1
        while row < limit:
            if self._price_count(grid, row, n_cols) < c.matrix_min_prices:
                row += 1
                continue
            start = row
            best_count = 0
            last_price_col = 0
            while row < limit:
                count = self._price_count(grid, row, n_cols)
                if count < c.matrix_min_prices:
                    break
                best_count = max(best_count, count)
                last_price_col = max(
                    last_price_col,
                    max(col for col in range(1, n_cols) if is_price_like(grid.cell(row, col))),
                )
                row += 1
            end = row - 1

            header_row = start - 1
            headers = [
                grid.text(header_row, col)
                for col in range(1, last_price_col + 1)
                if not grid.cell(header_row, col).is_empty
            ]
            labels = [
                grid.cell(r, 0).text
                for r in range(start, end + 1)
                if grid.cell(r, 0).is_text and not is_price_like(grid.cell(r, 0))
            ]
            types = find_accommodation_types(headers + labels)
            nights = extract_nights(headers + labels)
            pax = extract_pax(headers + labels)
            conf = score("pricing-matrix", CandidateFeatures(
                matches=best_count, has_headers=bool(headers), has_row_labels=bool(labels),
            ))
            months = [normalize_month(label) for label in labels if match_month(Cell.from_value(label))]
            out.append(LayoutPattern(
                kind="pricing-matrix",
                confidence=conf,
                region=Region.from_bounds(header_row if headers else start, 0, end, last_price_col),
                headers=headers,
                data_pattern="price-block",
                metadata=LayoutMetadata(
                    months_detected=list(dict.fromkeys(months)),
                    accommodation_types=types,
                    axis_labels=labels,
                    pricing_structure=_structure(types, nights, pax),
                ),
            ))
            logger.debug("pricing-matrix candidate rows %d-%d conf=%.2f", start, end, conf)
        return out

    def scan_inclusions(self, grid: CellGrid) -> List[LayoutPattern]:
        c = self._cfg
        n_rows = grid.n_rows
        headers_seen = set()
        out: List[LayoutPattern] = []
        for row in range(min(n_rows, c.layout_inclusions_header_rows)):
            for col in range(grid.row_width(row)):
                cell = grid.cell(row, col)
                if not cell.is_text:
                    continue
                lowered = cell.text.lower()
                if any(k in lowered for k in LAYOUT_INCLUSION_KEYWORDS):
                    anchor = (row, col)
                elif is_bullet(cell.text) or is_numbered(cell.text):
                    anchor = self._header_above(grid, row, col)
                    if anchor is None:
                        continue
                else:
                    continue
                if anchor in headers_seen:
                    continue
                headers_seen.add(anchor)
                pattern = self._inclusions_pattern(grid, anchor[0], anchor[1], n_rows)
                if pattern is not None:
                    out.append(pattern)
        return out

    # -----------------------------------------------------------------
    # Suppression and suggestions
    # -----------------------------------------------------------------

    def suppress_overlaps(self, candidates: List[LayoutPattern]) -> List[LayoutPattern]:
        """Keep the strongest candidate among same-family neighbours."""
        d = self._cfg.suppression_distance
        ordered = sorted(
            candidates,
            key=lambda p: (
                -p.confidence,
                FAMILY_PRIORITY[p.kind],
                p.region.start_row,
                p.region.start_col,
            ),
        )
        kept: List[LayoutPattern] = []
        for cand in ordered:
            clash = any(
                k.kind == cand.kind
                and abs(k.region.start_row - cand.region.start_row) <= d
                and abs(k.region.start_col - cand.region.start_col) <= d
                for k in kept
            )
            if not clash:
                kept.append(cand)
        return kept

    @staticmethod
    def _suggestions(kept: List[LayoutPattern], best: LayoutPattern) -> List[str]:
        if not kept:
            return [
                "No clear layout pattern detected. Make sure the sheet contains "
                "recognizable month names and pricing data."
            ]
        out: List[str] = []
        if best.confidence < 0.5:
            out.append(
                "Layout detection confidence is low. Consider reformatting the sheet "
                "for better recognition."
            )
        if best.kind == "months-rows":
            out.append(
                "Detected months in rows. Make sure prices sit in the columns to the "
                "right of the month names."
            )
        elif best.kind == "months-columns":
            out.append(
                "Detected months in columns. Make sure prices sit in the rows below "
                "the month headers."
            )
        if not any(p.kind == "inclusions-list" for p in kept):
            out.append("No inclusions section detected. Consider adding a clearly labelled one.")
        if not any(p.kind in PRICING_FAMILIES for p in kept):
            out.append(
                "No pricing data detected. Prices should be numbers with an optional "
                "currency symbol."
            )
        return out

    # -----------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------

    @staticmethod
    def _price_count(grid: CellGrid, row: int, n_cols: int) -> int:
        return sum(1 for col in range(1, n_cols) if is_price_like(grid.cell(row, col)))

    def _header_above(self, grid: CellGrid, row: int, col: int) -> Optional[Tuple[int, int]]:
        for back in range(1, self._cfg.inclusions_header_lookback + 1):
            r = row - back
            if r < 0:
                break
            for cc in (col, col - 1, col + 1):
                cell = grid.cell(r, cc)
                if cell.is_text and looks_like_header(cell.text):
                    return r, cc
        return None

    def _inclusions_pattern(
        self, grid: CellGrid, header_row: int, col: int, n_rows: int
    ) -> Optional[LayoutPattern]:
        c = self._cfg
        items: List[str] = []
        last_row = header_row
        for r in range(header_row + 1, min(n_rows, header_row + 1 + c.layout_inclusions_scan_rows)):
            cell = grid.cell(r, col)
            if cell.is_empty:
                if items:
                    break
                continue
            items.append(cell.display())
            last_row = r
        if len(items) < c.layout_inclusions_min_items:
            return None
        fmt = list_format(items)
        conf = score("inclusions-list", CandidateFeatures(
            matches=len(items), structured=fmt in ("bullet-points", "numbered", "mixed"),
        ))
        header = grid.text(header_row, col)
        return LayoutPattern(
            kind="inclusions-list",
            confidence=conf,
            region=Region.from_bounds(header_row, col, last_row, col),
            headers=[header],
            data_pattern=fmt,
            metadata=LayoutMetadata(
                items=items,
                accommodation_types=find_accommodation_types([header]),
            ),
        )

    def _degenerate_pattern(self) -> LayoutPattern:
        return LayoutPattern(
            kind="pricing-matrix",
            confidence=self._cfg.degenerate_confidence,
            region=Region.from_bounds(0, 0, 0, 0),
            data_pattern="none",
        )

    @staticmethod
    def _is_real(pattern: LayoutPattern) -> bool:
        return pattern.data_pattern != "none"


# ---------------------------------------------------------------------------
# Module-level convenience wrappers
# ---------------------------------------------------------------------------

def detect_layout(grid: CellGrid, cfg: DetectorConfig = DEFAULT_CONFIG) -> LayoutDetection:
    return LayoutDetector(cfg).detect_layout(grid)


def find_pricing_section(grid: CellGrid, cfg: DetectorConfig = DEFAULT_CONFIG) -> Optional[PricingSection]:
    return LayoutDetector(cfg).find_pricing_section(grid)


def find_inclusions_section(grid: CellGrid, cfg: DetectorConfig = DEFAULT_CONFIG) -> Optional[InclusionsSection]:
    return LayoutDetector(cfg).find_inclusions_section(grid)
