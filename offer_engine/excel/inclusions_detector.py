"""
InclusionsDetector: find "what's included" lists anywhere on a sheet.

Headers are discovered by keyword or by walking back from a bullet /
numbered cell to a header-like cell.  Each surviving header is then scanned
downwards for inclusion items, classified by format, scored, and filed
either under an accommodation type or as the global list.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from offer_engine.excel.config import (
    INCLUSION_ACCOMMODATION_TYPES,
    INCLUSION_VOCABULARY,
    LIST_MARKER_RE,
    SECTION_INCLUSION_KEYWORDS,
    DetectorConfig,
    DEFAULT_CONFIG,
)
from offer_engine.excel.grid import CellGrid
from offer_engine.excel.matchers import (
    canonical_accommodation,
    is_bullet,
    is_inclusion_item,
    is_numbered,
    list_format,
    looks_like_header,
)
from offer_engine.excel.scoring import InclusionFeatures, clamp, inclusions_section_confidence
from offer_engine.ir import InclusionsDetection, InclusionsSection, Region
from offer_engine.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class HeaderCandidate:
    row: int
    col: int
    text: str
    method: str  # "keyword" | "bullet" | "numbered"


def accommodation_mention(header: str, content: List[str]) -> Optional[str]:
    """Accommodation type named by the header, else by the content."""
    for text in (header, " ".join(content)):
        lowered = (text or "").lower()
        for keyword in INCLUSION_ACCOMMODATION_TYPES:
            if keyword in lowered:
                return canonical_accommodation(keyword) or keyword.title()
    return None


class InclusionsDetector:
    def __init__(self, cfg: DetectorConfig = DEFAULT_CONFIG):
        self._cfg = cfg

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def detect_inclusions_sections(self, grid: CellGrid) -> InclusionsDetection:
        candidates = self._filter_overlapping(self.find_headers(grid))

        sections: List[InclusionsSection] = []
        by_type: Dict[str, InclusionsSection] = {}
        global_section: Optional[InclusionsSection] = None
        for cand in candidates:
            section = self.analyze_section(grid, cand)
            if section is None or section.confidence <= self._cfg.inclusions_min_confidence:
                continue
            sections.append(section)
            if section.accommodation_type:
                by_type[section.accommodation_type] = section
            elif global_section is None or section.confidence > global_section.confidence:
                global_section = section

        sections.sort(key=lambda s: -s.confidence)
        confidence = 0.0
        if sections:
            confidence = clamp(sections[0].confidence + (0.1 if len(sections) > 1 else 0.0))

        logger.info("Inclusions: %d section(s), conf=%.2f", len(sections), confidence)
        return InclusionsDetection(
            sections=sections,
            by_accommodation_type=by_type,
            global_section=global_section,
            confidence=confidence,
            suggestions=self._suggestions(sections),
        )

    def best_section(self, grid: CellGrid) -> Optional[InclusionsSection]:
        sections = self.detect_inclusions_sections(grid).sections
        return sections[0] if sections else None

    def has_inclusions(self, grid: CellGrid) -> bool:
        result = self.detect_inclusions_sections(grid)
        return bool(result.sections) and result.confidence > self._cfg.inclusions_min_confidence

    # -----------------------------------------------------------------
    # Discovery
    # -----------------------------------------------------------------

    def find_headers(self, grid: CellGrid) -> List[HeaderCandidate]:
        found: List[HeaderCandidate] = []
        for row in range(grid.n_rows):
            for col in range(grid.row_width(row)):
                cell = grid.cell(row, col)
                if not cell.is_text:
                    continue
                lowered = cell.text.lower()
                if any(k in lowered for k in SECTION_INCLUSION_KEYWORDS):
                    found.append(HeaderCandidate(row, col, cell.text, "keyword"))
                if is_bullet(lowered):
                    header = self._nearby_header(grid, row, col, "bullet")
                    if header:
                        found.append(header)
                if is_numbered(lowered):
                    header = self._nearby_header(grid, row, col, "numbered")
                    if header:
                        found.append(header)
        return self._remove_duplicates(found)

    def _nearby_header(self, grid: CellGrid, row: int, col: int, method: str) -> Optional[HeaderCandidate]:
        for back in range(1, self._cfg.inclusions_header_lookback + 1):
            r = row - back
            if r < 0:
                break
            for cc in (col, col - 1, col + 1):
                cell = grid.cell(r, cc)
                if cell.is_text and looks_like_header(cell.text):
                    return HeaderCandidate(r, cc, cell.text, method)
        return None

    def _remove_duplicates(self, found: List[HeaderCandidate]) -> List[HeaderCandidate]:
        d = self._cfg.inclusions_dedupe_distance
        kept: List[HeaderCandidate] = []
        for cand in found:
            if any(abs(k.row - cand.row) <= d and abs(k.col - cand.col) <= d for k in kept):
                continue
            kept.append(cand)
        return kept

    def _filter_overlapping(self, found: List[HeaderCandidate]) -> List[HeaderCandidate]:
        c = self._cfg
        kept: List[HeaderCandidate] = []
        for cand in sorted(found, key=lambda h: h.row):
            if any(
                abs(k.row - cand.row) <= c.inclusions_overlap_rows
                and abs(k.col - cand.col) <= c.inclusions_overlap_cols
                for k in kept
            ):
                continue
            kept.append(cand)
        return kept

    # -----------------------------------------------------------------
    # Content scan
    # -----------------------------------------------------------------

    def analyze_section(self, grid: CellGrid, header: HeaderCandidate) -> Optional[InclusionsSection]:
        c = self._cfg
        content: List[str] = []
        end_row, end_col = header.row, header.col
        empty_rows = 0

        stop = min(grid.n_rows, header.row + c.inclusions_scan_rows)
        for row in range(header.row + 1, stop):
            found_in_row = False
            hit_new_section = False
            for col in (header.col, header.col - 1, header.col + 1, header.col + 2):
                if col < 0 or col >= grid.row_width(row):
                    continue
                cell = grid.cell(row, col)
                if cell.is_empty:
                    continue
                value = cell.display().strip()
                if looks_like_header(value) and content:
                    hit_new_section = True
                    break
                if is_inclusion_item(value):
                    content.append(value)
                    end_row = row
                    end_col = max(end_col, col)
                    found_in_row = True
                    break
            if hit_new_section:
                break
            if found_in_row:
                empty_rows = 0
            else:
                empty_rows += 1
                if empty_rows >= c.inclusions_max_empty_rows:
                    break

        if not content:
            return None

        fmt = list_format(content)
        features = InclusionFeatures(
            discovered_by_keyword=header.method == "keyword",
            discovered_by_marker=header.method in ("bullet", "numbered"),
            item_count=len(content),
            format=fmt,
            average_item_length=sum(len(i) for i in content) / len(content),
            mentions_vocabulary=any(
                word in item.lower() for item in content for word in INCLUSION_VOCABULARY
            ),
        )
        confidence = inclusions_section_confidence(features)
        logger.debug(
            "Inclusions header %r at (%d, %d): %d items, %s, conf=%.2f",
            header.text, header.row, header.col, len(content), fmt, confidence,
        )
        return InclusionsSection(
            region=Region.from_bounds(header.row, header.col, end_row, end_col),
            header=header.text,
            content=content,
            format=fmt,
            accommodation_type=accommodation_mention(header.text, content),
            confidence=confidence,
        )

    # -----------------------------------------------------------------
    # Suggestions
    # -----------------------------------------------------------------

    @staticmethod
    def _suggestions(sections: List[InclusionsSection]) -> List[str]:
        if not sections:
            return [
                "No inclusions sections detected. Add a clearly labelled "
                "\"Inclusions\" or \"What's Included\" section.",
                "Use bullet points or numbered lists to format inclusion items clearly.",
            ]
        out: List[str] = []
        avg = sum(s.confidence for s in sections) / len(sections)
        if avg < 0.6:
            out.append(
                "Inclusions detection confidence is low. Use clearer headers like "
                "\"Package Includes\" or \"What's Included\"."
            )
        if not any(s.format in ("bullet-points", "numbered") for s in sections):
            out.append("Use bullet points or numbered lists to format inclusions.")
        if any(len(LIST_MARKER_RE.sub("", item).strip()) < 10 for s in sections for item in s.content):
            out.append("Some inclusion items are very short. Provide more descriptive details.")
        if len(sections) == 1 and not sections[0].accommodation_type:
            out.append(
                "Consider stating which inclusions apply to which accommodation types "
                "if several are offered."
            )
        return out


def detect_inclusions_sections(grid: CellGrid, cfg: DetectorConfig = DEFAULT_CONFIG) -> InclusionsDetection:
    return InclusionsDetector(cfg).detect_inclusions_sections(grid)
