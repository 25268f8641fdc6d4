"""
MetadataExtractor: workbook-level facts about a resort offer.

Resort name, destination, currency, validity window, season and special
pricing periods are each recovered independently from bounded windows of
every sheet, and each comes with its own confidence and source location.
"""

from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Dict, List, Optional, Tuple

from offer_engine.excel.config import (
    DATE_RANGE_RE,
    GENERIC_SHEET_NAMES,
    RESORT_CELL_PATTERNS,
    RESORT_EXCLUDE_WORDS,
    RESORT_NAME_SHAPE_RE,
    SEASON_YEAR_RES,
    SHEET_NAME_RESORT_PATTERNS,
    SPECIAL_PERIOD_PATTERNS,
    VALID_FROM_RE,
    VALID_FROM_TO_RE,
    VALID_TO_RE,
    DetectorConfig,
    DEFAULT_CONFIG,
)
from offer_engine.excel.grid import CellGrid, Workbook, encode_cell
from offer_engine.excel.matchers import find_currencies, parse_date
from offer_engine.ir import (
    CurrencyDetection,
    MetadataConfidence,
    ResortMetadata,
    SpecialPeriod,
    ValidityWindow,
)
from offer_engine.logger import get_logger

logger = get_logger(__name__)


def count_currencies(
    grid: CellGrid,
    max_rows: int,
    max_cols: int,
    sheet_name: str = "",
) -> Tuple[Counter, Dict[str, List[str]]]:
    """
    Tally currency symbol / ISO code hits in the top-left window of *grid*.

    Returns the counter and, per currency, the cell locations that hit.
    """
    counts: Counter = Counter()
    locations: Dict[str, List[str]] = {}
    for row in range(min(grid.n_rows, max_rows)):
        for col in range(min(grid.row_width(row), max_cols)):
            cell = grid.cell(row, col)
            if not cell.is_text:
                continue
            for code in find_currencies(cell.text):
                counts[code] += 1
                ref = encode_cell(row, col)
                locations.setdefault(code, []).append(f"{sheet_name}!{ref}" if sheet_name else ref)
    return counts, locations


def looks_like_resort_name(name: str) -> bool:
    if len(name) < 3:
        return False
    if not RESORT_NAME_SHAPE_RE.match(name):
        return False
    if name == name.upper() and len(name) > 10:
        return False
    lowered = name.lower()
    return not any(word in lowered for word in RESORT_EXCLUDE_WORDS)


def is_generic_sheet_name(name: str) -> bool:
    return name.strip().lower() in GENERIC_SHEET_NAMES


def date_range_in(text: str) -> Tuple[Optional[date], Optional[date]]:
    m = DATE_RANGE_RE.search(text or "")
    if not m:
        return None, None
    return parse_date(m.group(1)), parse_date(m.group(2))


class MetadataExtractor:
    """
    Stateless metadata extractor.

    Each ``extract_*`` / ``detect_*`` method can be called on its own;
    :meth:`extract_metadata` combines them.
    """

    def __init__(self, cfg: DetectorConfig = DEFAULT_CONFIG):
        self._cfg = cfg

    def extract_metadata(self, workbook: Workbook) -> ResortMetadata:
        resort = self.extract_resort_name(workbook)
        currency = self.detect_currency(workbook)
        validity, season, validity_conf, validity_source = self.extract_validity(workbook)
        periods = self.identify_special_periods(workbook)

        sources: Dict[str, str] = {}
        if resort.get("source"):
            sources["resort_name"] = resort["source"]
        examples = currency.examples.get(currency.currency)
        if examples:
            sources["currency"] = examples[0]
        if validity_source:
            sources["validity"] = validity_source

        metadata = ResortMetadata(
            resort_name=resort.get("name"),
            destination=resort.get("destination"),
            currency=currency.currency,
            season=season,
            validity=validity,
            special_periods=periods,
            confidence=MetadataConfidence(
                resort_name=resort.get("confidence", 0.0),
                currency=currency.confidence,
                validity=validity_conf,
            ),
            sources=sources,
        )
        logger.info(
            "Metadata: resort=%s currency=%s (%.2f) periods=%d",
            metadata.resort_name, metadata.currency, currency.confidence, len(periods),
        )
        return metadata

    # -----------------------------------------------------------------
    # Resort name
    # -----------------------------------------------------------------

    def extract_resort_name(self, workbook: Workbook) -> Dict[str, object]:
        """
        Best resort-name candidate as a dict with ``name``, ``destination``,
        ``source`` and ``confidence`` (``{"confidence": 0.0}`` when none).
        """
        candidates: List[Dict[str, object]] = []
        for sheet_name in workbook.sheet_names:
            name = self._name_from_sheet_name(sheet_name)
            if name:
                candidates.append({
                    "name": name,
                    "destination": name,
                    "source": f"sheet name: {sheet_name}",
                    "confidence": 0.7,
                })

        destination: Optional[str] = None
        c = self._cfg
        for sheet in workbook.sheets:
            grid = sheet.grid
            for row in range(min(grid.n_rows, c.resort_cell_scan_rows)):
                for col in range(min(grid.row_width(row), c.resort_cell_scan_cols)):
                    cell = grid.cell(row, col)
                    if not cell.is_text:
                        continue
                    for pattern, label in RESORT_CELL_PATTERNS:
                        m = pattern.match(cell.text)
                        if not m:
                            continue
                        name = m.group(1).strip()
                        if not looks_like_resort_name(name):
                            continue
                        if label in ("destination", "location") and destination is None:
                            destination = name
                        candidates.append({
                            "name": name,
                            "destination": name,
                            "source": f"{sheet.name}!{encode_cell(row, col)}",
                            "confidence": 0.6,
                        })

        if not candidates:
            return {"confidence": 0.0}
        # stable sort: earlier candidates win ties
        best = sorted(candidates, key=lambda cand: -float(cand["confidence"]))[0]
        result = dict(best)
        if destination:
            result["destination"] = destination
        logger.debug("Resort name %r from %s", result["name"], result["source"])
        return result

    @staticmethod
    def _name_from_sheet_name(sheet_name: str) -> Optional[str]:
        for pattern in SHEET_NAME_RESORT_PATTERNS:
            m = pattern.match(sheet_name)
            if not m:
                continue
            name = m.group(1).strip()
            if is_generic_sheet_name(name):
                continue
            if looks_like_resort_name(name):
                return name
        return None

    # -----------------------------------------------------------------
    # Currency
    # -----------------------------------------------------------------

    def detect_currency(self, workbook: Workbook) -> CurrencyDetection:
        c = self._cfg
        totals: Counter = Counter()
        examples: Dict[str, List[str]] = {}
        for sheet in workbook.sheets:
            counts, locations = count_currencies(
                sheet.grid, c.currency_scan_rows, c.currency_scan_cols, sheet.name
            )
            totals.update(counts)
            for code, locs in locations.items():
                examples.setdefault(code, []).extend(locs)

        if not totals:
            return CurrencyDetection(
                currency=c.default_currency,
                confidence=c.default_currency_confidence,
            )
        # ties go to the currency seen first
        order = {code: i for i, code in enumerate(examples)}
        winner = max(totals, key=lambda code: (totals[code], -order.get(code, 0)))
        confidence = totals[winner] / sum(totals.values())
        return CurrencyDetection(
            currency=winner,
            confidence=confidence,
            hits=dict(totals),
            examples={
                code: locs[: c.currency_example_locations] for code, locs in examples.items()
            },
        )

    # -----------------------------------------------------------------
    # Special periods
    # -----------------------------------------------------------------

    def identify_special_periods(self, workbook: Workbook) -> List[SpecialPeriod]:
        c = self._cfg
        periods: List[SpecialPeriod] = []
        seen = set()
        for sheet in workbook.sheets:
            grid = sheet.grid
            for row in range(min(grid.n_rows, c.special_period_scan_rows)):
                for col in range(min(grid.row_width(row), c.special_period_scan_cols)):
                    cell = grid.cell(row, col)
                    if not cell.is_text:
                        continue
                    for pattern, name, kind, description in SPECIAL_PERIOD_PATTERNS:
                        if name in seen or not pattern.search(cell.text):
                            continue
                        seen.add(name)
                        start, end = date_range_in(cell.text)
                        periods.append(SpecialPeriod(
                            name=name,
                            kind=kind,
                            start_date=start,
                            end_date=end,
                            description=description,
                        ))
        return periods

    # -----------------------------------------------------------------
    # Validity window
    # -----------------------------------------------------------------

    def extract_validity(
        self, workbook: Workbook
    ) -> Tuple[Optional[ValidityWindow], Optional[str], float, Optional[str]]:
        """
        ``(window, season, confidence, source)`` from the top-left window.

        A full range scores 0.9, a one-sided date 0.8, a season year 0.6.
        """
        c = self._cfg
        valid_from: Optional[date] = None
        valid_to: Optional[date] = None
        season: Optional[str] = None
        confidence = 0.0
        source: Optional[str] = None

        for sheet in workbook.sheets:
            grid = sheet.grid
            for row in range(min(grid.n_rows, c.validity_scan_rows)):
                for col in range(min(grid.row_width(row), c.validity_scan_cols)):
                    cell = grid.cell(row, col)
                    if not cell.is_text:
                        continue
                    text = cell.text
                    where = f"{sheet.name}!{encode_cell(row, col)}"
                    found = self._validity_in(text)
                    if found is not None:
                        start, end, conf = found
                        valid_from = start or valid_from
                        valid_to = end or valid_to
                        if conf >= confidence:
                            confidence, source = conf, where
                    for pattern in SEASON_YEAR_RES:
                        m = pattern.search(text)
                        if m and season is None:
                            season = m.group(1)
                            if confidence < 0.6:
                                confidence, source = 0.6, where

        window = None
        if valid_from or valid_to:
            window = ValidityWindow(
                valid_from=valid_from,
                valid_to=valid_to,
                confidence=confidence,
                source=source,
            )
        return window, season, confidence, source

    @staticmethod
    def _validity_in(text: str) -> Optional[Tuple[Optional[date], Optional[date], float]]:
        m = VALID_FROM_TO_RE.search(text)
        if m:
            start, end = parse_date(m.group(1)), parse_date(m.group(2))
            if start or end:
                return start, end, 0.9 if start and end else 0.8
        m = VALID_FROM_RE.search(text)
        if m and parse_date(m.group(1)):
            return parse_date(m.group(1)), None, 0.8
        m = VALID_TO_RE.search(text)
        if m and parse_date(m.group(1)):
            return None, parse_date(m.group(1)), 0.8
        start, end = date_range_in(text)
        if start and end:
            return start, end, 0.9
        return None


def extract_metadata(workbook: Workbook, cfg: DetectorConfig = DEFAULT_CONFIG) -> ResortMetadata:
    return MetadataExtractor(cfg).extract_metadata(workbook)
