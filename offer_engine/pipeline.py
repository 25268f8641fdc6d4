"""
OfferAnalyzer: one pass over a workbook, producing an :class:`OfferAnalysis`.

Metadata is read from the whole workbook; layout, pricing and inclusions
come from a single sheet (the first one unless a name is given).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from offer_engine.excel.config import DetectorConfig, DEFAULT_CONFIG
from offer_engine.excel.grid import CellGrid, Sheet, Workbook
from offer_engine.excel.inclusions_detector import InclusionsDetector
from offer_engine.excel.layout_detector import LayoutDetector
from offer_engine.excel.metadata_extractor import MetadataExtractor
from offer_engine.excel.price_validator import PriceValidator, ValidationContext, ValidationOptions
from offer_engine.excel.pricing_extractor import PricingExtractor
from offer_engine.excel.scoring import analysis_confidence
from offer_engine.ir import (
    InclusionsSection,
    LayoutDetection,
    OfferAnalysis,
    PricingSection,
    Processability,
    ResortMetadata,
    ValidationFinding,
)
from offer_engine.logger import get_logger

logger = get_logger(__name__)


class OfferAnalyzer:
    """
    Wires the detectors together.

    Usage:
        analyzer = OfferAnalyzer()
        analysis = analyzer.analyze(workbook)
        if analysis.processability.suitable:
            ...
    """

    def __init__(
        self,
        cfg: DetectorConfig = DEFAULT_CONFIG,
        validation_options: Optional[ValidationOptions] = None,
    ):
        self._cfg = cfg
        self._metadata = MetadataExtractor(cfg)
        self._layout = LayoutDetector(cfg)
        self._inclusions = InclusionsDetector(cfg)
        self._pricing = PricingExtractor(cfg)
        self._validator = PriceValidator(validation_options, cfg)

    @property
    def validator(self) -> PriceValidator:
        return self._validator

    def analyze(self, workbook: Workbook, sheet_name: Optional[str] = None) -> OfferAnalysis:
        sheet = workbook.sheet(sheet_name)
        if sheet is None:
            if sheet_name is not None:
                raise ValueError(f"no sheet named {sheet_name!r}; available: {workbook.sheet_names}")
            sheet = Sheet("", CellGrid.from_rows([]))
        grid = sheet.grid
        logger.info("Analyzing sheet %r (%dx%d)", sheet.name, grid.n_rows, grid.n_cols)

        metadata = self._metadata.extract_metadata(workbook)
        layout = self._layout.detect_layout(grid)
        pricing_section = self._layout.pricing_section_of(layout)
        inclusions_section = self._layout.inclusions_section_of(layout)
        inclusions = self._inclusions.detect_inclusions_sections(grid)

        records = self._pricing.extract_pricing_matrix(
            grid, pricing_section, sheet.merges, metadata.validity
        ) or []
        findings: List[ValidationFinding] = []
        if records:
            findings = self._validator.validate_pricing(records, self._context(metadata))

        recommendations = self.recommendations(metadata, layout, pricing_section, inclusions_section)
        confidence = analysis_confidence(
            metadata.confidence.mean,
            layout.confidence,
            has_pricing=pricing_section is not None,
            has_inclusions=inclusions_section is not None,
        )
        processability = self.processability(
            metadata, layout, pricing_section, confidence, findings
        )

        logger.info(
            "Sheet %r: %d record(s), %d finding(s), conf=%.2f, suitable=%s",
            sheet.name, len(records), len(findings), confidence, processability.suitable,
        )
        return OfferAnalysis(
            sheet_name=sheet.name,
            metadata=metadata,
            layout=layout,
            pricing_section=pricing_section,
            inclusions_section=inclusions_section,
            inclusions=inclusions,
            records=records,
            findings=findings,
            recommendations=recommendations,
            confidence=confidence,
            processability=processability,
        )

    def is_processable(self, workbook: Workbook, sheet_name: Optional[str] = None) -> Processability:
        return self.analyze(workbook, sheet_name).processability

    def quick_summary(
        self,
        source: Union[Workbook, OfferAnalysis],
        sheet_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        analysis = source if isinstance(source, OfferAnalysis) else self.analyze(source, sheet_name)
        return {
            "sheet_name": analysis.sheet_name,
            "resort_name": analysis.metadata.resort_name,
            "currency": analysis.metadata.currency,
            "layout_type": analysis.layout.best_pattern.kind,
            "has_pricing": analysis.pricing_section is not None,
            "has_inclusions": analysis.inclusions_section is not None,
            "records": len(analysis.records),
            "confidence": round(analysis.confidence, 3),
        }

    # -----------------------------------------------------------------
    # Report helpers
    # -----------------------------------------------------------------

    @staticmethod
    def _context(metadata: ResortMetadata) -> ValidationContext:
        return ValidationContext(currency=metadata.currency)

    @staticmethod
    def recommendations(
        metadata: ResortMetadata,
        layout: LayoutDetection,
        pricing_section: Optional[PricingSection],
        inclusions_section: Optional[InclusionsSection],
    ) -> List[str]:
        out: List[str] = []
        if metadata.confidence.resort_name < 0.7:
            out.append("Consider adding a clear resort name in the sheet name or first few cells")
        if metadata.confidence.currency < 0.8:
            out.append("Ensure currency symbols are consistently used throughout pricing data")

        if layout.confidence < 0.7:
            out.append("Improve layout clarity by using consistent month names and pricing structure")
        best = layout.best_pattern
        if best.kind == "pricing-matrix" and best.confidence < 0.8:
            out.append("Consider adding clear month headers to improve layout detection")

        if pricing_section is None:
            out.append("Add a clear pricing section with months and corresponding prices")
        elif not pricing_section.accommodation_types:
            out.append("Include accommodation type information in headers or row labels")

        if inclusions_section is None:
            out.append("Add a package inclusions section to provide complete offer information")
        elif len(inclusions_section.content) < 3:
            out.append("Expand the inclusions list to provide more detailed package information")

        if not metadata.special_periods:
            out.append("Consider adding special period information (Easter, Peak Season, etc.)")
        return out

    @staticmethod
    def processability(
        metadata: ResortMetadata,
        layout: LayoutDetection,
        pricing_section: Optional[PricingSection],
        confidence: float,
        findings: List[ValidationFinding],
    ) -> Processability:
        issues: List[str] = []
        requirements: List[str] = []

        if pricing_section is None:
            issues.append("No pricing section detected")
            requirements.append("Add a clear pricing table with months and prices")
        if not metadata.resort_name:
            issues.append("Resort name not detected")
            requirements.append("Include resort name in sheet name or cell content")
        if confidence < 0.5:
            issues.append("Low confidence in structure detection")
            requirements.append("Ensure clear month names and pricing data formatting")
        if layout.best_pattern.confidence < 0.6:
            issues.append("Unclear layout structure")
            requirements.append("Use consistent formatting for months and pricing data")

        errors = [f for f in findings if f.severity == "error"]
        if errors:
            issues.append(f"{len(errors)} pricing validation error(s)")
            requirements.extend(f.message for f in errors)

        return Processability(suitable=not issues, issues=issues, requirements=requirements)


# ---------------------------------------------------------------------------
# Module-level convenience wrappers
# ---------------------------------------------------------------------------

def analyze_workbook(
    workbook: Workbook,
    sheet_name: Optional[str] = None,
    cfg: DetectorConfig = DEFAULT_CONFIG,
) -> OfferAnalysis:
    return OfferAnalyzer(cfg).analyze(workbook, sheet_name)


def is_processable(workbook: Workbook, sheet_name: Optional[str] = None) -> Processability:
    return OfferAnalyzer().is_processable(workbook, sheet_name)


def quick_summary(workbook: Workbook, sheet_name: Optional[str] = None) -> Dict[str, Any]:
    return OfferAnalyzer().quick_summary(workbook, sheet_name)
