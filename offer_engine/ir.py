"""
Report models for offer recognition.

Every component returns one of these pydantic models so that a whole
analysis can be dumped with ``model_dump(mode="json")``.  The cell grid
itself lives in :mod:`offer_engine.excel.grid`; these are the typed outputs.
"""

from __future__ import annotations

from datetime import date
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from offer_engine.excel.grid import CellRange

LayoutKind = Literal["months-rows", "months-columns", "pricing-matrix", "inclusions-list"]
Orientation = Literal["months-rows", "months-columns"]
InclusionFormat = Literal["bullet-points", "numbered", "plain-text", "mixed"]
Severity = Literal["error", "warning", "info"]
PeriodKind = Literal["holiday", "season", "event"]

Confidence = Annotated[float, Field(ge=0.0, le=1.0)]


class Region(BaseModel):
    """
    Inclusive cell rectangle, both as A1 references and 0-based bounds.

    Attributes:
        start / end: A1 references of the corners
        start_row .. end_col: numeric bounds
    """
    model_config = ConfigDict(frozen=True)

    start: str
    end: str
    start_row: int
    start_col: int
    end_row: int
    end_col: int

    @classmethod
    def from_range(cls, rng: CellRange) -> "Region":
        return cls(
            start=rng.start_ref,
            end=rng.end_ref,
            start_row=rng.start_row,
            start_col=rng.start_col,
            end_row=rng.end_row,
            end_col=rng.end_col,
        )

    @classmethod
    def from_bounds(cls, start_row: int, start_col: int, end_row: int, end_col: int) -> "Region":
        return cls.from_range(CellRange(start_row, start_col, end_row, end_col))

    def to_range(self) -> CellRange:
        return CellRange(self.start_row, self.start_col, self.end_row, self.end_col)

    @property
    def a1(self) -> str:
        return f"{self.start}:{self.end}"


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------

class LayoutMetadata(BaseModel):
    months_detected: List[str] = []
    accommodation_types: List[str] = []
    axis_labels: List[str] = []
    items: List[str] = []
    pricing_structure: Optional[str] = None


class LayoutPattern(BaseModel):
    """A scored hypothesis about where a pricing grid or inclusion list sits."""
    kind: LayoutKind
    confidence: Confidence = 0.0
    region: Region
    headers: List[str] = []
    data_pattern: str = ""
    metadata: LayoutMetadata = LayoutMetadata()


class LayoutDetection(BaseModel):
    best_pattern: LayoutPattern
    other_patterns: List[LayoutPattern] = []
    suggestions: List[str] = []
    confidence: Confidence = 0.0

    @property
    def patterns(self) -> List[LayoutPattern]:
        return [self.best_pattern] + list(self.other_patterns)


class PricingSection(BaseModel):
    """
    Bounded pricing grid handed from the layout detector to the extractor.

    Frozen: the extractor consumes it verbatim.
    """
    model_config = ConfigDict(frozen=True)

    region: Region
    orientation: Orientation
    accommodation_types: Tuple[str, ...] = ()
    nights_options: Tuple[int, ...] = ()
    pax_options: Tuple[int, ...] = ()


class InclusionsSection(BaseModel):
    region: Region
    header: str = ""
    content: List[str] = []
    format: InclusionFormat = "plain-text"
    accommodation_type: Optional[str] = None
    confidence: Confidence = 0.0


class InclusionsDetection(BaseModel):
    sections: List[InclusionsSection] = []
    by_accommodation_type: Dict[str, InclusionsSection] = {}
    global_section: Optional[InclusionsSection] = None
    confidence: Confidence = 0.0
    suggestions: List[str] = []


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------

class AccommodationType(BaseModel):
    name: str
    code: str
    description: Optional[str] = None


class PriceCell(BaseModel):
    """
    One price read from the grid.

    Attributes:
        value: parsed price, never negative
        available: False for unavailable tokens, empty cells and parse failures
        raw: the cell's own text before merge resolution
    """
    value: float = Field(default=0.0, ge=0.0)
    currency: str
    available: bool
    note: Optional[str] = None
    coordinate: str
    is_merged: bool = False
    raw: str = ""


class PricingRecord(BaseModel):
    month: str
    accommodation_type: str
    nights: int
    pax: int
    price: float = Field(default=0.0, ge=0.0)
    currency: str
    available: bool = True
    special_period: Optional[str] = None
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    note: Optional[str] = None
    coordinate: str = ""

    @property
    def key(self) -> Tuple[str, str, int, int]:
        return self.month, self.accommodation_type, self.nights, self.pax


class PricingMatrix(BaseModel):
    """Extracted grid before flattening: one list of price cells per month."""
    months: List[str] = []
    accommodation_types: List[AccommodationType] = []
    nights_options: List[int] = []
    pax_options: List[int] = []
    currency: str = "EUR"
    cells: List[List[PriceCell]] = []


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

class SpecialPeriod(BaseModel):
    name: str
    kind: PeriodKind
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description: str = ""


class ValidityWindow(BaseModel):
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    confidence: Confidence = 0.0
    source: Optional[str] = None


class CurrencyDetection(BaseModel):
    currency: str
    confidence: Confidence = 0.0
    hits: Dict[str, int] = {}
    examples: Dict[str, List[str]] = {}


class MetadataConfidence(BaseModel):
    resort_name: Confidence = 0.0
    currency: Confidence = 0.0
    validity: Confidence = 0.0

    @property
    def mean(self) -> float:
        return (self.resort_name + self.currency + self.validity) / 3


class ResortMetadata(BaseModel):
    """
    Workbook-level facts about the offer.

    Attributes:
        sources: field name -> ``"Sheet!A1"`` (or ``"sheet name"``) it came from
    """
    resort_name: Optional[str] = None
    destination: Optional[str] = None
    currency: str = "EUR"
    season: Optional[str] = None
    validity: Optional[ValidityWindow] = None
    special_periods: List[SpecialPeriod] = []
    confidence: MetadataConfidence = MetadataConfidence()
    sources: Dict[str, str] = {}


# ---------------------------------------------------------------------------
# Validation and the full report
# ---------------------------------------------------------------------------

class ValidationFinding(BaseModel):
    rule: str
    severity: Severity
    message: str
    affected: List[str] = []
    suggestion: Optional[str] = None
    value: Optional[Any] = None


class Processability(BaseModel):
    suitable: bool
    issues: List[str] = []
    requirements: List[str] = []


class OfferAnalysis(BaseModel):
    """Everything the analyzer learned about one workbook."""
    sheet_name: Optional[str] = None
    metadata: ResortMetadata
    layout: LayoutDetection
    pricing_section: Optional[PricingSection] = None
    inclusions_section: Optional[InclusionsSection] = None
    inclusions: InclusionsDetection = InclusionsDetection()
    records: List[PricingRecord] = []
    findings: List[ValidationFinding] = []
    recommendations: List[str] = []
    confidence: Confidence = 0.0
    processability: Processability = Processability(suitable=False)
