"""
Confidence scoring for layout candidates.

Pure functions over small feature records; the scanners build the features,
this module turns them into a number in ``[0, 1]``.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping


# Family weights used when averaging the best candidate of each family
FAMILY_WEIGHTS: Mapping[str, float] = MappingProxyType({
    "months-rows": 0.4,
    "months-columns": 0.4,
    "pricing-matrix": 0.3,
    "inclusions-list": 0.2,
})

# Tie-break order for equal confidences (lower wins)
FAMILY_PRIORITY: Mapping[str, int] = MappingProxyType({
    "months-rows": 0,
    "months-columns": 1,
    "pricing-matrix": 2,
    "inclusions-list": 3,
})

PRICING_FAMILIES = ("months-rows", "months-columns", "pricing-matrix")


@dataclass(frozen=True)
class CandidateFeatures:
    """What a scanner observed about one candidate region."""

    matches: int
    has_headers: bool = False
    has_types: bool = False
    has_row_labels: bool = False
    structured: bool = False


def clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, value))


def months_rows_confidence(f: CandidateFeatures) -> float:
    score = min(0.9, 0.3 + 0.05 * f.matches)
    score += 0.2 if f.has_headers else 0.0
    score += 0.1 if f.has_types else 0.0
    return clamp(score)


def months_columns_confidence(f: CandidateFeatures) -> float:
    score = min(0.95, 0.4 + 0.08 * f.matches)
    score += 0.2 if f.has_row_labels else 0.0
    score += 0.1 if f.has_types else 0.0
    return clamp(score)


def pricing_matrix_confidence(f: CandidateFeatures) -> float:
    score = min(0.8, 0.2 + 0.08 * f.matches)
    score += 0.2 if f.has_headers else 0.0
    score += 0.1 if f.has_row_labels else 0.0
    return clamp(score)


def inclusions_list_confidence(f: CandidateFeatures) -> float:
    score = min(0.7, 0.3 + 0.05 * f.matches)
    score += 0.2 if f.structured else 0.0
    return clamp(score)


SCORERS = MappingProxyType({
    "months-rows": months_rows_confidence,
    "months-columns": months_columns_confidence,
    "pricing-matrix": pricing_matrix_confidence,
    "inclusions-list": inclusions_list_confidence,
})


def score(kind: str, features: CandidateFeatures) -> float:
    return SCORERS[kind](features)


def overall_confidence(best_by_family: Dict[str, float]) -> float:
    """Weighted average of the best confidence of every surviving family."""
    total_weight = 0.0
    weighted = 0.0
    for kind, conf in best_by_family.items():
        w = FAMILY_WEIGHTS.get(kind, 0.0)
        weighted += w * conf
        total_weight += w
    if total_weight == 0:
        return 0.0
    return clamp(weighted / total_weight)


@dataclass(frozen=True)
class InclusionFeatures:
    """Inputs of the inclusions-section confidence."""

    discovered_by_keyword: bool
    discovered_by_marker: bool
    item_count: int
    format: str
    average_item_length: float
    mentions_vocabulary: bool


def inclusions_section_confidence(f: InclusionFeatures) -> float:
    score = 0.3
    if f.discovered_by_keyword:
        score += 0.3
    elif f.discovered_by_marker:
        score += 0.2

    if f.item_count >= 5:
        score += 0.2
    elif f.item_count >= 3:
        score += 0.15
    elif f.item_count >= 1:
        score += 0.1

    if f.format in ("bullet-points", "numbered"):
        score += 0.15
    elif f.format == "mixed":
        score += 0.05

    if f.average_item_length > 20:
        score += 0.1
    if f.mentions_vocabulary:
        score += 0.1
    return clamp(score)


def analysis_confidence(
    metadata: float,
    layout: float,
    has_pricing: bool,
    has_inclusions: bool,
    pricing_factor: float = 0.8,
    inclusions_factor: float = 0.7,
) -> float:
    """Overall analysis confidence from its weighted components."""
    total = metadata * 0.2 + layout * 0.4
    if has_pricing:
        total += pricing_factor * 0.3
    if has_inclusions:
        total += inclusions_factor * 0.1
    return clamp(total)

