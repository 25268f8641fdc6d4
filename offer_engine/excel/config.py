"""
Centralised configuration for offer recognition.

All magic numbers, regex patterns, keyword lists, and tunable thresholds
live here so that the scanners can stay free of hard-coded values.  Every
table is immutable (tuples, frozensets, ``MappingProxyType``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Pattern, Tuple


# ---------------------------------------------------------------------------
# Months and special pricing periods
# ---------------------------------------------------------------------------

MONTH_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"^(january|jan)$", re.I),
    re.compile(r"^(february|feb)$", re.I),
    re.compile(r"^(march|mar)$", re.I),
    re.compile(r"^(april|apr)$", re.I),
    re.compile(r"^may$", re.I),
    re.compile(r"^(june|jun)$", re.I),
    re.compile(r"^(july|jul)$", re.I),
    re.compile(r"^(august|aug)$", re.I),
    re.compile(r"^(september|sep|sept)$", re.I),
    re.compile(r"^(october|oct)$", re.I),
    re.compile(r"^(november|nov)$", re.I),
    re.compile(r"^(december|dec)$", re.I),
)

SPECIAL_MONTH_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"easter", re.I),
    re.compile(r"peak\s*season", re.I),
    re.compile(r"off\s*season", re.I),
)

MONTH_CANONICAL: Mapping[str, str] = MappingProxyType({
    "jan": "January", "january": "January",
    "feb": "February", "february": "February",
    "mar": "March", "march": "March",
    "apr": "April", "april": "April",
    "may": "May",
    "jun": "June", "june": "June",
    "jul": "July", "july": "July",
    "aug": "August", "august": "August",
    "sep": "September", "sept": "September", "september": "September",
    "oct": "October", "october": "October",
    "nov": "November", "november": "November",
    "dec": "December", "december": "December",
})

# keyword found in a period label -> canonical month-axis label
SPECIAL_MONTH_LABELS: Tuple[Tuple[str, str], ...] = (
    ("easter", "Easter (18–21 Apr)"),
    ("peak", "Peak Season"),
    ("off", "Off Season"),
)

# keyword found in a month-axis label -> special-period tag on records
RECORD_SPECIAL_PERIODS: Tuple[Tuple[Pattern[str], str], ...] = (
    (re.compile(r"easter", re.I), "Easter"),
    (re.compile(r"peak|high\s*season", re.I), "Peak Season"),
    (re.compile(r"off\s*season|low\s*season", re.I), "Off Season"),
    (re.compile(r"christmas|xmas", re.I), "Christmas"),
    (re.compile(r"new\s*year", re.I), "New Year"),
)

# (pattern, name, kind, description) for workbook-level special periods
SPECIAL_PERIOD_PATTERNS: Tuple[Tuple[Pattern[str], str, str, str], ...] = (
    (re.compile(r"easter", re.I), "Easter", "holiday", "Easter holiday period"),
    (re.compile(r"peak\s*season", re.I), "Peak Season", "season",
     "High demand period with premium pricing"),
    (re.compile(r"off\s*season", re.I), "Off Season", "season",
     "Low demand period with reduced pricing"),
    (re.compile(r"high\s*season", re.I), "High Season", "season", "High demand period"),
    (re.compile(r"low\s*season", re.I), "Low Season", "season", "Low demand period"),
    (re.compile(r"christmas", re.I), "Christmas", "holiday", "Christmas holiday period"),
    (re.compile(r"new\s*year", re.I), "New Year", "holiday", "New Year holiday period"),
    (re.compile(r"summer\s*holidays?", re.I), "Summer Holidays", "season", "Summer vacation period"),
    (re.compile(r"school\s*holidays?", re.I), "School Holidays", "season", "School vacation period"),
)


# ---------------------------------------------------------------------------
# Accommodation vocabulary
# ---------------------------------------------------------------------------

ACCOMMODATION_KEYWORDS: Tuple[str, ...] = (
    "hotel",
    "self-catering",
    "apartment",
    "villa",
    "hostel",
    "resort",
    "b&b",
    "bed and breakfast",
    "guesthouse",
    "lodge",
    "cabin",
)

# Ordered: the first matching pattern names the type.
ACCOMMODATION_LABELS: Tuple[Tuple[Pattern[str], str], ...] = (
    (re.compile(r"self[-\s]?catering", re.I), "Self-Catering"),
    (re.compile(r"guest\s*house", re.I), "Guesthouse"),
    (re.compile(r"hostel", re.I), "Hostel"),
    (re.compile(r"hotel", re.I), "Hotel"),
    (re.compile(r"apartment", re.I), "Apartment"),
    (re.compile(r"villa", re.I), "Villa"),
    (re.compile(r"resort", re.I), "Resort"),
    (re.compile(r"b&b|bed\s*and\s*breakfast", re.I), "B&B"),
    (re.compile(r"lodge", re.I), "Lodge"),
    (re.compile(r"cabin", re.I), "Cabin"),
)

ACCOMMODATION_CODES: Mapping[str, str] = MappingProxyType({
    "self-catering": "SC",
    "guesthouse": "GH",
    "hostel": "HST",
    "hotel": "HTL",
    "apartment": "APT",
    "villa": "VIL",
    "resort": "RST",
    "b&b": "BB",
    "bed and breakfast": "BB",
    "lodge": "LDG",
    "cabin": "CAB",
})

DEFAULT_ACCOMMODATION_NAME = "Standard"
DEFAULT_ACCOMMODATION_CODE = "STD"

# Bare tokens that are never inclusion items on their own
BARE_ACCOMMODATION_RE = re.compile(r"^(hotel|apartment|villa|resort|self-catering)$", re.I)


# ---------------------------------------------------------------------------
# Inclusions vocabulary
# ---------------------------------------------------------------------------

LAYOUT_INCLUSION_KEYWORDS: Tuple[str, ...] = (
    "inclusions",
    "included",
    "includes",
    "package includes",
    "what's included",
)

SECTION_INCLUSION_KEYWORDS: Tuple[str, ...] = LAYOUT_INCLUSION_KEYWORDS + (
    "what is included",
    "included in price",
    "price includes",
    "package contains",
    "contains",
    "features",
    "amenities",
    "services included",
    "included services",
)

SECTION_HEADER_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"inclusions?", re.I),
    re.compile(r"included", re.I),
    re.compile(r"includes", re.I),
    re.compile(r"package", re.I),
    re.compile(r"features", re.I),
    re.compile(r"amenities", re.I),
    re.compile(r"services", re.I),
    re.compile(r"what.*included", re.I),
    re.compile(r"price.*includes", re.I),
)

INCLUSION_VOCABULARY: Tuple[str, ...] = (
    "breakfast", "wifi", "parking", "pool", "gym", "spa", "transfer", "meal", "drink",
)

INCLUSION_ACCOMMODATION_TYPES: Tuple[str, ...] = ACCOMMODATION_KEYWORDS + ("studio",)

BULLET_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"^[•\-\*\+]"),
    re.compile(r"^[‣⁃]"),
    re.compile(r"^o\s", re.I),
    re.compile(r"^>\s"),
    re.compile(r"^–\s"),
    re.compile(r"^—\s"),
)

NUMBERED_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"^\d+\."),
    re.compile(r"^\d+\)"),
    re.compile(r"^\(\d+\)"),
    re.compile(r"^[a-z]\.\s", re.I),
    re.compile(r"^[a-z]\)", re.I),
    re.compile(r"^[ivx]+\.\s", re.I),
    re.compile(r"^[ivx]+\)", re.I),
)

LIST_MARKER_RE = re.compile(r"^[•\-\*\+\d\.\)\(\s]+")


# ---------------------------------------------------------------------------
# Currencies and prices
# ---------------------------------------------------------------------------

# code -> pattern counting one hit per symbol or ISO code occurrence
CURRENCY_PATTERNS: Mapping[str, Pattern[str]] = MappingProxyType({
    "GBP": re.compile(r"£|\bGBP\b", re.I),
    "EUR": re.compile(r"€|\bEUR\b", re.I),
    "USD": re.compile(r"(?<![A-Za-z])\$|\bUSD\b", re.I),
    "JPY": re.compile(r"¥|\bJPY\b", re.I),
    "CHF": re.compile(r"\bCHF\b", re.I),
    "CAD": re.compile(r"\bC\$|\bCAD\b", re.I),
})

CURRENCY_SYMBOLS: Mapping[str, str] = MappingProxyType({
    "GBP": "£",
    "EUR": "€",
    "USD": "$",
    "JPY": "¥",
    "CHF": "CHF",
    "CAD": "C$",
})

# Stripped before a cell is read as a number
CURRENCY_MARKERS_RE = re.compile(
    r"C\$|[£€$¥₹]|\b(?:GBP|EUR|USD|JPY|CHF|CAD|INR)\b", re.I
)

UNAVAILABLE_TOKENS: Tuple[str, ...] = (
    "n/a",
    "not available",
    "unavailable",
    "tbc",
    "tba",
    "closed",
    "sold out",
    "full",
    "no availability",
)

UNAVAILABLE_RE = re.compile(
    r"(?<![a-z])(?:" + "|".join(re.escape(t) for t in UNAVAILABLE_TOKENS) + r")(?![a-z])",
    re.I,
)

# After stripping currency symbols, grouping commas, and spaces
PRICE_LIKE_RE = re.compile(r"^\d+(?:\.\d{1,2})?$")
PRICE_GROUPING_RE = re.compile(r"[£$€¥₹\s,]")

NUMBER_TOKEN_RE = re.compile(r"-?\d[\d.,']*")
# Space, NBSP and narrow NBSP all act as thousands separators inside prices
WHITESPACE_RE = re.compile(r"\s+")
EXPLICIT_ZERO_RE = re.compile(r"^0+(?:[.,]0+)?$")

NOTE_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"\(([^)]+)\)"),
    re.compile(r"\*\s*(.+)"),
    re.compile(r"note:\s*(.+)", re.I),
    re.compile(r"(?:^|\s)[-–]\s*([A-Za-z].*)$"),
)

NIGHTS_RE = re.compile(r"(\d+)\s*nights?\b", re.I)
PAX_RE = re.compile(r"(\d+)\s*(?:pax|people|persons?)\b", re.I)


# ---------------------------------------------------------------------------
# Validation tables
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CurrencyInfo:
    code: str
    symbol: str
    name: str
    decimal_places: int
    thousands_separator: str
    decimal_separator: str
    symbol_position: str
    supported_formats: Tuple[Pattern[str], ...]


SUPPORTED_CURRENCIES: Mapping[str, CurrencyInfo] = MappingProxyType({
    "EUR": CurrencyInfo(
        "EUR", "€", "Euro", 2, ".", ",", "after",
        (re.compile(r"\d+[,.]\d{2}\s*€"), re.compile(r"€\s*\d+[,.]\d{2}"),
         re.compile(r"\d+\s*EUR", re.I)),
    ),
    "GBP": CurrencyInfo(
        "GBP", "£", "British Pound", 2, ",", ".", "before",
        (re.compile(r"£\s*\d+[,.]\d{2}"), re.compile(r"\d+[,.]\d{2}\s*GBP", re.I),
         re.compile(r"GBP\s*\d+[,.]\d{2}", re.I)),
    ),
    "USD": CurrencyInfo(
        "USD", "$", "US Dollar", 2, ",", ".", "before",
        (re.compile(r"\$\s*\d+[,.]\d{2}"), re.compile(r"\d+[,.]\d{2}\s*USD", re.I),
         re.compile(r"USD\s*\d+[,.]\d{2}", re.I)),
    ),
    "JPY": CurrencyInfo(
        "JPY", "¥", "Japanese Yen", 0, ",", ".", "before",
        (re.compile(r"¥\s*\d+"), re.compile(r"\d+\s*JPY", re.I), re.compile(r"JPY\s*\d+", re.I)),
    ),
    "CHF": CurrencyInfo(
        "CHF", "CHF", "Swiss Franc", 2, "'", ".", "before",
        (re.compile(r"CHF\s*\d+[.,]\d{2}", re.I), re.compile(r"\d+[.,]\d{2}\s*CHF", re.I)),
    ),
    "CAD": CurrencyInfo(
        "CAD", "C$", "Canadian Dollar", 2, ",", ".", "before",
        (re.compile(r"C\$\s*\d+[,.]\d{2}"), re.compile(r"\d+[,.]\d{2}\s*CAD", re.I),
         re.compile(r"CAD\s*\d+[,.]\d{2}", re.I)),
    ),
})

MIN_REASONABLE_PRICE: Mapping[str, float] = MappingProxyType({
    "EUR": 5, "GBP": 4, "USD": 6, "JPY": 500, "CHF": 5, "CAD": 7,
})

MAX_REASONABLE_PRICE: Mapping[str, float] = MappingProxyType({
    "EUR": 5000, "GBP": 4000, "USD": 6000, "JPY": 500000, "CHF": 5500, "CAD": 7000,
})

# Ordered: first substring hit wins ("self-catering" before "hotel" matters
# only for labels that mention both).
ACCOMMODATION_CEILING_MULTIPLIERS: Tuple[Tuple[str, float], ...] = (
    ("villa", 2.0),
    ("resort", 1.5),
    ("hotel", 1.2),
    ("apartment", 1.0),
    ("self-catering", 0.8),
    ("hostel", 0.5),
)


# ---------------------------------------------------------------------------
# Metadata vocabulary
# ---------------------------------------------------------------------------

GENERIC_SHEET_NAMES: frozenset = frozenset({
    "sheet1", "sheet2", "sheet3", "data", "prices", "rates", "table",
    "summary", "total", "main", "primary", "default",
})

RESORT_EXCLUDE_WORDS: Tuple[str, ...] = (
    "sheet", "data", "table", "price", "rate", "month", "year", "total", "summary",
)

SHEET_NAME_RESORT_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"^([A-Za-z\s]+?)\s*(?:\d{4}|prices?|rates?)", re.I),
    re.compile(r"^([A-Za-z\s]+?)\s*[-–]\s*", re.I),
    re.compile(r"^([A-Za-z\s]{3,})", re.I),
)

# (pattern, label kind) for resort / destination cells
RESORT_CELL_PATTERNS: Tuple[Tuple[Pattern[str], str], ...] = (
    (re.compile(r"^\s*resort\s*:\s*([A-Za-z][A-Za-z\s\-']*)", re.I), "resort"),
    (re.compile(r"^\s*destination\s*:\s*([A-Za-z][A-Za-z\s\-']*)", re.I), "destination"),
    (re.compile(r"^\s*location\s*:\s*([A-Za-z][A-Za-z\s\-']*)", re.I), "location"),
    (re.compile(r"^([A-Za-z\s]{5,}?)\s+(?:resort|hotel|destination)\b", re.I), "title"),
)

RESORT_NAME_SHAPE_RE = re.compile(r"^[A-Za-z\s\-']+$")

DATE_TOKEN = r"\d{1,4}[/\-.]\d{1,2}[/\-.]\d{2,4}"

VALID_FROM_TO_RE = re.compile(
    r"valid\s*from\s*:?\s*(" + DATE_TOKEN + r")\s*(?:to|until|till|[-–])\s*(" + DATE_TOKEN + r")",
    re.I,
)
VALID_FROM_RE = re.compile(r"valid\s*from\s*:?\s*(" + DATE_TOKEN + r")", re.I)
VALID_TO_RE = re.compile(r"valid\s*(?:to|until|till)\s*:?\s*(" + DATE_TOKEN + r")", re.I)
DATE_RANGE_RE = re.compile(r"(" + DATE_TOKEN + r")\s*[-–]\s*(" + DATE_TOKEN + r")")
SEASON_YEAR_RES: Tuple[Pattern[str], ...] = (
    re.compile(r"season\s*:?\s*(\d{4})", re.I),
    re.compile(r"(\d{4})\s*season", re.I),
)


# ---------------------------------------------------------------------------
# DetectorConfig: tunable thresholds
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DetectorConfig:
    """Immutable bag of scan windows and thresholds used by every component."""

    # Months-in-rows scanner
    months_rows_scan_rows: int = 20
    months_rows_max_run: int = 15
    months_rows_min_months: int = 2
    months_rows_header_cols: int = 10

    # Months-in-columns scanner
    months_columns_scan_rows: int = 5
    months_columns_min_months: int = 3
    months_columns_label_rows: int = 20

    # Pricing-matrix scanner
    matrix_scan_rows: int = 200
    matrix_min_prices: int = 3

    # Layout inclusions scanner
    layout_inclusions_header_rows: int = 200
    layout_inclusions_scan_rows: int = 20
    layout_inclusions_min_items: int = 2

    # Overlap suppression (same family, rows and columns)
    suppression_distance: int = 2

    # Degenerate result when nothing usable is found
    degenerate_confidence: float = 0.1

    # Pricing section defaults
    default_nights: Tuple[int, ...] = (2, 3, 4, 7)
    default_pax: Tuple[int, ...] = (2, 4, 6)

    # Currency detection
    default_currency: str = "EUR"
    default_currency_confidence: float = 0.3
    currency_scan_rows: int = 50
    currency_scan_cols: int = 20
    sheet_currency_scan_rows: int = 20
    sheet_currency_scan_cols: int = 20
    currency_example_locations: int = 5

    # Metadata windows
    resort_cell_scan_rows: int = 10
    resort_cell_scan_cols: int = 5
    special_period_scan_rows: int = 100
    special_period_scan_cols: int = 20
    validity_scan_rows: int = 20
    validity_scan_cols: int = 10

    # Inclusions detector
    inclusions_scan_rows: int = 30
    inclusions_max_empty_rows: int = 3
    inclusions_header_lookback: int = 3
    inclusions_dedupe_distance: int = 2
    inclusions_overlap_rows: int = 5
    inclusions_overlap_cols: int = 1
    inclusions_min_confidence: float = 0.3

    # Validation
    unavailable_warning_ratio: float = 0.5


# Singleton default config
DEFAULT_CONFIG = DetectorConfig()
