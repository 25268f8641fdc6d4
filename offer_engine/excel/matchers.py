"""
Matchers: every "is this a month / price / currency / date" decision.

Each helper takes a :class:`Cell` (or plain text where noted) and consults the
immutable tables in :mod:`offer_engine.excel.config`.  Nothing here touches a
grid; the scanners call into this module instead of stringifying cells.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Iterable, List, Optional, Sequence, Tuple

from offer_engine.excel.config import (
    ACCOMMODATION_CODES,
    ACCOMMODATION_LABELS,
    BARE_ACCOMMODATION_RE,
    BULLET_PATTERNS,
    CURRENCY_MARKERS_RE,
    CURRENCY_PATTERNS,
    DEFAULT_ACCOMMODATION_CODE,
    DEFAULT_ACCOMMODATION_NAME,
    EXPLICIT_ZERO_RE,
    LIST_MARKER_RE,
    MONTH_CANONICAL,
    MONTH_PATTERNS,
    NIGHTS_RE,
    NOTE_PATTERNS,
    NUMBER_TOKEN_RE,
    NUMBERED_PATTERNS,
    PAX_RE,
    PRICE_GROUPING_RE,
    PRICE_LIKE_RE,
    RECORD_SPECIAL_PERIODS,
    SECTION_HEADER_PATTERNS,
    SPECIAL_MONTH_LABELS,
    SPECIAL_MONTH_PATTERNS,
    UNAVAILABLE_RE,
    WHITESPACE_RE,
)
from offer_engine.excel.grid import Cell


# ---------------------------------------------------------------------------
# Months
# ---------------------------------------------------------------------------

def match_month(cell: Cell) -> bool:
    """True for month names, abbreviations, and special pricing periods."""
    if not cell.is_text:
        return False
    text = cell.text.strip()
    if any(p.match(text) for p in MONTH_PATTERNS):
        return True
    return any(p.search(text) for p in SPECIAL_MONTH_PATTERNS)


def normalize_month(label: str) -> str:
    """Canonical month-axis label (``"Jan"`` -> ``"January"``)."""
    text = (label or "").strip()
    canonical = MONTH_CANONICAL.get(text.lower())
    if canonical:
        return canonical
    lowered = text.lower()
    for keyword, name in SPECIAL_MONTH_LABELS:
        if keyword in lowered:
            return name
    return text


def special_period_for(month_label: str) -> Optional[str]:
    """Special-period tag carried by a month-axis label, if any."""
    for pattern, name in RECORD_SPECIAL_PERIODS:
        if pattern.search(month_label or ""):
            return name
    return None


# ---------------------------------------------------------------------------
# Accommodation types
# ---------------------------------------------------------------------------

def canonical_accommodation(text: str) -> Optional[str]:
    """Display name of the first accommodation keyword in *text*."""
    for pattern, name in ACCOMMODATION_LABELS:
        if pattern.search(text or ""):
            return name
    return None


def find_accommodation_types(texts: Iterable[str]) -> List[str]:
    """Canonical accommodation names mentioned in *texts*, first-seen order."""
    found: List[str] = []
    for text in texts:
        name = canonical_accommodation(text)
        if name and name not in found:
            found.append(name)
    return found


def accommodation_code(name: str) -> str:
    key = (name or "").strip().lower()
    if key == DEFAULT_ACCOMMODATION_NAME.lower():
        return DEFAULT_ACCOMMODATION_CODE
    if key in ACCOMMODATION_CODES:
        return ACCOMMODATION_CODES[key]
    for keyword, code in ACCOMMODATION_CODES.items():
        if keyword in key:
            return code
    letters = re.sub(r"[^A-Za-z]", "", name or "")
    return letters[:3].upper() or DEFAULT_ACCOMMODATION_CODE


# ---------------------------------------------------------------------------
# Nights / pax
# ---------------------------------------------------------------------------

def _collect(pattern: re.Pattern, texts: Iterable[str]) -> List[int]:
    out: List[int] = []
    for text in texts:
        for m in pattern.finditer(text or ""):
            n = int(m.group(1))
            if n > 0 and n not in out:
                out.append(n)
    return out


def extract_nights(texts: Iterable[str]) -> List[int]:
    return _collect(NIGHTS_RE, texts)


def extract_pax(texts: Iterable[str]) -> List[int]:
    return _collect(PAX_RE, texts)


# ---------------------------------------------------------------------------
# Prices
# ---------------------------------------------------------------------------

def is_price_like(cell: Cell) -> bool:
    """Positive number with at most two decimals, currency symbols allowed."""
    if cell.is_number:
        value = float(cell.number or 0.0)
        return value > 0 and round(value, 2) == round(value, 10)
    if not cell.is_text:
        return False
    stripped = PRICE_GROUPING_RE.sub("", cell.text)
    if not PRICE_LIKE_RE.match(stripped):
        return False
    return float(stripped) > 0


def is_unavailable_text(text: str) -> bool:
    return bool(UNAVAILABLE_RE.search(text or ""))


def extract_note(text: str) -> Optional[str]:
    """First note in priority order: (...), *..., note: ..., trailing dash text."""
    for pattern in NOTE_PATTERNS:
        m = pattern.search(text or "")
        if m:
            note = m.group(1).strip()
            if note:
                return note
    return None


def _strip_notes(text: str) -> str:
    out = text
    for pattern in NOTE_PATTERNS:
        m = pattern.search(out)
        if m:
            out = out[: m.start()] + out[m.end():]
    return out


def parse_number(token: str) -> Optional[float]:
    """
    Read a locale-formatted number token.

    With both separators the last one is the decimal mark.  A lone comma
    followed by at most two digits is a decimal mark, otherwise grouping.
    Apostrophes are always grouping.
    """
    token = token.replace("'", "").strip()
    if not token:
        return None
    negative = token.startswith("-")
    body = token.lstrip("-")
    last_comma = body.rfind(",")
    last_dot = body.rfind(".")
    if last_comma >= 0 and last_dot >= 0:
        if last_comma > last_dot:
            body = body.replace(".", "").replace(",", ".")
        else:
            body = body.replace(",", "")
    elif last_comma >= 0:
        tail = body[last_comma + 1:]
        if body.count(",") == 1 and 0 < len(tail) <= 2:
            body = body.replace(",", ".")
        else:
            body = body.replace(",", "")
    elif body.count(".") > 1:
        body = body.replace(".", "")
    body = body.rstrip(".")
    try:
        value = float(body)
    except ValueError:
        return None
    return -value if negative else value


def parse_price(cell: Cell) -> Tuple[float, bool]:
    """
    ``(price, available)`` for a price cell.

    Unavailable tokens, empty cells, parse failures, and negative values all
    degrade to ``(0.0, False)``.  An explicit zero stays available.
    """
    if cell.is_empty:
        return 0.0, False
    if cell.is_number:
        value = float(cell.number or 0.0)
        if value < 0:
            return 0.0, False
        return value, True
    text = cell.text
    if is_unavailable_text(text):
        return 0.0, False
    cleaned = WHITESPACE_RE.sub("", CURRENCY_MARKERS_RE.sub("", _strip_notes(text)))
    m = NUMBER_TOKEN_RE.search(cleaned)
    if not m:
        return 0.0, False
    token = m.group(0)
    value = parse_number(token)
    if value is None or value < 0:
        return 0.0, False
    if value == 0 and not EXPLICIT_ZERO_RE.match(token.lstrip("-")):
        return 0.0, False
    return value, True


# ---------------------------------------------------------------------------
# Currencies
# ---------------------------------------------------------------------------

def find_currencies(text: str) -> List[str]:
    """Currency codes mentioned in *text*, one entry per occurrence."""
    hits: List[Tuple[int, str]] = []
    for code, pattern in CURRENCY_PATTERNS.items():
        for m in pattern.finditer(text or ""):
            hits.append((m.start(), code))
    hits.sort()
    return [code for _, code in hits]


def cell_currency(cell: Cell) -> Optional[str]:
    """Currency written inside a single cell, if exactly determinable."""
    if not cell.is_text:
        return None
    codes = find_currencies(cell.text)
    return codes[0] if codes else None


# ---------------------------------------------------------------------------
# Inclusion list markers
# ---------------------------------------------------------------------------

def is_bullet(text: str) -> bool:
    return any(p.match((text or "").strip()) for p in BULLET_PATTERNS)


def is_numbered(text: str) -> bool:
    return any(p.match((text or "").strip()) for p in NUMBERED_PATTERNS)


def list_format(items: Sequence[str]) -> str:
    """Majority format of list items; ties favour bullets, then numbering."""
    if not items:
        return "plain-text"
    bullets = sum(1 for i in items if is_bullet(i))
    numbered = sum(1 for i in items if not is_bullet(i) and is_numbered(i))
    plain = len(items) - bullets - numbered
    top = max(bullets, numbered, plain)
    if bullets == top:
        return "bullet-points"
    if numbered == top:
        return "numbered"
    if bullets and numbered:
        return "mixed"
    return "plain-text"


def looks_like_header(text: str) -> bool:
    """Section-header wording such as "Inclusions" or "Package features"."""
    value = (text or "").strip()
    if len(value) < 3:
        return False
    return any(p.search(value) for p in SECTION_HEADER_PATTERNS)


def is_inclusion_item(text: str) -> bool:
    """
    A line worth keeping as an inclusion.

    Rejects headers, bare prices, bare month names and bare accommodation
    tokens; requires a run of at least three letters.
    """
    value = (text or "").strip()
    if len(value) < 3 or looks_like_header(value):
        return False
    if is_price_like(Cell.from_value(value)):
        return False
    bare = LIST_MARKER_RE.sub("", value).strip()
    if any(p.match(bare) for p in MONTH_PATTERNS):
        return False
    if BARE_ACCOMMODATION_RE.match(bare):
        return False
    return bool(re.search(r"[A-Za-z]{3,}", value))


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

_DATE_PARTS_RE = re.compile(r"^(\d{1,4})[/\-.](\d{1,2})[/\-.](\d{2,4})$")


def parse_date(text: str) -> Optional[date]:
    """
    Parse ``dd/mm/yyyy``, ``dd-mm-yy`` (day first) or ISO ``yyyy-mm-dd``.

    Two-digit years below 50 are 20xx, the rest 19xx.  Invalid calendar
    dates return ``None``.
    """
    m = _DATE_PARTS_RE.match((text or "").strip())
    if not m:
        return None
    a, b, c = m.groups()
    if len(a) == 4:
        year, month, day = int(a), int(b), int(c)
    elif len(a) <= 2:
        day, month, year = int(a), int(b), int(c)
        if len(c) == 2:
            year += 2000 if year < 50 else 1900
        elif len(c) != 4:
            return None
    else:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None
