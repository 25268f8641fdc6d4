"""
PriceValidator: rule-based sanity checks over extracted pricing records.

Each rule is a named callable returning findings.  Rules run independently:
one that raises is logged and reported as a single error finding, and the
remaining rules still run.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from offer_engine.excel.config import (
    ACCOMMODATION_CEILING_MULTIPLIERS,
    CURRENCY_SYMBOLS,
    MAX_REASONABLE_PRICE,
    MIN_REASONABLE_PRICE,
    SUPPORTED_CURRENCIES,
    DetectorConfig,
    DEFAULT_CONFIG,
)
from offer_engine.excel.matchers import find_currencies, parse_number
from offer_engine.ir import PricingRecord, Severity, ValidationFinding
from offer_engine.logger import get_logger

logger = get_logger(__name__)

PriceRange = Tuple[float, float]


@dataclass(frozen=True)
class ValidationContext:
    """
    Workbook-level facts the rules check records against.

    Attributes:
        currency: currency detected for the whole workbook
        price_ranges: accommodation type -> (low, high) expected price
    """
    currency: Optional[str] = None
    price_ranges: Dict[str, PriceRange] = field(default_factory=dict)


RuleCheck = Callable[[Sequence[PricingRecord], Optional[ValidationContext]], List[ValidationFinding]]


@dataclass(frozen=True)
class ValidationRule:
    name: str
    description: str
    severity: Severity
    check: RuleCheck


@dataclass(frozen=True)
class ValidationOptions:
    allow_zero_prices: bool = False
    price_reasonableness_check: bool = True
    currency_consistency_check: bool = True
    price_ranges: Dict[str, PriceRange] = field(default_factory=dict)
    custom_rules: Tuple[ValidationRule, ...] = ()


@dataclass(frozen=True)
class CurrencyCheck:
    currency: Optional[str]
    is_valid: bool
    detected_format: Optional[str]
    suggestions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class NumberFormatCheck:
    is_valid: bool
    parsed_value: float
    detected_format: str  # "US" | "European" | "unknown"
    errors: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Reasonableness:
    is_reasonable: bool
    warnings: Tuple[str, ...] = ()
    suggestions: Tuple[str, ...] = ()


def record_id(record: PricingRecord) -> str:
    return record.coordinate or f"{record.month}-{record.accommodation_type}"


def _fmt_price(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:.2f}"


# ---------------------------------------------------------------------------
# Single-value helpers
# ---------------------------------------------------------------------------

def detect_and_validate_currency(value: str) -> CurrencyCheck:
    """Currency named by a single value, by symbol, ISO code, or known format."""
    if not value or not isinstance(value, str):
        return CurrencyCheck(None, False, None, ("Provide a valid string value",))

    codes = find_currencies(value)
    if codes:
        code = codes[0]
        fmt = "code" if code in value.upper() and CURRENCY_SYMBOLS[code] not in value else "symbol"
        return CurrencyCheck(code, True, fmt)

    for code, info in SUPPORTED_CURRENCIES.items():
        if any(p.search(value) for p in info.supported_formats):
            return CurrencyCheck(code, True, "pattern")

    return CurrencyCheck(
        None,
        False,
        None,
        (
            "Use a recognized currency symbol (£, $, €) or code (GBP, USD, EUR)",
            "Make sure currency information is clearly visible in the data",
        ),
    )


def validate_number_format(value: str, expected_currency: Optional[str] = None) -> NumberFormatCheck:
    """Classify a number as US (1,234.56) or European (1.234,56) and parse it."""
    if not value or not isinstance(value, str):
        return NumberFormatCheck(False, 0.0, "unknown", ("Invalid input value",))

    clean = "".join(ch for ch in value if ch not in "£$€¥₹ \t\n")
    has_comma, has_dot = "," in clean, "." in clean
    if has_comma and has_dot:
        detected = "European" if clean.rfind(",") > clean.rfind(".") else "US"
    elif has_comma:
        detected = "European" if len(clean) - clean.rfind(",") - 1 <= 2 else "US"
    elif has_dot:
        detected = "US"
    else:
        detected = "unknown"

    parsed = parse_number(clean)
    if parsed is None or not math.isfinite(parsed):
        return NumberFormatCheck(False, 0.0, detected, (f"Cannot parse {value!r} as a number",))

    errors: List[str] = []
    info = SUPPORTED_CURRENCIES.get(expected_currency or "")
    if info is not None:
        decimals = max(0, -Decimal(repr(parsed)).normalize().as_tuple().exponent)
        if decimals > info.decimal_places:
            errors.append(
                f"Too many decimal places for {info.code} (max: {info.decimal_places})"
            )
    return NumberFormatCheck(True, parsed, detected, tuple(errors))


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------

class PriceValidator:
    """
    Runs the built-in rules plus any custom ones over a record set.

    Built-in rules: ``currency-consistency``, ``price-reasonableness``,
    ``zero-prices``, ``missing-prices`` and ``price-progression``.
    """

    def __init__(self, options: Optional[ValidationOptions] = None, cfg: DetectorConfig = DEFAULT_CONFIG):
        self._options = options or ValidationOptions()
        self._cfg = cfg
        self._added: List[ValidationRule] = []
        self._removed: Set[str] = set()
        self._rules: List[ValidationRule] = self._assemble_rules()

    # ----- rule registry --------------------------------------------------

    @property
    def rules(self) -> List[ValidationRule]:
        return list(self._rules)

    @property
    def options(self) -> ValidationOptions:
        return self._options

    def add_rule(self, rule: ValidationRule) -> None:
        self._removed.discard(rule.name)
        self._added.append(rule)
        self._rules = self._assemble_rules()

    def remove_rule(self, name: str) -> None:
        self._removed.add(name)
        self._added = [r for r in self._added if r.name != name]
        self._rules = self._assemble_rules()

    def update_options(self, **changes) -> None:
        """Replace options and rebuild the rule list; added and removed rules are kept."""
        self._options = replace(self._options, **changes)
        self._rules = self._assemble_rules()

    def _assemble_rules(self) -> List[ValidationRule]:
        rules = self._builtin_rules() + list(self._options.custom_rules) + self._added
        return [r for r in rules if r.name not in self._removed]

    # ----- main entry point ----------------------------------------------

    def validate_pricing(
        self,
        records: Sequence[PricingRecord],
        context: Optional[ValidationContext] = None,
    ) -> List[ValidationFinding]:
        findings: List[ValidationFinding] = []
        for rule in self._rules:
            try:
                findings.extend(rule.check(records, context))
            except Exception as exc:
                logger.error("Validation rule %s failed: %s", rule.name, exc, exc_info=True)
                findings.append(ValidationFinding(
                    rule=rule.name,
                    severity="error",
                    message=f"Validation rule failed: {exc}",
                    suggestion="Check the validation rule implementation",
                ))
        logger.info(
            "Validated %d record(s): %d finding(s) from %d rule(s)",
            len(records), len(findings), len(self._rules),
        )
        return findings

    # ----- reasonableness -------------------------------------------------

    def check_price_reasonableness(
        self,
        price: float,
        currency: str,
        accommodation_type: str,
        nights: int,
        pax: int,
        price_ranges: Optional[Dict[str, PriceRange]] = None,
    ) -> Reasonableness:
        if price < 0:
            return Reasonableness(False, ("Price cannot be negative",), ("Check for data entry errors",))
        if price == 0 and not self._options.allow_zero_prices:
            return Reasonableness(
                False,
                ("Zero prices may indicate missing data",),
                ("Verify if this should be marked as unavailable instead",),
            )

        warnings: List[str] = []
        suggestions: List[str] = []
        if currency in MIN_REASONABLE_PRICE:
            floor = MIN_REASONABLE_PRICE[currency]
            if 0 < price < floor:
                warnings.append(f"Price {_fmt_price(price)} {currency} seems unusually low")
                suggestions.append("Verify the price or check for missing digits")
            ceiling = self.max_reasonable_price(currency, accommodation_type, nights, pax)
            if price > ceiling:
                warnings.append(f"Price {_fmt_price(price)} {currency} seems unusually high")
                suggestions.append("Verify the price or check for extra digits")

        ranges = dict(self._options.price_ranges)
        ranges.update(price_ranges or {})
        if accommodation_type in ranges:
            lo, hi = ranges[accommodation_type]
            if price < lo or price > hi:
                warnings.append(
                    f"Price {_fmt_price(price)} {currency} is outside the expected range "
                    f"for {accommodation_type} ({_fmt_price(lo)}-{_fmt_price(hi)})"
                )
                suggestions.append("Check that the accommodation type is correct")

        if nights > 7 and price < 100:
            warnings.append("Price seems low for an extended stay")
        if pax > 4 and price < 200:
            warnings.append("Price seems low for a large group")

        return Reasonableness(not warnings, tuple(warnings), tuple(suggestions))

    @staticmethod
    def max_reasonable_price(currency: str, accommodation_type: str, nights: int, pax: int) -> float:
        ceiling = float(MAX_REASONABLE_PRICE.get(currency, MAX_REASONABLE_PRICE["EUR"]))
        lowered = (accommodation_type or "").lower()
        for keyword, multiplier in ACCOMMODATION_CEILING_MULTIPLIERS:
            if keyword in lowered:
                ceiling *= multiplier
                break
        ceiling *= max(1.0, nights / 7)
        ceiling *= max(1.0, pax / 2)
        return ceiling

    # ----- built-in rules -------------------------------------------------

    def _builtin_rules(self) -> List[ValidationRule]:
        rules = [
            ValidationRule(
                "currency-consistency",
                "All prices should use the same currency",
                "error",
                self._check_currency_consistency,
            ),
            ValidationRule(
                "price-reasonableness",
                "Prices should be within reasonable ranges",
                "warning",
                self._check_reasonableness,
            ),
            ValidationRule(
                "zero-prices",
                "Zero prices should be validated",
                "info" if self._options.allow_zero_prices else "warning",
                self._check_zero_prices,
            ),
            ValidationRule(
                "missing-prices",
                "Check for missing price data",
                "info",
                self._check_missing_prices,
            ),
            ValidationRule(
                "price-progression",
                "Prices should not drop as nights or party size grow",
                "warning",
                self._check_progression,
            ),
        ]
        if not self._options.currency_consistency_check:
            rules = [r for r in rules if r.name != "currency-consistency"]
        if not self._options.price_reasonableness_check:
            rules = [r for r in rules if r.name != "price-reasonableness"]
        return rules

    def _check_currency_consistency(
        self, records: Sequence[PricingRecord], context: Optional[ValidationContext]
    ) -> List[ValidationFinding]:
        currencies = list(dict.fromkeys(r.currency for r in records))
        expected = context.currency if context else None
        if len(currencies) == 1 and expected and currencies[0] != expected:
            return [ValidationFinding(
                rule="currency-consistency",
                severity="warning",
                message=f"Prices use {currencies[0]} but the workbook currency is {expected}",
                affected=[record_id(r) for r in records],
                suggestion="Check the currency symbols in the pricing table",
                value=currencies,
            )]
        if len(currencies) <= 1:
            return []
        return [ValidationFinding(
            rule="currency-consistency",
            severity="error",
            message=f"Multiple currencies detected: {', '.join(currencies)}",
            affected=[record_id(r) for r in records],
            suggestion="Make sure all prices use the same currency or convert them",
            value=currencies,
        )]

    def _check_reasonableness(
        self, records: Sequence[PricingRecord], context: Optional[ValidationContext]
    ) -> List[ValidationFinding]:
        ranges = context.price_ranges if context else None
        findings: List[ValidationFinding] = []
        for r in records:
            if not r.available or r.price <= 0:
                continue
            result = self.check_price_reasonableness(
                r.price, r.currency, r.accommodation_type, r.nights, r.pax, ranges
            )
            if result.is_reasonable:
                continue
            findings.append(ValidationFinding(
                rule="price-reasonableness",
                severity="warning",
                message="; ".join(result.warnings),
                affected=[record_id(r)],
                suggestion="; ".join(result.suggestions) or None,
                value=r.price,
            ))
        return findings

    def _check_zero_prices(
        self, records: Sequence[PricingRecord], context: Optional[ValidationContext]
    ) -> List[ValidationFinding]:
        zeros = [r for r in records if r.available and r.price == 0]
        if not zeros:
            return []
        allowed = self._options.allow_zero_prices
        return [ValidationFinding(
            rule="zero-prices",
            severity="info" if allowed else "warning",
            message=f"Found {len(zeros)} entries with zero prices",
            affected=[record_id(r) for r in zeros],
            suggestion=(
                "Zero prices detected, verify these are intentional"
                if allowed
                else "Consider marking zero-price entries as unavailable instead"
            ),
        )]

    def _check_missing_prices(
        self, records: Sequence[PricingRecord], context: Optional[ValidationContext]
    ) -> List[ValidationFinding]:
        if not records:
            return []
        missing = [r for r in records if not r.available]
        ratio = len(missing) / len(records)
        if ratio > self._cfg.unavailable_warning_ratio:
            return [ValidationFinding(
                rule="missing-prices",
                severity="warning",
                message=f"High percentage of unavailable entries: {ratio * 100:.1f}%",
                affected=[record_id(r) for r in missing],
                suggestion="Review the data source for completeness",
                value=round(ratio, 4),
            )]
        if missing:
            return [ValidationFinding(
                rule="missing-prices",
                severity="info",
                message=f"{len(missing)} entries marked as unavailable",
                affected=[record_id(r) for r in missing],
                suggestion="Verify unavailable entries are correct",
                value=round(ratio, 4),
            )]
        return []

    def _check_progression(
        self, records: Sequence[PricingRecord], context: Optional[ValidationContext]
    ) -> List[ValidationFinding]:
        groups: Dict[Tuple[str, str], List[PricingRecord]] = {}
        for r in records:
            if r.available and r.price > 0:
                groups.setdefault((r.month, r.accommodation_type), []).append(r)

        findings: List[ValidationFinding] = []
        for entries in groups.values():
            entries.sort(key=lambda r: (r.nights, r.pax))
            for i, smaller in enumerate(entries):
                for larger in entries[i + 1:]:
                    dominates = (
                        larger.nights >= smaller.nights
                        and larger.pax >= smaller.pax
                        and (larger.nights, larger.pax) != (smaller.nights, smaller.pax)
                    )
                    if not dominates or larger.price >= smaller.price:
                        continue
                    findings.append(ValidationFinding(
                        rule="price-progression",
                        severity="warning",
                        message=(
                            f"Price decrease detected: {smaller.nights}n/{smaller.pax}p "
                            f"({_fmt_price(smaller.price)}) > {larger.nights}n/{larger.pax}p "
                            f"({_fmt_price(larger.price)})"
                        ),
                        affected=[record_id(smaller), record_id(larger)],
                        suggestion="Verify pricing for the different nights/pax combinations",
                        value=larger.price,
                    ))
        return findings


# ---------------------------------------------------------------------------
# Module-level helpers
# ---------------------------------------------------------------------------

def create_price_validator(options: Optional[ValidationOptions] = None) -> PriceValidator:
    return PriceValidator(options)


def validate_pricing_data(
    records: Sequence[PricingRecord],
    context: Optional[ValidationContext] = None,
    options: Optional[ValidationOptions] = None,
) -> List[ValidationFinding]:
    return create_price_validator(options).validate_pricing(records, context)
