import pytest

from offer_engine.excel.price_validator import (
    PriceValidator,
    ValidationContext,
    ValidationOptions,
    ValidationRule,
    detect_and_validate_currency,
    validate_number_format,
    validate_pricing_data,
)


def _rules(findings):
    return [f.rule for f in findings]


class TestCurrencyDetection:
    def test_symbol(self):
        result = detect_and_validate_currency("€150")
        assert result.currency == "EUR"
        assert result.is_valid
        assert result.detected_format == "symbol"

    def test_code(self):
        result = detect_and_validate_currency("150 EUR")
        assert result.currency == "EUR"
        assert result.detected_format == "code"

    @pytest.mark.parametrize("value", ["150", ""])
    def test_unknown(self, value):
        result = detect_and_validate_currency(value)
        assert not result.is_valid
        assert result.currency is None
        assert result.suggestions


class TestNumberFormat:
    @pytest.mark.parametrize(
        "value, fmt, parsed",
        [
            ("1.234,56", "European", 1234.56),
            ("1,234.56", "US", 1234.56),
            ("150,50", "European", 150.5),
            ("€1,234", "US", 1234.0),
            ("1234", "unknown", 1234.0),
        ],
    )
    def test_detects_and_parses(self, value, fmt, parsed):
        result = validate_number_format(value)
        assert result.is_valid
        assert result.detected_format == fmt
        assert result.parsed_value == pytest.approx(parsed)

    def test_unparseable(self):
        result = validate_number_format("abc")
        assert not result.is_valid
        assert result.errors

    def test_tiny_values_count_their_decimals(self):
        result = validate_number_format("0.00001", expected_currency="EUR")
        assert result.is_valid
        assert result.parsed_value == pytest.approx(0.00001)
        assert result.errors == ("Too many decimal places for EUR (max: 2)",)

    def test_non_finite_is_rejected(self):
        assert not validate_number_format("inf").is_valid

    def test_decimal_places_per_currency(self):
        result = validate_number_format("1500.50", expected_currency="JPY")
        assert result.errors == ("Too many decimal places for JPY (max: 0)",)
        assert validate_number_format("150.50", expected_currency="EUR").errors == ()


class TestReasonableness:
    def test_too_low(self):
        result = PriceValidator().check_price_reasonableness(3, "EUR", "Hotel", 2, 2)
        assert not result.is_reasonable
        assert result.warnings == ("Price 3 EUR seems unusually low",)

    def test_ceiling_depends_on_accommodation(self):
        validator = PriceValidator()
        hotel = validator.check_price_reasonableness(7000, "EUR", "Hotel", 2, 2)
        villa = validator.check_price_reasonableness(7000, "EUR", "Villa", 2, 2)
        assert hotel.warnings == ("Price 7000 EUR seems unusually high",)
        assert villa.is_reasonable

    def test_ceiling_scales_with_nights_and_pax(self):
        assert PriceValidator.max_reasonable_price("EUR", "Villa", 14, 4) == pytest.approx(40000)
        assert PriceValidator.max_reasonable_price("EUR", "Standard", 2, 2) == pytest.approx(5000)

    def test_negative_and_zero(self):
        validator = PriceValidator()
        assert validator.check_price_reasonableness(-1, "EUR", "Hotel", 2, 2).warnings == (
            "Price cannot be negative",
        )
        assert not validator.check_price_reasonableness(0, "EUR", "Hotel", 2, 2).is_reasonable
        lenient = PriceValidator(ValidationOptions(allow_zero_prices=True))
        assert lenient.check_price_reasonableness(0, "EUR", "Hotel", 2, 2).is_reasonable

    def test_extended_stay_and_large_group(self):
        validator = PriceValidator()
        assert "Price seems low for an extended stay" in validator.check_price_reasonableness(
            90, "EUR", "Hotel", 10, 2
        ).warnings
        assert "Price seems low for a large group" in validator.check_price_reasonableness(
            150, "EUR", "Hotel", 2, 6
        ).warnings

    def test_configured_range(self):
        validator = PriceValidator(ValidationOptions(price_ranges={"Hotel": (100, 300)}))
        result = validator.check_price_reasonableness(350, "EUR", "Hotel", 2, 2)
        assert result.warnings == ("Price 350 EUR is outside the expected range for Hotel (100-300)",)


class TestRules:
    def test_clean_records_have_no_findings(self, make_record):
        records = [
            make_record(),
            make_record(nights=7, price=450.0, coordinate="C2"),
        ]
        assert validate_pricing_data(records) == []

    def test_zero_prices_warn(self, make_record):
        findings = PriceValidator().validate_pricing([make_record(price=0.0)])
        assert _rules(findings) == ["zero-prices"]
        assert findings[0].severity == "warning"
        assert findings[0].affected == ["B2"]

    def test_zero_prices_info_when_allowed(self, make_record):
        validator = PriceValidator(ValidationOptions(allow_zero_prices=True))
        findings = validator.validate_pricing([make_record(price=0.0)])
        assert [(f.rule, f.severity) for f in findings] == [("zero-prices", "info")]

    def test_mostly_missing_is_a_warning(self, make_record):
        records = [
            make_record(),
            make_record(month="February", price=0.0, available=False, coordinate="B3"),
            make_record(month="March", price=0.0, available=False, coordinate="B4"),
        ]
        findings = PriceValidator().validate_pricing(records)
        assert _rules(findings) == ["missing-prices"]
        assert findings[0].severity == "warning"
        assert findings[0].message == "High percentage of unavailable entries: 66.7%"
        assert findings[0].affected == ["B3", "B4"]

    def test_some_missing_is_info(self, make_record):
        records = [
            make_record(),
            make_record(month="February", coordinate="B3"),
            make_record(month="March", price=0.0, available=False, coordinate="B4"),
        ]
        findings = PriceValidator().validate_pricing(records)
        assert [(f.rule, f.severity) for f in findings] == [("missing-prices", "info")]

    def test_price_drop_for_larger_stay(self, make_record):
        records = [
            make_record(nights=2, pax=2, price=150.0, coordinate="B2"),
            make_record(nights=7, pax=4, price=100.0, coordinate="C2"),
        ]
        findings = PriceValidator().validate_pricing(records)
        assert _rules(findings) == ["price-progression"]
        assert findings[0].affected == ["B2", "C2"]
        assert findings[0].message == "Price decrease detected: 2n/2p (150) > 7n/4p (100)"

    def test_incomparable_combinations_do_not_fire(self, make_record):
        records = [
            make_record(nights=2, pax=4, price=150.0, coordinate="B2"),
            make_record(nights=7, pax=2, price=100.0, coordinate="C2"),
        ]
        assert PriceValidator().validate_pricing(records) == []

    def test_progression_is_per_month(self, make_record):
        records = [
            make_record(month="January", nights=2, price=150.0, coordinate="B2"),
            make_record(month="February", nights=7, price=100.0, coordinate="C3"),
        ]
        assert PriceValidator().validate_pricing(records) == []

    @pytest.mark.parametrize(
        "currencies, expected",
        [(["EUR", "EUR"], 0), (["EUR", "GBP"], 1)],
    )
    def test_currency_consistency(self, make_record, currencies, expected):
        records = [
            make_record(month=month, currency=code, coordinate=f"B{i + 2}")
            for i, (month, code) in enumerate(zip(["January", "February"], currencies))
        ]
        findings = [f for f in PriceValidator().validate_pricing(records) if f.rule == "currency-consistency"]
        assert len(findings) == expected
        if expected:
            assert findings[0].severity == "error"
            assert findings[0].message == "Multiple currencies detected: EUR, GBP"

    def test_context_price_ranges(self, make_record):
        context = ValidationContext(price_ranges={"Hotel": (200, 300)})
        findings = PriceValidator().validate_pricing([make_record()], context)
        assert _rules(findings) == ["price-reasonableness"]
        assert findings[0].value == 150.0

    def test_context_currency_mismatch_warns(self, make_record):
        context = ValidationContext(currency="EUR")
        findings = PriceValidator().validate_pricing([make_record(currency="GBP")], context)
        assert [(f.rule, f.severity) for f in findings] == [("currency-consistency", "warning")]
        assert findings[0].message == "Prices use GBP but the workbook currency is EUR"
        assert PriceValidator().validate_pricing([make_record()], context) == []


class TestRuleRegistry:
    def test_builtin_rule_names(self):
        names = [r.name for r in PriceValidator().rules]
        assert names == [
            "currency-consistency",
            "price-reasonableness",
            "zero-prices",
            "missing-prices",
            "price-progression",
        ]

    def test_options_disable_rules(self):
        options = ValidationOptions(currency_consistency_check=False, price_reasonableness_check=False)
        names = [r.name for r in PriceValidator(options).rules]
        assert "currency-consistency" not in names
        assert "price-reasonableness" not in names

    def test_failing_rule_is_isolated(self, make_record):
        def explode(records, context):
            raise RuntimeError("kaboom")

        rule = ValidationRule("explode", "always fails", "error", explode)
        validator = PriceValidator(ValidationOptions(custom_rules=(rule,)))
        findings = validator.validate_pricing([make_record(price=0.0)])

        failed = [f for f in findings if f.rule == "explode"]
        assert len(failed) == 1
        assert failed[0].severity == "error"
        assert failed[0].message == "Validation rule failed: kaboom"
        assert "zero-prices" in _rules(findings)

    def test_add_and_remove_rule(self, make_record):
        validator = PriceValidator()
        validator.remove_rule("price-progression")
        validator.add_rule(ValidationRule(
            "always", "always reports", "info",
            lambda records, context: [],
        ))
        names = [r.name for r in validator.rules]
        assert "price-progression" not in names
        assert names[-1] == "always"

        records = [
            make_record(nights=2, price=150.0, coordinate="B2"),
            make_record(nights=7, price=100.0, coordinate="C2"),
        ]
        assert validator.validate_pricing(records) == []

    def test_update_options(self, make_record):
        validator = PriceValidator()
        validator.update_options(allow_zero_prices=True)
        assert validator.options.allow_zero_prices
        findings = validator.validate_pricing([make_record(price=0.0)])
        assert findings[0].severity == "info"
        assert next(r for r in validator.rules if r.name == "zero-prices").severity == "info"

    def test_update_options_can_disable_rules(self, make_record):
        validator = PriceValidator()
        validator.update_options(currency_consistency_check=False)
        records = [
            make_record(currency="EUR", coordinate="B2"),
            make_record(month="February", currency="GBP", coordinate="B3"),
        ]
        assert "currency-consistency" not in [r.name for r in validator.rules]
        assert "currency-consistency" not in _rules(validator.validate_pricing(records))

    def test_update_options_keeps_added_and_removed_rules(self):
        validator = PriceValidator()
        validator.remove_rule("price-progression")
        validator.add_rule(ValidationRule("always", "always reports", "info", lambda records, context: []))
        validator.update_options(allow_zero_prices=True)
        names = [r.name for r in validator.rules]
        assert "price-progression" not in names
        assert names[-1] == "always"
