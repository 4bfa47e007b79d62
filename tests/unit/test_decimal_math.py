"""
Unit Tests for DecimalMath

Reliability Level: L6 Critical

Tests the fixed-point arithmetic layer:
- Conversion never raises and never goes through binary floats
- Explicit contexts are independent of each other
- safe_divide zero-denominator policy
- German currency and number formatting
"""

import pytest
import os
from decimal import Decimal, ROUND_DOWN, getcontext

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from app.logic.decimal_math import (
    DecimalConfig,
    DecimalMath,
    ZERO,
    format_duration,
    format_month,
)


@pytest.fixture
def math() -> DecimalMath:
    return DecimalMath()


# =============================================================================
# Conversion
# =============================================================================

class TestToDecimal:

    def test_float_goes_through_str(self, math: DecimalMath) -> None:
        assert math.to_decimal(0.1) == Decimal("0.1")

    def test_int_and_string(self, math: DecimalMath) -> None:
        assert math.to_decimal(42) == Decimal("42")
        assert math.to_decimal(" 1234.50 ") == Decimal("1234.50")

    @pytest.mark.parametrize("raw", [None, "", "   ", "abc", True, False, float("nan"), float("inf"), {}, []])
    def test_unusable_values_fall_back_to_zero(self, math: DecimalMath, raw) -> None:
        assert math.to_decimal(raw) == ZERO

    def test_custom_default(self, math: DecimalMath) -> None:
        assert math.to_decimal("kaputt", default=7) == Decimal("7")

    @pytest.mark.parametrize("raw", ["1e999999999", "-1e999999999", Decimal("1E+1000000"), 10 ** 40])
    def test_out_of_range_values_fall_back(self, math: DecimalMath, raw) -> None:
        assert math.to_decimal(raw) == ZERO

    def test_large_plan_figures_are_kept(self, math: DecimalMath) -> None:
        assert math.to_decimal("999999999999999") == Decimal("999999999999999")


# =============================================================================
# Arithmetic
# =============================================================================

class TestArithmetic:

    def test_add_is_exact(self, math: DecimalMath) -> None:
        assert math.add(0.1, 0.2) == Decimal("0.3")

    def test_subtract(self, math: DecimalMath) -> None:
        assert math.subtract("2000", "1500") == Decimal("500")

    def test_sum_skips_garbage(self, math: DecimalMath) -> None:
        assert math.sum(["100", None, 50, "x", Decimal("0.5")]) == Decimal("150.5")

    def test_safe_divide_zero_denominator_returns_fallback(self, math: DecimalMath) -> None:
        assert math.safe_divide(10, 0) == ZERO
        assert math.safe_divide(10, "0.00", fallback=1) == Decimal("1")

    def test_safe_divide_regular(self, math: DecimalMath) -> None:
        assert math.safe_divide(1, 4) == Decimal("0.25")

    def test_percent_rounds_half_up(self, math: DecimalMath) -> None:
        assert math.percent(Decimal("0.125")) == 13
        assert math.percent(Decimal("2.307692307")) == 231

    def test_round_to_int_half_up(self, math: DecimalMath) -> None:
        assert math.round_to_int(Decimal("2.5")) == 3
        assert math.round_to_int(Decimal("-2.5")) == -3


# =============================================================================
# Explicit Context
# =============================================================================

class TestExplicitContext:

    def test_global_context_is_not_mutated(self) -> None:
        before = (getcontext().prec, getcontext().rounding)
        DecimalMath(DecimalConfig(precision=5, rounding=ROUND_DOWN))
        assert (getcontext().prec, getcontext().rounding) == before

    def test_independent_configurations(self) -> None:
        coarse = DecimalMath(DecimalConfig(precision=3))
        fine = DecimalMath()

        assert coarse.divide(1, 3) == Decimal("0.333")
        assert fine.divide(1, 3) == Decimal("0.3333333333333333333333333333")

    def test_rounding_mode_is_respected(self) -> None:
        truncating = DecimalMath(DecimalConfig(rounding=ROUND_DOWN))
        assert truncating.quantize("1.239") == Decimal("1.23")


# =============================================================================
# Formatting
# =============================================================================

class TestFormatting:

    @pytest.mark.parametrize("amount,expected", [
        ("1234.56", "1.234,56 €"),
        ("500", "500,00 €"),
        ("-1200", "-1.200,00 €"),
        ("0.005", "0,01 €"),
        ("1000000", "1.000.000,00 €"),
    ])
    def test_format_currency(self, math: DecimalMath, amount: str, expected: str) -> None:
        assert math.format_currency(amount) == expected

    def test_format_percentage(self, math: DecimalMath) -> None:
        assert math.format_percentage("15.55") == "15,6%"

    @pytest.mark.parametrize("text,expected", [
        ("1.234,56", Decimal("1234.56")),
        ("89", Decimal("89")),
        ("-2.000", Decimal("-2000")),
        ("12,5", Decimal("12.5")),
    ])
    def test_parse_german_number(self, math: DecimalMath, text: str, expected: Decimal) -> None:
        assert math.parse_german_number(text) == expected

    @pytest.mark.parametrize("text", ["", "abc", "1,2,3", "12.34"])
    def test_parse_german_number_rejects(self, math: DecimalMath, text: str) -> None:
        assert math.parse_german_number(text) is None

    def test_month_and_duration(self) -> None:
        assert format_month(6) == "Monat 6"
        assert format_duration(1) == "1 Monat"
        assert format_duration(24) == "24 Monate"
