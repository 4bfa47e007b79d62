"""
============================================================================
GZ Compliance Engine v1.0
Decimal Math - Fixed-Point Arithmetic for Financial Checks
============================================================================

Reliability Level: L6 Critical
Input Constraints: Any numeric-like value (int, str, Decimal, float)
Side Effects: None

ZERO-FLOAT MANDATE
------------------
Every currency and percentage calculation in the compliance engine routes
through DecimalMath. Native floats are converted via str() on entry and never
used for sums, ratios or comparisons against zero.

EXPLICIT CONTEXT
----------------
The process-wide decimal context is never mutated. Each DecimalMath instance
owns a decimal.Context built from a DecimalConfig, so independent
configurations can run side by side (e.g. in parallel tests).

ZERO-DIVISION POLICY
--------------------
safe_divide() returns the fallback (default 0) whenever the denominator is
zero. Every ratio in the engine uses it.

============================================================================
"""

from dataclasses import dataclass
from decimal import (
    Context,
    Decimal,
    DecimalException,
    InvalidOperation,
    ROUND_HALF_UP,
)
from typing import Any, Iterable, Optional
import logging
import re

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_PRECISION = 28
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")

CENTS = Decimal("0.01")

# Plan figures at or above 10^16 are treated as input anomalies. Keeps every
# product of two accepted values inside the context exponent range.
MAX_MAGNITUDE_EXPONENT = 15

_GERMAN_NUMBER_RE = re.compile(r"^-?\d{1,3}(?:\.\d{3})*(?:,\d+)?$|^-?\d+(?:,\d+)?$")


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class DecimalConfig:
    """
    Precision configuration for DecimalMath.

    Reliability Level: L6 Critical
    Input Constraints: precision >= 1
    Side Effects: None
    """
    precision: int = DEFAULT_PRECISION
    rounding: str = DEFAULT_ROUNDING

    def build_context(self) -> Context:
        """Create a fresh decimal.Context for this configuration."""
        return Context(prec=self.precision, rounding=self.rounding)


# =============================================================================
# DECIMAL MATH
# =============================================================================

class DecimalMath:
    """
    Precision arithmetic bound to an explicit decimal context.

    Reliability Level: L6 Critical
    Input Constraints: Values convertible to Decimal
    Side Effects: None
    """

    def __init__(self, config: Optional[DecimalConfig] = None) -> None:
        self.config = config or DecimalConfig()
        self.context = self.config.build_context()

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    def to_decimal(self, value: Any, default: Any = ZERO) -> Decimal:
        """
        Convert a raw value to Decimal without ever raising.

        Floats are converted through str() to avoid binary artefacts.
        Booleans, None, NaN, infinities, unparseable strings and magnitudes
        of 10^16 or more return the default.

        Args:
            value: Raw value from a session payload
            default: Value returned when conversion is impossible

        Returns:
            Decimal rounded to the configured precision
        """
        if isinstance(default, Decimal):
            fallback = default
        else:
            fallback = Decimal(str(default))

        if value is None or isinstance(value, bool):
            return fallback

        try:
            if isinstance(value, Decimal):
                result = value
            elif isinstance(value, int):
                result = Decimal(value)
            elif isinstance(value, float):
                result = Decimal(str(value))
            elif isinstance(value, str):
                stripped = value.strip()
                if not stripped:
                    return fallback
                result = Decimal(stripped)
            else:
                return fallback
        except (InvalidOperation, ValueError):
            return fallback

        if not result.is_finite():
            return fallback
        if result and result.adjusted() > MAX_MAGNITUDE_EXPONENT:
            logger.debug("[DECIMAL] Value out of range, using default | value=%s", value)
            return fallback

        try:
            return self.context.plus(result)
        except DecimalException:
            return fallback

    # -------------------------------------------------------------------------
    # Arithmetic
    # -------------------------------------------------------------------------

    def add(self, a: Any, b: Any) -> Decimal:
        return self.context.add(self.to_decimal(a), self.to_decimal(b))

    def subtract(self, a: Any, b: Any) -> Decimal:
        return self.context.subtract(self.to_decimal(a), self.to_decimal(b))

    def multiply(self, a: Any, b: Any) -> Decimal:
        return self.context.multiply(self.to_decimal(a), self.to_decimal(b))

    def divide(self, a: Any, b: Any) -> Decimal:
        """Divide a by b. Raises on zero; use safe_divide for ratios."""
        return self.context.divide(self.to_decimal(a), self.to_decimal(b))

    def safe_divide(self, numerator: Any, denominator: Any, fallback: Any = ZERO) -> Decimal:
        """
        Divide, returning fallback when the denominator is zero.

        Reliability Level: L6 Critical
        Side Effects: None
        """
        den = self.to_decimal(denominator)
        if den == ZERO:
            return self.to_decimal(fallback)
        return self.context.divide(self.to_decimal(numerator), den)

    def sum(self, values: Iterable[Any]) -> Decimal:
        total = ZERO
        for value in values:
            total = self.context.add(total, self.to_decimal(value))
        return total

    def absolute(self, value: Any) -> Decimal:
        return self.context.abs(self.to_decimal(value))

    # -------------------------------------------------------------------------
    # Rounding
    # -------------------------------------------------------------------------

    def quantize(self, value: Any, places: Decimal = CENTS) -> Decimal:
        """Quantize to the given exponent using the configured rounding."""
        return self.to_decimal(value).quantize(places, rounding=self.config.rounding, context=self.context)

    def round_to_int(self, value: Any) -> int:
        return int(self.to_decimal(value).quantize(ONE, rounding=self.config.rounding, context=self.context))

    def percent(self, ratio: Any) -> int:
        """Convert a ratio (0.85) into a rounded integer percentage (85)."""
        return self.round_to_int(self.multiply(ratio, HUNDRED))

    # -------------------------------------------------------------------------
    # Formatting (German locale)
    # -------------------------------------------------------------------------

    def format_currency(self, amount: Any) -> str:
        """
        Format an amount as German currency: 1.234,56 €

        Reliability Level: L6 Critical
        Side Effects: None
        """
        value = self.quantize(amount, CENTS)
        sign = "-" if value < ZERO else ""
        integer_part, _, fraction = f"{abs(value):f}".partition(".")
        grouped = f"{int(integer_part):,}".replace(",", ".")
        return f"{sign}{grouped},{(fraction or '00').ljust(2, '0')} €"

    def format_percentage(self, value: Any) -> str:
        """Format a percentage value (15.5) as 15,5%."""
        quantized = self.quantize(value, Decimal("0.1"))
        return f"{quantized:f}".replace(".", ",") + "%"

    def parse_german_number(self, text: str) -> Optional[Decimal]:
        """
        Parse a German-formatted number ("1.234,56") into a Decimal.

        Returns None when the text is not a number.
        """
        if not text:
            return None
        candidate = text.strip()
        if not _GERMAN_NUMBER_RE.match(candidate):
            return None
        normalized = candidate.replace(".", "").replace(",", ".")
        try:
            return self.context.plus(Decimal(normalized))
        except DecimalException:
            return None


# =============================================================================
# MODULE-LEVEL HELPERS
# =============================================================================

DEFAULT_DECIMAL_MATH = DecimalMath()


def format_month(month_number: int) -> str:
    return f"Monat {month_number}"


def format_duration(months: int) -> str:
    if months == 1:
        return "1 Monat"
    return f"{months} Monate"
