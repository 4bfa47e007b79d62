"""
============================================================================
GZ Compliance Engine - Configuration
============================================================================

Reliability Level: L6 Critical
Decimal Integrity: Thresholds are parsed straight into decimal.Decimal
Traceability: Configuration is logged once on load

This module provides configuration management for the compliance engine:
- Environment variable parsing with type safety
- Default values for every tunable
- Range validation (CFG-001)

ENVIRONMENT VARIABLES:
    - COMPLIANCE_TIMEOUT_MS: Orchestrator time budget (default: 500)
    - COMPLIANCE_DECIMAL_PRECISION: Significant digits (default: 28)
    - CONSISTENCY_PRICE_VARIATION: Accepted price deviation (default: 0.20)
    - CONSISTENCY_CAPACITY_UTILIZATION: Max sustainable load (default: 0.85)
    - CONSISTENCY_TIMELINE_SLACK_DAYS: Timeline tolerance (default: 30)
    - CONSISTENCY_COST_COMPLETENESS: Required cost coverage (default: 0.80)
    - CONSISTENCY_ASSUMED_HOURLY_RATE: EUR per hour for non-hourly streams (default: 80)

ERROR CODES:
    - CFG-001: Configuration value out of range

============================================================================
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional
import logging
import os

from app.logic.consistency_checker import ConsistencyThresholds
from app.logic.decimal_math import DecimalConfig, DecimalMath

logger = logging.getLogger(__name__)


# =============================================================================
# Error Codes
# =============================================================================

class ComplianceConfigErrorCode:
    """Configuration error codes for audit logging."""
    CONFIG_INVALID = "CFG-001"


# =============================================================================
# Default Values
# =============================================================================

DEFAULT_TIMEOUT_MS = 500
DEFAULT_DECIMAL_PRECISION = 28
DEFAULT_PRICE_VARIATION = Decimal("0.20")
DEFAULT_CAPACITY_UTILIZATION = Decimal("0.85")
DEFAULT_TIMELINE_SLACK_DAYS = 30
DEFAULT_COST_COMPLETENESS = Decimal("0.80")
DEFAULT_ASSUMED_HOURLY_RATE = Decimal("80")

# Price matching window is not exposed via environment
DEFAULT_PRICE_MATCH_WINDOW = Decimal("0.5")


# =============================================================================
# Configuration Exception
# =============================================================================

class ComplianceConfigurationError(Exception):
    """
    Raised when the compliance configuration is out of range.

    Reliability Level: L6 Critical
    """

    def __init__(self, message: str, error_code: str = ComplianceConfigErrorCode.CONFIG_INVALID):
        self.error_code = error_code
        self.message = message
        super().__init__(f"[{error_code}] {message}")


# =============================================================================
# Environment Parsing
# =============================================================================

def _read_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning(
            "[COMPLIANCE-CONFIG] Invalid %s value: %s, using default: %s",
            name, raw, default
        )
        return default


def _read_decimal(name: str, default: Decimal) -> Decimal:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        value = None
    if value is None or not value.is_finite():
        logger.warning(
            "[COMPLIANCE-CONFIG] Invalid %s value: %s, using default: %s",
            name, raw, default
        )
        return default
    return value


# =============================================================================
# ComplianceConfig
# =============================================================================

@dataclass
class ComplianceConfig:
    """
    Compliance engine configuration.

    ============================================================================
    CONFIGURATION PARAMETERS:
    ============================================================================
    - timeout_ms: Wall-clock budget of one orchestration run
    - decimal_precision: Significant digits of the DecimalMath context
    - price_variation .. assumed_hourly_rate: consistency heuristic tolerances
    ============================================================================

    Reliability Level: L6 Critical
    Input Constraints: Positive timeout and precision, ratios in (0, 1]
    Side Effects: Logs configuration on load
    """

    timeout_ms: int = DEFAULT_TIMEOUT_MS
    decimal_precision: int = DEFAULT_DECIMAL_PRECISION
    price_variation: Decimal = field(default_factory=lambda: DEFAULT_PRICE_VARIATION)
    capacity_utilization: Decimal = field(default_factory=lambda: DEFAULT_CAPACITY_UTILIZATION)
    timeline_slack_days: int = DEFAULT_TIMELINE_SLACK_DAYS
    cost_completeness: Decimal = field(default_factory=lambda: DEFAULT_COST_COMPLETENESS)
    assumed_hourly_rate: Decimal = field(default_factory=lambda: DEFAULT_ASSUMED_HOURLY_RATE)
    price_match_window: Decimal = field(default_factory=lambda: DEFAULT_PRICE_MATCH_WINDOW)

    def __post_init__(self) -> None:
        for name in (
            "price_variation",
            "capacity_utilization",
            "cost_completeness",
            "assumed_hourly_rate",
            "price_match_window",
        ):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                setattr(self, name, Decimal(str(value)))

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    def validate(self) -> None:
        """
        Validate value ranges.

        Raises:
            ComplianceConfigurationError: If any value is out of range (CFG-001)
        """
        errors: List[str] = []

        if self.timeout_ms <= 0:
            errors.append(f"COMPLIANCE_TIMEOUT_MS must be positive, got: {self.timeout_ms}")

        if self.decimal_precision < 1:
            errors.append(
                f"COMPLIANCE_DECIMAL_PRECISION must be >= 1, got: {self.decimal_precision}"
            )

        for env_name, value in (
            ("CONSISTENCY_PRICE_VARIATION", self.price_variation),
            ("CONSISTENCY_CAPACITY_UTILIZATION", self.capacity_utilization),
            ("CONSISTENCY_COST_COMPLETENESS", self.cost_completeness),
        ):
            if value <= Decimal("0") or value > Decimal("1"):
                errors.append(f"{env_name} must be in (0, 1], got: {value}")

        if self.timeline_slack_days < 0:
            errors.append(
                f"CONSISTENCY_TIMELINE_SLACK_DAYS must be non-negative, got: {self.timeline_slack_days}"
            )

        if self.assumed_hourly_rate <= Decimal("0"):
            errors.append(
                f"CONSISTENCY_ASSUMED_HOURLY_RATE must be positive, got: {self.assumed_hourly_rate}"
            )

        if errors:
            error_msg = "Compliance configuration validation failed: " + "; ".join(errors)
            logger.error("[%s] %s", ComplianceConfigErrorCode.CONFIG_INVALID, error_msg)
            raise ComplianceConfigurationError(error_msg)

        logger.info(
            "[COMPLIANCE-CONFIG] Configuration validated | timeout_ms=%d | precision=%d",
            self.timeout_ms, self.decimal_precision
        )

    @classmethod
    def from_environment(cls, validate: bool = True) -> "ComplianceConfig":
        """
        Load configuration from environment variables.

        Unparseable values log a warning and fall back to their default.

        Raises:
            ComplianceConfigurationError: If validate is set and a value is out of range
        """
        config = cls(
            timeout_ms=_read_int("COMPLIANCE_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
            decimal_precision=_read_int("COMPLIANCE_DECIMAL_PRECISION", DEFAULT_DECIMAL_PRECISION),
            price_variation=_read_decimal("CONSISTENCY_PRICE_VARIATION", DEFAULT_PRICE_VARIATION),
            capacity_utilization=_read_decimal(
                "CONSISTENCY_CAPACITY_UTILIZATION", DEFAULT_CAPACITY_UTILIZATION
            ),
            timeline_slack_days=_read_int("CONSISTENCY_TIMELINE_SLACK_DAYS", DEFAULT_TIMELINE_SLACK_DAYS),
            cost_completeness=_read_decimal("CONSISTENCY_COST_COMPLETENESS", DEFAULT_COST_COMPLETENESS),
            assumed_hourly_rate=_read_decimal(
                "CONSISTENCY_ASSUMED_HOURLY_RATE", DEFAULT_ASSUMED_HOURLY_RATE
            ),
        )

        logger.info(
            "[COMPLIANCE-CONFIG] Loading configuration from environment | "
            "COMPLIANCE_TIMEOUT_MS=%d | COMPLIANCE_DECIMAL_PRECISION=%d",
            config.timeout_ms, config.decimal_precision
        )

        if validate:
            config.validate()

        return config

    def build_decimal_math(self) -> DecimalMath:
        return DecimalMath(DecimalConfig(precision=self.decimal_precision))

    def build_thresholds(self) -> ConsistencyThresholds:
        return ConsistencyThresholds(
            price_variation=self.price_variation,
            capacity_utilization=self.capacity_utilization,
            timeline_slack_days=self.timeline_slack_days,
            cost_completeness=self.cost_completeness,
            price_match_window=self.price_match_window,
            assumed_hourly_rate=self.assumed_hourly_rate,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timeout_ms": self.timeout_ms,
            "decimal_precision": self.decimal_precision,
            "price_variation": str(self.price_variation),
            "capacity_utilization": str(self.capacity_utilization),
            "timeline_slack_days": self.timeline_slack_days,
            "cost_completeness": str(self.cost_completeness),
            "assumed_hourly_rate": str(self.assumed_hourly_rate),
            "price_match_window": str(self.price_match_window),
        }


# =============================================================================
# Module-Level Configuration Instance
# =============================================================================

_config_instance: Optional[ComplianceConfig] = None


def get_compliance_config(validate: bool = True) -> ComplianceConfig:
    """
    Get the global compliance configuration, loading it on first access.

    Raises:
        ComplianceConfigurationError: If the environment holds out-of-range values
    """
    global _config_instance

    if _config_instance is None:
        _config_instance = ComplianceConfig.from_environment(validate=validate)

    return _config_instance


def reset_compliance_config() -> None:
    """Clear the global configuration instance (used by tests)."""
    global _config_instance
    _config_instance = None
    logger.debug("[COMPLIANCE-CONFIG] Configuration instance reset")
