"""
============================================================================
GZ Compliance Engine v1.0
Logic Layer - Decimal Math, BA Rule Sets and Cross-Module Consistency
============================================================================

Reliability Level: L6 Critical

This package contains the pure business logic for:
- DecimalMath: fixed-point arithmetic with an explicit context
- Compliance models: issues, results and the weighted BA rule catalog
- Financial checks: month-6 self-sufficiency, liquidity, tables, break-even
- Structure checks: required sections, sources, document structure
- Consistency checker: contradictions between authoring modules

============================================================================
"""

from app.logic.decimal_math import (
    DecimalConfig,
    DecimalMath,
    DEFAULT_DECIMAL_MATH,
)

from app.logic.compliance_models import (
    IssueSeverity,
    IssueCategory,
    ValidationIssue,
    ValidationSummary,
    ValidationResult,
    ValidationRule,
    BA_VALIDATION_RULES,
    VALIDATION_WEIGHTS,
)

from app.logic.financial_checks import (
    FinancialSnapshot,
    LiquidityMonth,
    extract_financial_snapshot,
    validate_financial_compliance,
)

from app.logic.structure_checks import (
    StructureSnapshot,
    extract_structure_snapshot,
    validate_structure_compliance,
)

from app.logic.consistency_checker import (
    ConsistencyCheckResult,
    ConsistencyThresholds,
    CrossModuleConsistencyChecker,
    Inconsistency,
    InconsistencySeverity,
    InconsistencyType,
    assess_overall_consistency,
    detect_inconsistencies,
    get_correction_prompt,
)

__all__ = [
    # Decimal math
    "DecimalConfig",
    "DecimalMath",
    "DEFAULT_DECIMAL_MATH",
    # Models
    "IssueSeverity",
    "IssueCategory",
    "ValidationIssue",
    "ValidationSummary",
    "ValidationResult",
    "ValidationRule",
    "BA_VALIDATION_RULES",
    "VALIDATION_WEIGHTS",
    # Financial
    "FinancialSnapshot",
    "LiquidityMonth",
    "extract_financial_snapshot",
    "validate_financial_compliance",
    # Structure
    "StructureSnapshot",
    "extract_structure_snapshot",
    "validate_structure_compliance",
    # Consistency
    "ConsistencyCheckResult",
    "ConsistencyThresholds",
    "CrossModuleConsistencyChecker",
    "Inconsistency",
    "InconsistencySeverity",
    "InconsistencyType",
    "assess_overall_consistency",
    "detect_inconsistencies",
    "get_correction_prompt",
]
