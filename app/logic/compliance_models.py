"""
============================================================================
GZ Compliance Engine v1.0
Compliance Models - Validation Issues, Results and the BA Rule Catalog
============================================================================

Reliability Level: L6 Critical
Input Constraints: All monetary values in detected_values must be Decimal
Side Effects: None

This module holds the value objects shared by the rule sets, the
orchestrator and the export gate:
- ValidationIssue: one finding produced by exactly one check per run
- ValidationSummary / ValidationResult: aggregate of a validation run
- ValidationRule: catalog entry with the scoring weight for a rule id

All types are frozen. A validation run creates them, hands them to the
caller and discards them; nothing here is persisted.

============================================================================
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


# =============================================================================
# ENUMS
# =============================================================================

class IssueSeverity(str, Enum):
    """
    Severity of a compliance issue.

    Attributes:
        BLOCKER: Export is blocked until the issue is resolved
        WARNING: Advisory, export proceeds
    """
    BLOCKER = "BLOCKER"
    WARNING = "WARNING"


class IssueCategory(str, Enum):
    """Area of the business plan an issue belongs to."""
    FINANCIAL = "financial"
    STRUCTURE = "structure"
    CONTENT = "content"
    FORMATTING = "formatting"


# =============================================================================
# RULE IDS
# =============================================================================

RULE_MONTH6_SELF_SUFFICIENCY = "month-6-self-sufficiency"
RULE_LIQUIDITY_NON_NEGATIVE = "liquidity-non-negative"
RULE_REQUIRED_SECTIONS_COMPLETE = "required-sections-complete"
RULE_FINANCIAL_TABLES_COMPLETE = "financial-tables-complete"
RULE_BREAK_EVEN_REASONABLE = "break-even-reasonable"
RULE_SOURCES_DOCUMENTED = "sources-documented"
RULE_GZ_FUNDING_INCLUDED = "gz-funding-included"
RULE_DOCUMENT_STRUCTURE = "document-structure"

# Synthetic issue emitted by the fail-open fallback
RULE_VALIDATION_ERROR = "validation-error"


# =============================================================================
# SERIALIZATION HELPERS
# =============================================================================

def to_json_safe(value: Any) -> Any:
    """
    Convert nested values into JSON-safe primitives.

    Decimals become strings so no precision is lost at the API boundary.
    """
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {str(k): to_json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json_safe(v) for v in value]
    return value


def _freeze(values: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(values or {}))


# =============================================================================
# VALIDATION ISSUE
# =============================================================================

@dataclass(frozen=True)
class ValidationIssue:
    """
    A single compliance finding.

    Reliability Level: L6 Critical
    Input Constraints: id must be a stable rule identifier
    Side Effects: None (immutable)

    The id is used both for deduplication and for the weighted score lookup.
    """
    id: str
    severity: IssueSeverity
    category: IssueCategory
    title: str
    message: str
    affected_section: Optional[str] = None
    suggested_fix: Optional[str] = None
    documentation_link: Optional[str] = None
    detected_values: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "detected_values", _freeze(self.detected_values))

    @property
    def is_blocker(self) -> bool:
        return self.severity == IssueSeverity.BLOCKER

    @property
    def first_message_line(self) -> str:
        return self.message.split("\n")[0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "severity": self.severity.value,
            "category": self.category.value,
            "title": self.title,
            "message": self.message,
            "affectedSection": self.affected_section,
            "suggestedFix": self.suggested_fix,
            "documentationLink": self.documentation_link,
            "detectedValues": to_json_safe(dict(self.detected_values)),
        }


# =============================================================================
# VALIDATION RESULT
# =============================================================================

@dataclass(frozen=True)
class ValidationSummary:
    """Aggregate counts and the 0-100 compliance score of one run."""
    total_checks: int
    passed_checks: int
    failed_blockers: int
    total_warnings: int
    can_export: bool
    overall_score: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalChecks": self.total_checks,
            "passedChecks": self.passed_checks,
            "failedBlockers": self.failed_blockers,
            "totalWarnings": self.total_warnings,
            "canExport": self.can_export,
            "overallScore": self.overall_score,
        }


@dataclass(frozen=True)
class ValidationResult:
    """
    Result of a compliance orchestration run.

    Reliability Level: L6 Critical
    Input Constraints: passed must equal (len(blockers) == 0)
    Side Effects: None (immutable)
    """
    passed: bool
    blockers: Tuple[ValidationIssue, ...]
    warnings: Tuple[ValidationIssue, ...]
    summary: ValidationSummary

    def __post_init__(self) -> None:
        object.__setattr__(self, "blockers", tuple(self.blockers))
        object.__setattr__(self, "warnings", tuple(self.warnings))

    @property
    def all_issues(self) -> Tuple[ValidationIssue, ...]:
        return self.blockers + self.warnings

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "blockers": [issue.to_dict() for issue in self.blockers],
            "warnings": [issue.to_dict() for issue in self.warnings],
            "summary": self.summary.to_dict(),
        }


# =============================================================================
# RULE CATALOG
# =============================================================================

@dataclass(frozen=True)
class ValidationRule:
    """
    Catalog entry for a BA compliance rule.

    rejection_rate is the share of applications that fail on this rule
    (percent); weight is its share of the compliance score.
    """
    id: str
    name: str
    severity: IssueSeverity
    category: IssueCategory
    description: str
    ba_rationale: str
    rejection_rate: int
    weight: int


_RULES = (
    ValidationRule(
        id=RULE_MONTH6_SELF_SUFFICIENCY,
        name="Selbstragfähigkeit Monat 6",
        severity=IssueSeverity.BLOCKER,
        category=IssueCategory.FINANCIAL,
        description="Gewinn in Monat 6 muss mindestens die Privatentnahme decken",
        ba_rationale="Die BA prüft, ob das Geschäft ab Monat 6 die Lebenshaltung finanzieren kann",
        rejection_rate=35,
        weight=35,
    ),
    ValidationRule(
        id=RULE_LIQUIDITY_NON_NEGATIVE,
        name="Liquidität niemals negativ",
        severity=IssueSeverity.BLOCKER,
        category=IssueCategory.FINANCIAL,
        description="Liquide Mittel müssen in allen 36 Monaten >= 0€ sein",
        ba_rationale="Negative Liquidität bedeutet Insolvenz - automatische Ablehnung",
        rejection_rate=25,
        weight=25,
    ),
    ValidationRule(
        id=RULE_REQUIRED_SECTIONS_COMPLETE,
        name="Alle Pflichtabschnitte vorhanden",
        severity=IssueSeverity.BLOCKER,
        category=IssueCategory.STRUCTURE,
        description="Alle 9 Module müssen vollständig ausgefüllt sein",
        ba_rationale="Unvollständige Businesspläne werden nicht bearbeitet",
        rejection_rate=20,
        weight=20,
    ),
    ValidationRule(
        id=RULE_FINANCIAL_TABLES_COMPLETE,
        name="Finanzplanungstabellen vollständig",
        severity=IssueSeverity.BLOCKER,
        category=IssueCategory.FINANCIAL,
        description="Alle 4 Finanzplanungstabellen müssen komplett ausgefüllt sein",
        ba_rationale="BA benötigt vollständige 36-Monats-Finanzplanung",
        rejection_rate=15,
        weight=15,
    ),
    ValidationRule(
        id=RULE_BREAK_EVEN_REASONABLE,
        name="Break-Even innerhalb 18 Monaten",
        severity=IssueSeverity.WARNING,
        category=IssueCategory.FINANCIAL,
        description="Profitabilität sollte spätestens in Monat 18 erreicht werden",
        ba_rationale="BA ist skeptisch bei Geschäften, die > 18 Monate bis zur Profitabilität brauchen",
        rejection_rate=5,
        weight=5,
    ),
    ValidationRule(
        id=RULE_SOURCES_DOCUMENTED,
        name="Mindestens 5 Quellenangaben",
        severity=IssueSeverity.WARNING,
        category=IssueCategory.STRUCTURE,
        description="Marktdaten und Annahmen sollten mit Quellen belegt werden",
        ba_rationale="BA prüft Fundierung der Marktanalyse und Wettbewerbsbetrachtung",
        rejection_rate=8,
        weight=8,
    ),
    ValidationRule(
        id=RULE_GZ_FUNDING_INCLUDED,
        name="Gründungszuschuss in Finanzplanung",
        severity=IssueSeverity.WARNING,
        category=IssueCategory.FINANCIAL,
        description="GZ-Förderung sollte in der Liquiditätsplanung aufgeführt sein",
        ba_rationale="Zeigt der BA, dass GZ in die Finanzplanung einkalkuliert wurde",
        rejection_rate=3,
        weight=3,
    ),
    ValidationRule(
        id=RULE_DOCUMENT_STRUCTURE,
        name="Professionelle Dokumentstruktur",
        severity=IssueSeverity.WARNING,
        category=IssueCategory.STRUCTURE,
        description="Titelseite, Inhaltsverzeichnis und Executive Summary",
        ba_rationale="Verbessert den professionellen Eindruck bei der BA",
        rejection_rate=1,
        weight=1,
    ),
)

BA_VALIDATION_RULES: Mapping[str, ValidationRule] = MappingProxyType(
    {rule.id: rule for rule in _RULES}
)

VALIDATION_WEIGHTS: Mapping[str, int] = MappingProxyType(
    {rule.id: rule.weight for rule in _RULES}
)

TOTAL_CHECKS = len(_RULES)
