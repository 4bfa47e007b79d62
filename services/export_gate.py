"""
============================================================================
GZ Compliance Engine - Export Gate
============================================================================

Reliability Level: L6 Critical
Traceability: Every decision is logged with the workshop id

BLOCKING CRITERIA:
    - Any BLOCKER issue      → status "blocked", export refused (HTTP 400)
    - Only WARNING issues    → status "warnings", export allowed (HTTP 200)
    - No issues              → status "ready", export allowed (HTTP 200)
    - Validator timeout/error → fail-open result from the orchestrator,
                                surfaces as "warnings"

ELIGIBILITY:
    UI affordances call check_quick_eligibility() which skips the rule sets
    and only checks that financial data exists and at least 7 of 9 modules
    carry data. check_export_eligibility() without quick_only runs the full
    orchestration and names the first blocker.

ERROR CODES:
    - EXP-001-CERTIFICATE_NOT_ALLOWED: Certificate requested for a blocked plan

============================================================================
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple
import logging

from app.logic.compliance_models import ValidationIssue, ValidationResult
from app.observability.metrics import record_export_decision
from app.schemas.workshop_session import MODULE_FINANZPLANUNG, WorkshopSession
from services.compliance_orchestrator import (
    REPORT_RULE,
    ComplianceOrchestrator,
    generate_validation_report,
    get_compliance_orchestrator,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Error Codes
# =============================================================================

class ExportGateErrorCode:
    CERTIFICATE_NOT_ALLOWED = "EXP-001-CERTIFICATE_NOT_ALLOWED"


class ExportGateError(Exception):
    """Raised when an export artefact is requested for a plan that may not be exported."""

    def __init__(self, message: str, error_code: str = ExportGateErrorCode.CERTIFICATE_NOT_ALLOWED):
        self.error_code = error_code
        self.message = message
        super().__init__(f"[{error_code}] {message}")


# =============================================================================
# Constants
# =============================================================================

REQUIRED_MODULE_COUNT = 9
QUICK_MIN_MODULES = 7

HTTP_OK = 200
HTTP_BAD_REQUEST = 400


class ExportStatus(str, Enum):
    READY = "ready"
    BLOCKED = "blocked"
    WARNINGS = "warnings"


# =============================================================================
# Data Classes
# =============================================================================

@dataclass(frozen=True)
class ExportDecision:
    """
    Outcome of the export gate for one validation result.

    Reliability Level: L6 Critical
    Input Constraints: can_export == (status != BLOCKED)
    Side Effects: None (immutable)
    """
    can_export: bool
    status: ExportStatus
    message: str
    blockers: Tuple[ValidationIssue, ...]
    warnings: Tuple[ValidationIssue, ...]
    validation_report: str
    compliance_score: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "canExport": self.can_export,
            "blockers": [issue.to_dict() for issue in self.blockers],
            "warnings": [issue.to_dict() for issue in self.warnings],
            "validationReport": self.validation_report,
            "summary": {
                "status": self.status.value,
                "message": self.message,
                "complianceScore": self.compliance_score,
            },
        }


@dataclass(frozen=True)
class ExportEligibility:
    can_export: bool
    primary_issue: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"canExport": self.can_export}
        if self.primary_issue is not None:
            payload["primaryIssue"] = self.primary_issue
        return payload


@dataclass(frozen=True)
class ExportReadinessRecord:
    """Audit record of one export validation. Only place a timestamp lives."""
    timestamp: str
    workshop_id: str
    decision: ExportDecision

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "workshopId": self.workshop_id,
            "result": self.decision.to_dict(),
        }


# =============================================================================
# Status Helpers
# =============================================================================

def get_export_status(result: ValidationResult) -> ExportStatus:
    if result.blockers:
        return ExportStatus.BLOCKED
    if result.warnings:
        return ExportStatus.WARNINGS
    return ExportStatus.READY


def get_status_message(status: ExportStatus, result: ValidationResult) -> str:
    if status == ExportStatus.BLOCKED:
        return f"Export blockiert: {len(result.blockers)} kritische Fehler müssen behoben werden"
    if status == ExportStatus.WARNINGS:
        return f"Export möglich mit {len(result.warnings)} Warnungen"
    return "Bereit für Export - alle BA-Compliance-Checks bestanden"


# =============================================================================
# Export Gate
# =============================================================================

class ExportGate:
    """
    Gatekeeper between the compliance result and document export.

    Reliability Level: L6 Critical
    Input Constraints: WorkshopSession, raw mapping or None
    Side Effects: Logging, Prometheus metrics
    """

    def __init__(self, orchestrator: Optional[ComplianceOrchestrator] = None) -> None:
        self._orchestrator = orchestrator

    @property
    def orchestrator(self) -> ComplianceOrchestrator:
        if self._orchestrator is None:
            return get_compliance_orchestrator()
        return self._orchestrator

    @staticmethod
    def evaluate(result: ValidationResult) -> ExportDecision:
        """Pure mapping of a validation result to an export decision."""
        status = get_export_status(result)
        return ExportDecision(
            can_export=status != ExportStatus.BLOCKED,
            status=status,
            message=get_status_message(status, result),
            blockers=result.blockers,
            warnings=result.warnings,
            validation_report=generate_validation_report(result),
            compliance_score=result.summary.overall_score,
        )

    def validate_export_readiness(self, session: Any) -> ExportDecision:
        """Run the full compliance orchestration and gate the result."""
        parsed = WorkshopSession.coerce(session) or WorkshopSession()

        logger.info(
            "[EXPORT-GATE] Checking export readiness | workshop_id=%s | business_name=%s",
            parsed.id, parsed.business_name
        )

        decision = self.evaluate(self.orchestrator.validate(parsed))

        logger.info(
            "[EXPORT-GATE] Decision | workshop_id=%s | status=%s | blockers=%d | warnings=%d | score=%d",
            parsed.id, decision.status.value, len(decision.blockers),
            len(decision.warnings), decision.compliance_score
        )
        record_export_decision(decision.status.value, parsed.id)
        return decision

    @staticmethod
    def check_quick_eligibility(session: Any) -> ExportEligibility:
        """
        Fast-path eligibility without running the rule sets.

        Requires financial data and at least 7 of 9 modules with data.
        """
        parsed = WorkshopSession.coerce(session)
        if parsed is None or parsed.module_data(MODULE_FINANZPLANUNG) is None:
            return ExportEligibility(can_export=False, primary_issue="Finanzplanung fehlt")

        modules_with_data = len(parsed.modules_with_data())
        if modules_with_data < QUICK_MIN_MODULES:
            return ExportEligibility(
                can_export=False,
                primary_issue=f"Nur {modules_with_data}/{REQUIRED_MODULE_COUNT} Module vollständig",
            )

        return ExportEligibility(can_export=True)

    def check_export_eligibility(self, session: Any, quick_only: bool = False) -> ExportEligibility:
        """
        Eligibility for UI affordances.

        Args:
            session: Session record to check
            quick_only: Skip the rule sets and use the structural fast path

        Returns:
            ExportEligibility, primary_issue is the first blocker title in
            full mode
        """
        if quick_only:
            return self.check_quick_eligibility(session)

        decision = self.validate_export_readiness(session)
        primary_issue = decision.blockers[0].title if decision.blockers else None
        return ExportEligibility(can_export=decision.can_export, primary_issue=primary_issue)


# =============================================================================
# API Helpers
# =============================================================================

def create_export_response(decision: ExportDecision) -> Tuple[int, Dict[str, Any]]:
    """
    Map an export decision to (HTTP status code, JSON body).

    blocked → 400 with blockers and report; warnings → 200 with warnings
    and score; ready → 200 with score only.
    """
    if not decision.can_export:
        return HTTP_BAD_REQUEST, {
            "error": "export_blocked",
            "message": "Export blockiert durch BA-Compliance-Fehler",
            "blockers": [issue.to_dict() for issue in decision.blockers],
            "validationReport": decision.validation_report,
        }

    if decision.warnings:
        return HTTP_OK, {
            "success": True,
            "message": "Export möglich mit Warnungen",
            "warnings": [issue.to_dict() for issue in decision.warnings],
            "complianceScore": decision.compliance_score,
        }

    return HTTP_OK, {
        "success": True,
        "message": "Export bereit - alle Checks bestanden",
        "complianceScore": decision.compliance_score,
    }


def record_export_validation(
    workshop_id: str,
    decision: ExportDecision,
    recorded_at: Optional[datetime] = None,
) -> ExportReadinessRecord:
    """Create an audit record for an export validation attempt."""
    timestamp = (recorded_at or datetime.now(timezone.utc)).isoformat()
    record = ExportReadinessRecord(timestamp=timestamp, workshop_id=workshop_id, decision=decision)

    logger.info(
        "[EXPORT-AUDIT] Validation recorded | workshop_id=%s | can_export=%s | status=%s | timestamp=%s",
        workshop_id, decision.can_export, decision.status.value, timestamp
    )
    return record


def generate_compliance_certificate(
    session: Any,
    decision: ExportDecision,
    issued_at: Optional[datetime] = None,
) -> str:
    """
    Render the BA compliance certificate for an exportable plan.

    Raises:
        ExportGateError: If the decision does not allow export
    """
    if not decision.can_export:
        raise ExportGateError("Cannot generate certificate for failed validation")

    parsed = WorkshopSession.coerce(session) or WorkshopSession()
    issued = issued_at or datetime.now(timezone.utc)
    business_name = parsed.business_name or "Unbenanntes Unternehmen"

    if decision.warnings:
        warning_line = f"{len(decision.warnings)} Warnungen (nicht blockierend)"
    else:
        warning_line = "Keine Warnungen - Optimale Compliance"

    return "\n".join([
        REPORT_RULE,
        "BA-COMPLIANCE ZERTIFIKAT",
        REPORT_RULE,
        "",
        f"Unternehmen: {business_name}",
        f"Workshop-ID: {parsed.id}",
        f"Validiert am: {issued.strftime('%d.%m.%Y, %H:%M:%S')}",
        "",
        "VALIDIERUNG BESTANDEN",
        "",
        f"Compliance-Score: {decision.compliance_score}%",
        "",
        "GEPRÜFTE KRITERIEN:",
        "- Selbstragfähigkeit ab Monat 6",
        "- Liquidität niemals negativ",
        "- Alle Pflichtabschnitte vollständig",
        "- Finanzplanung komplett",
        "",
        warning_line,
        "",
        "Dieser Businessplan erfüllt alle kritischen BA-Anforderungen",
        "für Gründungszuschuss-Anträge.",
        REPORT_RULE,
    ])


# =============================================================================
# Module-Level Convenience
# =============================================================================

def validate_export_readiness(session: Any) -> ExportDecision:
    return ExportGate().validate_export_readiness(session)


def check_quick_eligibility(session: Any) -> ExportEligibility:
    return ExportGate.check_quick_eligibility(session)


def check_export_eligibility(session: Any, quick_only: bool = False) -> ExportEligibility:
    return ExportGate().check_export_eligibility(session, quick_only=quick_only)
