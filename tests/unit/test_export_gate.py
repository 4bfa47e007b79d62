"""
Unit Tests for the Export Gate

Reliability Level: L6 Critical

Tests:
- Status mapping (ready / warnings / blocked)
- HTTP response mapping (200 / 400)
- Quick eligibility without running the rule sets
- Audit records and the compliance certificate
"""

import pytest
import os
from datetime import datetime, timezone

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from app.logic.compliance_models import (
    IssueCategory,
    IssueSeverity,
    RULE_BREAK_EVEN_REASONABLE,
    RULE_MONTH6_SELF_SUFFICIENCY,
    ValidationIssue,
)
from app.schemas.workshop_session import (
    MODULE_FINANZPLANUNG,
    MODULE_KPI,
    MODULE_SWOT,
    MODULE_MEILENSTEINE,
)
from services.compliance_config import ComplianceConfig
from services.compliance_orchestrator import (
    ComplianceOrchestrator,
    build_fallback_result,
    build_validation_result,
)
from services.export_gate import (
    ExportGate,
    ExportGateError,
    ExportGateErrorCode,
    ExportStatus,
    check_export_eligibility,
    check_quick_eligibility,
    create_export_response,
    generate_compliance_certificate,
    record_export_validation,
)
from tests.builders import build_session, without_module


def _issue(rule_id: str, severity: IssueSeverity) -> ValidationIssue:
    return ValidationIssue(
        id=rule_id,
        severity=severity,
        category=IssueCategory.FINANCIAL,
        title=f"Titel {rule_id}",
        message="Nachricht",
    )


BLOCKED = build_validation_result([_issue(RULE_MONTH6_SELF_SUFFICIENCY, IssueSeverity.BLOCKER)])
WARNINGS = build_validation_result([_issue(RULE_BREAK_EVEN_REASONABLE, IssueSeverity.WARNING)])
READY = build_validation_result([])


@pytest.fixture
def gate():
    orchestrator = ComplianceOrchestrator(config=ComplianceConfig(timeout_ms=5000))
    yield ExportGate(orchestrator=orchestrator)
    orchestrator.shutdown()


# =============================================================================
# Evaluation
# =============================================================================

class TestEvaluate:

    def test_blocked(self) -> None:
        decision = ExportGate.evaluate(BLOCKED)

        assert decision.status == ExportStatus.BLOCKED
        assert decision.can_export is False
        assert decision.message == "Export blockiert: 1 kritische Fehler müssen behoben werden"

    def test_warnings(self) -> None:
        decision = ExportGate.evaluate(WARNINGS)

        assert decision.status == ExportStatus.WARNINGS
        assert decision.can_export is True
        assert decision.compliance_score == 96

    def test_ready(self) -> None:
        decision = ExportGate.evaluate(READY)

        assert decision.status == ExportStatus.READY
        assert decision.can_export is True
        assert decision.message == "Bereit für Export - alle BA-Compliance-Checks bestanden"

    def test_fail_open_surfaces_as_warnings(self) -> None:
        decision = ExportGate.evaluate(build_fallback_result())

        assert decision.status == ExportStatus.WARNINGS
        assert decision.compliance_score == 50


class TestCreateExportResponse:

    def test_blocked_is_400_with_report(self) -> None:
        status, body = create_export_response(ExportGate.evaluate(BLOCKED))

        assert status == 400
        assert body["error"] == "export_blocked"
        assert [b["id"] for b in body["blockers"]] == [RULE_MONTH6_SELF_SUFFICIENCY]
        assert "STATUS: BLOCKIERT" in body["validationReport"]

    def test_warnings_is_200_with_score(self) -> None:
        status, body = create_export_response(ExportGate.evaluate(WARNINGS))

        assert status == 200
        assert body["success"] is True
        assert [w["id"] for w in body["warnings"]] == [RULE_BREAK_EVEN_REASONABLE]
        assert body["complianceScore"] == 96

    def test_ready_is_200_score_only(self) -> None:
        status, body = create_export_response(ExportGate.evaluate(READY))

        assert status == 200
        assert body == {
            "success": True,
            "message": "Export bereit - alle Checks bestanden",
            "complianceScore": 100,
        }


# =============================================================================
# Gate with Orchestrator
# =============================================================================

class TestValidateExportReadiness:

    def test_complete_session_is_ready(self, gate: ExportGate) -> None:
        decision = gate.validate_export_readiness(build_session())

        assert decision.status == ExportStatus.READY
        assert decision.compliance_score == 100

    def test_missing_finance_is_blocked(self, gate: ExportGate) -> None:
        decision = gate.validate_export_readiness(without_module(build_session(), MODULE_FINANZPLANUNG))

        assert decision.status == ExportStatus.BLOCKED
        assert decision.to_dict()["summary"]["status"] == "blocked"


class TestQuickEligibility:

    def test_complete_session(self) -> None:
        assert check_quick_eligibility(build_session()).to_dict() == {"canExport": True}

    @pytest.mark.parametrize("session", [None, "kaputt", {"modules": {}}])
    def test_missing_finance(self, session) -> None:
        eligibility = check_quick_eligibility(session)

        assert eligibility.can_export is False
        assert eligibility.primary_issue == "Finanzplanung fehlt"

    def test_too_few_modules(self) -> None:
        session = {"modules": {
            MODULE_FINANZPLANUNG: {"status": "completed", "data": {"x": "y"}},
            MODULE_KPI: {"status": "completed", "data": {"x": "y"}},
        }}
        eligibility = check_quick_eligibility(session)

        assert eligibility.can_export is False
        assert eligibility.primary_issue == "Nur 2/9 Module vollständig"

    def test_seven_modules_are_enough(self) -> None:
        session = build_session()
        for module_id in (MODULE_SWOT, MODULE_MEILENSTEINE, MODULE_KPI):
            session = without_module(session, module_id)

        # 10 modules with data in the builder, 7 remain
        assert check_quick_eligibility(session).can_export is True


class TestFullEligibility:

    def test_complete_session(self, gate: ExportGate) -> None:
        assert gate.check_export_eligibility(build_session()).to_dict() == {"canExport": True}

    def test_first_blocker_title_is_primary_issue(self, gate: ExportGate) -> None:
        session = without_module(build_session(), MODULE_FINANZPLANUNG)

        eligibility = gate.check_export_eligibility(session)
        decision = gate.validate_export_readiness(session)

        assert eligibility.can_export is False
        assert eligibility.primary_issue == decision.blockers[0].title

    def test_quick_only_skips_rule_sets(self, gate: ExportGate) -> None:
        session = without_module(build_session(), MODULE_FINANZPLANUNG)

        eligibility = gate.check_export_eligibility(session, quick_only=True)

        assert eligibility.primary_issue == "Finanzplanung fehlt"

    def test_module_level_quick_mode(self) -> None:
        assert check_export_eligibility(None, quick_only=True).can_export is False


# =============================================================================
# Audit and Certificate
# =============================================================================

class TestAuditAndCertificate:

    def test_record_export_validation(self) -> None:
        decision = ExportGate.evaluate(READY)
        recorded_at = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

        record = record_export_validation("ws-1", decision, recorded_at=recorded_at)
        payload = record.to_dict()

        assert payload["timestamp"] == "2025-03-01T12:00:00+00:00"
        assert payload["workshopId"] == "ws-1"
        assert payload["result"]["canExport"] is True

    def test_certificate_for_exportable_plan(self) -> None:
        decision = ExportGate.evaluate(WARNINGS)
        issued_at = datetime(2025, 3, 1, 9, 30, 15, tzinfo=timezone.utc)

        certificate = generate_compliance_certificate(build_session(), decision, issued_at=issued_at)

        assert "Unternehmen: Muster Beratung GmbH" in certificate
        assert "Workshop-ID: ws-test-001" in certificate
        assert "Validiert am: 01.03.2025, 09:30:15" in certificate
        assert "Compliance-Score: 96%" in certificate
        assert "1 Warnungen (nicht blockierend)" in certificate

    def test_certificate_for_blocked_plan_raises(self) -> None:
        with pytest.raises(ExportGateError) as exc_info:
            generate_compliance_certificate(build_session(), ExportGate.evaluate(BLOCKED))

        assert exc_info.value.error_code == ExportGateErrorCode.CERTIFICATE_NOT_ALLOWED
