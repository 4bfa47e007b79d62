"""
============================================================================
GZ Compliance Engine v1.0
Export Gate API Endpoints
============================================================================

Reliability Level: L6 Critical
Input Constraints:
    - Request body is a workshop session (JSON object)
    - Malformed sessions are coerced to an empty session, never rejected
    - All financial values travel as Decimal strings
Side Effects:
    - Prometheus metrics updates
    - Audit log line per export validation

ENDPOINTS:
    POST /api/export/validate     - Full BA compliance gate (200 or 400)
    POST /api/export/eligibility  - Eligibility (quick by default, full on request)
    POST /api/export/consistency  - Cross-module consistency (advisory)

ERROR CODES:
    EXP-001: Certificate requested for a blocked plan
    CMP-001: Validation timeout (fail-open, surfaces as warnings)
    CMP-002: Validation error (fail-open, surfaces as warnings)

============================================================================
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse

from app.logic.consistency_checker import (
    assess_overall_consistency,
    detect_inconsistencies,
)
from app.observability.metrics import record_inconsistencies
from app.schemas.workshop_session import WorkshopSession
from services.compliance_config import get_compliance_config
from services.export_gate import (
    ExportGate,
    create_export_response,
    record_export_validation,
)

import logging

# Configure module logger
logger = logging.getLogger(__name__)


# ============================================================================
# Router Configuration
# ============================================================================

router = APIRouter()


# ============================================================================
# Gate Dependency
# ============================================================================

_export_gate: Optional[ExportGate] = None


def get_export_gate() -> ExportGate:
    """
    Get the shared export gate, creating it on first use.

    Reliability Level: L6 Critical
    Input Constraints: None
    Side Effects: Creates gate on first call
    """
    global _export_gate
    if _export_gate is None:
        _export_gate = ExportGate()
    return _export_gate


# ============================================================================
# Endpoints
# ============================================================================

@router.post(
    "/validate",
    summary="Validate Export Readiness",
    description=(
        "Runs the full BA compliance orchestration and gates the document "
        "export. Returns 400 when any blocker is present."
    ),
)
async def validate_export(
    session: Any = Body(default=None),
    gate: ExportGate = Depends(get_export_gate),
) -> JSONResponse:
    """
    Gate a business plan export.

    Reliability Level: L6 Critical
    Input Constraints: Workshop session JSON (may be malformed)
    Side Effects: Metrics, audit log

    Returns:
        JSONResponse: 400 when blocked, 200 otherwise
    """
    parsed = WorkshopSession.coerce(session) or WorkshopSession()
    decision = gate.validate_export_readiness(parsed)
    record_export_validation(parsed.id, decision)

    status_code, body = create_export_response(decision)
    return JSONResponse(status_code=status_code, content=body)


@router.post(
    "/eligibility",
    summary="Export Eligibility",
    description=(
        "Pre-check for UI affordances. The quick mode (default) does not run "
        "the rule sets; quick_only=false runs them and names the first blocker."
    ),
)
async def export_eligibility(
    session: Any = Body(default=None),
    quick_only: bool = Query(default=True),
    gate: ExportGate = Depends(get_export_gate),
) -> Dict[str, Any]:
    eligibility = gate.check_export_eligibility(session, quick_only=quick_only)
    logger.debug(
        "[EXPORT-API] Eligibility | quick_only=%s | can_export=%s | primary_issue=%s",
        quick_only, eligibility.can_export, eligibility.primary_issue
    )
    return eligibility.to_dict()


@router.post(
    "/consistency",
    summary="Cross-Module Consistency",
    description=(
        "Detects contradictions between workshop modules. Advisory only: "
        "always answers 200, readiness is reported in the body."
    ),
)
async def export_consistency(session: Any = Body(default=None)) -> Dict[str, Any]:
    """
    Run the cross-module consistency heuristics.

    Reliability Level: L5 High
    Input Constraints: Workshop session JSON (may be malformed)
    Side Effects: Metrics
    """
    config = get_compliance_config(validate=False)
    inconsistencies = detect_inconsistencies(
        session,
        thresholds=config.build_thresholds(),
        math=config.build_decimal_math(),
    )
    result = assess_overall_consistency(inconsistencies)

    record_inconsistencies(
        (item.type.value, item.severity.value) for item in result.inconsistencies
    )
    logger.info(
        "[EXPORT-API] Consistency assessed | inconsistencies=%d | critical=%d | score=%d | ready=%s",
        len(result.inconsistencies), result.critical_issues,
        result.overall_score, result.ready_for_export
    )
    return result.to_dict()
