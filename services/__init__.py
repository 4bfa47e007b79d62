"""
============================================================================
GZ Compliance Engine - Services Layer
============================================================================

Orchestration services around the pure logic layer: configuration,
timeout-bounded compliance orchestration, the export gate and the
reflective summary format used by the coaching conversation.

Reliability Level: L6 Critical
============================================================================
"""

from services.compliance_config import (
    ComplianceConfig,
    ComplianceConfigurationError,
    ComplianceConfigErrorCode,
    get_compliance_config,
    reset_compliance_config,
)

from services.compliance_orchestrator import (
    ComplianceOrchestrator,
    ComplianceErrorCode,
    OrchestrationState,
    OrchestrationRun,
    InvalidTransitionError,
    calculate_validation_summary,
    generate_validation_report,
    get_validation_summary,
    get_compliance_orchestrator,
    reset_compliance_orchestrator,
    validate_ba_compliance,
    FALLBACK_SCORE,
)

from services.export_gate import (
    ExportGate,
    ExportGateError,
    ExportDecision,
    ExportStatus,
    ExportEligibility,
    check_export_eligibility,
    check_quick_eligibility,
    create_export_response,
    generate_compliance_certificate,
    record_export_validation,
    validate_export_readiness,
)

from services.reflective_summary import (
    ReflectiveSummary,
    format_summary_as_text,
    parse_into_summary,
)

__all__ = [
    # Configuration
    "ComplianceConfig",
    "ComplianceConfigurationError",
    "ComplianceConfigErrorCode",
    "get_compliance_config",
    "reset_compliance_config",
    # Orchestration
    "ComplianceOrchestrator",
    "ComplianceErrorCode",
    "OrchestrationState",
    "OrchestrationRun",
    "InvalidTransitionError",
    "calculate_validation_summary",
    "generate_validation_report",
    "get_validation_summary",
    "get_compliance_orchestrator",
    "reset_compliance_orchestrator",
    "validate_ba_compliance",
    "FALLBACK_SCORE",
    # Export gate
    "ExportGate",
    "ExportGateError",
    "ExportDecision",
    "ExportStatus",
    "ExportEligibility",
    "check_export_eligibility",
    "check_quick_eligibility",
    "create_export_response",
    "generate_compliance_certificate",
    "record_export_validation",
    "validate_export_readiness",
    # Reflective summary
    "ReflectiveSummary",
    "format_summary_as_text",
    "parse_into_summary",
]
