"""
============================================================================
GZ Compliance Engine - Compliance Orchestrator
============================================================================

Reliability Level: L6 Critical
Decimal Integrity: Score computed with DecimalMath (ROUND_HALF_UP)
Traceability: Every run logs the workshop session id

ORCHESTRATION STATE MACHINE:
    PENDING → RUNNING (pipeline submitted)
    RUNNING → PASSED  (no blockers)
    RUNNING → BLOCKED (at least one blocker)
    RUNNING → ERRORED (timeout or a check raised)

    Terminal States: PASSED, BLOCKED, ERRORED

TIMEOUT RACE:
    The financial and structure rule sets run as one unit of work on a
    worker thread. The caller waits at most COMPLIANCE_TIMEOUT_MS. A run
    that loses the race is discarded, never retried.

FAIL-OPEN:
    ERRORED runs resolve to passed=True, no blockers, one "validation-error"
    WARNING asking for a manual review, and a neutral score of 50. A broken
    validator never traps a user who needs to export.

ERROR CODES:
    - CMP-001-VALIDATION_TIMEOUT: Pipeline exceeded its time budget
    - CMP-002-VALIDATION_ERROR: A check raised an unexpected exception
    - CMP-003-INVALID_TRANSITION: Orchestration state machine misuse

============================================================================
"""

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union
import logging
import time

from app.logic.compliance_models import (
    IssueCategory,
    IssueSeverity,
    RULE_VALIDATION_ERROR,
    TOTAL_CHECKS,
    VALIDATION_WEIGHTS,
    ValidationIssue,
    ValidationResult,
    ValidationSummary,
)
from app.logic.decimal_math import DecimalMath
from app.logic.financial_checks import validate_financial_compliance
from app.logic.structure_checks import validate_structure_compliance
from app.observability.metrics import record_validation
from app.schemas.workshop_session import MODULE_FINANZPLANUNG, WorkshopSession
from services.compliance_config import ComplianceConfig, get_compliance_config

logger = logging.getLogger(__name__)


# =============================================================================
# Error Codes
# =============================================================================

class ComplianceErrorCode:
    """Orchestrator error codes for audit logging."""
    VALIDATION_TIMEOUT = "CMP-001-VALIDATION_TIMEOUT"
    VALIDATION_ERROR = "CMP-002-VALIDATION_ERROR"
    INVALID_TRANSITION = "CMP-003-INVALID_TRANSITION"


# =============================================================================
# Constants
# =============================================================================

FALLBACK_SCORE = 50

# Timed-out runs keep their worker until the rule sets return.
VALIDATION_WORKERS = 4

REPORT_RULE = "━" * 61

RuleSet = Callable[[WorkshopSession, DecimalMath], List[ValidationIssue]]


# =============================================================================
# State Machine
# =============================================================================

class OrchestrationState(str, Enum):
    """Lifecycle of one validation run."""
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    PASSED = "PASSED"
    BLOCKED = "BLOCKED"
    ERRORED = "ERRORED"


VALID_TRANSITIONS: Mapping[OrchestrationState, Tuple[OrchestrationState, ...]] = {
    OrchestrationState.PENDING: (OrchestrationState.RUNNING,),
    OrchestrationState.RUNNING: (
        OrchestrationState.PASSED,
        OrchestrationState.BLOCKED,
        OrchestrationState.ERRORED,
    ),
    OrchestrationState.PASSED: (),
    OrchestrationState.BLOCKED: (),
    OrchestrationState.ERRORED: (),
}


class InvalidTransitionError(Exception):
    """Raised when the orchestration state machine is driven out of order."""

    def __init__(self, current: OrchestrationState, target: OrchestrationState):
        self.error_code = ComplianceErrorCode.INVALID_TRANSITION
        self.current = current
        self.target = target
        super().__init__(
            f"[{self.error_code}] Invalid transition {current.value} -> {target.value}"
        )


def transition(current: OrchestrationState, target: OrchestrationState) -> OrchestrationState:
    if target not in VALID_TRANSITIONS[current]:
        raise InvalidTransitionError(current, target)
    return target


# =============================================================================
# Run Outcomes
# =============================================================================

@dataclass(frozen=True)
class RunOk:
    result: ValidationResult


@dataclass(frozen=True)
class RunTimedOut:
    timeout_ms: int


@dataclass(frozen=True)
class RunErrored:
    cause: str


RunOutcome = Union[RunOk, RunTimedOut, RunErrored]


@dataclass(frozen=True)
class OrchestrationRun:
    """Terminal state and result of one orchestration run."""
    session_id: str
    state: OrchestrationState
    result: ValidationResult
    duration_ms: float


# =============================================================================
# Scoring
# =============================================================================

def calculate_validation_summary(
    issues: Sequence[ValidationIssue],
    math: Optional[DecimalMath] = None,
) -> ValidationSummary:
    """
    Aggregate counts and the weighted compliance score.

    score = round_half_up(100 × achieved_weight / total_weight), where a
    rule's weight is achieved when no issue carries its id.
    """
    math = math or DecimalMath()
    failed_ids = {issue.id for issue in issues}

    total_weight = sum(VALIDATION_WEIGHTS.values())
    achieved_weight = sum(
        weight for rule_id, weight in VALIDATION_WEIGHTS.items() if rule_id not in failed_ids
    )
    score = math.round_to_int(math.safe_divide(math.multiply(achieved_weight, 100), total_weight))

    failed_blockers = sum(1 for issue in issues if issue.is_blocker)
    total_warnings = len(issues) - failed_blockers

    return ValidationSummary(
        total_checks=TOTAL_CHECKS,
        passed_checks=TOTAL_CHECKS - len(issues),
        failed_blockers=failed_blockers,
        total_warnings=total_warnings,
        can_export=failed_blockers == 0,
        overall_score=score,
    )


def build_validation_result(
    issues: Sequence[ValidationIssue],
    math: Optional[DecimalMath] = None,
) -> ValidationResult:
    blockers = tuple(issue for issue in issues if issue.is_blocker)
    warnings = tuple(issue for issue in issues if not issue.is_blocker)
    return ValidationResult(
        passed=not blockers,
        blockers=blockers,
        warnings=warnings,
        summary=calculate_validation_summary(issues, math),
    )


FALLBACK_MESSAGE = (
    "WARNUNG: Validierung dauerte zu lange oder ist fehlgeschlagen.\n"
    "\n"
    "Die automatische BA-Compliance-Prüfung konnte nicht vollständig durchgeführt werden.\n"
    "\n"
    "EMPFEHLUNG:\n"
    "Prüfen Sie Ihren Businessplan manuell gegen diese Kriterien:\n"
    "\n"
    "KRITISCHE PUNKTE:\n"
    "• Monat 6 Gewinn >= Ihre Lebenshaltungskosten\n"
    "• Liquidität niemals negativ in 36 Monaten\n"
    "• Alle 9 Module vollständig ausgefüllt\n"
    "• Finanzplanung komplett (4 Tabellen)\n"
    "\n"
    "VERBESSERUNGEN:\n"
    "• Break-Even spätestens Monat 18\n"
    "• Mindestens 5 Quellenangaben\n"
    "• GZ-Förderung in Finanzplanung\n"
    "\n"
    "Sie können exportieren, sollten aber manuell prüfen."
)


def build_fallback_result() -> ValidationResult:
    """Fail-open result used for every ERRORED run."""
    issue = ValidationIssue(
        id=RULE_VALIDATION_ERROR,
        severity=IssueSeverity.WARNING,
        category=IssueCategory.CONTENT,
        title="Validierung fehlgeschlagen",
        message=FALLBACK_MESSAGE,
        suggested_fix="Prüfen Sie kritische BA-Kriterien manuell",
    )
    return ValidationResult(
        passed=True,
        blockers=(),
        warnings=(issue,),
        summary=ValidationSummary(
            total_checks=TOTAL_CHECKS,
            passed_checks=0,
            failed_blockers=0,
            total_warnings=1,
            can_export=True,
            overall_score=FALLBACK_SCORE,
        ),
    )


def resolve_outcome(outcome: RunOutcome) -> Tuple[OrchestrationState, ValidationResult]:
    """
    Map a run outcome to its terminal state and user-facing result.

    This is the only place where timeouts and errors become the fail-open
    fallback.
    """
    if isinstance(outcome, RunOk):
        state = OrchestrationState.PASSED if outcome.result.passed else OrchestrationState.BLOCKED
        return state, outcome.result
    if isinstance(outcome, (RunTimedOut, RunErrored)):
        return OrchestrationState.ERRORED, build_fallback_result()
    raise TypeError(f"Unknown run outcome: {type(outcome).__name__}")


# =============================================================================
# Rule Sets
# =============================================================================

def financial_rule_set(session: WorkshopSession, math: DecimalMath) -> List[ValidationIssue]:
    return validate_financial_compliance(session.module_data(MODULE_FINANZPLANUNG), math)


def structure_rule_set(session: WorkshopSession, math: DecimalMath) -> List[ValidationIssue]:
    return validate_structure_compliance(session)


DEFAULT_RULE_SETS: Tuple[RuleSet, ...] = (financial_rule_set, structure_rule_set)


# =============================================================================
# Orchestrator
# =============================================================================

class ComplianceOrchestrator:
    """
    Runs the BA rule sets under a wall-clock budget and scores the result.

    Reliability Level: L6 Critical
    Input Constraints: WorkshopSession, raw mapping or None
    Side Effects: Logging, Prometheus metrics
    """

    def __init__(
        self,
        config: Optional[ComplianceConfig] = None,
        rule_sets: Optional[Sequence[RuleSet]] = None,
        max_workers: int = VALIDATION_WORKERS,
    ) -> None:
        self.config = config or get_compliance_config()
        self.math = self.config.build_decimal_math()
        self.rule_sets: Tuple[RuleSet, ...] = tuple(rule_sets or DEFAULT_RULE_SETS)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="compliance")

    @staticmethod
    def _coerce_session(session: Any) -> WorkshopSession:
        return WorkshopSession.coerce(session) or WorkshopSession()

    def run_pipeline(self, session: WorkshopSession) -> ValidationResult:
        """Run every rule set synchronously and build the scored result."""
        issues: List[ValidationIssue] = []
        for rule_set in self.rule_sets:
            issues.extend(rule_set(session, self.math))
        return build_validation_result(issues, self.math)

    def _race(self, session: WorkshopSession) -> RunOutcome:
        """
        Wait for the pipeline at most timeout_ms.

        A timed-out run cannot be interrupted: cancel() is a no-op once the
        worker has started, so the abandoned run keeps its worker until the
        rule sets return. Concurrent timeouts beyond the pool size queue
        behind them and fail open on their own budget.
        """
        future = self._executor.submit(self.run_pipeline, session)
        try:
            return RunOk(future.result(timeout=self.config.timeout_seconds))
        except FuturesTimeoutError:
            future.cancel()
            return RunTimedOut(self.config.timeout_ms)
        except Exception as e:
            return RunErrored(f"{type(e).__name__}: {e}")

    def run(self, session: Any, skip_timeout: bool = False) -> OrchestrationRun:
        """
        Execute one orchestration run.

        Args:
            session: Session record to validate
            skip_timeout: Run in the calling thread without the time budget

        Returns:
            OrchestrationRun with terminal state and user-facing result
        """
        parsed = self._coerce_session(session)
        start = time.perf_counter()

        state = OrchestrationState.PENDING
        logger.info(
            "[COMPLIANCE] Starting validation | session_id=%s | business_name=%s | modules=%d",
            parsed.id, parsed.business_name, len(parsed.modules)
        )

        state = transition(state, OrchestrationState.RUNNING)
        if skip_timeout:
            try:
                outcome: RunOutcome = RunOk(self.run_pipeline(parsed))
            except Exception as e:
                outcome = RunErrored(f"{type(e).__name__}: {e}")
        else:
            outcome = self._race(parsed)

        terminal, result = resolve_outcome(outcome)
        state = transition(state, terminal)
        duration_ms = (time.perf_counter() - start) * 1000

        if isinstance(outcome, RunTimedOut):
            logger.error(
                "[%s] Validation exceeded %dms budget, returning fail-open result | session_id=%s",
                ComplianceErrorCode.VALIDATION_TIMEOUT, outcome.timeout_ms, parsed.id
            )
        elif isinstance(outcome, RunErrored):
            logger.error(
                "[%s] Validation failed, returning fail-open result | session_id=%s | cause=%s",
                ComplianceErrorCode.VALIDATION_ERROR, parsed.id, outcome.cause
            )
        else:
            logger.info(
                "[COMPLIANCE] Validation complete | session_id=%s | state=%s | duration_ms=%.2f | "
                "blockers=%d | warnings=%d | score=%d",
                parsed.id, state.value, duration_ms, len(result.blockers),
                len(result.warnings), result.summary.overall_score
            )
            if not result.passed:
                logger.warning(
                    "[COMPLIANCE] Export blocked | session_id=%s | blocker_ids=%s",
                    parsed.id, ",".join(issue.id for issue in result.blockers)
                )

        record_validation(state.value, duration_ms / 1000, result.summary.overall_score, parsed.id)

        return OrchestrationRun(
            session_id=parsed.id,
            state=state,
            result=result,
            duration_ms=duration_ms,
        )

    def validate(self, session: Any) -> ValidationResult:
        return self.run(session).result

    def validate_debug(self, session: Any, skip_timeout: bool = False) -> "DebugValidation":
        """Validate and attach diagnostic information (development aid)."""
        parsed = self._coerce_session(session)
        run = self.run(parsed, skip_timeout=skip_timeout)
        debug_info = {
            "durationMs": round(run.duration_ms, 2),
            "state": run.state.value,
            "financialDataPresent": parsed.module_data(MODULE_FINANZPLANUNG) is not None,
            "moduleCount": len(parsed.modules),
            "validationRulesRun": list(VALIDATION_WEIGHTS),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        return DebugValidation(result=run.result, debug_info=debug_info)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)


@dataclass(frozen=True)
class DebugValidation:
    result: ValidationResult
    debug_info: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        payload = self.result.to_dict()
        payload["debugInfo"] = dict(self.debug_info)
        return payload


# =============================================================================
# Report
# =============================================================================

def generate_validation_report(result: ValidationResult) -> str:
    """
    Render a deterministic human-readable report.

    Pure function of the result: no timestamps, no randomness.
    """
    summary = result.summary
    lines: List[str] = [
        REPORT_RULE,
        "BA-COMPLIANCE PRÜFUNG",
        REPORT_RULE,
        "",
        f"STATUS: {'FREIGEGEBEN' if result.passed else 'BLOCKIERT'}",
        f"Compliance-Score: {summary.overall_score}%",
        "",
        f"PRÜFUNG: {summary.passed_checks}/{summary.total_checks} bestanden",
    ]
    if summary.failed_blockers > 0:
        lines.append(f"Kritische Fehler: {summary.failed_blockers}")
    if summary.total_warnings > 0:
        lines.append(f"Warnungen: {summary.total_warnings}")
    lines.append("")

    for heading, issues in (
        ("KRITISCHE FEHLER (Export blockiert):", result.blockers),
        ("WARNUNGEN (Export möglich):", result.warnings),
    ):
        if not issues:
            continue
        lines.append(heading)
        lines.append("")
        for index, issue in enumerate(issues, start=1):
            lines.append(f"{index}. {issue.title}")
            lines.append(f"   {issue.first_message_line}")
            lines.append("")

    if result.passed:
        lines.append("Ihr Businessplan erfüllt alle kritischen BA-Anforderungen.")
        lines.append("   Export ist möglich.")
        if result.warnings:
            lines.append("")
            lines.append("Durch Behebung der Warnungen können Sie Ihren Plan weiter stärken.")
    else:
        lines.extend([
            "Export ist blockiert bis alle kritischen Fehler behoben sind.",
            "",
            "NÄCHSTE SCHRITTE:",
            "   1. Beheben Sie die kritischen Fehler",
            "   2. Führen Sie eine erneute Validierung durch",
            "   3. Exportieren Sie Ihren Businessplan",
        ])

    lines.append("")
    lines.append(REPORT_RULE)
    return "\n".join(lines)


@dataclass(frozen=True)
class ValidationUISummary:
    """Compact status for UI badges: passed, blocked or warnings."""
    status: str
    message: str
    actionable: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "message": self.message, "actionable": list(self.actionable)}


def get_validation_summary(result: ValidationResult) -> ValidationUISummary:
    def actionable(issues: Sequence[ValidationIssue]) -> Tuple[str, ...]:
        return tuple(f"{i.title}: {i.suggested_fix or 'Siehe Details'}" for i in issues)

    if not result.passed:
        return ValidationUISummary(
            status="blocked",
            message=f"Export blockiert: {len(result.blockers)} kritische Fehler müssen behoben werden",
            actionable=actionable(result.blockers),
        )
    if result.warnings:
        return ValidationUISummary(
            status="warnings",
            message=f"Export möglich mit {len(result.warnings)} Warnungen (optional zu beheben)",
            actionable=actionable(result.warnings),
        )
    return ValidationUISummary(
        status="passed",
        message="Alle BA-Compliance-Checks bestanden - Export freigegeben",
    )


# =============================================================================
# Module-Level Orchestrator Instance
# =============================================================================

_orchestrator_instance: Optional[ComplianceOrchestrator] = None


def get_compliance_orchestrator() -> ComplianceOrchestrator:
    global _orchestrator_instance

    if _orchestrator_instance is None:
        _orchestrator_instance = ComplianceOrchestrator()

    return _orchestrator_instance


def reset_compliance_orchestrator() -> None:
    """Drop the global orchestrator (used by tests)."""
    global _orchestrator_instance
    if _orchestrator_instance is not None:
        _orchestrator_instance.shutdown()
    _orchestrator_instance = None


def validate_ba_compliance(session: Any) -> ValidationResult:
    """Validate a session with the global orchestrator."""
    return get_compliance_orchestrator().validate(session)
