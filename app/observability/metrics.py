"""
============================================================================
GZ Compliance Engine v1.0
Prometheus Metrics - Validation Observability
============================================================================

Reliability Level: L5 High
Input Constraints: Scores are ints 0-100, durations in seconds
Side Effects: Updates Prometheus metrics registry

METRICS EXPOSED
---------------
- compliance_validations_total: Orchestration runs by outcome
- compliance_validation_duration_seconds: Wall-clock duration of a run
- compliance_score_histogram: Distribution of compliance scores
- consistency_inconsistencies_total: Detected inconsistencies by type/severity
- export_decisions_total: Export gate decisions by status

Recording helpers never raise. A failing metric update is logged with an
OBS- code and the validation continues.

============================================================================
"""

import logging
from typing import Iterable, Optional

from prometheus_client import Counter, Histogram

logger = logging.getLogger(__name__)


# ============================================================================
# PROMETHEUS METRICS DEFINITIONS
# ============================================================================

# Counter: orchestration outcomes (passed, blocked, errored)
VALIDATIONS_TOTAL = Counter(
    "compliance_validations_total",
    "Total number of BA compliance validation runs",
    ["outcome"]
)

# Histogram: run duration, budget is 500ms
VALIDATION_DURATION = Histogram(
    "compliance_validation_duration_seconds",
    "Wall-clock duration of BA compliance validation runs",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0]
)

# Histogram: compliance score 0-100
SCORE_HISTOGRAM = Histogram(
    "compliance_score_histogram",
    "Distribution of weighted BA compliance scores",
    buckets=[10, 20, 30, 40, 50, 60, 70, 80, 90, 100]
)

INCONSISTENCIES_TOTAL = Counter(
    "consistency_inconsistencies_total",
    "Total number of detected cross-module inconsistencies",
    ["type", "severity"]
)

EXPORT_DECISIONS_TOTAL = Counter(
    "export_decisions_total",
    "Total number of export gate decisions",
    ["status"]
)


# ============================================================================
# METRIC UPDATE FUNCTIONS
# ============================================================================

def record_validation(
    outcome: str,
    duration_seconds: float,
    score: int,
    session_id: Optional[str] = None
) -> None:
    """
    Record one orchestration run.

    Reliability Level: L5 High
    Input Constraints: outcome is the terminal orchestration state
    Side Effects: Increments counter, observes two histograms

    Args:
        outcome: Terminal state (e.g. "PASSED", "BLOCKED", "ERRORED")
        duration_seconds: Wall-clock duration of the run
        score: Weighted compliance score (0-100)
        session_id: Optional workshop session id for the debug log
    """
    try:
        VALIDATIONS_TOTAL.labels(outcome=outcome).inc()
        VALIDATION_DURATION.observe(duration_seconds)
        SCORE_HISTOGRAM.observe(score)
        logger.debug(
            "Metric: validation | outcome=%s | duration_s=%.4f | score=%d | session_id=%s",
            outcome, duration_seconds, score, session_id
        )
    except Exception as e:
        logger.error(
            "[OBS-001] Failed to record validation metric | error=%s",
            str(e)
        )


def record_inconsistencies(pairs: Iterable[tuple]) -> None:
    """
    Record detected inconsistencies.

    Args:
        pairs: Iterable of (type, severity) label values
    """
    try:
        for inconsistency_type, severity in pairs:
            INCONSISTENCIES_TOTAL.labels(type=inconsistency_type, severity=severity).inc()
    except Exception as e:
        logger.error(
            "[OBS-002] Failed to record inconsistency metric | error=%s",
            str(e)
        )


def record_export_decision(status: str, workshop_id: Optional[str] = None) -> None:
    """Record an export gate decision (ready, warnings, blocked)."""
    try:
        EXPORT_DECISIONS_TOTAL.labels(status=status).inc()
        logger.debug(
            "Metric: export_decision | status=%s | workshop_id=%s",
            status, workshop_id
        )
    except Exception as e:
        logger.error(
            "[OBS-003] Failed to record export decision metric | error=%s",
            str(e)
        )
