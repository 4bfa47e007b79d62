"""
============================================================================
GZ Compliance Engine v1.0
Observability Module - Prometheus Metrics
============================================================================

Reliability Level: L5 High
Input Constraints: None
Side Effects: Exposes Prometheus metrics

============================================================================
"""

from app.observability.metrics import (
    VALIDATIONS_TOTAL,
    VALIDATION_DURATION,
    SCORE_HISTOGRAM,
    INCONSISTENCIES_TOTAL,
    EXPORT_DECISIONS_TOTAL,
    record_validation,
    record_inconsistencies,
    record_export_decision,
)

__all__ = [
    "VALIDATIONS_TOTAL",
    "VALIDATION_DURATION",
    "SCORE_HISTOGRAM",
    "INCONSISTENCIES_TOTAL",
    "EXPORT_DECISIONS_TOTAL",
    "record_validation",
    "record_inconsistencies",
    "record_export_decision",
]
