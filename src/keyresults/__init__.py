"""Key Result domain: progress engine, type sanitizer, input schemas."""

from .metrics import (
    KRMetricsInput,
    KRMetricsResult,
    average_progress,
    compute_kr_metrics,
    parse_checklist,
    status_from_progress,
)
from .sanitize import TYPE_FIELDS, sanitize_by_type
from .validation import KRCreate, KRUpdate, validate_key_result

__all__ = [
    "KRCreate",
    "KRMetricsInput",
    "KRMetricsResult",
    "KRUpdate",
    "TYPE_FIELDS",
    "average_progress",
    "compute_kr_metrics",
    "parse_checklist",
    "sanitize_by_type",
    "status_from_progress",
    "validate_key_result",
]
