"""Null out KR fields that don't belong to the record's type.

Runs before every write so a type switch can't leave stale values from the
previous type feeding into progress computation.
"""

from collections.abc import Mapping

import structlog

from shared_types import KRType

logger = structlog.get_logger()

TYPE_FIELDS: dict[KRType, frozenset[str]] = {
    KRType.AUMENTO: frozenset({"target_value", "baseline_value", "current_value", "unit"}),
    KRType.REDUCAO: frozenset({"target_value", "baseline_value", "current_value", "unit"}),
    KRType.ENTREGAVEL: frozenset({"checklist_json"}),
    KRType.LIMIAR: frozenset({"threshold_value", "threshold_direction", "current_value", "unit"}),
}

# Every field that is owned by at least one type.
TYPED_FIELDS: frozenset[str] = frozenset().union(*TYPE_FIELDS.values())


def sanitize_by_type(payload: Mapping) -> dict:
    """Return a copy of payload with non-owned typed fields set to None.

    Payloads without a type (partial updates that don't touch it) come back
    unchanged. Applying it twice gives the same result as applying it once.
    """
    cleaned = dict(payload)
    raw_type = cleaned.get("type")
    if not raw_type:
        return cleaned

    try:
        kr_type = KRType(raw_type)
    except ValueError:
        logger.warning("kr_sanitize.unknown_type", kr_type=str(raw_type))
        return cleaned

    for field in TYPED_FIELDS - TYPE_FIELDS[kr_type]:
        cleaned[field] = None
    return cleaned
