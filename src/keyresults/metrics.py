"""Key Result progress engine.

Derives ``progress`` (0-100), ``is_achieved`` and a coarse status bucket from a
KR's type and its numeric/checklist state. The engine is pure: nothing here
touches storage, and results are recomputed on every read so they can never
drift from the stored values.

Missing or non-numeric values are treated as 0 (REDUCAO falls back to its
baseline for the current value) and malformed checklist entries are ignored,
so partial input degrades to ``0% / not achieved / OFF_TRACK`` instead of raising.
"""

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Callable

import structlog

from observability import metrics
from shared_types import KRComputedStatus, KRType, ThresholdDirection

logger = structlog.get_logger()

ACHIEVED_AT = 100
ON_TRACK_AT = 70
AT_RISK_AT = 40


@dataclass(frozen=True)
class ChecklistItem:
    id: str
    title: str
    done: bool


@dataclass(frozen=True)
class KRMetricsInput:
    """Snapshot of the KR fields the engine reads."""

    type: Any
    target_value: float | None = None
    baseline_value: float | None = None
    threshold_value: float | None = None
    threshold_direction: Any = None
    current_value: float | None = None
    checklist_json: Any = None

    @classmethod
    def from_record(cls, record: Mapping) -> "KRMetricsInput":
        """Build from a stored or serialized KR (extra keys are ignored)."""
        return cls(
            type=record.get("type"),
            target_value=record.get("target_value"),
            baseline_value=record.get("baseline_value"),
            threshold_value=record.get("threshold_value"),
            threshold_direction=record.get("threshold_direction"),
            current_value=record.get("current_value"),
            checklist_json=record.get("checklist_json"),
        )


@dataclass(frozen=True)
class KRMetricsResult:
    progress: float
    is_achieved: bool
    status_computed: KRComputedStatus

    def to_dict(self) -> dict:
        return {
            "progress": self.progress,
            "is_achieved": self.is_achieved,
            "status_computed": str(self.status_computed),
        }


FALLBACK_RESULT = KRMetricsResult(0.0, False, KRComputedStatus.OFF_TRACK)


def clamp(value: float) -> float:
    return min(100.0, max(0.0, value))


def status_from_progress(progress: float) -> KRComputedStatus:
    """Bucket a progress percentage. Thresholds are fixed at 40/70/100."""
    if progress >= ACHIEVED_AT:
        return KRComputedStatus.ACHIEVED
    if progress >= ON_TRACK_AT:
        return KRComputedStatus.ON_TRACK
    if progress >= AT_RISK_AT:
        return KRComputedStatus.AT_RISK
    return KRComputedStatus.OFF_TRACK


def parse_checklist(value: Any) -> list[ChecklistItem]:
    """Keep only well-formed ``{id: str, title: str, done: bool}`` entries.

    JSON text (as stored in SQLite) is decoded first. Anything that is not a
    list yields an empty checklist.
    """
    if isinstance(value, (str, bytes)):
        try:
            value = json.loads(value)
        except ValueError:
            return []
    if not isinstance(value, list):
        return []

    items = []
    for raw in value:
        if isinstance(raw, ChecklistItem):
            items.append(raw)
            continue
        if not isinstance(raw, Mapping):
            continue
        item_id, title, done = raw.get("id"), raw.get("title"), raw.get("done")
        if isinstance(item_id, str) and isinstance(title, str) and isinstance(done, bool):
            items.append(ChecklistItem(id=item_id, title=title, done=done))
    return items


def _with_status(progress: float, is_achieved: bool) -> KRMetricsResult:
    status = KRComputedStatus.ACHIEVED if is_achieved else status_from_progress(progress)
    return KRMetricsResult(progress, is_achieved, status)


def _num(value: Any, default: float | None) -> float | None:
    # Stored junk (text in a REAL column, booleans) counts as missing.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value


def _ratio(numerator: float, denominator: float) -> float:
    # Zero or negative spans mean a misconfigured KR: report no progress.
    if denominator <= 0:
        return 0.0
    return clamp(numerator / denominator * 100)


def _calculate_increase(kr: KRMetricsInput) -> KRMetricsResult:
    current = _num(kr.current_value, 0)
    target = _num(kr.target_value, 0)
    baseline = _num(kr.baseline_value, None)

    if baseline is not None:
        progress = _ratio(current - baseline, target - baseline)
    else:
        progress = _ratio(current, target)

    return _with_status(progress, current >= target and target > 0)


def _calculate_decrease(kr: KRMetricsInput) -> KRMetricsResult:
    baseline = _num(kr.baseline_value, 0)
    target = _num(kr.target_value, 0)
    current = _num(kr.current_value, baseline)

    progress = _ratio(baseline - current, baseline - target)
    return _with_status(progress, current <= target)


def _calculate_deliverable(kr: KRMetricsInput) -> KRMetricsResult:
    checklist = parse_checklist(kr.checklist_json)
    if not checklist:
        return FALLBACK_RESULT

    done_count = sum(1 for item in checklist if item.done)
    progress = clamp(done_count / len(checklist) * 100)
    return _with_status(progress, done_count == len(checklist))


def _calculate_threshold(kr: KRMetricsInput) -> KRMetricsResult:
    direction = kr.threshold_direction or ThresholdDirection.MAXIMO
    threshold = _num(kr.threshold_value, 0)
    current = _num(kr.current_value, 0)

    if direction == ThresholdDirection.MAXIMO:
        is_achieved = current <= threshold
    else:
        is_achieved = current >= threshold

    # Pass/fail guardrail: no intermediate buckets.
    if is_achieved:
        return KRMetricsResult(100.0, True, KRComputedStatus.ACHIEVED)
    return KRMetricsResult(0.0, False, KRComputedStatus.OFF_TRACK)


CALCULATORS: dict[KRType, Callable[[KRMetricsInput], KRMetricsResult]] = {
    KRType.AUMENTO: _calculate_increase,
    KRType.REDUCAO: _calculate_decrease,
    KRType.ENTREGAVEL: _calculate_deliverable,
    KRType.LIMIAR: _calculate_threshold,
}


def compute_kr_metrics(kr: KRMetricsInput | Mapping) -> KRMetricsResult:
    """Compute progress, achievement and status for a single KR.

    Args:
        kr: A KRMetricsInput, or any mapping carrying the KR record fields.

    Returns:
        KRMetricsResult. Unknown types get the OFF_TRACK fallback; they are
        logged and counted but never raise.
    """
    if not isinstance(kr, KRMetricsInput):
        kr = KRMetricsInput.from_record(kr)

    try:
        kr_type = KRType(kr.type)
    except (TypeError, ValueError):
        logger.warning("kr_metrics.unknown_type", kr_type=repr(kr.type))
        metrics.counter("kr_metrics.unknown_type")
        return FALLBACK_RESULT

    metrics.counter("kr_metrics.computed", label=kr_type.value)
    return CALCULATORS[kr_type](kr)


def average_progress(results: Iterable[KRMetricsResult]) -> int:
    """Rounded mean progress of a set of KRs (0 when empty)."""
    values = [r.progress for r in results]
    if not values:
        return 0
    return round(sum(values) / len(values))
