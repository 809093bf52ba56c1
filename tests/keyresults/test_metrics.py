"""Tests for the Key Result progress engine."""

import pytest

from keyresults.metrics import (
    CALCULATORS,
    KRMetricsInput,
    KRMetricsResult,
    average_progress,
    clamp,
    compute_kr_metrics,
    parse_checklist,
    status_from_progress,
)
from observability import metrics
from shared_types import KRComputedStatus, KRType


def _items(*done_flags):
    return [{"id": str(i), "title": f"Item {i}", "done": d} for i, d in enumerate(done_flags)]


class TestStatusBuckets:
    def test_boundaries(self):
        assert status_from_progress(100) == KRComputedStatus.ACHIEVED
        assert status_from_progress(99.999) == KRComputedStatus.ON_TRACK
        assert status_from_progress(70) == KRComputedStatus.ON_TRACK
        assert status_from_progress(69.999) == KRComputedStatus.AT_RISK
        assert status_from_progress(40) == KRComputedStatus.AT_RISK
        assert status_from_progress(39.999) == KRComputedStatus.OFF_TRACK
        assert status_from_progress(0) == KRComputedStatus.OFF_TRACK

    def test_monotonic(self):
        order = [
            KRComputedStatus.OFF_TRACK,
            KRComputedStatus.AT_RISK,
            KRComputedStatus.ON_TRACK,
            KRComputedStatus.ACHIEVED,
        ]
        tiers = [order.index(status_from_progress(p / 10)) for p in range(0, 1001)]
        assert tiers == sorted(tiers)

    def test_clamp(self):
        assert clamp(-5) == 0
        assert clamp(150) == 100
        assert clamp(42.5) == 42.5


class TestIncrease:
    def test_from_zero_baseline(self):
        result = compute_kr_metrics(
            KRMetricsInput(type=KRType.AUMENTO, baseline_value=0, target_value=100, current_value=75)
        )
        assert result == KRMetricsResult(75.0, False, KRComputedStatus.ON_TRACK)

    def test_relative_to_baseline(self):
        result = compute_kr_metrics(
            KRMetricsInput(type=KRType.AUMENTO, baseline_value=50, target_value=150, current_value=150)
        )
        assert result.progress == 100
        assert result.is_achieved is True
        assert result.status_computed == KRComputedStatus.ACHIEVED

    def test_without_baseline_uses_absolute_values(self):
        result = compute_kr_metrics(KRMetricsInput(type=KRType.AUMENTO, target_value=200, current_value=50))
        assert result.progress == 25
        assert result.status_computed == KRComputedStatus.OFF_TRACK

    def test_overshoot_is_clamped(self):
        result = compute_kr_metrics(KRMetricsInput(type=KRType.AUMENTO, target_value=100, current_value=250))
        assert result.progress == 100
        assert result.is_achieved is True

    def test_below_baseline_is_clamped_to_zero(self):
        result = compute_kr_metrics(
            KRMetricsInput(type=KRType.AUMENTO, baseline_value=50, target_value=100, current_value=10)
        )
        assert result.progress == 0

    def test_target_not_above_baseline_gives_zero_progress(self):
        result = compute_kr_metrics(
            KRMetricsInput(type=KRType.AUMENTO, baseline_value=100, target_value=100, current_value=90)
        )
        assert result.progress == 0
        assert result.is_achieved is False
        assert result.status_computed == KRComputedStatus.OFF_TRACK

    def test_zero_target_never_achieved(self):
        result = compute_kr_metrics(KRMetricsInput(type=KRType.AUMENTO, target_value=0, current_value=5))
        assert result.progress == 0
        assert result.is_achieved is False

    def test_missing_values_degrade_to_zero(self):
        result = compute_kr_metrics(KRMetricsInput(type=KRType.AUMENTO))
        assert result == KRMetricsResult(0.0, False, KRComputedStatus.OFF_TRACK)


class TestDecrease:
    def test_reaches_target(self):
        result = compute_kr_metrics(
            KRMetricsInput(type=KRType.REDUCAO, baseline_value=120, target_value=80, current_value=80)
        )
        assert result.progress == 100
        assert result.is_achieved is True
        assert result.status_computed == KRComputedStatus.ACHIEVED

    def test_partial(self):
        result = compute_kr_metrics(
            KRMetricsInput(type=KRType.REDUCAO, baseline_value=100, target_value=50, current_value=70)
        )
        assert result.progress == pytest.approx(60)
        assert result.is_achieved is False
        assert result.status_computed == KRComputedStatus.AT_RISK

    def test_missing_current_falls_back_to_baseline(self):
        result = compute_kr_metrics(KRMetricsInput(type=KRType.REDUCAO, baseline_value=100, target_value=50))
        assert result.progress == 0
        assert result.is_achieved is False

    def test_target_equal_to_baseline_gives_zero_progress(self):
        result = compute_kr_metrics(
            KRMetricsInput(type=KRType.REDUCAO, baseline_value=100, target_value=100, current_value=110)
        )
        assert result.progress == 0
        assert result.is_achieved is False
        assert result.status_computed == KRComputedStatus.OFF_TRACK

    def test_misconfigured_but_at_target_counts_as_achieved(self):
        result = compute_kr_metrics(
            KRMetricsInput(type=KRType.REDUCAO, baseline_value=100, target_value=100, current_value=100)
        )
        assert result.progress == 0
        assert result.is_achieved is True
        assert result.status_computed == KRComputedStatus.ACHIEVED

    def test_worse_than_baseline_clamped(self):
        result = compute_kr_metrics(
            KRMetricsInput(type=KRType.REDUCAO, baseline_value=100, target_value=50, current_value=130)
        )
        assert result.progress == 0


class TestDeliverable:
    def test_partial_checklist(self):
        result = compute_kr_metrics(
            KRMetricsInput(type=KRType.ENTREGAVEL, checklist_json=_items(True, True, False))
        )
        assert result.progress == pytest.approx(66.6667, abs=1e-3)
        assert result.is_achieved is False
        # 66.67 sits in the 40-70 bucket
        assert result.status_computed == KRComputedStatus.AT_RISK

    def test_all_done(self):
        result = compute_kr_metrics(KRMetricsInput(type=KRType.ENTREGAVEL, checklist_json=_items(True, True)))
        assert result == KRMetricsResult(100.0, True, KRComputedStatus.ACHIEVED)

    def test_empty_or_absent(self):
        for checklist in (None, [], "not json", {"id": "1"}, 42):
            result = compute_kr_metrics(KRMetricsInput(type=KRType.ENTREGAVEL, checklist_json=checklist))
            assert result == KRMetricsResult(0.0, False, KRComputedStatus.OFF_TRACK)

    def test_malformed_items_are_ignored(self):
        checklist = [
            {"id": "1", "title": "ok", "done": True},
            {"id": 2, "title": "bad id", "done": True},
            {"id": "3", "title": "bad done", "done": "yes"},
            {"id": "4", "done": False},
            "string",
            None,
            {"id": "5", "title": "ok", "done": False},
        ]
        result = compute_kr_metrics(KRMetricsInput(type=KRType.ENTREGAVEL, checklist_json=checklist))
        assert result.progress == 50
        assert result.status_computed == KRComputedStatus.AT_RISK

    def test_json_text_is_decoded(self):
        text = '[{"id": "a", "title": "A", "done": true}]'
        assert len(parse_checklist(text)) == 1
        result = compute_kr_metrics(KRMetricsInput(type=KRType.ENTREGAVEL, checklist_json=text))
        assert result.is_achieved is True

    def test_integer_done_flag_rejected(self):
        assert parse_checklist([{"id": "a", "title": "A", "done": 1}]) == []


class TestThreshold:
    def test_maximo(self):
        over = compute_kr_metrics(KRMetricsInput(
            type=KRType.LIMIAR, threshold_direction="MAXIMO", threshold_value=50, current_value=51,
        ))
        assert over == KRMetricsResult(0.0, False, KRComputedStatus.OFF_TRACK)

        at = compute_kr_metrics(KRMetricsInput(
            type=KRType.LIMIAR, threshold_direction="MAXIMO", threshold_value=50, current_value=50,
        ))
        assert at == KRMetricsResult(100.0, True, KRComputedStatus.ACHIEVED)

    def test_minimo(self):
        below = compute_kr_metrics(KRMetricsInput(
            type=KRType.LIMIAR, threshold_direction="MINIMO", threshold_value=90, current_value=89.5,
        ))
        assert below.is_achieved is False
        assert below.progress == 0

        above = compute_kr_metrics(KRMetricsInput(
            type=KRType.LIMIAR, threshold_direction="MINIMO", threshold_value=90, current_value=95,
        ))
        assert above.is_achieved is True
        assert above.progress == 100

    def test_direction_defaults_to_maximo(self):
        result = compute_kr_metrics(KRMetricsInput(type=KRType.LIMIAR, threshold_value=10, current_value=5))
        assert result.is_achieved is True

    def test_missing_values_compare_zero_to_zero(self):
        result = compute_kr_metrics(KRMetricsInput(type=KRType.LIMIAR))
        assert result.is_achieved is True

    def test_never_intermediate(self):
        for current in range(-20, 121, 7):
            for direction in ("MAXIMO", "MINIMO"):
                result = compute_kr_metrics(KRMetricsInput(
                    type=KRType.LIMIAR, threshold_direction=direction, threshold_value=50, current_value=current,
                ))
                assert result.progress in (0, 100)
                assert result.status_computed in (KRComputedStatus.ACHIEVED, KRComputedStatus.OFF_TRACK)


class TestNonNumericValues:
    def test_text_values_count_as_missing(self):
        result = compute_kr_metrics({"type": "AUMENTO", "target_value": 100, "current_value": "n/a"})
        assert result == KRMetricsResult(0.0, False, KRComputedStatus.OFF_TRACK)

    def test_decrease_text_current_falls_back_to_baseline(self):
        result = compute_kr_metrics(
            {"type": "REDUCAO", "baseline_value": 10, "target_value": 5, "current_value": "?"}
        )
        assert result.progress == 0
        assert result.is_achieved is False

    def test_booleans_are_not_numbers(self):
        result = compute_kr_metrics({"type": "LIMIAR", "threshold_value": True, "current_value": 0})
        assert result.is_achieved is True
        result = compute_kr_metrics({"type": "AUMENTO", "target_value": 1, "current_value": True})
        assert result.progress == 0


class TestDispatch:
    def test_every_type_has_a_calculator(self):
        assert set(CALCULATORS) == set(KRType)

    def test_unknown_type_falls_back(self):
        before = metrics.get("kr_metrics.unknown_type")
        for kr_type in ("BOGUS", None, "", ["AUMENTO"]):
            result = compute_kr_metrics(KRMetricsInput(type=kr_type, target_value=10, current_value=10))
            assert result == KRMetricsResult(0.0, False, KRComputedStatus.OFF_TRACK)
        assert metrics.get("kr_metrics.unknown_type") == before + 4

    def test_accepts_mapping(self):
        record = {
            "id": "kr1",
            "title": "Revenue",
            "type": "AUMENTO",
            "target_value": 10,
            "current_value": 8,
            "baseline_value": None,
        }
        assert compute_kr_metrics(record).progress == 80

    def test_progress_always_in_range(self):
        values = [None, -1000, -1, 0, 0.5, 1, 50, 99.9, 100, 1e9]
        for kr_type in KRType:
            for current in values:
                for target in values:
                    for baseline in values:
                        result = compute_kr_metrics(KRMetricsInput(
                            type=kr_type,
                            target_value=target,
                            baseline_value=baseline,
                            threshold_value=target,
                            current_value=current,
                        ))
                        assert 0 <= result.progress <= 100

    def test_to_dict(self):
        result = KRMetricsResult(75.0, False, KRComputedStatus.ON_TRACK)
        assert result.to_dict() == {"progress": 75.0, "is_achieved": False, "status_computed": "ON_TRACK"}


def test_average_progress():
    assert average_progress([]) == 0
    results = [
        KRMetricsResult(100.0, True, KRComputedStatus.ACHIEVED),
        KRMetricsResult(50.0, False, KRComputedStatus.AT_RISK),
        KRMetricsResult(0.0, False, KRComputedStatus.OFF_TRACK),
    ]
    assert average_progress(results) == 50
