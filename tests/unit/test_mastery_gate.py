"""
Unit tests for the true mastery gate (frontier.study.mastery_gate).
"""

import pytest

from frontier.study.mastery_gate import (
    GateResponse,
    Recommendation,
    SpeedTrend,
    evaluate_true_mastery,
    speed_trend,
)

TYPES = ["multiple_choice", "true_false", "numeric", "parsons"]


def responses(correct=None, types=None, latencies=None, count=10):
    """Build gate responses; defaults are all correct, all types, flat speed."""
    correct = correct if correct is not None else [True] * count
    types = types if types is not None else [TYPES[i % 4] for i in range(count)]
    latencies = latencies if latencies is not None else [1000] * count
    return [GateResponse(c, t, ms) for c, t, ms in zip(correct, types, latencies)]


class TestSpeedTrend:
    @pytest.mark.parametrize(
        "latencies,trend",
        [
            ([], SpeedTrend.FLAT),
            ([1000], SpeedTrend.FLAT),
            ([1000, 800], SpeedTrend.IMPROVING),
            ([1000, 1100], SpeedTrend.FLAT),
            ([1000, 1101], SpeedTrend.SLOWING),
            ([1000, 1000, 1300], SpeedTrend.SLOWING),
        ],
    )
    def test_half_comparison(self, latencies, trend):
        assert speed_trend(latencies) is trend


class TestGate:
    def test_all_criteria_pass(self):
        result = evaluate_true_mastery(responses())

        assert result.passed
        assert result.recommendation is Recommendation.ADVANCE
        assert result.accuracy.score == 1.0
        assert result.consistency.score == 1.0
        assert result.types_correct == tuple(TYPES)
        assert result.retention.passed
        assert result.speed_trend is SpeedTrend.FLAT

    def test_too_few_responses_pass(self):
        result = evaluate_true_mastery(responses(correct=[False] * 9, count=9))

        assert result.passed
        assert result.recommendation is Recommendation.ADVANCE
        assert result.speed_trend is SpeedTrend.IMPROVING
        assert result.total_responses == 9

    def test_low_accuracy_means_practice(self):
        result = evaluate_true_mastery(responses(correct=[False, False] + [True] * 8))

        assert not result.accuracy.passed
        assert result.accuracy.score == pytest.approx(0.8)
        assert result.recommendation is Recommendation.PRACTICE

    def test_narrow_question_types_means_practice(self):
        result = evaluate_true_mastery(responses(types=["numeric", "parsons"] * 5))

        assert not result.consistency.passed
        assert result.consistency.score == 0.5
        assert result.recommendation is Recommendation.PRACTICE

    def test_incorrect_types_do_not_count(self):
        result = evaluate_true_mastery(
            responses(
                correct=[True] * 9 + [False],
                types=["numeric", "parsons"] * 4 + ["true_false", "multiple_choice"],
            )
        )
        assert result.types_correct == ("numeric", "parsons", "true_false")
        assert result.consistency.passed

    def test_slowing_down_means_fluency_drill(self):
        result = evaluate_true_mastery(responses(latencies=[1000] * 5 + [1200] * 5))

        assert not result.speed.passed
        assert result.speed.score == pytest.approx(1000 / 1200)
        assert result.speed_trend is SpeedTrend.SLOWING
        assert result.recommendation is Recommendation.FLUENCY_DRILL

    def test_weak_retention_means_retention_review(self):
        result = evaluate_true_mastery(responses(), retention_score=0.5)

        assert not result.retention.passed
        assert result.retention.score == 0.5
        assert result.recommendation is Recommendation.RETENTION_REVIEW

    def test_retention_outranks_speed(self):
        result = evaluate_true_mastery(
            responses(latencies=[1000] * 5 + [1500] * 5), retention_score=0.4
        )
        assert result.recommendation is Recommendation.RETENTION_REVIEW

    def test_retention_threshold_inclusive(self):
        assert evaluate_true_mastery(responses(), retention_score=0.7).retention.passed

    def test_only_last_ten_responses(self):
        history = responses(correct=[False] * 5, count=5) + responses()
        result = evaluate_true_mastery(history)

        assert result.total_responses == 10
        assert result.accuracy.score == 1.0
        assert result.passed

    def test_improving_speed_passes(self):
        result = evaluate_true_mastery(responses(latencies=[1500] * 5 + [900] * 5))
        assert result.speed_trend is SpeedTrend.IMPROVING
        assert result.speed.passed
