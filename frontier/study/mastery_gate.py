"""
True Mastery Gate.

A high BKT probability alone does not let a student advance. All four
criteria must hold over the last 10 responses:

1. Accuracy: 85%+ correct
2. Consistency: correct on 3+ distinct question types
3. Retention: 70%+ on later retention checks (unmeasured passes)
4. Speed: response times not slowing down

Recommendations:
- all pass                               -> advance
- accuracy + retention pass, speed fails -> fluency_drill
- accuracy passes, retention fails       -> retention_review
- otherwise                              -> practice

With fewer than 10 responses there is not enough evidence to block
anyone, so the gate passes.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from loguru import logger

ACCURACY_THRESHOLD = 0.85
CONSISTENCY_TYPES_REQUIRED = 3
QUESTION_TYPE_COUNT = 4
RETENTION_THRESHOLD = 0.7
MIN_RESPONSES_FOR_GATE = 10
SLOWING_RATIO = 1.1
IMPROVING_RATIO = 0.9


class Recommendation(str, Enum):
    ADVANCE = "advance"
    FLUENCY_DRILL = "fluency_drill"
    RETENTION_REVIEW = "retention_review"
    PRACTICE = "practice"


class SpeedTrend(str, Enum):
    IMPROVING = "improving"
    FLAT = "flat"
    SLOWING = "slowing"


@dataclass(frozen=True)
class GateResponse:
    """One practice response as seen by the gate."""

    correct: bool
    question_type: str
    response_time_ms: int


@dataclass(frozen=True)
class CriterionResult:
    score: float
    passed: bool


@dataclass(frozen=True)
class MasteryGateResult:
    passed: bool
    accuracy: CriterionResult
    consistency: CriterionResult
    retention: CriterionResult
    speed: CriterionResult
    speed_trend: SpeedTrend
    recommendation: Recommendation
    total_responses: int
    types_correct: tuple[str, ...] = field(default_factory=tuple)


def speed_trend(latencies: Sequence[float]) -> SpeedTrend:
    """Compare mean latency of the second half against the first half."""
    half = len(latencies) // 2
    if half == 0:
        return SpeedTrend.FLAT
    first = sum(latencies[:half]) / half
    second = sum(latencies[half:]) / (len(latencies) - half)
    if second < first * IMPROVING_RATIO:
        return SpeedTrend.IMPROVING
    if second > first * SLOWING_RATIO:
        return SpeedTrend.SLOWING
    return SpeedTrend.FLAT


def evaluate_true_mastery(
    responses: Sequence[GateResponse],
    retention_score: float | None = None,
) -> MasteryGateResult:
    """
    Run the four-criteria gate.

    Args:
        responses: Practice responses on one concept, oldest first. Only the
            last 10 are evaluated.
        retention_score: Latest retention check (0-1), None if never measured

    Returns:
        MasteryGateResult with per-criterion scores and a recommendation
    """
    recent = list(responses)[-MIN_RESPONSES_FOR_GATE:]
    total = len(recent)

    if total < MIN_RESPONSES_FOR_GATE:
        passed = CriterionResult(score=1.0, passed=True)
        return MasteryGateResult(
            passed=True,
            accuracy=passed,
            consistency=passed,
            retention=passed,
            speed=passed,
            speed_trend=SpeedTrend.IMPROVING,
            recommendation=Recommendation.ADVANCE,
            total_responses=total,
        )

    # 1. Accuracy
    accuracy_score = sum(1 for r in recent if r.correct) / total
    accuracy = CriterionResult(accuracy_score, accuracy_score >= ACCURACY_THRESHOLD)

    # 2. Consistency, in first-seen order
    types_correct = tuple(dict.fromkeys(r.question_type for r in recent if r.correct))
    consistency = CriterionResult(
        len(types_correct) / QUESTION_TYPE_COUNT,
        len(types_correct) >= CONSISTENCY_TYPES_REQUIRED,
    )

    # 3. Retention
    retention = CriterionResult(
        retention_score if retention_score is not None else 1.0,
        retention_score is None or retention_score >= RETENTION_THRESHOLD,
    )

    # 4. Speed
    latencies = [r.response_time_ms for r in recent]
    trend = speed_trend(latencies)
    speed_passed = trend is not SpeedTrend.SLOWING
    if speed_passed:
        speed_score = 1.0
    else:
        half = total // 2
        first = sum(latencies[:half]) / half
        second = sum(latencies[half:]) / (total - half)
        speed_score = first / second
    speed = CriterionResult(speed_score, speed_passed)

    all_passed = accuracy.passed and consistency.passed and retention.passed and speed.passed
    if all_passed:
        recommendation = Recommendation.ADVANCE
    elif accuracy.passed and retention.passed and not speed.passed:
        recommendation = Recommendation.FLUENCY_DRILL
    elif accuracy.passed and not retention.passed:
        recommendation = Recommendation.RETENTION_REVIEW
    else:
        recommendation = Recommendation.PRACTICE

    logger.debug(
        f"Mastery gate: accuracy={accuracy_score:.2f} types={len(types_correct)} "
        f"retention={retention_score} speed={trend.value} -> {recommendation.value}"
    )
    return MasteryGateResult(
        passed=all_passed,
        accuracy=accuracy,
        consistency=consistency,
        retention=retention,
        speed=speed,
        speed_trend=trend,
        recommendation=recommendation,
        total_responses=total,
        types_correct=types_correct,
    )
