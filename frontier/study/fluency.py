"""
Fluency Drill and Plateau Detection.

Speed-focused practice for students who already answer accurately but
still need automaticity.

True fluency = benchmark speed + 90% accuracy for 10 consecutive problems.

Flatline detection: the coefficient of variation of the last 20 response
times drops below 15%. Response times have stopped changing, so the skill
counts as fluent and the student auto-advances.
"""

from __future__ import annotations

import math
import statistics
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Any

from loguru import logger

from frontier.core.mastery import MasteryRecord

FLATLINE_WINDOW = 20
FLATLINE_THRESHOLD = 0.15
CONSECUTIVE_REQUIRED = 10
FLUENCY_ACCURACY = 0.9
RECENT_WINDOW = 10


@dataclass(frozen=True)
class FluencyConfig:
    """Thresholds for fluency drills."""

    flatline_window: int = FLATLINE_WINDOW
    flatline_threshold: float = FLATLINE_THRESHOLD
    consecutive_required: int = CONSECUTIVE_REQUIRED
    accuracy_required: float = FLUENCY_ACCURACY
    recent_window: int = RECENT_WINDOW

    def __post_init__(self):
        if self.flatline_window < 1:
            raise ValueError(f"flatline_window must be >= 1, got {self.flatline_window}")
        if self.flatline_threshold <= 0:
            raise ValueError(f"flatline_threshold must be > 0, got {self.flatline_threshold}")

    @classmethod
    def from_settings(cls, settings: Any) -> FluencyConfig:
        return cls(
            flatline_window=settings.flatline_window,
            flatline_threshold=settings.flatline_threshold,
            consecutive_required=settings.fluency_consecutive_required,
            accuracy_required=settings.fluency_accuracy,
        )


# =============================================================================
# Plateau Detection
# =============================================================================


@dataclass(frozen=True)
class FlatlineResult:
    is_flatline: bool
    coefficient_of_variation: float | None  # None = not enough data
    sample_size: int

    @property
    def has_enough_data(self) -> bool:
        return self.coefficient_of_variation is not None


def check_flatline(
    latencies: Sequence[float],
    window: int = FLATLINE_WINDOW,
    threshold: float = FLATLINE_THRESHOLD,
) -> FlatlineResult:
    """
    Detect a response-time plateau.

    Args:
        latencies: Response times in milliseconds, oldest first
        window: Number of most recent latencies to inspect
        threshold: CoV strictly below this is a flatline

    Returns:
        FlatlineResult; fewer than `window` samples is never a flatline

    Raises:
        ValueError: A latency is negative or not a number
    """
    for value in latencies:
        if math.isnan(value) or value < 0:
            raise ValueError(f"Latencies must be non-negative, got {value}")

    if len(latencies) < window:
        return FlatlineResult(
            is_flatline=False,
            coefficient_of_variation=None,
            sample_size=len(latencies),
        )

    recent = list(latencies[-window:])
    mean = statistics.fmean(recent)
    # Population standard deviation: the window is the whole population
    std_dev = statistics.pstdev(recent, mu=mean)
    cov = std_dev / mean if mean > 0 else 0.0

    result = FlatlineResult(
        is_flatline=cov < threshold,
        coefficient_of_variation=cov,
        sample_size=window,
    )
    logger.debug(
        f"Flatline check over {window} latencies: mean={mean:.0f}ms CoV={cov:.3f} "
        f"-> {'flatline' if result.is_flatline else 'still changing'}"
    )
    return result


# =============================================================================
# Fluency Drill
# =============================================================================


@dataclass(frozen=True)
class FluencyDrillState:
    """Per (student, concept) drill counters."""

    consecutive_at_benchmark: int = 0
    personal_best_ms: int | None = None

    @classmethod
    def from_record(cls, record: MasteryRecord) -> FluencyDrillState:
        return cls(
            consecutive_at_benchmark=record.consecutive_correct,
            personal_best_ms=record.personal_best_latency_ms,
        )


@dataclass(frozen=True)
class FluencyResult:
    """Outcome of one fluency drill answer."""

    correct: bool
    consecutive_at_benchmark: int
    personal_best_ms: int | None
    new_personal_best: bool
    at_benchmark: bool
    benchmark_ms: int | None
    recent_accuracy: float
    speed_trend: tuple[int, ...]
    flatline: FlatlineResult
    completed: bool

    @property
    def state(self) -> FluencyDrillState:
        return FluencyDrillState(
            consecutive_at_benchmark=self.consecutive_at_benchmark,
            personal_best_ms=self.personal_best_ms,
        )


class FluencyDrill:
    """
    Evaluates fluency drill answers.

    `recent_outcomes` and `latency_window` are the student's history on the
    concept, oldest first, including the answer being evaluated.
    """

    def __init__(self, config: FluencyConfig | None = None):
        self.config = config or FluencyConfig()

    @classmethod
    def from_settings(cls, settings: Any) -> FluencyDrill:
        return cls(FluencyConfig.from_settings(settings))

    def evaluate(
        self,
        state: FluencyDrillState,
        latency_ms: int,
        correct: bool,
        benchmark_ms: int | None = None,
        recent_outcomes: Sequence[bool] = (),
        latency_window: Sequence[int] = (),
    ) -> FluencyResult:
        """
        Evaluate one drill answer.

        Args:
            state: Counters before this answer
            latency_ms: Response time of this answer
            correct: Whether this answer was correct
            benchmark_ms: Target time; None means any speed meets it
            recent_outcomes: Correctness history
            latency_window: Response-time history

        Returns:
            FluencyResult; completed when 10 in a row at benchmark with 90%
            recent accuracy, or when response times have flatlined
        """
        if latency_ms < 0:
            raise ValueError(f"latency_ms must be >= 0, got {latency_ms}")

        at_benchmark = latency_ms <= benchmark_ms if benchmark_ms is not None else True

        # Reset on wrong or too slow
        consecutive = state.consecutive_at_benchmark + 1 if correct and at_benchmark else 0

        new_best = correct and (state.personal_best_ms is None or latency_ms < state.personal_best_ms)
        personal_best = latency_ms if new_best else state.personal_best_ms

        recent = list(recent_outcomes)[-self.config.recent_window :]
        recent_accuracy = sum(1 for ok in recent if ok) / len(recent) if recent else 0.0

        flatline = check_flatline(
            latency_window,
            window=self.config.flatline_window,
            threshold=self.config.flatline_threshold,
        )

        completed = (
            consecutive >= self.config.consecutive_required
            and recent_accuracy >= self.config.accuracy_required
        ) or flatline.is_flatline

        if completed:
            reason = "flatline" if flatline.is_flatline else f"{consecutive} in a row"
            logger.info(f"Fluency achieved ({reason}), accuracy {recent_accuracy:.0%}")

        return FluencyResult(
            correct=correct,
            consecutive_at_benchmark=consecutive,
            personal_best_ms=personal_best,
            new_personal_best=new_best,
            at_benchmark=at_benchmark,
            benchmark_ms=benchmark_ms,
            recent_accuracy=recent_accuracy,
            speed_trend=tuple(latency_window[-self.config.recent_window :]),
            flatline=flatline,
            completed=completed,
        )

    def apply(self, record: MasteryRecord, result: FluencyResult) -> MasteryRecord:
        """Write drill counters back onto a mastery record."""
        return replace(
            record,
            consecutive_correct=result.consecutive_at_benchmark,
            personal_best_latency_ms=result.personal_best_ms,
        )
