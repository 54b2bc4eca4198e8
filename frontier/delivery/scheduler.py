"""
SM-2 Inspired Spaced Repetition Scheduler.

Interval progression (correct reviews):
    Review 1 -> 1 day
    Review 2 -> 3 days
    Review 3 -> 7 days
    Review 4 -> 16 days
    Review 5+ -> previous interval * easiness factor

Incorrect review:
    Interval resets to 1 day
    Easiness factor drops by 0.2 (never below 1.3)

Easiness factor range: 1.3 - 2.5. It only ever decreases; a correct
review leaves it unchanged.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from typing import Any

from loguru import logger

from frontier.core.mastery import (
    DEFAULT_EASINESS,
    MAX_EASINESS,
    MIN_EASINESS,
    MasteryRecord,
)

# =============================================================================
# SM-2 Configuration
# =============================================================================

FIXED_INTERVALS: tuple[int, ...] = (1, 3, 7, 16)
EASINESS_DECREMENT = 0.2


@dataclass(frozen=True)
class SM2Config:
    """Configuration for the review scheduler."""

    fixed_intervals: tuple[int, ...] = FIXED_INTERVALS
    initial_easiness: float = DEFAULT_EASINESS
    minimum_easiness: float = MIN_EASINESS
    maximum_easiness: float = MAX_EASINESS
    easiness_decrement: float = EASINESS_DECREMENT

    def __post_init__(self):
        if not self.fixed_intervals or any(i < 1 for i in self.fixed_intervals):
            raise ValueError("fixed_intervals must be a non-empty sequence of days >= 1")
        if self.minimum_easiness > self.maximum_easiness:
            raise ValueError(
                f"minimum_easiness ({self.minimum_easiness}) exceeds "
                f"maximum_easiness ({self.maximum_easiness})"
            )

    @classmethod
    def from_settings(cls, settings: Any) -> SM2Config:
        return cls(
            minimum_easiness=settings.min_easiness,
            maximum_easiness=settings.max_easiness,
            easiness_decrement=settings.easiness_decrement,
        )


@dataclass(frozen=True)
class ScheduleState:
    """Scheduling inputs for one mastered concept."""

    review_count: int = 0
    review_interval: int = 1  # days
    easiness_factor: float = DEFAULT_EASINESS

    @classmethod
    def from_record(cls, record: MasteryRecord) -> ScheduleState:
        return cls(
            review_count=record.review_count,
            review_interval=record.review_interval,
            easiness_factor=record.easiness_factor,
        )


@dataclass(frozen=True)
class ScheduleUpdate:
    """Result of one review."""

    interval: int  # days
    review_count: int
    easiness_factor: float
    next_review_at: datetime


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 rounding up (not banker's rounding)."""
    return math.floor(value + 0.5)


# =============================================================================
# Scheduler
# =============================================================================


class SpacedRepetitionScheduler:
    """
    Computes review intervals for mastered concepts.

    Usage:
        scheduler = SpacedRepetitionScheduler()
        update = scheduler.schedule_next(ScheduleState.from_record(record), correct, now)
        record = scheduler.apply(record, update)
    """

    def __init__(self, config: SM2Config | None = None):
        """
        Initialize the scheduler.

        Args:
            config: Custom configuration (uses defaults if None)
        """
        self.config = config or SM2Config()

    @classmethod
    def from_settings(cls, settings: Any) -> SpacedRepetitionScheduler:
        return cls(SM2Config.from_settings(settings))

    def clamp_easiness(self, easiness_factor: float) -> float:
        """Clamp an easiness factor into the configured range."""
        return max(self.config.minimum_easiness, min(self.config.maximum_easiness, easiness_factor))

    def schedule_next(
        self,
        state: ScheduleState,
        correct: bool,
        now: datetime | None = None,
    ) -> ScheduleUpdate:
        """
        Calculate the next review after a review attempt.

        Args:
            state: Current scheduling state
            correct: Whether the review was answered correctly
            now: Review time (defaults to UTC now; never mutated)

        Returns:
            ScheduleUpdate with the new interval, count, EF and due date
        """
        if now is None:
            now = datetime.now(UTC)

        easiness = self.clamp_easiness(state.easiness_factor)
        review_count = state.review_count + 1

        if not correct:
            # Failed - back to one day, item gets harder
            interval = 1
            easiness = max(self.config.minimum_easiness, easiness - self.config.easiness_decrement)
        elif review_count <= len(self.config.fixed_intervals):
            interval = self.config.fixed_intervals[review_count - 1]
        else:
            interval = max(1, round_half_up(state.review_interval * easiness))

        update = ScheduleUpdate(
            interval=interval,
            review_count=review_count,
            easiness_factor=easiness,
            next_review_at=now + timedelta(days=interval),
        )
        logger.debug(
            f"Review #{review_count} {'correct' if correct else 'incorrect'}: "
            f"interval {state.review_interval}d -> {interval}d, EF {easiness:.2f}"
        )
        return update

    def apply(self, record: MasteryRecord, update: ScheduleUpdate) -> MasteryRecord:
        """Write a schedule update back onto a mastery record."""
        return replace(
            record,
            review_count=update.review_count,
            review_interval=update.interval,
            easiness_factor=update.easiness_factor,
            next_review_at=update.next_review_at,
        )

    def review(
        self,
        record: MasteryRecord,
        correct: bool,
        now: datetime | None = None,
    ) -> MasteryRecord:
        """schedule_next + apply in one step."""
        update = self.schedule_next(ScheduleState.from_record(record), correct, now)
        return self.apply(record, update)
