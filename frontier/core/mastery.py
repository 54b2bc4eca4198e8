"""
Core Mastery Module.

Tracks the probability that a student knows a concept using Bayesian
Knowledge Tracing (BKT): a two-state hidden Markov model updated once per
observed response with guess / slip / learn probabilities.

Design:
- MasteryLevel: Enum for banding a knowledge probability
- BKTParams: The four fixed BKT parameters
- MasteryRecord: Immutable per (student, concept) state
- BKTTracker: Pure update + advance/review decisions

Every function here is pure. Callers load a record, apply an update and
write the result back; the tracker never holds per-student state.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, replace
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from loguru import logger

# ============================================================================
# Constants
# ============================================================================

ADVANCE_THRESHOLD = 0.9
REVIEW_PROBABILITY_THRESHOLD = 0.7
REVIEW_DAYS_THRESHOLD = 3

MIN_EASINESS = 1.3
MAX_EASINESS = 2.5
DEFAULT_EASINESS = 2.5

# (upper bound, days) - coarse review seed from probability
_SEED_REVIEW_DAYS: tuple[tuple[float, int], ...] = (
    (0.5, 1),
    (0.7, 3),
    (0.9, 7),
)
_MASTERED_REVIEW_DAYS = 21


class MasteryLevel(str, Enum):
    """
    Mastery level banding of a BKT probability.

    Bands are half-open: a probability equal to a boundary belongs to the
    higher band (0.3 is DEVELOPING, 0.9 is MASTERED).
    """

    NOVICE = "novice"  # < 0.3
    DEVELOPING = "developing"  # < 0.5
    PROFICIENT = "proficient"  # < 0.7
    ADVANCED = "advanced"  # < 0.9
    MASTERED = "mastered"  # >= 0.9

    @classmethod
    def from_probability(cls, probability: float) -> MasteryLevel:
        """
        Convert a 0-1 knowledge probability to a level.

        Args:
            probability: BKT probability between 0 and 1

        Returns:
            Corresponding MasteryLevel
        """
        if probability < 0.3:
            return cls.NOVICE
        elif probability < 0.5:
            return cls.DEVELOPING
        elif probability < 0.7:
            return cls.PROFICIENT
        elif probability < 0.9:
            return cls.ADVANCED
        else:
            return cls.MASTERED

    @property
    def display_name(self) -> str:
        """Human-readable name."""
        return self.value.replace("_", " ").title()

    @property
    def emoji(self) -> str:
        """Status glyph for CLI display."""
        return {
            MasteryLevel.NOVICE: "○",
            MasteryLevel.DEVELOPING: "◔",
            MasteryLevel.PROFICIENT: "◑",
            MasteryLevel.ADVANCED: "◕",
            MasteryLevel.MASTERED: "●",
        }[self]

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            MasteryLevel.NOVICE: "red",
            MasteryLevel.DEVELOPING: "yellow",
            MasteryLevel.PROFICIENT: "cyan",
            MasteryLevel.ADVANCED: "blue",
            MasteryLevel.MASTERED: "green",
        }[self]


def ensure_utc(moment: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC; aware ones pass through unchanged."""
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


# ============================================================================
# Parameters
# ============================================================================


@dataclass(frozen=True)
class BKTParams:
    """Bayesian Knowledge Tracing parameters."""

    p_learn: float = 0.3  # P(T): learning on each opportunity
    p_guess: float = 0.2  # P(G): correct without knowing
    p_slip: float = 0.1  # P(S): wrong despite knowing
    p_known_prior: float = 0.3  # P(L0): prior before any evidence

    def __post_init__(self):
        for name in ("p_learn", "p_guess", "p_slip", "p_known_prior"):
            value = getattr(self, name)
            if not (0.0 <= value <= 1.0) or math.isnan(value):
                raise ValueError(f"{name} must be within [0, 1], got {value}")

    @classmethod
    def from_settings(cls, settings: Any) -> BKTParams:
        """Build parameters from the application Settings object."""
        return cls(**settings.get_bkt_config())


DEFAULT_PARAMS = BKTParams()


# ============================================================================
# Mastery Record
# ============================================================================


@dataclass(frozen=True)
class MasteryRecord:
    """
    Mastery state for one (student, concept) pair.

    Created on first observation, replaced on every response, never deleted.
    `version` increments on every write so stores can detect lost updates.
    """

    student_id: str
    concept_id: str
    probability: float = DEFAULT_PARAMS.p_known_prior
    practice_count: int = 0
    correct_count: int = 0
    last_practiced_at: datetime | None = None
    next_review_at: datetime | None = None

    # Spaced repetition state (see delivery/scheduler.py)
    review_count: int = 0
    review_interval: int = 1
    easiness_factor: float = DEFAULT_EASINESS

    # Fluency state (see study/fluency.py)
    consecutive_correct: int = 0
    personal_best_latency_ms: int | None = None

    version: int = 0

    def __post_init__(self):
        if not self.student_id or not self.concept_id:
            raise ValueError("MasteryRecord requires student_id and concept_id")
        if math.isnan(self.probability) or not (0.0 <= self.probability <= 1.0):
            raise ValueError(f"probability must be within [0, 1], got {self.probability}")
        if self.practice_count < 0:
            raise ValueError(f"practice_count must be >= 0, got {self.practice_count}")
        if not (0 <= self.correct_count <= self.practice_count):
            raise ValueError(
                f"correct_count ({self.correct_count}) must be within "
                f"[0, practice_count ({self.practice_count})]"
            )
        if self.review_interval < 1:
            raise ValueError(f"review_interval must be >= 1 day, got {self.review_interval}")
        if self.consecutive_correct < 0:
            raise ValueError("consecutive_correct must be >= 0")
        if math.isnan(self.easiness_factor) or self.easiness_factor <= 0:
            raise ValueError(f"easiness_factor must be > 0, got {self.easiness_factor}")
        object.__setattr__(self, "last_practiced_at", ensure_utc(self.last_practiced_at))
        object.__setattr__(self, "next_review_at", ensure_utc(self.next_review_at))

    @classmethod
    def new(
        cls,
        student_id: str,
        concept_id: str,
        params: BKTParams = DEFAULT_PARAMS,
    ) -> MasteryRecord:
        """First-observation record sitting at the BKT prior."""
        return cls(student_id=student_id, concept_id=concept_id, probability=params.p_known_prior)

    @property
    def level(self) -> MasteryLevel:
        """Level derived from the current probability."""
        return MasteryLevel.from_probability(self.probability)

    @property
    def accuracy(self) -> float:
        """Lifetime accuracy (0 when never practiced)."""
        if self.practice_count == 0:
            return 0.0
        return self.correct_count / self.practice_count

    @property
    def key(self) -> tuple[str, str]:
        return (self.student_id, self.concept_id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dict for persistence (includes the derived level)."""
        data = asdict(self)
        data["level"] = self.level.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MasteryRecord:
        """Rebuild from `to_dict()` output; the derived level is ignored."""
        fields = {k: v for k, v in data.items() if k != "level"}
        return cls(**fields)


# ============================================================================
# BKT Formulas
# ============================================================================


def posterior_probability(
    probability: float,
    correct: bool,
    params: BKTParams = DEFAULT_PARAMS,
) -> float:
    """
    P(Known | observation).

    Correct:   p(1-S) / [p(1-S) + (1-p)G]
    Incorrect: pS / [pS + (1-p)(1-G)]

    A zero denominator leaves the probability unchanged instead of producing NaN.
    """
    if correct:
        numerator = probability * (1 - params.p_slip)
        denominator = numerator + (1 - probability) * params.p_guess
    else:
        numerator = probability * params.p_slip
        denominator = numerator + (1 - probability) * (1 - params.p_guess)

    if denominator <= 0:
        logger.warning(
            f"BKT posterior denominator is zero (p={probability}, correct={correct}); "
            "keeping prior"
        )
        return probability
    return numerator / denominator


def learning_step(posterior: float, p_learn: float = DEFAULT_PARAMS.p_learn) -> float:
    """Apply the learning transition: P(L_next) = post + (1 - post) * P(T)."""
    return posterior + (1 - posterior) * p_learn


def seed_review_date(probability: float, now: datetime) -> datetime:
    """
    Coarse next-review date from a probability.

    <0.5 -> 1 day, <0.7 -> 3 days, <0.9 -> 7 days, else 21 days. Superseded by
    the spaced repetition scheduler once the concept is mastered.
    """
    for upper, days in _SEED_REVIEW_DAYS:
        if probability < upper:
            return now + timedelta(days=days)
    return now + timedelta(days=_MASTERED_REVIEW_DAYS)


def calculate_days_since(last_practiced: datetime, now: datetime | None = None) -> float:
    """
    Calculate days elapsed since a practice.

    Args:
        last_practiced: Timestamp of last practice (can be naive or aware)
        now: Current time (defaults to UTC now)

    Returns:
        Days elapsed as float
    """
    if now is None:
        now = datetime.now(UTC)

    last_practiced = ensure_utc(last_practiced)
    now = ensure_utc(now)

    delta = now - last_practiced
    return delta.total_seconds() / 86400.0


# ============================================================================
# Tracker
# ============================================================================


class BKTTracker:
    """
    Pure Bayesian Knowledge Tracing over MasteryRecord values.

    Usage:
        tracker = BKTTracker()
        record = store.get(student, concept) or MasteryRecord.new(student, concept)
        record = tracker.update(record, correct=True, now=clock.now())
        store.put(record)
    """

    def __init__(
        self,
        params: BKTParams | None = None,
        advance_threshold: float = ADVANCE_THRESHOLD,
        review_threshold: float = REVIEW_PROBABILITY_THRESHOLD,
        review_after_days: float = REVIEW_DAYS_THRESHOLD,
    ):
        self.params = params or DEFAULT_PARAMS
        self.advance_threshold = advance_threshold
        self.review_threshold = review_threshold
        self.review_after_days = review_after_days

    @classmethod
    def from_settings(cls, settings: Any) -> BKTTracker:
        return cls(
            params=BKTParams.from_settings(settings),
            advance_threshold=settings.advance_threshold,
            review_threshold=settings.review_probability_threshold,
            review_after_days=settings.review_days_threshold,
        )

    def initial_record(self, student_id: str, concept_id: str) -> MasteryRecord:
        return MasteryRecord.new(student_id, concept_id, self.params)

    def update_probability(self, probability: float, correct: bool) -> float:
        """Posterior + learning step, clamped to [0, 1]."""
        posterior = posterior_probability(probability, correct, self.params)
        updated = learning_step(posterior, self.params.p_learn)
        return max(0.0, min(1.0, updated))

    def update(
        self,
        record: MasteryRecord,
        correct: bool,
        now: datetime | None = None,
    ) -> MasteryRecord:
        """
        Apply one observed response to a mastery record.

        Args:
            record: Current mastery state
            correct: Whether the response was correct
            now: Observation time (defaults to UTC now)

        Returns:
            New MasteryRecord; the input is left untouched
        """
        if now is None:
            now = datetime.now(UTC)

        new_probability = self.update_probability(record.probability, correct)

        updated = replace(
            record,
            probability=new_probability,
            practice_count=record.practice_count + 1,
            correct_count=record.correct_count + (1 if correct else 0),
            consecutive_correct=record.consecutive_correct + 1 if correct else 0,
            last_practiced_at=now,
            next_review_at=seed_review_date(new_probability, now),
        )

        logger.debug(
            f"BKT {record.student_id}/{record.concept_id}: "
            f"{record.probability:.3f} -> {new_probability:.3f} "
            f"({'correct' if correct else 'incorrect'}, level={updated.level.value})"
        )
        return updated

    def should_advance(self, record: MasteryRecord) -> bool:
        """Ready to move on: probability >= 0.9."""
        return record.probability >= self.advance_threshold

    def should_review(self, record: MasteryRecord, now: datetime | None = None) -> bool:
        """
        Needs review: last practiced more than 3 days ago AND probability < 0.7.

        A record that has never been practiced has nothing to review.
        """
        if record.last_practiced_at is None:
            return False
        days = calculate_days_since(record.last_practiced_at, now)
        return days > self.review_after_days and record.probability < self.review_threshold
