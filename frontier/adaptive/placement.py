"""
Placement Result Synthesizer.

Turns a terminal DiagnosticSearchState into:
- PlacementResult: frontier concept, grade estimate, confidence, gaps
- SkillMap (goal-aware mode only): every goal concept with a status and
  estimated hours left to learn
- Seed MasteryRecords so practice starts from what the diagnostic showed

Everything here is a pure function of the terminal state (plus prior
records for the skill map). No randomness, no I/O.

Boundary policy: the frontier concept is neither mastered nor a gap.
Gaps are confirmed-unknown concepts strictly below the frontier index.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any

from loguru import logger

from frontier.adaptive.diagnostic import DiagnosticSearchState
from frontier.core.errors import ConfigurationError, DiagnosticIncompleteError
from frontier.core.mastery import MasteryRecord, seed_review_date
from frontier.curriculum.catalog import grade_label
from frontier.curriculum.models import ConceptNode

CONFIDENCE_FLOOR = 0.5
CONFIDENCE_CAP = 0.99
CONFIDENCE_SPACE_WEIGHT = 0.3
CONFIDENCE_QUESTION_WEIGHT = 0.2

# Skill map inference
LIKELY_MASTERED_THRESHOLD = 0.85
CONFIRMED_GAP_CEILING = 0.3
DEFAULT_GAP_PROBABILITY = 0.1
DEFAULT_BELOW_FRONTIER_PROBABILITY = 0.6
DEFAULT_ABOVE_FRONTIER_PROBABILITY = 0.2

# Mastery seeding
SEED_MASTERED_PROBABILITY = 0.85
SEED_GAP_PROBABILITY = 0.1

# (max difficulty, hours) - monotonic
_HOURS_BY_DIFFICULTY: tuple[tuple[int, float], ...] = (
    (2, 0.5),
    (4, 1.0),
    (6, 1.5),
    (8, 2.0),
)
_MAX_HOURS = 2.5


def estimate_hours(difficulty: int) -> float:
    """Hours to learn a concept from its difficulty (1-10)."""
    for max_difficulty, hours in _HOURS_BY_DIFFICULTY:
        if difficulty <= max_difficulty:
            return hours
    return _MAX_HOURS


class SkillStatus(str, Enum):
    MASTERED = "mastered"
    GAP = "gap"
    IN_PROGRESS = "in_progress"  # untested, below the frontier: likely mastered
    UNTESTED = "untested"  # untested, above the frontier: likely not mastered


@dataclass(frozen=True)
class SkillMapEntry:
    """One goal concept projected onto diagnostic evidence + prior mastery."""

    code: str
    title: str
    domain: str
    grade_label: str
    difficulty: int
    status: SkillStatus
    probability: float
    estimated_hours: float
    was_tested: bool
    was_correct: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "title": self.title,
            "domain": self.domain,
            "grade_label": self.grade_label,
            "difficulty": self.difficulty,
            "status": self.status.value,
            "probability": self.probability,
            "estimated_hours": self.estimated_hours,
            "was_tested": self.was_tested,
            "was_correct": self.was_correct,
        }


@dataclass(frozen=True)
class SkillMap:
    """Full skill map for a goal-aware diagnostic."""

    goal_id: str
    goal_name: str
    student_id: str
    entries: tuple[SkillMapEntry, ...]
    narrative: str = ""

    def _count(self, *statuses: SkillStatus) -> int:
        return sum(1 for e in self.entries if e.status in statuses)

    @property
    def total_concepts(self) -> int:
        return len(self.entries)

    @property
    def mastered_count(self) -> int:
        return self._count(SkillStatus.MASTERED)

    @property
    def gap_count(self) -> int:
        return self._count(SkillStatus.GAP)

    @property
    def untested_count(self) -> int:
        return self._count(SkillStatus.UNTESTED, SkillStatus.IN_PROGRESS)

    @property
    def total_estimated_hours(self) -> float:
        return sum(estimate_hours(e.difficulty) for e in self.entries)

    @property
    def remaining_estimated_hours(self) -> float:
        return sum(e.estimated_hours for e in self.entries)

    @property
    def completion_percentage(self) -> int:
        if not self.entries:
            return 0
        return round(self.mastered_count / self.total_concepts * 100)

    def to_dict(self) -> dict[str, Any]:
        return {
            "goal_id": self.goal_id,
            "goal_name": self.goal_name,
            "student_id": self.student_id,
            "entries": [e.to_dict() for e in self.entries],
            "total_concepts": self.total_concepts,
            "mastered_count": self.mastered_count,
            "gap_count": self.gap_count,
            "untested_count": self.untested_count,
            "total_estimated_hours": self.total_estimated_hours,
            "remaining_estimated_hours": self.remaining_estimated_hours,
            "completion_percentage": self.completion_percentage,
            "narrative": self.narrative,
        }


@dataclass(frozen=True)
class PlacementResult:
    """Where a student starts, derived from a finished diagnostic."""

    student_id: str
    frontier_concept: ConceptNode
    grade_estimate: float
    confidence: float
    mastered_concepts: tuple[str, ...]
    gap_concepts: tuple[str, ...]
    recommended_start_concept: ConceptNode
    total_correct: int
    total_questions: int
    summary: str
    goal_id: str | None = None
    skill_map: SkillMap | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "student_id": self.student_id,
            "frontier_concept": self.frontier_concept.code,
            "grade_estimate": self.grade_estimate,
            "confidence": self.confidence,
            "mastered_concepts": list(self.mastered_concepts),
            "gap_concepts": list(self.gap_concepts),
            "recommended_start_concept": self.recommended_start_concept.code,
            "total_correct": self.total_correct,
            "total_questions": self.total_questions,
            "summary": self.summary,
            "goal_id": self.goal_id,
            "skill_map": self.skill_map.to_dict() if self.skill_map else None,
        }


# =============================================================================
# Frontier math
# =============================================================================


def highest_known_index(state: DiagnosticSearchState) -> int:
    """Highest confirmed-known index, or -1 if nothing was answered correctly."""
    return max((state.space.index_of(code) for code in state.confirmed_known), default=-1)


def frontier_index(state: DiagnosticSearchState) -> int:
    """Concept just above the highest known one; 0 when nothing is known."""
    highest = highest_known_index(state)
    if highest < 0:
        return 0
    return min(highest + 1, len(state.space) - 1)


def placement_confidence(state: DiagnosticSearchState) -> float:
    """
    0.5 + 0.3 * narrowed share of the space + 0.2 * share of questions used.

    Floors at 0.5, caps at 0.99.
    """
    size = len(state.space)
    remaining = state.search_high - state.search_low + 1
    space_reduction = 1 - remaining / size
    question_ratio = state.questions_answered / state.total_questions
    confidence = (
        CONFIDENCE_FLOOR
        + CONFIDENCE_SPACE_WEIGHT * space_reduction
        + CONFIDENCE_QUESTION_WEIGHT * question_ratio
    )
    return max(CONFIDENCE_FLOOR, min(CONFIDENCE_CAP, confidence))


def _pluralize(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


def _grade_phrase(grade_estimate: float) -> str:
    if grade_estimate < 1:
        return f"Kindergarten ({round(grade_estimate * 10) * 10}%)"
    fraction = round((grade_estimate % 1) * 100)
    return f"Grade {math.floor(grade_estimate)} ({fraction}% through)"


def _summary(
    state: DiagnosticSearchState,
    grade_estimate: float,
    mastered: tuple[str, ...],
    gaps: tuple[str, ...],
) -> str:
    if state.is_goal_aware:
        goal = state.space.goal_name or "goal"
        pct = round(len(mastered) / len(state.space) * 100)
        if state.total_correct == 0:
            return (
                f"Let's start at the beginning of your {goal} journey, "
                "every expert was once a beginner!"
            )
        if gaps:
            return (
                f'You\'ve already mastered {pct}% of the concepts for "{goal}". '
                f"We found {_pluralize(len(gaps), 'gap')} to strengthen. "
                "Let's build your personalized path!"
            )
        return f'Excellent! You\'ve mastered {pct}% of "{goal}" concepts. Let\'s keep building from here!'

    if state.total_correct == 0:
        return "Let's start from the very beginning, every expert was once a beginner!"
    level = _grade_phrase(grade_estimate)
    if gaps:
        return (
            f"Great work! You're at a {level} math level. "
            f"We found {_pluralize(len(gaps), 'gap')} we'll help you fill in."
        )
    return f"Awesome! You're at a {level} math level. You have a solid foundation, let's keep building!"


# =============================================================================
# Synthesis
# =============================================================================


def synthesize_placement(
    state: DiagnosticSearchState,
    prior_records: Mapping[str, MasteryRecord] | None = None,
) -> PlacementResult:
    """
    Build the PlacementResult (and skill map in goal-aware mode).

    Args:
        state: Completed diagnostic state
        prior_records: Persisted mastery by concept code, used by the skill map

    Raises:
        DiagnosticIncompleteError: The diagnostic is still in progress
    """
    if not state.is_complete:
        raise DiagnosticIncompleteError(
            f"Diagnostic for {state.student_id} is still in progress; "
            "finish it before finalizing placement"
        )

    space = state.space
    highest = highest_known_index(state)
    frontier = frontier_index(state)
    frontier_node = space[frontier]

    start_node = frontier_node if highest >= 0 else space[0]
    grade_estimate = frontier_node.grade_rank if highest >= 0 else space[0].grade_rank

    mastered = tuple(r.code for r in state.responses if r.correct)
    gaps = tuple(
        r.code for r in state.responses if not r.correct and r.index < frontier
    )

    skill_map = None
    if state.is_goal_aware:
        skill_map = build_skill_map(state, prior_records or {})

    result = PlacementResult(
        student_id=state.student_id,
        frontier_concept=frontier_node,
        grade_estimate=grade_estimate,
        confidence=placement_confidence(state),
        mastered_concepts=mastered,
        gap_concepts=gaps,
        recommended_start_concept=start_node,
        total_correct=state.total_correct,
        total_questions=state.questions_answered,
        summary=_summary(state, grade_estimate, mastered, gaps),
        goal_id=space.goal_id,
        skill_map=skill_map,
    )

    logger.info(
        f"Placement for {state.student_id}: frontier={frontier_node.code} "
        f"confidence={result.confidence:.2f} mastered={len(mastered)} gaps={len(gaps)}"
    )
    return result


def build_skill_map(
    state: DiagnosticSearchState,
    prior_records: Mapping[str, MasteryRecord],
) -> SkillMap:
    """
    Project every goal concept onto the diagnostic evidence.

    - answered correctly          -> mastered, probability >= 0.85
    - answered incorrectly        -> gap, probability <= 0.3
    - untested, at/below highest  -> in_progress (likely mastered)
    - untested, above highest     -> untested (likely not mastered)
    Untested concepts whose persisted record is already >= 0.85 stay mastered.
    """
    space = state.space
    if not space.is_goal_aware:
        raise ConfigurationError("Skill map can only be generated for goal-aware diagnostics")

    highest = highest_known_index(state)
    answered = {r.code: r.correct for r in state.responses}

    entries: list[SkillMapEntry] = []
    for index, node in enumerate(space):
        prior_record = prior_records.get(node.code)
        prior = prior_record.probability if prior_record else 0.0

        if node.code in state.confirmed_known:
            status = SkillStatus.MASTERED
            probability = max(LIKELY_MASTERED_THRESHOLD, prior)
        elif node.code in state.confirmed_unknown:
            status = SkillStatus.GAP
            probability = min(CONFIRMED_GAP_CEILING, prior or DEFAULT_GAP_PROBABILITY)
        elif index <= highest:
            status = SkillStatus.MASTERED if prior >= LIKELY_MASTERED_THRESHOLD else SkillStatus.IN_PROGRESS
            probability = prior or DEFAULT_BELOW_FRONTIER_PROBABILITY
        else:
            status = SkillStatus.MASTERED if prior >= LIKELY_MASTERED_THRESHOLD else SkillStatus.UNTESTED
            probability = prior or DEFAULT_ABOVE_FRONTIER_PROBABILITY

        entries.append(
            SkillMapEntry(
                code=node.code,
                title=node.display_title,
                domain=node.domain,
                grade_label=grade_label(node.grade_rank),
                difficulty=node.difficulty,
                status=status,
                probability=probability,
                estimated_hours=0.0 if status is SkillStatus.MASTERED else estimate_hours(node.difficulty),
                was_tested=node.code in answered,
                was_correct=answered.get(node.code),
            )
        )

    skill_map = SkillMap(
        goal_id=space.goal_id,
        goal_name=space.goal_name or "Unknown Goal",
        student_id=state.student_id,
        entries=tuple(entries),
    )
    return replace(skill_map, narrative=skill_map_narrative(skill_map))


def skill_map_narrative(skill_map: SkillMap) -> str:
    """Short encouraging narrative for the skill map."""
    goal = skill_map.goal_name
    total = skill_map.total_concepts
    mastered = skill_map.mastered_count
    gaps = skill_map.gap_count

    if mastered == 0:
        return (
            f'Exciting! You\'re starting a brand new adventure with "{goal}". '
            f"We'll work through {_pluralize(total, 'concept')} one step at a time!"
        )
    if gaps > 0:
        return (
            f"Great news! You already know {mastered} out of {total} concepts for "
            f'"{goal}". We found {_pluralize(gaps, "area")} to strengthen.'
        )
    return (
        f'Wow! You\'ve already mastered {skill_map.completion_percentage}% of "{goal}"! '
        f"Just {_pluralize(total - mastered, 'more concept')} to go."
    )


# =============================================================================
# Mastery seeding
# =============================================================================


def seed_mastery_record(
    student_id: str,
    code: str,
    correct: bool,
    now: datetime,
    existing: MasteryRecord | None = None,
) -> MasteryRecord:
    """
    One seeded record: a single diagnostic answer counted as practice.

    Mastered concepts start at 0.85, gaps at 0.1. An existing record keeps its
    history (and version) and only moves further in the direction the
    diagnostic showed.
    """
    record = existing or MasteryRecord(student_id=student_id, concept_id=code)
    if correct:
        probability = SEED_MASTERED_PROBABILITY
        if existing is not None:
            probability = max(probability, existing.probability)
    else:
        probability = SEED_GAP_PROBABILITY
        if existing is not None:
            probability = min(probability, existing.probability)

    return replace(
        record,
        probability=probability,
        practice_count=record.practice_count + 1,
        correct_count=record.correct_count + (1 if correct else 0),
        consecutive_correct=record.consecutive_correct + 1 if correct else 0,
        last_practiced_at=now,
        next_review_at=seed_review_date(probability, now),
    )


def seed_mastery_records(
    result: PlacementResult,
    now: datetime,
    existing: Mapping[str, MasteryRecord] | None = None,
) -> list[MasteryRecord]:
    """
    Initial mastery records implied by a placement.

    Args:
        result: Finalized placement
        now: Seeding time (last practice of every seeded record)
        existing: Persisted records by concept code, if any

    Returns:
        One record per mastered concept, then one per gap
    """
    existing = existing or {}
    seeded = [
        seed_mastery_record(result.student_id, code, True, now, existing.get(code))
        for code in result.mastered_concepts
    ] + [
        seed_mastery_record(result.student_id, code, False, now, existing.get(code))
        for code in result.gap_concepts
    ]
    logger.debug(f"Seeded {len(seeded)} mastery records for {result.student_id}")
    return seeded
