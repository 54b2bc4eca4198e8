"""
Diagnostic Placement Search.

Finds a student's knowledge frontier in an OrderedConceptSpace within a
bounded number of questions.

Algorithm:
1. Start at a grade-informed midpoint (default curriculum) or the middle
   of the goal's concept space (goal-aware mode)
2. Correct answer  -> the concept is known, raise search_low past it
3. Wrong answer    -> the concept is unknown, lower search_high below it
4. Next probe is the midpoint of [search_low, search_high]; if that index
   was already asked, probe outward (mid+1, mid-1, mid+2, ...) for the
   closest unasked index inside the bounds
5. Stop at min(20, N) questions, when the bounds cross, or when no
   unasked index remains inside the bounds

This is frontier-finding, not classic sorted search: bounds only move on
direct per-question evidence, so one lucky guess or slip cannot make the
search re-derive its bounds from aggregate history.

The state is an immutable, serializable value. Nothing is kept in memory
between answers, so a pending diagnostic can be stored between requests.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from loguru import logger

from frontier.core.errors import DiagnosticCompleteError, InvalidProbeError
from frontier.curriculum.catalog import grade_to_rank
from frontier.curriculum.models import ConceptNode, OrderedConceptSpace

MAX_QUESTIONS = 20


class SearchStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


@dataclass(frozen=True)
class DiagnosticResponse:
    """One answered diagnostic question."""

    code: str
    index: int
    correct: bool
    response_time_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "index": self.index,
            "correct": self.correct,
            "response_time_ms": self.response_time_ms,
        }


@dataclass(frozen=True)
class DiagnosticSearchState:
    """
    Binary search state for one diagnostic session.

    Invariants:
    - a concept code is in at most one of confirmed_known / confirmed_unknown
    - no code appears twice in responses
    - search_low <= search_high + 1 once complete
    """

    student_id: str
    space: OrderedConceptSpace
    total_questions: int
    search_low: int
    search_high: int
    current_index: int | None
    responses: tuple[DiagnosticResponse, ...] = ()
    confirmed_known: frozenset[str] = frozenset()
    confirmed_unknown: frozenset[str] = frozenset()
    status: SearchStatus = SearchStatus.IN_PROGRESS
    session_id: str | None = None

    @property
    def questions_answered(self) -> int:
        return len(self.responses)

    @property
    def asked_indices(self) -> frozenset[int]:
        return frozenset(r.index for r in self.responses)

    @property
    def asked_codes(self) -> tuple[str, ...]:
        return tuple(r.code for r in self.responses)

    @property
    def is_complete(self) -> bool:
        return self.status is SearchStatus.COMPLETE

    @property
    def is_goal_aware(self) -> bool:
        return self.space.is_goal_aware

    @property
    def current_concept(self) -> ConceptNode | None:
        if self.current_index is None:
            return None
        return self.space[self.current_index]

    @property
    def total_correct(self) -> int:
        return sum(1 for r in self.responses if r.correct)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for storage between requests."""
        return {
            "student_id": self.student_id,
            "session_id": self.session_id,
            "space": self.space.to_dict(),
            "total_questions": self.total_questions,
            "search_low": self.search_low,
            "search_high": self.search_high,
            "current_index": self.current_index,
            "responses": [r.to_dict() for r in self.responses],
            "confirmed_known": sorted(self.confirmed_known),
            "confirmed_unknown": sorted(self.confirmed_unknown),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DiagnosticSearchState:
        return cls(
            student_id=data["student_id"],
            session_id=data.get("session_id"),
            space=OrderedConceptSpace.from_dict(data["space"]),
            total_questions=data["total_questions"],
            search_low=data["search_low"],
            search_high=data["search_high"],
            current_index=data["current_index"],
            responses=tuple(DiagnosticResponse(**r) for r in data["responses"]),
            confirmed_known=frozenset(data["confirmed_known"]),
            confirmed_unknown=frozenset(data["confirmed_unknown"]),
            status=SearchStatus(data["status"]),
        )


def grade_midpoint(grade_level: str | None, size: int) -> int:
    """
    Starting index for the default curriculum from the student's grade.

    K -> 3 (middle of kindergarten), G1 -> 10 (middle of grade 1),
    G2-G5 -> three from the top, anything else -> the middle.
    """
    midpoint = size // 2
    if grade_level is not None:
        grade = grade_to_rank(grade_level)
        if grade == 0:
            midpoint = 3
        elif grade == 1:
            midpoint = 10
        elif 2 <= grade <= 5:
            midpoint = size - 3
    return max(0, min(midpoint, size - 1))


class DiagnosticSearch:
    """
    Pure engine over DiagnosticSearchState.

    Usage:
        search = DiagnosticSearch()
        state = search.start(space, student_id="s1", grade_level="G1")
        while not state.is_complete:
            node = search.probe(state)
            state = search.process_answer(state, state.current_index, ask(node))
    """

    def __init__(self, max_questions: int = MAX_QUESTIONS):
        if max_questions < 1:
            raise ValueError(f"max_questions must be >= 1, got {max_questions}")
        self.max_questions = max_questions

    @classmethod
    def from_settings(cls, settings: Any) -> DiagnosticSearch:
        return cls(max_questions=settings.diagnostic_max_questions)

    def start(
        self,
        space: OrderedConceptSpace,
        student_id: str,
        grade_level: str | None = None,
        session_id: str | None = None,
    ) -> DiagnosticSearchState:
        """
        Create a fresh search state.

        Goal-aware spaces start in their middle; the default curriculum
        starts at the grade midpoint.
        """
        size = len(space)
        if space.is_goal_aware:
            midpoint = size // 2
        else:
            midpoint = grade_midpoint(grade_level, size)

        state = DiagnosticSearchState(
            student_id=student_id,
            session_id=session_id,
            space=space,
            total_questions=min(self.max_questions, size),
            search_low=0,
            search_high=size - 1,
            current_index=midpoint,
        )
        logger.info(
            f"Diagnostic started for {student_id}: {size} concepts, "
            f"{state.total_questions} questions max, first probe {space[midpoint].code}"
            + (f" (goal {space.goal_id})" if space.is_goal_aware else "")
        )
        return state

    # -------------------------------------------------------------------------
    # Probe selection
    # -------------------------------------------------------------------------

    def select_next(self, state: DiagnosticSearchState) -> int | None:
        """
        Index of the next concept to probe, or None when the search is done.

        None is a normal terminal condition (cap reached, bounds crossed, or
        every index inside the bounds already asked), not an error.
        """
        low, high = state.search_low, state.search_high
        if state.questions_answered >= state.total_questions or low > high:
            return None

        asked = state.asked_indices
        mid = (low + high) // 2
        if mid not in asked:
            return mid

        # Linear probing around mid; offset can never exceed the space size
        for offset in range(1, len(state.space) + 1):
            up, down = mid + offset, mid - offset
            if up > high and down < low:
                break
            if up <= high and up not in asked:
                return up
            if down >= low and down not in asked:
                return down

        logger.warning(
            f"Diagnostic search space exhausted for {state.student_id} "
            f"within [{low}, {high}] after {state.questions_answered} questions"
        )
        return None

    def probe(self, state: DiagnosticSearchState) -> ConceptNode | None:
        """Concept to ask next, or None once the diagnostic is complete."""
        if state.is_complete:
            return None
        return state.current_concept

    # -------------------------------------------------------------------------
    # Answers
    # -------------------------------------------------------------------------

    def process_answer(
        self,
        state: DiagnosticSearchState,
        index: int,
        correct: bool,
        response_time_ms: int = 0,
    ) -> DiagnosticSearchState:
        """
        Record one answer and move the bounds.

        Raises:
            DiagnosticCompleteError: The search already finished
            InvalidProbeError: Index outside the space or already asked
        """
        if state.is_complete:
            raise DiagnosticCompleteError(
                f"Diagnostic for {state.student_id} is already complete"
            )
        if not (0 <= index < len(state.space)):
            raise InvalidProbeError(
                f"Probe index {index} outside concept space of {len(state.space)}"
            )
        if index in state.asked_indices:
            raise InvalidProbeError(
                f"Concept {state.space[index].code} was already asked in this diagnostic"
            )
        if response_time_ms < 0:
            raise InvalidProbeError(f"response_time_ms must be >= 0, got {response_time_ms}")

        node = state.space[index]
        response = DiagnosticResponse(
            code=node.code, index=index, correct=correct, response_time_ms=response_time_ms
        )

        if correct:
            updated = replace(
                state,
                responses=state.responses + (response,),
                confirmed_known=state.confirmed_known | {node.code},
                search_low=max(state.search_low, index + 1),
            )
        else:
            updated = replace(
                state,
                responses=state.responses + (response,),
                confirmed_unknown=state.confirmed_unknown | {node.code},
                search_high=min(state.search_high, index - 1),
            )

        next_index = self.select_next(updated)
        status = SearchStatus.COMPLETE if next_index is None else SearchStatus.IN_PROGRESS
        updated = replace(updated, current_index=next_index, status=status)

        logger.debug(
            f"Diagnostic {state.student_id}: {node.code}@{index} "
            f"{'correct' if correct else 'incorrect'} -> "
            f"[{updated.search_low}, {updated.search_high}], next={next_index}"
        )
        if updated.is_complete:
            logger.info(
                f"Diagnostic complete for {state.student_id} after "
                f"{updated.questions_answered} questions"
            )
        return updated

    def answer_by_code(
        self,
        state: DiagnosticSearchState,
        code: str,
        correct: bool,
        response_time_ms: int = 0,
    ) -> DiagnosticSearchState:
        """process_answer keyed by concept code (UnknownConceptError if absent)."""
        return self.process_answer(state, state.space.index_of(code), correct, response_time_ms)

    def finish(self, state: DiagnosticSearchState) -> DiagnosticSearchState:
        """End a diagnostic early (student left); bounds stay as answered."""
        if state.is_complete:
            return state
        logger.info(
            f"Diagnostic for {state.student_id} ended early after "
            f"{state.questions_answered} questions"
        )
        return replace(state, status=SearchStatus.COMPLETE, current_index=None)
