"""
Placement Service.

High-level operations over the pure engines:
- Diagnostic placement (start, probe, answer, finalize)
- Practice and review answers (BKT + spaced repetition)
- Plateau detection and the true-mastery gate
- Review suggestions and next-concept recommendation

The engines themselves never touch storage. Methods taking explicit
records are pure; the `seed_placement`, `apply_practice` and
`apply_review` helpers run load-compute-store against the MasteryStore
under its per-key lock.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from loguru import logger

from frontier.adaptive.diagnostic import DiagnosticSearch, DiagnosticSearchState
from frontier.adaptive.path_sequencer import recommend_next_concept
from frontier.adaptive.placement import PlacementResult, seed_mastery_record, synthesize_placement
from frontier.core.clock import Clock, SystemClock
from frontier.core.mastery import BKTTracker, MasteryRecord
from frontier.core.store import InMemoryMasteryStore, MasteryStore
from frontier.curriculum.catalog import ConceptCatalog
from frontier.curriculum.models import ConceptNode, OrderedConceptSpace
from frontier.delivery.review_queue import (
    MAX_REVIEW_ITEMS,
    MINUTES_PER_REVIEW,
    REFRESHER_COUNT,
    REFRESHER_STALE_DAYS,
    ReviewSession,
    ReviewSuggestion,
    build_review_session,
    review_suggestion,
)
from frontier.delivery.scheduler import ScheduleState, ScheduleUpdate, SpacedRepetitionScheduler
from frontier.study.fluency import FlatlineResult, FluencyConfig, check_flatline
from frontier.study.mastery_gate import GateResponse, MasteryGateResult, evaluate_true_mastery


class PlacementService:
    """
    Facade over the placement, mastery and scheduling engines.

    Usage:
        service = PlacementService(catalog)
        state = service.place_student("s1", grade_level="G1")
        while (node := service.next_diagnostic_probe(state)) is not None:
            state = service.record_diagnostic_answer(state, node.code, ask(node))
        result = service.finalize_placement(state)
        service.seed_placement(result)
    """

    def __init__(
        self,
        catalog: ConceptCatalog,
        store: MasteryStore | None = None,
        clock: Clock | None = None,
        settings: Any | None = None,
    ):
        """
        Initialize the service.

        Args:
            catalog: Concept-graph query interface
            store: Mastery persistence (in-memory if None)
            clock: Time source (system UTC clock if None)
            settings: Settings object from config.get_settings(); engine
                defaults are used if None
        """
        self.catalog = catalog
        self.store = store if store is not None else InMemoryMasteryStore()
        self.clock = clock or SystemClock()
        self.settings = settings

        if settings is not None:
            self.tracker = BKTTracker.from_settings(settings)
            self.search = DiagnosticSearch.from_settings(settings)
            self.scheduler = SpacedRepetitionScheduler.from_settings(settings)
            self.fluency_config = FluencyConfig.from_settings(settings)
        else:
            self.tracker = BKTTracker()
            self.search = DiagnosticSearch()
            self.scheduler = SpacedRepetitionScheduler()
            self.fluency_config = FluencyConfig()

    def _review_options(self) -> dict[str, int]:
        if self.settings is None:
            return {
                "max_items": MAX_REVIEW_ITEMS,
                "refresher_count": REFRESHER_COUNT,
                "refresher_stale_days": REFRESHER_STALE_DAYS,
                "minutes_per_review": MINUTES_PER_REVIEW,
            }
        return {
            "max_items": self.settings.review_session_size,
            "refresher_count": self.settings.review_refresher_count,
            "refresher_stale_days": self.settings.refresher_stale_days,
            "minutes_per_review": self.settings.minutes_per_review,
        }

    # =========================================================================
    # Diagnostic Placement
    # =========================================================================

    def place_student(
        self,
        student_id: str,
        grade_level: str | None = None,
        goal_id: str | None = None,
        session_id: str | None = None,
    ) -> DiagnosticSearchState:
        """
        Start a diagnostic.

        Raises:
            GoalNotFoundError: goal_id is unknown to the catalog
            ConfigurationError: The goal (or default curriculum) has no concepts
        """
        if goal_id is not None:
            space = OrderedConceptSpace.from_goal(self.catalog, goal_id)
        else:
            space = OrderedConceptSpace.from_default(self.catalog)
        return self.search.start(space, student_id, grade_level=grade_level, session_id=session_id)

    def next_diagnostic_probe(self, state: DiagnosticSearchState) -> ConceptNode | None:
        """Concept to ask next; None once the diagnostic is complete."""
        return self.search.probe(state)

    def record_diagnostic_answer(
        self,
        state: DiagnosticSearchState,
        code: str,
        correct: bool,
        response_time_ms: int = 0,
    ) -> DiagnosticSearchState:
        """Record one diagnostic answer by concept code."""
        return self.search.answer_by_code(state, code, correct, response_time_ms)

    def end_diagnostic(self, state: DiagnosticSearchState) -> DiagnosticSearchState:
        """Stop a diagnostic early so it can be finalized."""
        return self.search.finish(state)

    def finalize_placement(self, state: DiagnosticSearchState) -> PlacementResult:
        """
        Synthesize the placement of a completed diagnostic.

        Goal-aware diagnostics also get a skill map, which takes the
        student's persisted mastery into account.
        """
        prior: dict[str, MasteryRecord] = {}
        if state.is_goal_aware:
            for code in state.space.codes:
                record = self.store.get(state.student_id, code)
                if record is not None:
                    prior[code] = record
        return synthesize_placement(state, prior)

    def seed_placement(self, result: PlacementResult) -> list[MasteryRecord]:
        """Persist the mastery records implied by a placement."""
        now = self.clock.now()
        stored: list[MasteryRecord] = []
        answers = [(c, True) for c in result.mastered_concepts] + [
            (c, False) for c in result.gap_concepts
        ]
        for code, correct in answers:
            with self.store.locked(result.student_id, code):
                existing = self.store.get(result.student_id, code)
                record = seed_mastery_record(result.student_id, code, correct, now, existing)
                stored.append(self.store.put(record))

        logger.info(f"Seeded {len(stored)} mastery records for {result.student_id}")
        return stored

    # =========================================================================
    # Practice and Review
    # =========================================================================

    def record_practice_answer(
        self,
        record: MasteryRecord,
        correct: bool,
        now: datetime | None = None,
    ) -> MasteryRecord:
        """Apply one practice answer to a record (pure; nothing is stored)."""
        return self.tracker.update(record, correct, now or self.clock.now())

    def schedule_review(
        self,
        record: MasteryRecord,
        correct: bool,
        now: datetime | None = None,
    ) -> ScheduleUpdate:
        """Next review interval for a mastered concept after one review."""
        return self.scheduler.schedule_next(
            ScheduleState.from_record(record), correct, now or self.clock.now()
        )

    def record_review_answer(
        self,
        record: MasteryRecord,
        correct: bool,
        now: datetime | None = None,
    ) -> MasteryRecord:
        """
        Apply one review answer: BKT update, then the scheduler's due date.

        The scheduler's next_review_at replaces the coarse BKT seed.
        """
        now = now or self.clock.now()
        update = self.schedule_review(record, correct, now)
        return self.scheduler.apply(self.tracker.update(record, correct, now), update)

    def apply_practice(self, student_id: str, concept_id: str, correct: bool) -> MasteryRecord:
        """Load, update and store one practice answer under the per-key lock."""
        with self.store.locked(student_id, concept_id):
            record = self.store.get(student_id, concept_id) or self.tracker.initial_record(
                student_id, concept_id
            )
            return self.store.put(self.record_practice_answer(record, correct))

    def apply_review(self, student_id: str, concept_id: str, correct: bool) -> MasteryRecord:
        """Load, review and store one concept under the per-key lock."""
        with self.store.locked(student_id, concept_id):
            record = self.store.get(student_id, concept_id) or self.tracker.initial_record(
                student_id, concept_id
            )
            return self.store.put(self.record_review_answer(record, correct))

    # =========================================================================
    # Fluency and Gating
    # =========================================================================

    def check_flatline(self, latency_window: Sequence[float]) -> FlatlineResult:
        """Plateau check over a latency window, oldest first."""
        return check_flatline(
            latency_window,
            window=self.fluency_config.flatline_window,
            threshold=self.fluency_config.flatline_threshold,
        )

    def evaluate_mastery_gate(
        self,
        responses: Sequence[GateResponse],
        retention_score: float | None = None,
    ) -> MasteryGateResult:
        return evaluate_true_mastery(responses, retention_score)

    # =========================================================================
    # Review Queue and Sequencing
    # =========================================================================

    def review_suggestion(
        self,
        records: Iterable[MasteryRecord] | None = None,
        student_id: str | None = None,
    ) -> ReviewSuggestion:
        """Review nudge from explicit records or from a student's stored records."""
        records = self._records_for(records, student_id)
        minutes = self._review_options()["minutes_per_review"]
        return review_suggestion(records, self.clock.now(), minutes_per_review=minutes)

    def build_review_session(
        self,
        records: Iterable[MasteryRecord] | None = None,
        student_id: str | None = None,
    ) -> ReviewSession | None:
        records = self._records_for(records, student_id)
        return build_review_session(records, self.clock.now(), **self._review_options())

    def recommend_next_concept(self, student_id: str, concept_code: str) -> ConceptNode | None:
        """Next concept after `concept_code`, skipping mastered successors."""
        successors = list(self.catalog.successors(concept_code))
        records = {
            node.code: record
            for node in successors
            if (record := self.store.get(student_id, node.code)) is not None
        }
        return recommend_next_concept(successors, records, self.tracker.advance_threshold)

    def _records_for(
        self,
        records: Iterable[MasteryRecord] | None,
        student_id: str | None,
    ) -> list[MasteryRecord]:
        if records is not None:
            return list(records)
        if student_id is None:
            raise ValueError("Pass either records or student_id")
        return self.store.for_student(student_id)
