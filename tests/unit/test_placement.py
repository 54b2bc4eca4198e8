"""
Unit tests for placement synthesis, skill maps and mastery seeding
(frontier.adaptive.placement).
"""

from datetime import timedelta

import pytest

from frontier.adaptive.placement import (
    PlacementResult,
    SkillStatus,
    build_skill_map,
    estimate_hours,
    frontier_index,
    seed_mastery_record,
    seed_mastery_records,
    synthesize_placement,
)
from frontier.core.errors import ConfigurationError, DiagnosticIncompleteError
from frontier.core.mastery import MasteryLevel, MasteryRecord


def answer_all(search, state, answers):
    """Answer (index, correct) pairs in order."""
    for index, correct in answers:
        state = search.process_answer(state, index, correct)
    return state


@pytest.fixture
def scenario_state(search, goal_space):
    """20-concept goal: correct@10, correct@15, incorrect@17, incorrect@16."""
    state = search.start(goal_space, "student-1")
    return answer_all(search, state, [(10, True), (15, True), (17, False), (16, False)])


@pytest.fixture
def gap_state(search, goal_space):
    """Correct@10, then an out-of-order miss at index 3 crosses the bounds."""
    state = search.start(goal_space, "student-1")
    return answer_all(search, state, [(10, True), (3, False)])


class TestEndToEndScenario:
    def test_placement(self, scenario_state):
        result = synthesize_placement(scenario_state)

        assert scenario_state.search_low == 16
        assert scenario_state.search_high == 15
        assert result.frontier_concept.code == "C16"
        assert result.recommended_start_concept.code == "C16"
        assert result.mastered_concepts == ("C10", "C15")
        assert result.gap_concepts == ()
        assert result.total_correct == 2
        assert result.total_questions == 4
        assert result.goal_id == "goal-place-value"

    def test_confidence(self, scenario_state):
        # Fully narrowed space, 4 of 20 questions used
        assert synthesize_placement(scenario_state).confidence == pytest.approx(0.84)

    def test_grade_estimate_is_frontier_rank(self, scenario_state):
        result = synthesize_placement(scenario_state)
        assert result.grade_estimate == result.frontier_concept.grade_rank

    def test_summary_mentions_goal(self, scenario_state):
        result = synthesize_placement(scenario_state)
        assert result.summary == (
            "Excellent! You've mastered 10% of \"Place Value Foundations\" concepts. "
            "Let's keep building from here!"
        )


class TestFrontier:
    def test_nothing_known(self, search, default_space):
        state = search.start(default_space, "student-1", "G1")
        state = answer_all(search, state, [(10, False), (4, False), (1, False), (0, False)])
        result = synthesize_placement(state)

        assert frontier_index(state) == 0
        assert result.frontier_concept.code == "K.CC.1"
        assert result.recommended_start_concept.code == "K.CC.1"
        assert result.grade_estimate == 0.0
        assert result.mastered_concepts == ()
        assert result.gap_concepts == ()
        assert result.summary.startswith("Let's start from the very beginning")

    def test_everything_known_caps_at_last_concept(self, search, default_space):
        state = search.start(default_space, "student-1", "G1")
        state = answer_all(search, state, [(i, True) for i in (10, 15, 18, 19, 20)])
        result = synthesize_placement(state)

        assert result.frontier_concept.code == "1.NBT.6"
        assert result.grade_estimate == pytest.approx(1.9)

    def test_default_grade_summary(self, search, default_space):
        state = search.start(default_space, "student-1", "G1")
        state = answer_all(search, state, [(10, True), (15, False), (12, True), (13, False)])
        result = synthesize_placement(state)

        assert result.frontier_concept.code == "1.OA.6"
        assert result.skill_map is None
        assert result.summary == (
            "Awesome! You're at a Grade 1 (40% through) math level. "
            "You have a solid foundation, let's keep building!"
        )

    def test_kindergarten_summary(self, search, default_space):
        state = search.start(default_space, "student-1", "K")
        state = answer_all(search, state, [(3, True), (12, False), (7, False), (5, False), (4, False)])
        result = synthesize_placement(state)

        assert result.frontier_concept.code == "K.CC.5"
        assert "Kindergarten (40%)" in result.summary

    def test_incomplete_diagnostic_rejected(self, search, goal_space):
        state = search.start(goal_space, "student-1")
        with pytest.raises(DiagnosticIncompleteError):
            synthesize_placement(state)

    def test_finished_early(self, search, goal_space):
        result = synthesize_placement(search.finish(search.start(goal_space, "student-1")))
        assert result.frontier_concept.code == "C00"
        assert result.confidence == pytest.approx(0.5)
        assert result.total_questions == 0


class TestGaps:
    def test_miss_below_frontier_is_a_gap(self, gap_state):
        result = synthesize_placement(gap_state)

        assert result.frontier_concept.code == "C11"
        assert result.mastered_concepts == ("C10",)
        assert result.gap_concepts == ("C03",)
        assert "We found 1 gap to strengthen" in result.summary

    def test_crossed_bounds_confidence_is_capped(self, gap_state):
        # Width term exceeds 1 once the bounds cross by more than one
        assert gap_state.search_high - gap_state.search_low + 1 < 0
        assert synthesize_placement(gap_state).confidence == pytest.approx(0.94)

    def test_frontier_concept_is_never_a_gap(self, search, goal_space):
        state = search.start(goal_space, "student-1")
        state = answer_all(search, state, [(10, True), (11, False)])
        result = synthesize_placement(state)

        assert result.frontier_concept.code == "C11"
        assert "C11" not in result.gap_concepts
        assert "C11" not in result.mastered_concepts


class TestConfidenceBounds:
    def test_confidence_always_within_bounds(self, search, goal_space):
        for pattern in range(1 << 10):
            state = search.start(goal_space, "s")
            while not state.is_complete:
                bit = (pattern >> (state.questions_answered % 10)) & 1
                state = search.process_answer(state, state.current_index, bool(bit))
            confidence = synthesize_placement(state).confidence
            assert 0.5 <= confidence <= 0.99, pattern


class TestEstimateHours:
    @pytest.mark.parametrize(
        "difficulty,hours",
        [(1, 0.5), (2, 0.5), (3, 1.0), (4, 1.0), (5, 1.5), (6, 1.5), (7, 2.0), (8, 2.0), (9, 2.5), (10, 2.5)],
    )
    def test_hours_table(self, difficulty, hours):
        assert estimate_hours(difficulty) == hours

    def test_monotonic(self):
        hours = [estimate_hours(d) for d in range(1, 11)]
        assert hours == sorted(hours)


class TestSkillMap:
    def test_statuses(self, gap_state):
        skill_map = synthesize_placement(gap_state).skill_map
        by_code = {entry.code: entry for entry in skill_map.entries}

        assert by_code["C10"].status is SkillStatus.MASTERED
        assert by_code["C10"].probability == 0.85
        assert by_code["C10"].estimated_hours == 0.0
        assert by_code["C10"].was_tested and by_code["C10"].was_correct

        assert by_code["C03"].status is SkillStatus.GAP
        assert by_code["C03"].probability == 0.1
        assert by_code["C03"].estimated_hours == 1.0
        assert by_code["C03"].was_correct is False

        assert by_code["C05"].status is SkillStatus.IN_PROGRESS
        assert by_code["C05"].probability == 0.6
        assert not by_code["C05"].was_tested
        assert by_code["C05"].was_correct is None

        assert by_code["C11"].status is SkillStatus.UNTESTED
        assert by_code["C11"].probability == 0.2

    def test_summary_stats(self, gap_state):
        skill_map = synthesize_placement(gap_state).skill_map

        assert skill_map.total_concepts == 20
        assert skill_map.mastered_count == 1
        assert skill_map.gap_count == 1
        assert skill_map.untested_count == 18
        assert skill_map.completion_percentage == 5
        assert skill_map.remaining_estimated_hours < skill_map.total_estimated_hours
        assert skill_map.goal_name == "Place Value Foundations"
        assert skill_map.narrative == (
            'Great news! You already know 1 out of 20 concepts for "Place Value Foundations". '
            "We found 1 area to strengthen."
        )

    def test_scenario_skill_map(self, scenario_state):
        skill_map = synthesize_placement(scenario_state).skill_map
        statuses = {entry.code: entry.status for entry in skill_map.entries}

        assert statuses["C16"] is SkillStatus.GAP
        assert statuses["C17"] is SkillStatus.GAP
        assert statuses["C18"] is SkillStatus.UNTESTED
        assert statuses["C14"] is SkillStatus.IN_PROGRESS

    def test_prior_records_are_respected(self, gap_state, make_record):
        prior = {
            "C10": make_record("C10", probability=0.95),
            "C03": make_record("C03", probability=0.05),
            "C05": make_record("C05", probability=0.4),
            "C18": make_record("C18", probability=0.9),
        }
        skill_map = build_skill_map(gap_state, prior)
        by_code = {entry.code: entry for entry in skill_map.entries}

        assert by_code["C10"].probability == 0.95
        assert by_code["C03"].probability == 0.05
        assert by_code["C05"].status is SkillStatus.IN_PROGRESS
        assert by_code["C05"].probability == 0.4
        assert by_code["C18"].status is SkillStatus.MASTERED
        assert by_code["C18"].estimated_hours == 0.0

    def test_first_timer_narrative(self, search, goal_space):
        state = search.start(goal_space, "student-1")
        state = answer_all(search, state, [(10, False), (4, False), (1, False), (0, False)])
        result = synthesize_placement(state)

        assert result.skill_map.narrative.startswith("Exciting! You're starting a brand new adventure")
        assert result.summary.startswith("Let's start at the beginning of your Place Value Foundations journey")

    def test_requires_goal_aware_state(self, search, default_space):
        state = search.finish(search.start(default_space, "student-1", "G1"))
        with pytest.raises(ConfigurationError):
            build_skill_map(state, {})

    def test_serializable(self, gap_state):
        data = synthesize_placement(gap_state).to_dict()
        assert data["skill_map"]["gap_count"] == 1
        assert data["skill_map"]["entries"][3]["status"] == "gap"
        assert data["frontier_concept"] == "C11"


class TestSeeding:
    def test_seed_records(self, gap_state, now):
        result = synthesize_placement(gap_state)
        records = seed_mastery_records(result, now)

        assert [r.concept_id for r in records] == ["C10", "C03"]
        mastered, gap = records

        assert mastered.probability == 0.85
        assert mastered.level is MasteryLevel.ADVANCED
        assert (mastered.practice_count, mastered.correct_count) == (1, 1)
        assert mastered.next_review_at == now + timedelta(days=7)

        assert gap.probability == 0.1
        assert gap.level is MasteryLevel.NOVICE
        assert (gap.practice_count, gap.correct_count) == (1, 0)
        assert gap.next_review_at == now + timedelta(days=1)
        assert gap.last_practiced_at == now

    def test_existing_record_keeps_history(self, now, make_record):
        existing = make_record(
            "C10", probability=0.95, practice_count=5, correct_count=4, version=2
        )
        seeded = seed_mastery_record("student-1", "C10", True, now, existing)

        assert seeded.probability == 0.95
        assert (seeded.practice_count, seeded.correct_count) == (6, 5)
        assert seeded.version == 2

    def test_existing_gap_only_moves_down(self, now, make_record):
        existing = make_record("C03", probability=0.6, practice_count=3, correct_count=2)
        seeded = seed_mastery_record("student-1", "C03", False, now, existing)
        assert seeded.probability == 0.1
        assert seeded.consecutive_correct == 0

    def test_result_is_a_frozen_value(self, gap_state):
        result = synthesize_placement(gap_state)
        assert isinstance(result, PlacementResult)
        with pytest.raises(AttributeError):
            result.confidence = 1.0

    def test_new_record_for_seed(self, now):
        record = seed_mastery_record("student-1", "C07", True, now)
        assert isinstance(record, MasteryRecord)
        assert record.version == 0
