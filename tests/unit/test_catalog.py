"""
Unit tests for the concept catalog and ordered concept spaces.
"""

import pytest

from frontier.core.errors import ConfigurationError, GoalNotFoundError, UnknownConceptError
from frontier.curriculum.catalog import (
    DEFAULT_CURRICULUM,
    InMemoryConceptCatalog,
    grade_label,
    grade_to_rank,
)
from frontier.curriculum.models import ConceptNode, OrderedConceptSpace

GOAL_ID = "goal-place-value"
GOAL_NAME = "Place Value Foundations"


class TestGradeLabels:
    @pytest.mark.parametrize("label,rank", [("K", 0), ("k", 0), ("G1", 1), ("G12", 12), (" g3 ", 3)])
    def test_grade_to_rank(self, label, rank):
        assert grade_to_rank(label) == rank

    @pytest.mark.parametrize("label", ["", "1", "Grade 1", "GK"])
    def test_unrecognized_labels(self, label):
        with pytest.raises(ValueError):
            grade_to_rank(label)

    @pytest.mark.parametrize("rank,label", [(0.0, "K"), (0.6, "K"), (1.0, "G1"), (1.9, "G1"), (2.05, "G2")])
    def test_grade_label(self, rank, label):
        assert grade_label(rank) == label


class TestConceptNode:
    def test_difficulty_range(self):
        with pytest.raises(ValueError, match="difficulty"):
            ConceptNode("X", 1.0, 11)
        with pytest.raises(ValueError, match="difficulty"):
            ConceptNode("X", 1.0, 0)

    def test_requires_code(self):
        with pytest.raises(ValueError):
            ConceptNode("", 1.0, 3)

    def test_display_title_falls_back_to_code(self):
        assert ConceptNode("1.OA.6", 1.4, 5).display_title == "1.OA.6"
        assert ConceptNode("1.OA.6", 1.4, 5, title="Add within 20").display_title == "Add within 20"


class TestOrderedConceptSpace:
    def test_default_space(self, default_space):
        assert len(default_space) == 21
        assert default_space[0].code == "K.CC.1"
        assert default_space[20].code == "1.NBT.6"
        assert default_space.index_of("1.OA.2") == 10
        assert not default_space.is_goal_aware

    def test_default_curriculum_is_sorted(self):
        keys = [node.sort_key for node in DEFAULT_CURRICULUM]
        assert keys == sorted(keys)

    def test_goal_space(self, goal_space):
        assert len(goal_space) == 20
        assert goal_space.codes == tuple(f"C{i:02d}" for i in range(20))
        assert goal_space.goal_id == GOAL_ID
        assert goal_space.goal_name == GOAL_NAME
        assert goal_space.is_goal_aware

    def test_goal_ordering_uses_grade_then_difficulty(self):
        catalog = InMemoryConceptCatalog()
        catalog.add_concept("hard-g1", "G1", 9)
        catalog.add_concept("easy-g2", "G2", 1)
        catalog.add_concept("easy-g1", "G1", 2)
        catalog.add_goal("g", "Goal", ["easy-g2", "hard-g1", "easy-g1"])

        space = OrderedConceptSpace.from_goal(catalog, "g")
        assert space.codes == ("easy-g1", "hard-g1", "easy-g2")
        assert space.node("hard-g1").grade_rank == pytest.approx(1.09)

    def test_equal_keys_keep_catalog_order(self):
        nodes = [ConceptNode("b", 1.0, 3), ConceptNode("a", 1.0, 3), ConceptNode("c", 0.5, 3)]
        space = OrderedConceptSpace.from_nodes(nodes)
        assert space.codes == ("c", "b", "a")

    def test_unknown_code(self, goal_space):
        with pytest.raises(UnknownConceptError) as exc_info:
            goal_space.index_of("missing")
        assert exc_info.value.code == "missing"
        assert "missing" not in goal_space
        assert "C05" in goal_space

    def test_unknown_code_is_a_key_error(self, goal_space):
        with pytest.raises(KeyError):
            goal_space.index_of("missing")

    def test_rejects_duplicates(self):
        nodes = (ConceptNode("a", 1.0, 3), ConceptNode("a", 1.1, 3))
        with pytest.raises(ConfigurationError, match="Duplicate"):
            OrderedConceptSpace(nodes=nodes)

    def test_rejects_unordered_nodes(self):
        nodes = (ConceptNode("b", 2.0, 3), ConceptNode("a", 1.0, 3))
        with pytest.raises(ConfigurationError, match="not ordered"):
            OrderedConceptSpace(nodes=nodes)

    def test_rejects_empty_space(self):
        with pytest.raises(ConfigurationError):
            OrderedConceptSpace(nodes=())

    def test_unknown_goal(self, goal_catalog):
        with pytest.raises(GoalNotFoundError) as exc_info:
            OrderedConceptSpace.from_goal(goal_catalog, "nope")
        assert exc_info.value.goal_id == "nope"
        assert isinstance(exc_info.value, ConfigurationError)

    def test_goal_without_concepts(self, goal_catalog):
        goal_catalog.add_goal("empty", "Empty Goal", ["not-in-catalog"])
        with pytest.raises(ConfigurationError, match="Empty Goal"):
            OrderedConceptSpace.from_goal(goal_catalog, "empty")

    def test_empty_default_curriculum(self):
        with pytest.raises(ConfigurationError):
            OrderedConceptSpace.from_default(InMemoryConceptCatalog(default_nodes=()))

    def test_dict_round_trip(self, goal_space):
        assert OrderedConceptSpace.from_dict(goal_space.to_dict()) == goal_space


class TestPrerequisites:
    def test_successors_in_insertion_order(self, goal_catalog):
        goal_catalog.add_prerequisite("C00", "C02")
        goal_catalog.add_prerequisite("C00", "C01")
        assert [n.code for n in goal_catalog.successors("C00")] == ["C02", "C01"]
        assert goal_catalog.successors("C19") == []

    def test_default_curriculum_codes_allowed(self, catalog):
        catalog.add_prerequisite("K.CC.1", "K.CC.2")
        assert [n.code for n in catalog.successors("K.CC.1")] == ["K.CC.2"]

    def test_unknown_codes_rejected(self, goal_catalog):
        with pytest.raises(UnknownConceptError):
            goal_catalog.add_prerequisite("C00", "missing")
