"""
Concept catalog seam and the default curriculum slice.

The concept-graph store (nodes + prerequisite edges) lives outside this
package. The engines only need it through the ConceptCatalog protocol;
InMemoryConceptCatalog backs tests, the CLI and small deployments.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from frontier.core.errors import ConfigurationError, GoalNotFoundError, UnknownConceptError
from frontier.curriculum.models import ConceptNode

_GRADE_PATTERN = re.compile(r"^G(\d+)$")

# Goal-space rank = grade number + difficulty * 0.01
GOAL_DIFFICULTY_RANK_WEIGHT = 0.01


def grade_to_rank(grade_level: str) -> int:
    """
    Map a grade label ("K", "G1", "G2", ...) to its numeric grade.

    Raises:
        ValueError: Unrecognized label
    """
    label = grade_level.strip().upper()
    if label == "K":
        return 0
    match = _GRADE_PATTERN.match(label)
    if not match:
        raise ValueError(f"Unrecognized grade level: {grade_level!r}")
    return int(match.group(1))


def grade_label(grade_rank: float) -> str:
    """Inverse of grade_to_rank for display: 0.4 -> "K", 1.55 -> "G1"."""
    if grade_rank < 1:
        return "K"
    return f"G{math.floor(grade_rank)}"


# =============================================================================
# Default Curriculum (K-G1 Math)
# =============================================================================

_COUNTING = "Counting & Cardinality"
_OPERATIONS = "Operations & Algebraic Thinking"
_BASE_TEN = "Number & Operations in Base Ten"

DEFAULT_CURRICULUM: tuple[ConceptNode, ...] = (
    # Kindergarten counting (easiest)
    ConceptNode("K.CC.1", 0.0, 1, "Count to 100 by ones and tens", _COUNTING),
    ConceptNode("K.CC.2", 0.1, 2, "Count forward from a given number", _COUNTING),
    ConceptNode("K.CC.3", 0.2, 2, "Write numbers from 0 to 20", _COUNTING),
    ConceptNode("K.CC.4", 0.3, 3, "Connect counting to cardinality", _COUNTING),
    ConceptNode("K.CC.5", 0.4, 3, "Count to answer 'how many?'", _COUNTING),
    ConceptNode("K.CC.6", 0.5, 4, "Compare numbers of objects in groups", _COUNTING),
    ConceptNode("K.CC.7", 0.6, 4, "Compare two written numerals", _COUNTING),
    # Grade 1 operations
    ConceptNode("1.OA.1", 1.0, 3, "Add and subtract within 20 in word problems", _OPERATIONS),
    ConceptNode("1.OA.5", 1.1, 3, "Relate counting to addition and subtraction", _OPERATIONS),
    ConceptNode("1.OA.7", 1.2, 4, "Understand the meaning of the equal sign", _OPERATIONS),
    ConceptNode("1.OA.2", 1.25, 4, "Word problems adding three whole numbers", _OPERATIONS),
    ConceptNode("1.OA.3", 1.3, 5, "Apply properties of operations", _OPERATIONS),
    ConceptNode("1.OA.4", 1.35, 5, "Subtraction as an unknown-addend problem", _OPERATIONS),
    ConceptNode("1.OA.6", 1.4, 5, "Add and subtract within 20 fluently", _OPERATIONS),
    ConceptNode("1.OA.8", 1.5, 6, "Find the unknown number in an equation", _OPERATIONS),
    # Grade 1 number & base ten
    ConceptNode("1.NBT.1", 1.55, 3, "Count to 120", _BASE_TEN),
    ConceptNode("1.NBT.2", 1.6, 5, "Understand tens and ones", _BASE_TEN),
    ConceptNode("1.NBT.5", 1.65, 5, "Find 10 more or 10 less mentally", _BASE_TEN),
    ConceptNode("1.NBT.3", 1.7, 5, "Compare two-digit numbers", _BASE_TEN),
    ConceptNode("1.NBT.4", 1.8, 6, "Add within 100", _BASE_TEN),
    ConceptNode("1.NBT.6", 1.9, 6, "Subtract multiples of 10", _BASE_TEN),
)


# =============================================================================
# Catalog Interface
# =============================================================================


class ConceptCatalog(Protocol):
    """Query interface over the concept-graph store."""

    def default_ordering(self) -> Sequence[ConceptNode]:
        """Default curriculum slice, easiest first."""
        ...

    def ordered_by_goal(self, goal_id: str) -> Sequence[ConceptNode]:
        """Required concepts of a goal. Raises GoalNotFoundError for unknown goals."""
        ...

    def goal_name(self, goal_id: str) -> str:
        ...

    def successors(self, code: str) -> Sequence[ConceptNode]:
        """Concepts that have `code` as a prerequisite."""
        ...


@dataclass(frozen=True)
class LearningGoal:
    """A learning goal and the concept codes it requires."""

    goal_id: str
    name: str
    required_codes: tuple[str, ...] = ()


@dataclass
class InMemoryConceptCatalog:
    """
    Dict-backed ConceptCatalog.

    Concepts registered with `add_concept()` get a goal-space rank of
    grade + difficulty * 0.01 so goal orderings interleave difficulty within
    a grade. Prerequisite edges feed `successors()`.
    """

    default_nodes: tuple[ConceptNode, ...] = DEFAULT_CURRICULUM
    concepts: dict[str, ConceptNode] = field(default_factory=dict)
    goals: dict[str, LearningGoal] = field(default_factory=dict)
    edges: dict[str, list[str]] = field(default_factory=dict)  # code -> successor codes

    def add_concept(
        self,
        code: str,
        grade_level: str,
        difficulty: int,
        title: str = "",
        domain: str = "Math",
    ) -> ConceptNode:
        rank = grade_to_rank(grade_level) + difficulty * GOAL_DIFFICULTY_RANK_WEIGHT
        node = ConceptNode(code=code, grade_rank=rank, difficulty=difficulty, title=title, domain=domain)
        self.concepts[code] = node
        return node

    def add_goal(self, goal_id: str, name: str, required_codes: Iterable[str]) -> LearningGoal:
        goal = LearningGoal(goal_id=goal_id, name=name, required_codes=tuple(required_codes))
        self.goals[goal_id] = goal
        return goal

    def add_prerequisite(self, prerequisite: str, successor: str) -> None:
        for code in (prerequisite, successor):
            if code not in self.concepts and not any(n.code == code for n in self.default_nodes):
                raise UnknownConceptError(code)
        self.edges.setdefault(prerequisite, []).append(successor)

    def default_ordering(self) -> Sequence[ConceptNode]:
        if not self.default_nodes:
            raise ConfigurationError("Concept catalog has no default curriculum")
        return list(self.default_nodes)

    def ordered_by_goal(self, goal_id: str) -> Sequence[ConceptNode]:
        goal = self.goals.get(goal_id)
        if goal is None:
            raise GoalNotFoundError(goal_id)
        # Required codes the store does not know are dropped, like a missing row
        nodes = [self.concepts[code] for code in goal.required_codes if code in self.concepts]
        return sorted(nodes, key=lambda n: n.sort_key)

    def goal_name(self, goal_id: str) -> str:
        goal = self.goals.get(goal_id)
        if goal is None:
            raise GoalNotFoundError(goal_id)
        return goal.name

    def successors(self, code: str) -> list[ConceptNode]:
        """Concepts that list `code` as a prerequisite, in insertion order."""
        lookup = {n.code: n for n in self.default_nodes} | self.concepts
        return [lookup[c] for c in self.edges.get(code, []) if c in lookup]
