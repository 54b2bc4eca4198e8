"""Data models for the ordered concept space the diagnostic searches over."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

from loguru import logger

from frontier.core.errors import ConfigurationError, UnknownConceptError

if TYPE_CHECKING:
    from frontier.curriculum.catalog import ConceptCatalog


@dataclass(frozen=True)
class ConceptNode:
    """A single concept (standard) in the curriculum. Immutable reference data."""

    code: str  # K.CC.4, 1.OA.6, ...
    grade_rank: float  # 0.0 = start of K, 1.5 = middle of G1
    difficulty: int  # 1-10
    title: str = ""
    domain: str = "Math"

    def __post_init__(self):
        if not self.code:
            raise ValueError("ConceptNode requires a code")
        if not (1 <= self.difficulty <= 10):
            raise ValueError(f"{self.code}: difficulty must be within 1-10, got {self.difficulty}")

    @property
    def sort_key(self) -> tuple[float, int]:
        return (self.grade_rank, self.difficulty)

    @property
    def display_title(self) -> str:
        return self.title or self.code

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass(frozen=True)
class OrderedConceptSpace:
    """
    Index-addressable concept sequence sorted by (grade_rank, difficulty).

    Built once per diagnostic session, by one of two factories:
    - from_default(): the fixed default curriculum slice
    - from_goal(): a learning goal's required concepts (goal-aware mode)

    Equal sort keys keep the catalog's order.
    """

    nodes: tuple[ConceptNode, ...]
    goal_id: str | None = None
    goal_name: str | None = None
    _positions: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        nodes = tuple(self.nodes)
        object.__setattr__(self, "nodes", nodes)

        if not nodes:
            raise ConfigurationError(
                f"Concept space for goal {self.goal_id!r} is empty"
                if self.goal_id
                else "Concept space is empty"
            )

        positions: dict[str, int] = {}
        for index, node in enumerate(nodes):
            if node.code in positions:
                raise ConfigurationError(f"Duplicate concept code in space: {node.code}")
            if index and node.sort_key < nodes[index - 1].sort_key:
                raise ConfigurationError(
                    f"Concept space not ordered: {nodes[index - 1].code} "
                    f"precedes {node.code}"
                )
            positions[node.code] = index
        object.__setattr__(self, "_positions", positions)

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def from_nodes(
        cls,
        nodes: list[ConceptNode],
        goal_id: str | None = None,
        goal_name: str | None = None,
    ) -> OrderedConceptSpace:
        """Sort arbitrary nodes (stable) and build a space."""
        ordered = sorted(nodes, key=lambda n: n.sort_key)
        return cls(nodes=tuple(ordered), goal_id=goal_id, goal_name=goal_name)

    @classmethod
    def from_default(cls, catalog: ConceptCatalog) -> OrderedConceptSpace:
        """Space over the catalog's default curriculum slice."""
        nodes = list(catalog.default_ordering())
        if not nodes:
            raise ConfigurationError("Concept catalog returned no default concepts")
        return cls.from_nodes(nodes)

    @classmethod
    def from_goal(cls, catalog: ConceptCatalog, goal_id: str) -> OrderedConceptSpace:
        """
        Space over a learning goal's required concepts.

        Raises:
            GoalNotFoundError: The catalog does not know the goal
            ConfigurationError: The goal has no concepts
        """
        nodes = list(catalog.ordered_by_goal(goal_id))
        goal_name = catalog.goal_name(goal_id)
        if not nodes:
            raise ConfigurationError(f'Goal "{goal_name}" has no required concepts')

        space = cls.from_nodes(nodes, goal_id=goal_id, goal_name=goal_name)
        logger.debug(f"Built goal space {goal_id} ({goal_name}) with {len(space)} concepts")
        return space

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    @property
    def is_goal_aware(self) -> bool:
        return self.goal_id is not None

    @property
    def codes(self) -> tuple[str, ...]:
        return tuple(node.code for node in self.nodes)

    def index_of(self, code: str) -> int:
        """Position of a concept code; raises UnknownConceptError if absent."""
        try:
            return self._positions[code]
        except KeyError:
            raise UnknownConceptError(code) from None

    def node(self, code: str) -> ConceptNode:
        return self.nodes[self.index_of(code)]

    def __contains__(self, code: object) -> bool:
        return code in self._positions

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, index: int) -> ConceptNode:
        return self.nodes[index]

    def __iter__(self):
        return iter(self.nodes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "goal_id": self.goal_id,
            "goal_name": self.goal_name,
            "nodes": [node.to_dict() for node in self.nodes],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OrderedConceptSpace:
        return cls(
            nodes=tuple(ConceptNode(**node) for node in data["nodes"]),
            goal_id=data.get("goal_id"),
            goal_name=data.get("goal_name"),
        )
