"""Concept nodes, ordered concept spaces and the catalog seam."""

from frontier.curriculum.catalog import (
    DEFAULT_CURRICULUM,
    ConceptCatalog,
    InMemoryConceptCatalog,
    LearningGoal,
    grade_label,
    grade_to_rank,
)
from frontier.curriculum.models import ConceptNode, OrderedConceptSpace

__all__ = [
    "DEFAULT_CURRICULUM",
    "ConceptCatalog",
    "ConceptNode",
    "InMemoryConceptCatalog",
    "LearningGoal",
    "OrderedConceptSpace",
    "grade_label",
    "grade_to_rank",
]
