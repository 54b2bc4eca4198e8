"""
Frontier error hierarchy.

Philosophy:
- Malformed input fails loudly at the point it is detected
- No silent defaults that could corrupt persisted mastery history
- An exhausted diagnostic search space is NOT an error (see diagnostic.py)
"""

from __future__ import annotations


class FrontierError(Exception):
    """Base class for all errors raised by the frontier engines."""


class ConfigurationError(FrontierError):
    """Raised when a concept space cannot be built (empty goal, empty catalog, duplicates)."""


class GoalNotFoundError(ConfigurationError):
    """Raised when the catalog does not know the requested learning goal."""

    def __init__(self, goal_id: str):
        self.goal_id = goal_id
        super().__init__(f"Learning goal {goal_id} not found")


class UnknownConceptError(FrontierError, KeyError):
    """Raised when a concept code is not part of the concept space."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Unknown concept code: {code!r}")

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return self.args[0]


class InvalidProbeError(FrontierError, ValueError):
    """Raised when a diagnostic answer references a bad or already-asked index."""


class DiagnosticCompleteError(FrontierError):
    """Raised when an answer is recorded against a completed diagnostic."""


class StaleRecordError(FrontierError):
    """Raised when a mastery record was written by someone else since it was loaded."""

    def __init__(self, student_id: str, concept_id: str, expected: int, actual: int):
        self.student_id = student_id
        self.concept_id = concept_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Stale mastery record for ({student_id}, {concept_id}): "
            f"expected version {expected}, store has {actual}"
        )


class DiagnosticIncompleteError(FrontierError):
    """Raised when a placement is requested for a diagnostic still in progress."""
