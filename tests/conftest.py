"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from frontier.adaptive.diagnostic import DiagnosticSearch  # noqa: E402
from frontier.core.clock import FixedClock  # noqa: E402
from frontier.core.mastery import BKTTracker, MasteryRecord  # noqa: E402
from frontier.core.store import InMemoryMasteryStore  # noqa: E402
from frontier.curriculum.catalog import InMemoryConceptCatalog  # noqa: E402
from frontier.curriculum.models import OrderedConceptSpace  # noqa: E402
from frontier.service import PlacementService  # noqa: E402

GOAL_ID = "goal-place-value"
GOAL_NAME = "Place Value Foundations"
GOAL_SIZE = 20


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


# =============================================================================
# Time
# =============================================================================


@pytest.fixture
def now():
    """A fixed, timezone-aware reference instant."""
    return datetime(2025, 3, 3, 12, 0, tzinfo=UTC)


@pytest.fixture
def clock(now):
    return FixedClock(now)


# =============================================================================
# Curriculum
# =============================================================================


def build_goal_catalog(size: int = GOAL_SIZE) -> InMemoryConceptCatalog:
    """
    Catalog with one goal of `size` concepts C00..C{size-1}, already in order.

    Grades advance every five concepts and difficulty climbs within a grade,
    so the goal ordering equals the code ordering.
    """
    catalog = InMemoryConceptCatalog()
    for i in range(size):
        catalog.add_concept(
            f"C{i:02d}",
            grade_level=f"G{i // 5 + 1}",
            difficulty=i % 5 + 1,
            title=f"Concept {i}",
            domain="Number Sense" if i < 10 else "Operations",
        )
    catalog.add_goal(GOAL_ID, GOAL_NAME, [f"C{i:02d}" for i in range(size)])
    return catalog


@pytest.fixture
def catalog():
    """Catalog serving the default K-G1 curriculum."""
    return InMemoryConceptCatalog()


@pytest.fixture
def goal_catalog():
    """Catalog with a 20-concept learning goal."""
    return build_goal_catalog()


@pytest.fixture
def default_space(catalog):
    return OrderedConceptSpace.from_default(catalog)


@pytest.fixture
def goal_space(goal_catalog):
    return OrderedConceptSpace.from_goal(goal_catalog, GOAL_ID)


# =============================================================================
# Engines
# =============================================================================


@pytest.fixture
def tracker():
    return BKTTracker()


@pytest.fixture
def search():
    return DiagnosticSearch()


@pytest.fixture
def store():
    return InMemoryMasteryStore()


@pytest.fixture
def service(goal_catalog, store, clock):
    """Service over the goal catalog (which also serves the default curriculum)."""
    return PlacementService(goal_catalog, store=store, clock=clock)


@pytest.fixture
def make_record(now):
    """Factory for mastery records with sensible defaults."""

    def _make(concept_id="C00", student_id="student-1", **overrides):
        fields = {
            "probability": 0.5,
            "practice_count": 1,
            "correct_count": 1,
            "last_practiced_at": now,
            "next_review_at": now,
        }
        fields.update(overrides)
        return MasteryRecord(student_id=student_id, concept_id=concept_id, **fields)

    return _make
