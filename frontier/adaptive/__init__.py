"""
Adaptive Placement Module.

Components:
- DiagnosticSearch: bounded binary search for a student's knowledge frontier
- synthesize_placement: placement result, skill map and mastery seeding
- recommend_next_concept: next concept along the prerequisite graph
"""

from frontier.adaptive.diagnostic import (
    DiagnosticResponse,
    DiagnosticSearch,
    DiagnosticSearchState,
    SearchStatus,
)
from frontier.adaptive.path_sequencer import recommend_next_concept
from frontier.adaptive.placement import (
    PlacementResult,
    SkillMap,
    SkillMapEntry,
    SkillStatus,
    build_skill_map,
    seed_mastery_records,
    synthesize_placement,
)

__all__ = [
    "DiagnosticResponse",
    "DiagnosticSearch",
    "DiagnosticSearchState",
    "PlacementResult",
    "SearchStatus",
    "SkillMap",
    "SkillMapEntry",
    "SkillStatus",
    "build_skill_map",
    "recommend_next_concept",
    "seed_mastery_records",
    "synthesize_placement",
]
