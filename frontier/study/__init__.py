"""
Study Module.

Provides:
- Fluency drills and response-time plateau detection
- The true-mastery gate that decides when a student may advance
"""

from frontier.study.fluency import (
    FlatlineResult,
    FluencyConfig,
    FluencyDrill,
    FluencyDrillState,
    FluencyResult,
    check_flatline,
)
from frontier.study.mastery_gate import (
    GateResponse,
    MasteryGateResult,
    Recommendation,
    evaluate_true_mastery,
)

__all__ = [
    "FlatlineResult",
    "FluencyConfig",
    "FluencyDrill",
    "FluencyDrillState",
    "FluencyResult",
    "GateResponse",
    "MasteryGateResult",
    "Recommendation",
    "check_flatline",
    "evaluate_true_mastery",
]
