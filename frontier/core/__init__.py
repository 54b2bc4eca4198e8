"""
Core Module.

Mastery tracking (BKT), the error hierarchy, clocks and the mastery store seam.
"""

from frontier.core.clock import Clock, FixedClock, SystemClock
from frontier.core.errors import (
    ConfigurationError,
    DiagnosticCompleteError,
    DiagnosticIncompleteError,
    FrontierError,
    GoalNotFoundError,
    InvalidProbeError,
    StaleRecordError,
    UnknownConceptError,
)
from frontier.core.mastery import BKTParams, BKTTracker, MasteryLevel, MasteryRecord
from frontier.core.store import InMemoryMasteryStore, MasteryStore

__all__ = [
    "BKTParams",
    "BKTTracker",
    "Clock",
    "ConfigurationError",
    "DiagnosticCompleteError",
    "DiagnosticIncompleteError",
    "FixedClock",
    "FrontierError",
    "GoalNotFoundError",
    "InMemoryMasteryStore",
    "InvalidProbeError",
    "MasteryLevel",
    "MasteryRecord",
    "MasteryStore",
    "StaleRecordError",
    "SystemClock",
    "UnknownConceptError",
]
