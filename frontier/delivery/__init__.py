"""
Delivery Module.

Spaced repetition scheduling and the review queue built on top of it.
"""

from frontier.delivery.review_queue import (
    ReviewSession,
    ReviewSuggestion,
    ReviewUrgency,
    build_review_session,
    due_records,
    overdue_records,
    review_suggestion,
    upcoming_forecast,
)
from frontier.delivery.scheduler import (
    SM2Config,
    ScheduleState,
    ScheduleUpdate,
    SpacedRepetitionScheduler,
)

__all__ = [
    "ReviewSession",
    "ReviewSuggestion",
    "ReviewUrgency",
    "SM2Config",
    "ScheduleState",
    "ScheduleUpdate",
    "SpacedRepetitionScheduler",
    "build_review_session",
    "due_records",
    "overdue_records",
    "review_suggestion",
    "upcoming_forecast",
]
