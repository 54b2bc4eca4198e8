"""
Review queue over a student's mastery records.

Pure queries (the caller loads the records):
- due_records / overdue_records: what needs reviewing now
- upcoming_forecast: per-day buckets for the next week
- build_review_session: a capped session of due items plus stale
  mastered "refreshers"
- due_summary / review_suggestion: dashboard counts and a nudge message

Only records practiced at least once are ever due.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any

from loguru import logger

from frontier.core.mastery import MasteryLevel, MasteryRecord

MAX_REVIEW_ITEMS = 10
REFRESHER_COUNT = 3
REFRESHER_STALE_DAYS = 14
MINUTES_PER_REVIEW = 2
OVERDUE_AFTER = timedelta(days=1)
FORECAST_DAYS = 7


class ReviewUrgency(str, Enum):
    NONE = "none"
    LOW = "low"  # something due tomorrow
    MEDIUM = "medium"  # something due today
    HIGH = "high"  # something overdue


def _is_due(record: MasteryRecord, now: datetime) -> bool:
    return (
        record.practice_count >= 1
        and record.next_review_at is not None
        and record.next_review_at <= now
    )


def _is_overdue(record: MasteryRecord, now: datetime) -> bool:
    return _is_due(record, now) and record.next_review_at <= now - OVERDUE_AFTER


def _due_order(record: MasteryRecord) -> tuple[datetime, float]:
    return (record.next_review_at, record.probability)


def due_records(records: Iterable[MasteryRecord], now: datetime) -> list[MasteryRecord]:
    """Records due at `now`, earliest due date first, then weakest first."""
    return sorted((r for r in records if _is_due(r, now)), key=_due_order)


def overdue_records(records: Iterable[MasteryRecord], now: datetime) -> list[MasteryRecord]:
    """Records due more than one day ago."""
    return sorted((r for r in records if _is_overdue(r, now)), key=_due_order)


# =============================================================================
# Forecast
# =============================================================================


@dataclass(frozen=True)
class ForecastDay:
    """Reviews falling on one calendar day."""

    day: date
    records: tuple[MasteryRecord, ...] = ()
    overdue_codes: frozenset[str] = frozenset()

    @property
    def count(self) -> int:
        return len(self.records)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "count": self.count,
            "concepts": [
                {
                    "concept_id": r.concept_id,
                    "probability": r.probability,
                    "is_overdue": r.concept_id in self.overdue_codes,
                }
                for r in self.records
            ],
        }


def upcoming_forecast(
    records: Iterable[MasteryRecord],
    now: datetime,
    days: int = FORECAST_DAYS,
) -> list[ForecastDay]:
    """
    Reviews per day for the next `days` days, today first.

    Anything already past due is folded into today's bucket. Every day in the
    window gets a bucket, empty or not.
    """
    if days < 1:
        raise ValueError(f"days must be >= 1, got {days}")

    today = now.date()
    end = now + timedelta(days=days)
    buckets: dict[date, list[MasteryRecord]] = {today + timedelta(days=d): [] for d in range(days)}
    overdue: dict[date, set[str]] = {day: set() for day in buckets}

    candidates = sorted(
        (
            r
            for r in records
            if r.practice_count >= 1 and r.next_review_at is not None and r.next_review_at <= end
        ),
        key=lambda r: r.next_review_at,
    )
    for record in candidates:
        day = max(record.next_review_at.date(), today)
        if day not in buckets:
            continue
        buckets[day].append(record)
        if record.next_review_at < now:
            overdue[day].add(record.concept_id)

    return [
        ForecastDay(day=day, records=tuple(items), overdue_codes=frozenset(overdue[day]))
        for day, items in buckets.items()
    ]


# =============================================================================
# Review Session
# =============================================================================


@dataclass(frozen=True)
class ReviewItem:
    record: MasteryRecord
    is_overdue: bool = False
    is_refresher: bool = False


@dataclass(frozen=True)
class ReviewSession:
    """A prepared review session."""

    student_id: str
    items: tuple[ReviewItem, ...]
    minutes_per_review: int = MINUTES_PER_REVIEW

    @property
    def total_items(self) -> int:
        return len(self.items)

    @property
    def estimated_minutes(self) -> int:
        return self.total_items * self.minutes_per_review

    @property
    def concept_ids(self) -> list[str]:
        return [item.record.concept_id for item in self.items]


def refresher_records(
    records: Iterable[MasteryRecord],
    now: datetime,
    count: int = REFRESHER_COUNT,
    stale_days: int = REFRESHER_STALE_DAYS,
    exclude: Iterable[str] = (),
) -> list[MasteryRecord]:
    """Mastered records not practiced for `stale_days`, stalest first."""
    excluded = set(exclude)
    stale_before = now - timedelta(days=stale_days)
    candidates = [
        r
        for r in records
        if r.level is MasteryLevel.MASTERED
        and r.practice_count >= 1
        and r.last_practiced_at is not None
        and r.last_practiced_at <= stale_before
        and r.concept_id not in excluded
    ]
    candidates.sort(key=lambda r: r.last_practiced_at)
    return candidates[:count]


def build_review_session(
    records: Iterable[MasteryRecord],
    now: datetime,
    max_items: int = MAX_REVIEW_ITEMS,
    refresher_count: int = REFRESHER_COUNT,
    refresher_stale_days: int = REFRESHER_STALE_DAYS,
    minutes_per_review: int = MINUTES_PER_REVIEW,
) -> ReviewSession | None:
    """
    Build a review session for one student.

    1. Due records, overdue first, then lowest probability
    2. Capped at max_items - refresher_count
    3. Topped up with up to refresher_count stale mastered records

    Returns:
        ReviewSession, or None when nothing is due and nothing is stale
    """
    records = list(records)
    if not records:
        return None

    students = {r.student_id for r in records}
    if len(students) > 1:
        raise ValueError(f"Review session spans several students: {sorted(students)}")

    due = due_records(records, now)
    # Stable sort keeps due-date order within equal (overdue, probability)
    due.sort(key=lambda r: (not _is_overdue(r, now), r.probability))
    main = due[: max(0, max_items - refresher_count)]

    refreshers = refresher_records(
        records,
        now,
        count=refresher_count,
        stale_days=refresher_stale_days,
        exclude=(r.concept_id for r in main),
    )
    if not main and not refreshers:
        return None

    items = tuple(ReviewItem(r, is_overdue=_is_overdue(r, now)) for r in main) + tuple(
        ReviewItem(r, is_refresher=True) for r in refreshers
    )
    session = ReviewSession(
        student_id=records[0].student_id,
        items=items,
        minutes_per_review=minutes_per_review,
    )
    logger.debug(
        f"Review session for {session.student_id}: {len(main)} due, "
        f"{len(refreshers)} refreshers, ~{session.estimated_minutes} min"
    )
    return session


# =============================================================================
# Summary and Suggestion
# =============================================================================


@dataclass(frozen=True)
class DueSummary:
    due_now: int = 0
    due_tomorrow: int = 0
    due_this_week: int = 0
    overdue_count: int = 0
    estimated_minutes: int = 0
    urgency: ReviewUrgency = ReviewUrgency.NONE


@dataclass(frozen=True)
class ReviewSuggestion:
    """Nudge shown before a learning session starts."""

    has_due_reviews: bool
    due_count: int
    overdue_count: int
    estimated_minutes: int
    urgency: ReviewUrgency
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "has_due_reviews": self.has_due_reviews,
            "due_count": self.due_count,
            "overdue_count": self.overdue_count,
            "estimated_minutes": self.estimated_minutes,
            "urgency": self.urgency.value,
            "message": self.message,
        }


def due_summary(
    records: Iterable[MasteryRecord],
    now: datetime,
    minutes_per_review: int = MINUTES_PER_REVIEW,
) -> DueSummary:
    """
    Count reviews due now, tomorrow and this week.

    "Now" means any time today (calendar day of `now`), so a review due this
    evening already counts.
    """
    today = now.date()
    tomorrow = today + timedelta(days=1)
    week_end = now + timedelta(days=FORECAST_DAYS)

    due_now = due_tomorrow = due_this_week = overdue = 0
    for record in records:
        if record.practice_count < 1 or record.next_review_at is None:
            continue
        if record.next_review_at > week_end:
            continue
        review_day = record.next_review_at.date()
        if record.next_review_at <= now - OVERDUE_AFTER:
            overdue += 1
            due_now += 1
        elif review_day <= today:
            due_now += 1
        elif review_day == tomorrow:
            due_tomorrow += 1
        due_this_week += 1

    if overdue:
        urgency = ReviewUrgency.HIGH
    elif due_now:
        urgency = ReviewUrgency.MEDIUM
    elif due_tomorrow:
        urgency = ReviewUrgency.LOW
    else:
        urgency = ReviewUrgency.NONE

    return DueSummary(
        due_now=due_now,
        due_tomorrow=due_tomorrow,
        due_this_week=due_this_week,
        overdue_count=overdue,
        estimated_minutes=due_now * minutes_per_review,
        urgency=urgency,
    )


def review_suggestion(
    records: Iterable[MasteryRecord],
    now: datetime,
    minutes_per_review: int = MINUTES_PER_REVIEW,
) -> ReviewSuggestion:
    """Suggest a quick review when anything is due today."""
    summary = due_summary(records, now, minutes_per_review)

    if summary.due_now == 0:
        return ReviewSuggestion(
            has_due_reviews=False,
            due_count=0,
            overdue_count=0,
            estimated_minutes=0,
            urgency=ReviewUrgency.NONE,
        )

    if summary.overdue_count > 0:
        plural = "s" if summary.overdue_count > 1 else ""
        message = (
            f"You have {summary.overdue_count} overdue review{plural}. A quick "
            f"{summary.estimated_minutes}-minute review will help keep your knowledge strong!"
        )
    else:
        verb = "concepts are" if summary.due_now > 1 else "concept is"
        message = (
            f"{summary.due_now} {verb} ready for review. Do a quick "
            f"{summary.estimated_minutes}-minute review first?"
        )

    return ReviewSuggestion(
        has_due_reviews=True,
        due_count=summary.due_now,
        overdue_count=summary.overdue_count,
        estimated_minutes=summary.estimated_minutes,
        urgency=summary.urgency,
        message=message,
    )
