"""Injectable clocks so due dates stay deterministic under test."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Anything that can tell the current time."""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """Clock frozen at a given instant; `advance()` moves it forward."""

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=UTC)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def advance(self, days: float = 0, **kwargs: float) -> datetime:
        self._instant = self._instant + timedelta(days=days, **kwargs)
        return self._instant
