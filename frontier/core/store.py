"""
Mastery persistence seam.

The engines never talk to storage. Callers run load -> compute -> store per
(student, concept) and must serialize that cycle per key. `InMemoryMasteryStore`
does it two ways: a per-key lock for single-process callers and an optimistic
version check on `put` for everyone else.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import replace
from typing import Protocol

from loguru import logger

from frontier.core.errors import StaleRecordError
from frontier.core.mastery import MasteryRecord


class MasteryStore(Protocol):
    """Interface for mastery record persistence."""

    def get(self, student_id: str, concept_id: str) -> MasteryRecord | None:
        ...

    def put(self, record: MasteryRecord) -> MasteryRecord:
        ...

    def for_student(self, student_id: str) -> list[MasteryRecord]:
        ...

    def locked(self, student_id: str, concept_id: str) -> AbstractContextManager[None]:
        """Context manager serializing load-compute-store for one key."""
        ...


class InMemoryMasteryStore:
    """
    Dict-backed MasteryStore.

    `put` accepts a record whose `version` equals the stored version and
    stores it with `version + 1`. A record loaded before someone else's write
    is rejected with StaleRecordError instead of silently overwriting it.
    """

    def __init__(self, records: list[MasteryRecord] | None = None):
        self._records: dict[tuple[str, str], MasteryRecord] = {}
        self._locks: dict[tuple[str, str], threading.Lock] = {}
        self._guard = threading.Lock()
        for record in records or []:
            self._records[record.key] = record

    def get(self, student_id: str, concept_id: str) -> MasteryRecord | None:
        with self._guard:
            return self._records.get((student_id, concept_id))

    def put(self, record: MasteryRecord) -> MasteryRecord:
        with self._guard:
            current = self._records.get(record.key)
            current_version = current.version if current else 0
            if record.version != current_version:
                raise StaleRecordError(
                    record.student_id, record.concept_id, record.version, current_version
                )
            stored = replace(record, version=current_version + 1)
            self._records[record.key] = stored

        logger.debug(
            f"Stored mastery {record.student_id}/{record.concept_id} v{stored.version}"
        )
        return stored

    def for_student(self, student_id: str) -> list[MasteryRecord]:
        """All records of one student, in concept order."""
        with self._guard:
            snapshot = list(self._records.items())
        return sorted(
            (r for (sid, _), r in snapshot if sid == student_id),
            key=lambda r: r.concept_id,
        )

    @contextmanager
    def locked(self, student_id: str, concept_id: str) -> Iterator[None]:
        """Serialize load-compute-store for one (student, concept) key."""
        key = (student_id, concept_id)
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            yield

    def __len__(self) -> int:
        return len(self._records)
