"""Durable mapping from attempt id to attempt record."""

from __future__ import annotations

import dataclasses
import logging
from typing import Any

from quizclock.constants.quiz_constants import STORAGE_COLLECTION_ATTEMPTS
from quizclock.core.errors import AttemptNotFoundError, InvalidStateError
from quizclock.core.models import Attempt
from quizclock.core.records import attempt_from_record, attempt_to_record
from quizclock.core.services.record_store import RecordStore
from quizclock.core.services.storage import Storage

logger = logging.getLogger(__name__)

_IMMUTABLE_FIELDS = frozenset({"id", "quiz_id", "student_id", "start_time"})


class AttemptStore(RecordStore[Attempt]):
    """Creates, updates and removes attempt records."""

    def __init__(self, storage: Storage, collection: str = STORAGE_COLLECTION_ATTEMPTS) -> None:
        super().__init__(storage, collection, attempt_to_record, attempt_from_record)

    def create(self, attempt: Attempt) -> Attempt:
        """Store a new attempt under a freshly generated id and return it."""
        with self._lock:
            stored = dataclasses.replace(attempt, id=self._new_id())
            return self._put(stored.id, stored)

    def update(self, attempt_id: str, **changes: Any) -> Attempt:
        blocked = _IMMUTABLE_FIELDS.intersection(changes)
        if blocked:
            raise InvalidStateError(f"Attempt fields cannot be changed: {sorted(blocked)}")
        with self._lock:
            current = self._items.get(attempt_id)
            if current is None:
                raise AttemptNotFoundError(attempt_id)
            return self._put(attempt_id, dataclasses.replace(current, **changes))

    def delete(self, attempt_id: str) -> bool:
        return self._remove([attempt_id]) == 1

    def delete_by_quiz(self, quiz_id: str) -> int:
        """Remove every attempt that references ``quiz_id``; safe to repeat."""
        with self._lock:
            doomed = [a.id for a in self._items.values() if a.quiz_id == quiz_id]
            removed = self._remove(doomed)
        if removed:
            logger.info("Removed %d attempt(s) of quiz %s", removed, quiz_id)
        return removed

    def list_by_quiz(self, quiz_id: str, completed_only: bool = False) -> list[Attempt]:
        return self.list(lambda a: a.quiz_id == quiz_id and (a.completed or not completed_only))

    def list_by_student(self, student_id: str) -> list[Attempt]:
        return self.list(lambda a: a.student_id == student_id)
