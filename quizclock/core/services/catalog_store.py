"""Service for managing the catalog of authored quizzes."""

from __future__ import annotations

import dataclasses
import logging
import math
from datetime import datetime
from typing import Any, Callable
from uuid import uuid4

from quizclock.constants.quiz_constants import (
    MAX_MULTIPLE_CHOICE_OPTIONS,
    MIN_MULTIPLE_CHOICE_OPTIONS,
    STORAGE_COLLECTION_QUIZZES,
)
from quizclock.core.errors import InvalidQuizDefinitionError, QuizNotFoundError
from quizclock.core.models import (
    MultipleChoiceQuestion,
    Question,
    Quiz,
    ShortAnswerQuestion,
    TrueFalseQuestion,
    utc_now,
)
from quizclock.core.records import quiz_from_record, quiz_to_record
from quizclock.core.services.attempt_store import AttemptStore
from quizclock.core.services.record_store import RecordStore
from quizclock.core.services.storage import Storage

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = frozenset(
    {"title", "description", "time_limit_minutes", "questions", "is_published"}
)


class CatalogStore(RecordStore[Quiz]):
    """Manages the lifecycle and storage of quizzes.

    Deleting a quiz cascades to its attempts through the attempt store.
    """

    def __init__(
        self,
        storage: Storage,
        attempts: AttemptStore,
        clock: Callable[[], datetime] = utc_now,
        collection: str = STORAGE_COLLECTION_QUIZZES,
    ) -> None:
        super().__init__(storage, collection, quiz_to_record, quiz_from_record)
        self._attempts = attempts
        self._clock = clock

    def create(self, quiz: Quiz) -> Quiz:
        """Validate ``quiz``, assign ids and timestamps, and store it."""
        now = self._clock()
        prepared = self._prepare_quiz(quiz)
        with self._lock:
            stored = dataclasses.replace(prepared, id=self._new_id(), created_at=now, updated_at=now)
            created = self._put(stored.id, stored)
        logger.info("Created quiz %s (%r) for teacher %s", created.id, created.title, created.teacher_id)
        return created

    def update(self, quiz_id: str, **changes: Any) -> Quiz:
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise InvalidQuizDefinitionError(f"Quiz fields cannot be changed: {sorted(unknown)}")
        with self._lock:
            current = self._items.get(quiz_id)
            if current is None:
                raise QuizNotFoundError(quiz_id)
            merged = self._prepare_quiz(dataclasses.replace(current, **changes))
            # Keep updated_at >= created_at even if the clock steps backwards.
            updated_at = max(self._clock(), current.created_at) if current.created_at else self._clock()
            return self._put(quiz_id, dataclasses.replace(merged, updated_at=updated_at))

    def delete(self, quiz_id: str) -> bool:
        """Delete a quiz and every attempt that references it.

        Attempts go first so that a failure part-way leaves the quiz in place
        and the whole call can simply be repeated.
        """
        self._attempts.delete_by_quiz(quiz_id)
        deleted = self._remove([quiz_id]) == 1
        if deleted:
            logger.info("Deleted quiz %s", quiz_id)
        return deleted

    def list_published(self) -> list[Quiz]:
        return self.list(lambda q: q.is_published)

    def list_by_teacher(self, teacher_id: str) -> list[Quiz]:
        return self.list(lambda q: q.teacher_id == teacher_id)

    def _prepare_quiz(self, quiz: Quiz) -> Quiz:
        title = quiz.title.strip()
        if not title:
            raise InvalidQuizDefinitionError("Quiz title must not be empty.")
        if not quiz.teacher_id:
            raise InvalidQuizDefinitionError("Quiz must belong to a teacher.")
        time_limit = quiz.time_limit_minutes
        if isinstance(time_limit, bool) or not isinstance(time_limit, int) or time_limit <= 0:
            raise InvalidQuizDefinitionError("Time limit must be a positive whole number of minutes.")

        questions = [self._prepare_question(q) for q in quiz.questions]
        seen: set[str] = set()
        for question in questions:
            if question.id in seen:
                raise InvalidQuizDefinitionError(f"Duplicate question id '{question.id}'.")
            seen.add(question.id)
        if quiz.is_published and not questions:
            raise InvalidQuizDefinitionError("A published quiz must contain at least one question.")

        return dataclasses.replace(
            quiz,
            title=title,
            description=quiz.description.strip(),
            questions=questions,
        )

    @staticmethod
    def _prepare_question(question: Question) -> Question:
        """Validate and normalize a question before storage."""
        cleaned_text = question.text.strip()
        if not cleaned_text:
            raise InvalidQuizDefinitionError("Question text must not be empty.")
        points = question.points
        if (
            isinstance(points, bool)
            or not isinstance(points, (int, float))
            or not math.isfinite(points)
            or points <= 0
        ):
            raise InvalidQuizDefinitionError("Question points must be a positive finite number.")
        question_id = question.id or uuid4().hex

        if isinstance(question, MultipleChoiceQuestion):
            options = [option.strip() for option in question.options]
            if not MIN_MULTIPLE_CHOICE_OPTIONS <= len(options) <= MAX_MULTIPLE_CHOICE_OPTIONS:
                raise InvalidQuizDefinitionError(
                    f"Multiple-choice questions need between {MIN_MULTIPLE_CHOICE_OPTIONS} "
                    f"and {MAX_MULTIPLE_CHOICE_OPTIONS} options."
                )
            if any(not option for option in options):
                raise InvalidQuizDefinitionError("Option text cannot be empty.")
            index = question.correct_answer
            if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(options):
                raise InvalidQuizDefinitionError("Correct option index is out of range.")
            return MultipleChoiceQuestion(
                id=question_id, text=cleaned_text, points=points, options=options, correct_answer=index
            )
        if isinstance(question, TrueFalseQuestion):
            if not isinstance(question.correct_answer, bool):
                raise InvalidQuizDefinitionError("True/false answers must be a boolean.")
            return TrueFalseQuestion(
                id=question_id, text=cleaned_text, points=points, correct_answer=question.correct_answer
            )
        if isinstance(question, ShortAnswerQuestion):
            if not isinstance(question.correct_answer, str) or not question.correct_answer.strip():
                raise InvalidQuizDefinitionError("Short-answer questions need a correct answer.")
            # The stored answer is compared verbatim (case aside), so it is not trimmed.
            return ShortAnswerQuestion(
                id=question_id, text=cleaned_text, points=points, correct_answer=question.correct_answer
            )
        raise InvalidQuizDefinitionError(f"Unsupported question variant: {type(question).__name__}")
