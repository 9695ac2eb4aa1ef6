"""Business logic for starting, answering, timing and submitting quiz attempts."""

from __future__ import annotations

from datetime import datetime
from functools import partial
import logging
from threading import Lock
from typing import Callable, Iterable

from quizclock.constants.quiz_constants import TIMER_TICK_SECONDS
from quizclock.core.errors import (
    AlreadySubmittedError,
    AttemptNotFoundError,
    InvalidAnswerError,
    InvalidStateError,
    NotPublishedError,
    QuestionNotFoundError,
    QuizError,
    QuizNotFoundError,
)
from quizclock.core.grading import grade
from quizclock.core.models import (
    Answer,
    AnswerValue,
    Attempt,
    MultipleChoiceQuestion,
    Question,
    Quiz,
    ShortAnswerQuestion,
    TrueFalseQuestion,
    utc_now,
)
from quizclock.core.services.attempt_session import AttemptSession, is_unanswered
from quizclock.core.services.attempt_store import AttemptStore
from quizclock.core.services.catalog_store import CatalogStore
from quizclock.core.services.countdown import AttemptCountdown

logger = logging.getLogger(__name__)


def _check_value_type(question: Question, value: AnswerValue) -> None:
    if isinstance(question, MultipleChoiceQuestion):
        valid = isinstance(value, int) and not isinstance(value, bool)
        expected = "an option index"
    elif isinstance(question, TrueFalseQuestion):
        valid = isinstance(value, bool)
        expected = "true or false"
    elif isinstance(question, ShortAnswerQuestion):
        valid = isinstance(value, str)
        expected = "a text answer"
    else:
        raise TypeError(f"Unsupported question variant: {type(question).__name__}")
    if not valid:
        raise InvalidAnswerError(f"Question '{question.id}' expects {expected}.")


class AttemptController:
    """Facade over the stores, the grading engine and the open attempt sessions.

    ``submit`` is the only way an attempt is finalized; the countdown of each
    session calls it too when time runs out.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        attempts: AttemptStore,
        clock: Callable[[], datetime] = utc_now,
        tick_seconds: float = TIMER_TICK_SECONDS,
        auto_submit: bool = True,
    ) -> None:
        self._lock = Lock()
        self._catalog = catalog
        self._attempts = attempts
        self._clock = clock
        self._tick_seconds = tick_seconds
        self._auto_submit = auto_submit
        self._sessions: dict[str, AttemptSession] = {}

    # --- Lifecycle ---

    def start(self, quiz_id: str, student_id: str) -> Attempt:
        """Create a new in-progress attempt and open its session.

        Every call creates a fresh attempt, even if the student already has
        one in progress for the same quiz.
        """
        with self._lock:
            quiz = self._require_quiz(quiz_id)
            if not quiz.is_published:
                raise NotPublishedError(quiz_id)

            attempt = self._attempts.create(
                Attempt(id="", quiz_id=quiz_id, student_id=student_id, start_time=self._clock())
            )
            session = AttemptSession(attempt.id, quiz, countdown=self._make_countdown(attempt.id, quiz))
            self._sessions[attempt.id] = session
            session.start_countdown()

        logger.info("Student %s started attempt %s on quiz %s", student_id, attempt.id, quiz_id)
        return attempt

    def record_answer(self, attempt_id: str, question_id: str, value: AnswerValue | None) -> bool:
        """Buffer an answer in the open session. Returns True for a first answer."""
        with self._lock:
            attempt = self._require_tracked_attempt(attempt_id)
            if attempt.completed:
                raise InvalidStateError(f"Attempt '{attempt_id}' has already been submitted.")
            session = self._sessions.get(attempt_id)
            if session is None:
                raise InvalidStateError(f"Attempt '{attempt_id}' has no active session.")
            question = session.get_question(question_id)
            if question is None:
                raise QuestionNotFoundError(question_id, attempt.quiz_id)
            if value is not None and not is_unanswered(
                value, isinstance(question, MultipleChoiceQuestion)
            ):
                _check_value_type(question, value)
            return session.record_answer(question_id, value)

    def submit(self, attempt_id: str, answers: Iterable[Answer] | None = None) -> Attempt:
        """Grade and finalize an attempt.

        When ``answers`` is None the answers buffered in the session are used.
        Nothing is changed unless grading and the store write both succeed.
        """
        with self._lock:
            attempt = self._require_tracked_attempt(attempt_id)
            if attempt.completed:
                raise AlreadySubmittedError(attempt_id)
            quiz = self._require_quiz(attempt.quiz_id)

            session = self._sessions.get(attempt_id)
            if answers is None:
                submitted = session.get_answers() if session is not None else []
            else:
                submitted = self._filter_answered(quiz, answers)

            result = grade(quiz, submitted)
            finalized = self._attempts.update(
                attempt_id,
                answers=list(result.answers),
                score=result.score,
                end_time=self._clock(),
                completed=True,
            )

            if session is not None:
                session.close()
                del self._sessions[attempt_id]

        logger.info("Attempt %s submitted with score %d", attempt_id, finalized.score)
        return finalized

    def delete_quiz(self, quiz_id: str) -> bool:
        """Delete a quiz and its attempts, ending the sessions left without an attempt."""
        with self._lock:
            try:
                return self._catalog.delete(quiz_id)
            finally:
                self._drop_orphaned_sessions(quiz_id)

    def end_session(self, attempt_id: str) -> bool:
        """Drop the buffered answers and timer of an attempt without submitting it."""
        with self._lock:
            session = self._sessions.pop(attempt_id, None)
        if session is None:
            return False
        session.close()
        logger.info("Session for attempt %s ended without submission", attempt_id)
        return True

    def shutdown(self) -> None:
        """Cancel every running countdown; buffered answers are discarded."""
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close()

    # --- Session state ---

    def has_active_session(self, attempt_id: str) -> bool:
        with self._lock:
            return attempt_id in self._sessions

    def remaining_seconds(self, attempt_id: str) -> int | None:
        with self._lock:
            session = self._sessions.get(attempt_id)
            return session.remaining_seconds() if session is not None else None

    def buffered_answers(self, attempt_id: str) -> list[Answer]:
        with self._lock:
            session = self._sessions.get(attempt_id)
            return session.get_answers() if session is not None else []

    def get_countdown(self, attempt_id: str) -> AttemptCountdown | None:
        with self._lock:
            session = self._sessions.get(attempt_id)
            return session.countdown if session is not None else None

    # --- Read accessors ---

    def get_quiz(self, quiz_id: str) -> Quiz:
        return self._require_quiz(quiz_id)

    def get_attempt(self, attempt_id: str) -> Attempt:
        return self._require_attempt(attempt_id)

    def list_attempts_by_quiz(self, quiz_id: str) -> list[Attempt]:
        return self._attempts.list_by_quiz(quiz_id)

    def list_attempts_by_student(self, student_id: str) -> list[Attempt]:
        return self._attempts.list_by_student(student_id)

    # --- Internals ---

    def _require_quiz(self, quiz_id: str) -> Quiz:
        quiz = self._catalog.get(quiz_id)
        if quiz is None:
            raise QuizNotFoundError(quiz_id)
        return quiz

    def _require_attempt(self, attempt_id: str) -> Attempt:
        attempt = self._attempts.get(attempt_id)
        if attempt is None:
            raise AttemptNotFoundError(attempt_id)
        return attempt

    def _require_tracked_attempt(self, attempt_id: str) -> Attempt:
        """Like `_require_attempt`, but also ends a session whose attempt is gone."""
        attempt = self._attempts.get(attempt_id)
        if attempt is None:
            session = self._sessions.pop(attempt_id, None)
            if session is not None:
                session.close()
                logger.info("Ended session for deleted attempt %s", attempt_id)
            raise AttemptNotFoundError(attempt_id)
        return attempt

    def _drop_orphaned_sessions(self, quiz_id: str) -> None:
        for attempt_id, session in list(self._sessions.items()):
            if session.quiz_id == quiz_id and self._attempts.get(attempt_id) is None:
                del self._sessions[attempt_id]
                session.close()
                logger.info("Ended session for attempt %s of deleted quiz %s", attempt_id, quiz_id)

    @staticmethod
    def _filter_answered(quiz: Quiz, answers: Iterable[Answer]) -> list[Answer]:
        """Drop blank answers and type-check the rest the way `record_answer` does."""
        questions = {q.id: q for q in quiz.questions}
        answered: list[Answer] = []
        for answer in answers:
            question = questions.get(answer.question_id)
            if is_unanswered(answer.value, isinstance(question, MultipleChoiceQuestion)):
                continue
            if question is not None:
                _check_value_type(question, answer.value)
            answered.append(Answer(question_id=answer.question_id, value=answer.value))
        return answered

    def _make_countdown(self, attempt_id: str, quiz: Quiz) -> AttemptCountdown | None:
        if not self._auto_submit:
            return None
        return AttemptCountdown(
            total_seconds=quiz.time_limit_minutes * 60,
            on_expire=partial(self._handle_expiry, attempt_id),
            tick_seconds=self._tick_seconds,
            name=f"AttemptCountdown-{attempt_id[:8]}",
        )

    def _handle_expiry(self, attempt_id: str) -> None:
        logger.info("Time limit reached for attempt %s; submitting buffered answers", attempt_id)
        try:
            self.submit(attempt_id)
        except AlreadySubmittedError:
            logger.info("Attempt %s was submitted before its timer fired", attempt_id)
        except AttemptNotFoundError:
            logger.info("Attempt %s was deleted before its timer fired", attempt_id)
        except QuizError as exc:
            logger.warning("Automatic submission of attempt %s failed: %s", attempt_id, exc)
