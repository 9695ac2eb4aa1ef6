"""Service holding the answer buffer and countdown of one open attempt."""

from __future__ import annotations

from quizclock.core.models import Answer, AnswerValue, MultipleChoiceQuestion, Question, Quiz
from quizclock.core.services.countdown import AttemptCountdown


def is_unanswered(value: AnswerValue | None, multiple_choice: bool) -> bool:
    """True for the placeholder values a blank answer sheet starts with."""
    if value is None or value == "":
        return True
    return multiple_choice and not isinstance(value, bool) and value == -1


class AttemptSession:
    """Buffers answers for an in-progress attempt until it is submitted.

    Nothing here is persisted; closing the session discards the buffer.
    """

    def __init__(self, attempt_id: str, quiz: Quiz, countdown: AttemptCountdown | None = None) -> None:
        self.attempt_id = attempt_id
        self.quiz_id = quiz.id
        self._choice_questions = {
            q.id for q in quiz.questions if isinstance(q, MultipleChoiceQuestion)
        }
        self._questions: dict[str, Question] = {q.id: q for q in quiz.questions}
        self._buffer: dict[str, AnswerValue] = {}
        self._countdown = countdown

    @property
    def countdown(self) -> AttemptCountdown | None:
        return self._countdown

    def get_question(self, question_id: str) -> Question | None:
        return self._questions.get(question_id)

    def record_answer(self, question_id: str, value: AnswerValue | None) -> bool:
        """Buffer a value. Returns True if it's a new answer, False if update or clear."""
        if value is None:
            self._buffer.pop(question_id, None)
            return False
        is_new = question_id not in self._buffer
        self._buffer[question_id] = value
        return is_new

    def get_answers(self) -> list[Answer]:
        """Buffered answers in answering order, skipping blank placeholders."""
        return [
            Answer(question_id=question_id, value=value)
            for question_id, value in self._buffer.items()
            if not is_unanswered(value, question_id in self._choice_questions)
        ]

    def remaining_seconds(self) -> int | None:
        if self._countdown is None:
            return None
        return self._countdown.remaining_seconds

    def start_countdown(self) -> None:
        if self._countdown is not None:
            self._countdown.start()

    def close(self) -> None:
        if self._countdown is not None:
            self._countdown.cancel()
