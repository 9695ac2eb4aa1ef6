"""Exception types raised by the quiz core.

Every domain failure derives from `QuizError` and carries the HTTP status the
API layer answers with. Storage failures are deliberately outside that
hierarchy so callers can tell a broken substrate from a rejected operation.
"""

from __future__ import annotations


class QuizError(Exception):
    """Base class for recoverable quiz and attempt errors."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(QuizError):
    status_code = 404


class QuizNotFoundError(NotFoundError):
    def __init__(self, quiz_id: str) -> None:
        super().__init__(f"Quiz '{quiz_id}' not found.")
        self.quiz_id = quiz_id


class AttemptNotFoundError(NotFoundError):
    def __init__(self, attempt_id: str) -> None:
        super().__init__(f"Attempt '{attempt_id}' not found.")
        self.attempt_id = attempt_id


class QuestionNotFoundError(NotFoundError):
    def __init__(self, question_id: str, quiz_id: str) -> None:
        super().__init__(f"Question '{question_id}' is not part of quiz '{quiz_id}'.")
        self.question_id = question_id
        self.quiz_id = quiz_id


class NotPublishedError(QuizError):
    status_code = 409

    def __init__(self, quiz_id: str) -> None:
        super().__init__(f"Quiz '{quiz_id}' is not published.")
        self.quiz_id = quiz_id


class InvalidStateError(QuizError):
    """Operation is not valid for the attempt's current state."""

    status_code = 409


class AlreadySubmittedError(InvalidStateError):
    def __init__(self, attempt_id: str) -> None:
        super().__init__(f"Attempt '{attempt_id}' has already been submitted.")
        self.attempt_id = attempt_id


class InvalidQuizStateError(QuizError):
    """The quiz cannot be graded as stored (zero total points)."""

    status_code = 409


class InvalidQuizDefinitionError(QuizError):
    status_code = 422


class InvalidAnswerError(QuizError):
    status_code = 422


class NotAuthenticatedError(QuizError):
    status_code = 401


class PermissionDeniedError(QuizError):
    status_code = 403


class StorageUnavailableError(Exception):
    """Raised when the persistence substrate cannot be read or written."""

    def __init__(self, collection: str, reason: str) -> None:
        super().__init__(f"Storage for '{collection}' is unavailable: {reason}")
        self.collection = collection
        self.reason = reason
