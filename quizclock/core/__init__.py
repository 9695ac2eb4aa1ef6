"""Quiz domain: models, grading and the attempt lifecycle."""

from .errors import (
    AlreadySubmittedError,
    InvalidQuizStateError,
    InvalidStateError,
    NotFoundError,
    NotPublishedError,
    QuizError,
    StorageUnavailableError,
)
from .grading import GradeResult, grade

__all__ = [
    "AlreadySubmittedError",
    "GradeResult",
    "InvalidQuizStateError",
    "InvalidStateError",
    "NotFoundError",
    "NotPublishedError",
    "QuizError",
    "StorageUnavailableError",
    "grade",
]
