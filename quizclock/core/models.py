"""Domain models for quizzes and attempts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, Union


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    SHORT_ANSWER = "short-answer"


class AttemptState(str, Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    SUBMITTED = "submitted"


@dataclass(slots=True)
class QuestionBase:
    """Fields shared by every question variant."""

    id: str
    text: str
    points: float


@dataclass(slots=True)
class MultipleChoiceQuestion(QuestionBase):
    """Question answered by picking the index of one option."""

    question_type: ClassVar[QuestionType] = QuestionType.MULTIPLE_CHOICE

    options: list[str] = field(default_factory=list)
    correct_answer: int = 0


@dataclass(slots=True)
class TrueFalseQuestion(QuestionBase):
    question_type: ClassVar[QuestionType] = QuestionType.TRUE_FALSE

    correct_answer: bool = True


@dataclass(slots=True)
class ShortAnswerQuestion(QuestionBase):
    """Free-text question graded by case-insensitive equality."""

    question_type: ClassVar[QuestionType] = QuestionType.SHORT_ANSWER

    correct_answer: str = ""


Question = Union[MultipleChoiceQuestion, TrueFalseQuestion, ShortAnswerQuestion]
AnswerValue = Union[bool, int, str]


@dataclass(slots=True)
class Quiz:
    """An authored collection of questions with a time limit and publish state."""

    id: str
    title: str
    description: str
    teacher_id: str
    time_limit_minutes: int
    questions: list[Question] = field(default_factory=list)
    is_published: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def total_points(self) -> float:
        return sum(q.points for q in self.questions)


@dataclass(slots=True)
class Answer:
    """A submitted value for one question; graded fields are set on finalization."""

    question_id: str
    value: AnswerValue
    is_correct: bool | None = None
    points_awarded: float | None = None


@dataclass(slots=True)
class Attempt:
    """One student's run through a quiz."""

    id: str
    quiz_id: str
    student_id: str
    start_time: datetime
    end_time: datetime | None = None
    answers: list[Answer] = field(default_factory=list)
    score: int | None = None
    completed: bool = False

    @property
    def state(self) -> AttemptState:
        return AttemptState.SUBMITTED if self.completed else AttemptState.IN_PROGRESS

    def time_taken_seconds(self) -> float | None:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
