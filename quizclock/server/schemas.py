"""Request payload schemas for the HTTP API."""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, StrictBool, StrictInt, StrictStr

from quizclock.core.models import (
    Answer,
    MultipleChoiceQuestion,
    Question,
    Quiz,
    ShortAnswerQuestion,
    TrueFalseQuestion,
)
from quizclock.core.services.identity import Role

AnswerValuePayload = Union[StrictBool, StrictInt, StrictStr, None]
PointsPayload = Annotated[float, Field(gt=0, allow_inf_nan=False)]


class LoginPayload(BaseModel):
    email: str
    password: str
    role: Role


class MultipleChoicePayload(BaseModel):
    question_type: Literal["multiple-choice"]
    id: Optional[str] = None
    text: str
    points: PointsPayload
    options: list[str]
    correct_answer: StrictInt

    def to_question(self) -> Question:
        return MultipleChoiceQuestion(
            id=self.id or "",
            text=self.text,
            points=self.points,
            options=list(self.options),
            correct_answer=self.correct_answer,
        )


class TrueFalsePayload(BaseModel):
    question_type: Literal["true-false"]
    id: Optional[str] = None
    text: str
    points: PointsPayload
    correct_answer: StrictBool

    def to_question(self) -> Question:
        return TrueFalseQuestion(
            id=self.id or "", text=self.text, points=self.points, correct_answer=self.correct_answer
        )


class ShortAnswerPayload(BaseModel):
    question_type: Literal["short-answer"]
    id: Optional[str] = None
    text: str
    points: PointsPayload
    correct_answer: StrictStr

    def to_question(self) -> Question:
        return ShortAnswerQuestion(
            id=self.id or "", text=self.text, points=self.points, correct_answer=self.correct_answer
        )


QuestionPayload = Annotated[
    Union[MultipleChoicePayload, TrueFalsePayload, ShortAnswerPayload],
    Field(discriminator="question_type"),
]


class QuizPayload(BaseModel):
    """Payload schema for creating a quiz."""

    title: str
    description: str = ""
    time_limit_minutes: StrictInt
    questions: list[QuestionPayload] = Field(default_factory=list)
    is_published: bool = False

    def to_quiz(self, teacher_id: str) -> Quiz:
        return Quiz(
            id="",
            title=self.title,
            description=self.description,
            teacher_id=teacher_id,
            time_limit_minutes=self.time_limit_minutes,
            questions=[q.to_question() for q in self.questions],
            is_published=self.is_published,
        )


class QuizUpdatePayload(BaseModel):
    """Partial update; only the fields present in the request are changed."""

    title: Optional[str] = None
    description: Optional[str] = None
    time_limit_minutes: Optional[StrictInt] = None
    questions: Optional[list[QuestionPayload]] = None
    is_published: Optional[bool] = None

    def to_changes(self) -> dict[str, object]:
        changes: dict[str, object] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if value is None:
                continue
            if name == "questions":
                value = [q.to_question() for q in value]
            changes[name] = value
        return changes


class QuizTextPayload(BaseModel):
    """A quiz written in the plain-text import format."""

    text: str


class AnswerPayload(BaseModel):
    """Payload schema for a buffered answer; null clears it."""

    value: AnswerValuePayload = None


class SubmittedAnswerPayload(BaseModel):
    question_id: str
    value: AnswerValuePayload = None


class SubmitPayload(BaseModel):
    """Explicit answers to grade; when omitted the buffered answers are used."""

    answers: Optional[list[SubmittedAnswerPayload]] = None

    def to_answers(self) -> list[Answer] | None:
        if self.answers is None:
            return None
        return [Answer(question_id=a.question_id, value=a.value) for a in self.answers]
