"""Pure grading of submitted answers against a quiz definition.

Grading rules per question type:

    multiple-choice  submitted index must equal the correct index
    true-false       submitted boolean must equal the correct boolean
    short-answer     lower-cased strings must be equal (no trimming)

The score is ``round_half_up(100 * earned / total)`` where ``total`` sums the
points of every question in the quiz, so skipped questions count against the
student. Answers whose question id is not in the quiz are marked incorrect and
never contribute to either side of the ratio.
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
import math
from typing import Callable, Iterable

from quizclock.core.errors import InvalidAnswerError, InvalidQuizStateError
from quizclock.core.models import (
    Answer,
    AnswerValue,
    MultipleChoiceQuestion,
    Question,
    QuestionType,
    Quiz,
    ShortAnswerQuestion,
    TrueFalseQuestion,
)


@dataclass(slots=True, frozen=True)
class GradeResult:
    """Graded answers in quiz order plus the aggregate 0-100 score."""

    answers: tuple[Answer, ...]
    score: int
    earned_points: float
    total_points: float


def _grade_multiple_choice(question: MultipleChoiceQuestion, value: AnswerValue) -> bool:
    # bool is an int subclass; True must not match index 1.
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return value == question.correct_answer


def _grade_true_false(question: TrueFalseQuestion, value: AnswerValue) -> bool:
    return isinstance(value, bool) and value is question.correct_answer


def _grade_short_answer(question: ShortAnswerQuestion, value: AnswerValue) -> bool:
    if not isinstance(value, str):
        return False
    return value.lower() == question.correct_answer.lower()


_GRADERS: dict[QuestionType, Callable[..., bool]] = {
    QuestionType.MULTIPLE_CHOICE: _grade_multiple_choice,
    QuestionType.TRUE_FALSE: _grade_true_false,
    QuestionType.SHORT_ANSWER: _grade_short_answer,
}

_missing = set(QuestionType) - set(_GRADERS)
if _missing:
    raise RuntimeError(f"No grader registered for question types: {sorted(t.value for t in _missing)}")


def is_correct(question: Question, value: AnswerValue) -> bool:
    """Apply the grading rule of the question's type to a single value."""
    grader = _GRADERS.get(question.question_type)
    if grader is None:
        raise TypeError(f"Unsupported question type: {question.question_type!r}")
    return grader(question, value)


def round_half_up(value: Fraction) -> int:
    return math.floor(value + Fraction(1, 2))


def grade(quiz: Quiz, answers: Iterable[Answer]) -> GradeResult:
    """Grade ``answers`` against ``quiz`` without mutating either."""
    total = sum((Fraction(q.points) for q in quiz.questions), Fraction(0))
    if total <= 0:
        raise InvalidQuizStateError(f"Quiz '{quiz.id}' has zero total points and cannot be graded.")

    by_question: dict[str, Answer] = {}
    for answer in answers:
        if answer.question_id in by_question:
            raise InvalidAnswerError(
                f"Question '{answer.question_id}' was answered more than once."
            )
        by_question[answer.question_id] = answer

    graded: list[Answer] = []
    earned = Fraction(0)
    for question in quiz.questions:
        submitted = by_question.pop(question.id, None)
        if submitted is None:
            continue
        correct = is_correct(question, submitted.value)
        awarded = question.points if correct else 0
        earned += Fraction(awarded)
        graded.append(
            Answer(
                question_id=question.id,
                value=submitted.value,
                is_correct=correct,
                points_awarded=awarded,
            )
        )

    # Whatever is left references questions the quiz does not contain.
    for question_id in sorted(by_question):
        stale = by_question[question_id]
        graded.append(
            Answer(question_id=question_id, value=stale.value, is_correct=False, points_awarded=0)
        )

    return GradeResult(
        answers=tuple(graded),
        score=round_half_up(Fraction(100) * earned / total),
        earned_points=float(earned),
        total_points=float(total),
    )
