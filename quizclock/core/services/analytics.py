"""Read-only reporting over completed attempts."""

from __future__ import annotations

from dataclasses import dataclass, field
from fractions import Fraction
from typing import Iterable

from quizclock.constants.quiz_constants import SCORE_BUCKETS
from quizclock.core.grading import round_half_up
from quizclock.core.models import Attempt, Quiz


@dataclass(slots=True)
class QuestionStats:
    question_id: str
    question_text: str
    total_answers: int
    correct_answers: int
    incorrect_answers: int
    percent_correct: int


@dataclass(slots=True)
class QuizAnalytics:
    """Snapshot of a quiz's results, ready to be rendered."""

    quiz_id: str
    total_attempts: int = 0
    average_score: int = 0
    highest_score: int = 0
    lowest_score: int = 0
    average_time_minutes: int = 0
    score_distribution: dict[str, int] = field(default_factory=dict)
    score_distribution_percent: dict[str, int] = field(default_factory=dict)
    question_stats: list[QuestionStats] = field(default_factory=list)


@dataclass(slots=True)
class StudentOverview:
    """Published quizzes split by whether the student has completed them."""

    completed_quizzes: list[Quiz]
    pending_quizzes: list[Quiz]
    latest_attempts: dict[str, Attempt]


def _percentage(part: int, whole: int) -> int:
    if whole == 0:
        return 0
    return round_half_up(Fraction(100 * part, whole))


def score_bucket(score: int) -> str:
    for label, low, high in SCORE_BUCKETS:
        if low <= score <= high:
            return label
    raise ValueError(f"Score {score} is outside 0-100.")


def summarize_quiz(quiz: Quiz, attempts: Iterable[Attempt]) -> QuizAnalytics:
    """Aggregate the completed attempts of ``quiz``; other attempts are ignored."""
    completed = [a for a in attempts if a.quiz_id == quiz.id and a.completed]
    distribution = {label: 0 for label, _, _ in SCORE_BUCKETS}
    if not completed:
        return QuizAnalytics(
            quiz_id=quiz.id,
            score_distribution=distribution,
            score_distribution_percent=dict(distribution),
        )

    scores = [a.score or 0 for a in completed]
    for score in scores:
        distribution[score_bucket(score)] += 1

    total_seconds = sum(a.time_taken_seconds() or 0.0 for a in completed)
    average_minutes = round_half_up(Fraction(total_seconds) / (60 * len(completed)))

    question_stats = []
    for question in quiz.questions:
        graded = [
            answer
            for attempt in completed
            for answer in attempt.answers
            if answer.question_id == question.id
        ]
        correct = sum(1 for answer in graded if answer.is_correct)
        question_stats.append(
            QuestionStats(
                question_id=question.id,
                question_text=question.text,
                total_answers=len(graded),
                correct_answers=correct,
                incorrect_answers=len(graded) - correct,
                percent_correct=_percentage(correct, len(graded)),
            )
        )

    return QuizAnalytics(
        quiz_id=quiz.id,
        total_attempts=len(completed),
        average_score=round_half_up(Fraction(sum(scores), len(scores))),
        highest_score=max(scores),
        lowest_score=min(scores),
        average_time_minutes=average_minutes,
        score_distribution=distribution,
        score_distribution_percent={
            label: _percentage(count, len(completed)) for label, count in distribution.items()
        },
        question_stats=question_stats,
    )


def attempt_counts_by_quiz(quizzes: Iterable[Quiz], attempts: Iterable[Attempt]) -> dict[str, int]:
    """Number of attempts (any state) per quiz, zero for quizzes never attempted."""
    counts = {quiz.id: 0 for quiz in quizzes}
    for attempt in attempts:
        if attempt.quiz_id in counts:
            counts[attempt.quiz_id] += 1
    return counts


def student_overview(
    student_id: str, quizzes: Iterable[Quiz], attempts: Iterable[Attempt]
) -> StudentOverview:
    published = [quiz for quiz in quizzes if quiz.is_published]
    latest: dict[str, Attempt] = {}
    for attempt in attempts:
        if attempt.student_id != student_id or not attempt.completed:
            continue
        current = latest.get(attempt.quiz_id)
        if current is None or attempt.end_time > current.end_time:
            latest[attempt.quiz_id] = attempt
    return StudentOverview(
        completed_quizzes=[quiz for quiz in published if quiz.id in latest],
        pending_quizzes=[quiz for quiz in published if quiz.id not in latest],
        latest_attempts={quiz.id: latest[quiz.id] for quiz in published if quiz.id in latest},
    )


def letter_grade(score: int) -> str:
    for threshold, letter in ((90, "A"), (80, "B"), (70, "C"), (60, "D")):
        if score >= threshold:
            return letter
    return "F"


def feedback_message(score: int) -> str:
    for threshold, message in (
        (90, "Excellent!"),
        (80, "Great job!"),
        (70, "Good work!"),
        (60, "Nice effort!"),
        (50, "You passed!"),
    ):
        if score >= threshold:
            return message
    return "Keep practicing!"
