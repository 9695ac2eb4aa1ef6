from __future__ import annotations

import itertools
import random

import pytest

from conftest import scenario_quiz
from quizclock.core.errors import InvalidAnswerError, InvalidQuizStateError
from quizclock.core.grading import grade, is_correct
from quizclock.core.models import (
    Answer,
    MultipleChoiceQuestion,
    Quiz,
    ShortAnswerQuestion,
    TrueFalseQuestion,
)


def _quiz() -> Quiz:
    quiz = scenario_quiz()
    quiz.id = "quiz-1"
    return quiz


def test_all_correct_scores_100():
    result = grade(_quiz(), [Answer("q1", 0), Answer("q2", True)])
    assert result.score == 100
    assert [a.is_correct for a in result.answers] == [True, True]
    assert [a.points_awarded for a in result.answers] == [5, 3]


def test_wrong_choice_scores_share_of_true_false():
    result = grade(_quiz(), [Answer("q1", 1), Answer("q2", True)])
    assert result.score == 38  # round(100 * 3 / 8)
    assert result.answers[0].is_correct is False
    assert result.answers[0].points_awarded == 0


def test_no_answers_scores_zero():
    result = grade(_quiz(), [])
    assert result.score == 0
    assert result.answers == ()
    assert result.total_points == 8


def test_unanswered_question_costs_its_share():
    result = grade(_quiz(), [Answer("q1", 0)])
    assert result.score == 63  # round(100 * 5 / 8) = round(62.5)
    assert len(result.answers) == 1


def test_halves_round_up():
    quiz = Quiz(
        id="quiz-2",
        title="Halves",
        description="",
        teacher_id="t",
        time_limit_minutes=1,
        questions=[
            TrueFalseQuestion(id="a", text="a", points=1, correct_answer=True),
            TrueFalseQuestion(id="b", text="b", points=7, correct_answer=True),
        ],
    )
    assert grade(quiz, [Answer("a", True)]).score == 13  # 12.5


def test_unknown_question_is_incorrect_and_outside_the_ratio():
    result = grade(_quiz(), [Answer("ghost", 0), Answer("q1", 0), Answer("q2", True)])
    assert result.score == 100
    assert result.total_points == 8
    ghost = result.answers[-1]
    assert ghost.question_id == "ghost"
    assert ghost.is_correct is False
    assert ghost.points_awarded == 0


def test_short_answer_ignores_case_but_not_whitespace():
    question = ShortAnswerQuestion(id="s", text="Capital?", points=1, correct_answer="Paris")
    assert is_correct(question, "paris")
    assert is_correct(question, "PARIS")
    assert not is_correct(question, " Paris ")
    assert not is_correct(question, "Paris.")


def test_strict_types_for_choice_and_true_false():
    choice = MultipleChoiceQuestion(id="m", text="?", points=1, options=["x", "y"], correct_answer=1)
    truth = TrueFalseQuestion(id="t", text="?", points=1, correct_answer=True)
    assert is_correct(choice, 1)
    assert not is_correct(choice, True)
    assert not is_correct(choice, "1")
    assert is_correct(truth, True)
    assert not is_correct(truth, 1)
    assert not is_correct(truth, "true")


def test_zero_point_quiz_cannot_be_graded():
    empty = Quiz(id="e", title="Empty", description="", teacher_id="t", time_limit_minutes=1)
    with pytest.raises(InvalidQuizStateError):
        grade(empty, [])


def test_duplicate_answers_are_rejected():
    with pytest.raises(InvalidAnswerError):
        grade(_quiz(), [Answer("q1", 0), Answer("q1", 1)])


def test_grading_is_deterministic_and_order_independent():
    answers = [Answer("q2", True), Answer("ghost", "x"), Answer("q1", 2), Answer("other", False)]
    first = grade(_quiz(), answers)
    assert grade(_quiz(), answers) == first
    shuffled = list(answers)
    random.Random(7).shuffle(shuffled)
    assert grade(_quiz(), shuffled) == first
    assert grade(_quiz(), list(reversed(answers))) == first


def test_grading_does_not_mutate_inputs():
    quiz = _quiz()
    answers = [Answer("q1", 0)]
    grade(quiz, answers)
    assert answers[0].is_correct is None
    assert answers[0].points_awarded is None
    assert len(quiz.questions) == 2


def test_score_stays_within_bounds_and_matches_formula():
    quiz = _quiz()
    for choice, truth in itertools.product([None, 0, 1, 2, 3], [None, True, False]):
        answers = []
        if choice is not None:
            answers.append(Answer("q1", choice))
        if truth is not None:
            answers.append(Answer("q2", truth))
        result = grade(quiz, answers)
        earned = (5 if choice == 0 else 0) + (3 if truth is True else 0)
        assert 0 <= result.score <= 100
        assert result.earned_points == earned
        assert result.score == int(100 * earned / 8 + 0.5)
