from __future__ import annotations

import logging
import time

import pytest

from conftest import capital_quiz, scenario_quiz
from quizclock.core.attempt_controller import AttemptController
from quizclock.core.errors import (
    AlreadySubmittedError,
    AttemptNotFoundError,
    InvalidAnswerError,
    InvalidQuizStateError,
    InvalidStateError,
    NotPublishedError,
    QuestionNotFoundError,
    QuizNotFoundError,
    StorageUnavailableError,
)
from quizclock.core.models import Answer, Attempt, AttemptState


def test_start_creates_in_progress_attempt(controller, published_quiz, attempt_store, clock):
    attempt = controller.start(published_quiz.id, "student-1")
    assert attempt.state is AttemptState.IN_PROGRESS
    assert attempt.start_time == clock.now
    assert attempt.end_time is None
    assert attempt.score is None
    assert attempt.answers == []
    assert attempt_store.get(attempt.id) == attempt
    assert controller.remaining_seconds(attempt.id) == 60


def test_start_unknown_quiz(controller):
    with pytest.raises(QuizNotFoundError):
        controller.start("missing", "student-1")


def test_start_unpublished_quiz(controller, catalog):
    draft = catalog.create(scenario_quiz(published=False))
    with pytest.raises(NotPublishedError):
        controller.start(draft.id, "student-1")


def test_starting_twice_gives_independent_attempts(controller, published_quiz):
    first = controller.start(published_quiz.id, "student-1")
    second = controller.start(published_quiz.id, "student-1")
    assert first.id != second.id

    graded_first = controller.submit(first.id, [Answer("q1", 0), Answer("q2", True)])
    graded_second = controller.submit(second.id, [Answer("q1", 1)])
    assert graded_first.score == 100
    assert graded_second.score == 0
    assert len(controller.list_attempts_by_student("student-1")) == 2


@pytest.mark.parametrize(
    ("answers", "expected"),
    [
        ([("q1", 0), ("q2", True)], 100),
        ([("q1", 1), ("q2", True)], 38),
        ([], 0),
    ],
)
def test_submit_buffered_answers(controller, published_quiz, answers, expected, clock):
    attempt = controller.start(published_quiz.id, "student-1")
    for question_id, value in answers:
        controller.record_answer(attempt.id, question_id, value)
    clock.advance(seconds=42)

    finalized = controller.submit(attempt.id)

    assert finalized.score == expected
    assert finalized.completed is True
    assert finalized.end_time == clock.now
    assert finalized.time_taken_seconds() == 42
    assert not controller.has_active_session(attempt.id)
    assert controller.get_attempt(attempt.id) == finalized


def test_record_answer_updates_and_clears(controller, published_quiz):
    attempt = controller.start(published_quiz.id, "student-1")
    assert controller.record_answer(attempt.id, "q1", 2) is True
    assert controller.record_answer(attempt.id, "q1", 0) is False
    controller.record_answer(attempt.id, "q2", False)
    controller.record_answer(attempt.id, "q2", None)
    assert controller.buffered_answers(attempt.id) == [Answer("q1", 0)]
    # Buffering never touches the stored record.
    assert controller.get_attempt(attempt.id).answers == []


def test_placeholder_values_count_as_unanswered(controller, catalog):
    quiz = catalog.create(capital_quiz())
    attempt = controller.start(quiz.id, "student-1")
    controller.record_answer(attempt.id, "s1", "")
    assert controller.buffered_answers(attempt.id) == []

    mixed = catalog.create(scenario_quiz())
    other = controller.start(mixed.id, "student-1")
    controller.record_answer(other.id, "q1", -1)
    assert controller.buffered_answers(other.id) == []
    assert controller.submit(other.id).answers == []


def test_record_answer_validation(controller, published_quiz):
    attempt = controller.start(published_quiz.id, "student-1")
    with pytest.raises(QuestionNotFoundError):
        controller.record_answer(attempt.id, "nope", 1)
    with pytest.raises(InvalidAnswerError):
        controller.record_answer(attempt.id, "q1", True)
    with pytest.raises(InvalidAnswerError):
        controller.record_answer(attempt.id, "q2", "yes")
    with pytest.raises(AttemptNotFoundError):
        controller.record_answer("missing", "q1", 0)


def test_record_answer_after_submit_is_invalid(controller, published_quiz):
    attempt = controller.start(published_quiz.id, "student-1")
    controller.submit(attempt.id)
    with pytest.raises(InvalidStateError):
        controller.record_answer(attempt.id, "q1", 0)


def test_record_answer_without_session_is_invalid(controller, published_quiz):
    attempt = controller.start(published_quiz.id, "student-1")
    assert controller.end_session(attempt.id) is True
    assert controller.end_session(attempt.id) is False
    with pytest.raises(InvalidStateError):
        controller.record_answer(attempt.id, "q1", 0)
    assert controller.get_attempt(attempt.id).completed is False


def test_second_submit_fails_and_changes_nothing(controller, published_quiz, clock):
    attempt = controller.start(published_quiz.id, "student-1")
    first = controller.submit(attempt.id, [Answer("q1", 0)])
    clock.advance(minutes=3)
    with pytest.raises(AlreadySubmittedError):
        controller.submit(attempt.id, [Answer("q1", 0), Answer("q2", True)])
    assert controller.get_attempt(attempt.id) == first


def test_submit_unknown_attempt(controller):
    with pytest.raises(AttemptNotFoundError):
        controller.submit("missing")


def test_submit_with_missing_quiz(controller, attempt_store, clock):
    orphan = attempt_store.create(
        Attempt(id="", quiz_id="gone", student_id="student-1", start_time=clock.now)
    )
    with pytest.raises(QuizNotFoundError):
        controller.submit(orphan.id)
    assert attempt_store.get(orphan.id).completed is False


def test_zero_point_quiz_fails_without_finalizing(controller, catalog, attempt_store, clock):
    draft = scenario_quiz(published=False)
    draft.questions = []
    empty = catalog.create(draft)
    attempt = attempt_store.create(
        Attempt(id="", quiz_id=empty.id, student_id="student-1", start_time=clock.now)
    )
    with pytest.raises(InvalidQuizStateError):
        controller.submit(attempt.id)
    stored = attempt_store.get(attempt.id)
    assert stored.completed is False
    assert stored.score is None
    assert stored.end_time is None


def test_storage_failure_keeps_attempt_open(controller, published_quiz, storage, attempt_store):
    attempt = controller.start(published_quiz.id, "student-1")
    controller.record_answer(attempt.id, "q1", 0)

    storage.failing.add(attempt_store.collection)
    with pytest.raises(StorageUnavailableError):
        controller.submit(attempt.id)
    assert controller.get_attempt(attempt.id).completed is False
    assert controller.has_active_session(attempt.id)

    storage.failing.clear()
    assert controller.submit(attempt.id).score == 63


def test_stale_answers_are_graded_incorrect(controller, published_quiz):
    attempt = controller.start(published_quiz.id, "student-1")
    finalized = controller.submit(attempt.id, [Answer("q2", True), Answer("retired", 3)])
    assert finalized.score == 38
    assert [(a.question_id, a.is_correct) for a in finalized.answers] == [
        ("q2", True),
        ("retired", False),
    ]


def test_explicit_answers_are_type_checked(controller, published_quiz):
    attempt = controller.start(published_quiz.id, "student-1")
    with pytest.raises(InvalidAnswerError):
        controller.submit(attempt.id, [Answer("q1", "0")])
    with pytest.raises(InvalidAnswerError):
        controller.submit(attempt.id, [Answer("q2", 1)])
    assert controller.get_attempt(attempt.id).completed is False
    assert controller.submit(attempt.id, [Answer("q1", 0), Answer("q2", True)]).score == 100


def test_timer_expiry_submits_buffered_answers(controller, published_quiz):
    attempt = controller.start(published_quiz.id, "student-1")
    controller.record_answer(attempt.id, "q2", True)
    countdown = controller.get_countdown(attempt.id)

    for _ in range(59):
        countdown.tick()
    assert controller.get_attempt(attempt.id).completed is False
    assert controller.remaining_seconds(attempt.id) == 1

    countdown.tick()
    finalized = controller.get_attempt(attempt.id)
    assert finalized.completed is True
    assert finalized.score == 38
    assert not controller.has_active_session(attempt.id)


def test_manual_submit_cancels_timer(controller, published_quiz):
    attempt = controller.start(published_quiz.id, "student-1")
    countdown = controller.get_countdown(attempt.id)
    finalized = controller.submit(attempt.id, [Answer("q1", 0)])
    for _ in range(60):
        countdown.tick()
    assert countdown.expired is False
    assert controller.get_attempt(attempt.id) == finalized


def test_late_timer_after_submit_is_absorbed(controller, published_quiz, caplog):
    caplog.set_level(logging.INFO, logger="quizclock")
    attempt = controller.start(published_quiz.id, "student-1")
    finalized = controller.submit(attempt.id)
    # A timer that was already firing when the student submitted.
    controller._handle_expiry(attempt.id)
    assert "was submitted before its timer fired" in caplog.text
    assert controller.get_attempt(attempt.id) == finalized


def test_background_timer_auto_submits(catalog, attempt_store, published_quiz):
    manager = AttemptController(catalog, attempt_store, tick_seconds=0.001)
    try:
        attempt = manager.start(published_quiz.id, "student-1")
        manager.record_answer(attempt.id, "q1", 0)
        deadline = time.monotonic() + 5
        while time.monotonic() < deadline and not manager.get_attempt(attempt.id).completed:
            time.sleep(0.01)
        assert manager.get_attempt(attempt.id).score == 63
    finally:
        manager.shutdown()


def test_without_auto_submit_there_is_no_timer(catalog, attempt_store, published_quiz):
    manager = AttemptController(catalog, attempt_store, auto_submit=False)
    attempt = manager.start(published_quiz.id, "student-1")
    assert manager.get_countdown(attempt.id) is None
    assert manager.remaining_seconds(attempt.id) is None
    manager.record_answer(attempt.id, "q1", 0)
    assert manager.submit(attempt.id).score == 63


def test_shutdown_stops_all_sessions(controller, published_quiz):
    attempts = [controller.start(published_quiz.id, f"student-{n}") for n in range(3)]
    countdowns = [controller.get_countdown(a.id) for a in attempts]
    controller.shutdown()
    assert not any(controller.has_active_session(a.id) for a in attempts)
    for countdown in countdowns:
        countdown.tick()
        assert countdown.remaining_seconds == 60


def test_read_accessors(controller, published_quiz):
    attempt = controller.start(published_quiz.id, "student-1")
    controller.start(published_quiz.id, "student-2")
    assert controller.get_quiz(published_quiz.id) == published_quiz
    assert [a.id for a in controller.list_attempts_by_student("student-1")] == [attempt.id]
    assert len(controller.list_attempts_by_quiz(published_quiz.id)) == 2
    with pytest.raises(QuizNotFoundError):
        controller.get_quiz("missing")


def test_deleting_quiz_ends_its_sessions(controller, catalog, published_quiz, caplog):
    caplog.set_level(logging.INFO, logger="quizclock")
    attempt = controller.start(published_quiz.id, "student-1")
    countdown = controller.get_countdown(attempt.id)

    assert controller.delete_quiz(published_quiz.id) is True
    assert catalog.get(published_quiz.id) is None
    assert not controller.has_active_session(attempt.id)
    for _ in range(60):
        countdown.tick()
    assert countdown.expired is False
    assert "failed" not in caplog.text


def test_session_of_externally_deleted_attempt_is_dropped(controller, catalog, published_quiz):
    attempt = controller.start(published_quiz.id, "student-1")
    countdown = controller.get_countdown(attempt.id)
    catalog.delete(published_quiz.id)

    for _ in range(60):
        countdown.tick()
    assert countdown.expired is True
    assert not controller.has_active_session(attempt.id)
    with pytest.raises(AttemptNotFoundError):
        controller.record_answer(attempt.id, "q1", 0)
