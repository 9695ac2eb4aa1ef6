from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from quizclock.core.attempt_controller import AttemptController
from quizclock.core.errors import StorageUnavailableError
from quizclock.core.models import (
    MultipleChoiceQuestion,
    Quiz,
    ShortAnswerQuestion,
    TrueFalseQuestion,
)
from quizclock.core.services.attempt_store import AttemptStore
from quizclock.core.services.catalog_store import CatalogStore
from quizclock.core.services.storage import MemoryStorage


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FlakyStorage(MemoryStorage):
    """Memory storage whose saves fail for the named collections."""

    def __init__(self) -> None:
        super().__init__()
        self.failing: set[str] = set()

    def save(self, collection, records):
        if collection in self.failing:
            raise StorageUnavailableError(collection, "disk on fire")
        super().save(collection, records)


def scenario_quiz(teacher_id: str = "teacher-1", published: bool = True) -> Quiz:
    """One multiple-choice question worth 5 and one true/false question worth 3."""
    return Quiz(
        id="",
        title="Scenario",
        description="",
        teacher_id=teacher_id,
        time_limit_minutes=1,
        is_published=published,
        questions=[
            MultipleChoiceQuestion(
                id="q1", text="Pick the first", points=5, options=["a", "b", "c", "d"], correct_answer=0
            ),
            TrueFalseQuestion(id="q2", text="Is it true?", points=3, correct_answer=True),
        ],
    )


def capital_quiz(teacher_id: str = "teacher-1") -> Quiz:
    return Quiz(
        id="",
        title="Capitals",
        description="European capitals",
        teacher_id=teacher_id,
        time_limit_minutes=2,
        is_published=True,
        questions=[
            ShortAnswerQuestion(id="s1", text="Capital of France?", points=2, correct_answer="Paris"),
            TrueFalseQuestion(id="s2", text="Rome is in Spain.", points=2, correct_answer=False),
        ],
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> FlakyStorage:
    return FlakyStorage()


@pytest.fixture
def attempt_store(storage) -> AttemptStore:
    return AttemptStore(storage)


@pytest.fixture
def catalog(storage, attempt_store, clock) -> CatalogStore:
    return CatalogStore(storage, attempt_store, clock=clock)


@pytest.fixture
def controller(catalog, attempt_store, clock):
    # Long ticks: countdowns only move when a test ticks them by hand.
    manager = AttemptController(catalog, attempt_store, clock=clock, tick_seconds=3600)
    yield manager
    manager.shutdown()


@pytest.fixture
def published_quiz(catalog) -> Quiz:
    return catalog.create(scenario_quiz())
