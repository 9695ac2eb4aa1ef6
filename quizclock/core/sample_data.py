"""Sample quiz used to seed an empty catalog."""

from __future__ import annotations

import logging

from quizclock.core.models import (
    MultipleChoiceQuestion,
    Quiz,
    ShortAnswerQuestion,
    TrueFalseQuestion,
)
from quizclock.core.services.catalog_store import CatalogStore

logger = logging.getLogger(__name__)


def build_sample_quiz(teacher_id: str) -> Quiz:
    return Quiz(
        id="",
        title="Introduction to React",
        description="Test your knowledge about React fundamentals.",
        teacher_id=teacher_id,
        time_limit_minutes=10,
        is_published=True,
        questions=[
            MultipleChoiceQuestion(
                id="",
                text="What is React?",
                points=5,
                options=[
                    "A JavaScript library for building user interfaces",
                    "A programming language",
                    "A database management system",
                    "A server-side framework",
                ],
                correct_answer=0,
            ),
            TrueFalseQuestion(
                id="",
                text="React was created by Facebook.",
                points=3,
                correct_answer=True,
            ),
            ShortAnswerQuestion(
                id="",
                text="What hook is used for side effects in React?",
                points=7,
                correct_answer="useEffect",
            ),
        ],
    )


def seed_catalog(catalog: CatalogStore, teacher_id: str) -> Quiz | None:
    """Add the sample quiz when the catalog holds no quizzes at all."""
    if catalog.count():
        return None
    quiz = catalog.create(build_sample_quiz(teacher_id))
    logger.info("Seeded empty catalog with sample quiz %s", quiz.id)
    return quiz
