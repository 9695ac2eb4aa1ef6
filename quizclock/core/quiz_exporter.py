"""Utilities for exporting quizzes to the plain-text format used for imports."""

from __future__ import annotations

from pathlib import Path

from quizclock.core.models import (
    MultipleChoiceQuestion,
    Question,
    Quiz,
    ShortAnswerQuestion,
    TrueFalseQuestion,
)
from quizclock.core.quiz_importer import CONTINUATION_MARK, OPTION_LETTERS


def save_quiz_to_file(file_path: Path, quiz: Quiz) -> None:
    """Persist the provided quiz to disk in the text import format."""

    if not quiz.questions:
        raise ValueError("Cannot export an empty quiz.")

    file_path = file_path.resolve()
    file_path.parent.mkdir(parents=True, exist_ok=True)
    document = serialize_quiz(quiz)
    file_path.write_text(document, encoding="utf-8")


def serialize_quiz(quiz: Quiz) -> str:
    header = [f"TITLE: {quiz.title}"]
    if quiz.description:
        header.append(f"DESCRIPTION: {' '.join(quiz.description.splitlines())}")
    header.append(f"TIMELIMIT: {quiz.time_limit_minutes}")
    header.append(f"PUBLISHED: {'yes' if quiz.is_published else 'no'}")
    blocks = ["\n".join(header)] + [_serialize_question(question) for question in quiz.questions]
    return "\n\n---\n\n".join(blocks) + "\n"


def _escaped_lines(marker: str, text: str) -> list[str]:
    """Write ``text`` after ``marker``, escaping every line after the first."""
    first, *rest = text.splitlines() or [""]
    return [f"{marker} {first}"] + [f"{CONTINUATION_MARK} {line}".rstrip() for line in rest]


def _format_points(points: float) -> str:
    return str(int(points)) if float(points).is_integer() else str(points)


def _serialize_question(question: Question) -> str:
    lines = _escaped_lines("Q:", question.text)

    if isinstance(question, MultipleChoiceQuestion):
        lines.append("TYPE: MC")
        for idx, option_text in enumerate(question.options):
            lines.extend(_escaped_lines(f"{OPTION_LETTERS[idx]}:", option_text))
        lines.append(f"CORRECT: {OPTION_LETTERS[question.correct_answer]}")
    elif isinstance(question, TrueFalseQuestion):
        lines.append("TYPE: TF")
        lines.append(f"CORRECT: {'TRUE' if question.correct_answer else 'FALSE'}")
    elif isinstance(question, ShortAnswerQuestion):
        lines.append("TYPE: SHORT")
        lines.append(f"CORRECT: {question.correct_answer}")

    lines.append(f"POINTS: {_format_points(question.points)}")
    return "\n".join(lines)
