"""Conversion between domain models and the plain records kept in storage."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from quizclock.core.models import (
    Answer,
    Attempt,
    MultipleChoiceQuestion,
    Question,
    QuestionType,
    Quiz,
    ShortAnswerQuestion,
    TrueFalseQuestion,
)

Record = dict[str, Any]


def _format_time(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_time(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def question_to_record(question: Question) -> Record:
    record: Record = {
        "id": question.id,
        "text": question.text,
        "question_type": question.question_type.value,
        "points": question.points,
        "correct_answer": question.correct_answer,
    }
    if isinstance(question, MultipleChoiceQuestion):
        record["options"] = list(question.options)
    return record


def question_from_record(record: Record) -> Question:
    question_type = QuestionType(record["question_type"])
    common = {"id": record["id"], "text": record["text"], "points": record["points"]}
    if question_type is QuestionType.MULTIPLE_CHOICE:
        return MultipleChoiceQuestion(
            **common,
            options=list(record.get("options", [])),
            correct_answer=int(record["correct_answer"]),
        )
    if question_type is QuestionType.TRUE_FALSE:
        return TrueFalseQuestion(**common, correct_answer=bool(record["correct_answer"]))
    return ShortAnswerQuestion(**common, correct_answer=str(record["correct_answer"]))


def quiz_to_record(quiz: Quiz) -> Record:
    return {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "teacher_id": quiz.teacher_id,
        "time_limit_minutes": quiz.time_limit_minutes,
        "questions": [question_to_record(q) for q in quiz.questions],
        "is_published": quiz.is_published,
        "created_at": _format_time(quiz.created_at),
        "updated_at": _format_time(quiz.updated_at),
    }


def quiz_from_record(record: Record) -> Quiz:
    return Quiz(
        id=record["id"],
        title=record["title"],
        description=record.get("description", ""),
        teacher_id=record["teacher_id"],
        time_limit_minutes=int(record["time_limit_minutes"]),
        questions=[question_from_record(q) for q in record.get("questions", [])],
        is_published=bool(record.get("is_published", False)),
        created_at=_parse_time(record.get("created_at")),
        updated_at=_parse_time(record.get("updated_at")),
    )


def answer_to_record(answer: Answer) -> Record:
    return {
        "question_id": answer.question_id,
        "value": answer.value,
        "is_correct": answer.is_correct,
        "points_awarded": answer.points_awarded,
    }


def answer_from_record(record: Record) -> Answer:
    return Answer(
        question_id=record["question_id"],
        value=record["value"],
        is_correct=record.get("is_correct"),
        points_awarded=record.get("points_awarded"),
    )


def attempt_to_record(attempt: Attempt) -> Record:
    return {
        "id": attempt.id,
        "quiz_id": attempt.quiz_id,
        "student_id": attempt.student_id,
        "start_time": _format_time(attempt.start_time),
        "end_time": _format_time(attempt.end_time),
        "answers": [answer_to_record(a) for a in attempt.answers],
        "score": attempt.score,
        "completed": attempt.completed,
    }


def attempt_from_record(record: Record) -> Attempt:
    return Attempt(
        id=record["id"],
        quiz_id=record["quiz_id"],
        student_id=record["student_id"],
        start_time=_parse_time(record["start_time"]),
        end_time=_parse_time(record.get("end_time")),
        answers=[answer_from_record(a) for a in record.get("answers", [])],
        score=record.get("score"),
        completed=bool(record.get("completed", False)),
    )
