"""Utilities for importing quizzes from a human-friendly text file.

File format (blocks separated by blank lines or '---'):

    TITLE: Quiz title                   (header block, must come first)
    DESCRIPTION: One line of description (optional)
    TIMELIMIT: minutes                  (optional, default 10)
    PUBLISHED: yes|no                   (optional, default no)

    Q: Question text (supports markdown + LaTeX). Additional lines until the
       next marker are treated as part of the question.
    TYPE: MC|TF|SHORT   (optional for multiple choice: options imply MC)
    A: First option text                (multiple choice only, A-H)
    B: Second option text
    CORRECT: B | TRUE | FALSE | exact answer text
    POINTS: number                      (optional, default 1)

A continuation line written as "~ text" (or a lone "~" for an empty line) is
always read as part of the question or option above it, so it may be blank or
start with a marker. Exports write every continuation line that way.

Example:

    TITLE: Arithmetic
    TIMELIMIT: 5

    Q: What is $2 + 2$?
    A: 3
    B: 4
    CORRECT: B
    POINTS: 2

    Q: $7$ is a prime number.
    TYPE: TF
    CORRECT: TRUE

    Q: Name the operation written as $a \\cdot b$.
    TYPE: SHORT
    CORRECT: multiplication
"""

from __future__ import annotations

from dataclasses import dataclass
import math
from pathlib import Path

from quizclock.constants.quiz_constants import DEFAULT_TIME_LIMIT_MINUTES
from quizclock.core.models import (
    MultipleChoiceQuestion,
    Question,
    QuestionType,
    Quiz,
    ShortAnswerQuestion,
    TrueFalseQuestion,
)


class QuizImportError(Exception):
    """Raised when a quiz definition cannot be parsed."""


@dataclass(slots=True)
class ImportedQuiz:
    """Container for an imported quiz and where it came from."""

    source_path: Path
    quiz: Quiz


CONTINUATION_MARK = "~"
OPTION_LETTERS = ("A", "B", "C", "D", "E", "F", "G", "H")
TYPE_CODES = {
    "MC": QuestionType.MULTIPLE_CHOICE,
    "TF": QuestionType.TRUE_FALSE,
    "SHORT": QuestionType.SHORT_ANSWER,
}
_TRUE_WORDS = {"TRUE", "T", "YES"}
_FALSE_WORDS = {"FALSE", "F", "NO"}
_HEADER_KEYS = ("TITLE:", "DESCRIPTION:", "TIMELIMIT:", "PUBLISHED:")


def load_quiz_from_file(file_path: Path, teacher_id: str) -> ImportedQuiz:
    text = file_path.read_text(encoding="utf-8")
    quiz = parse_quiz_text(text, teacher_id)
    return ImportedQuiz(source_path=file_path, quiz=quiz)


def parse_quiz_text(text: str, teacher_id: str) -> Quiz:
    blocks = _split_blocks(text)
    if not blocks or not blocks[0].upper().startswith("TITLE:"):
        raise QuizImportError("Quiz file must start with a TITLE: header block.")

    header = _parse_header(blocks[0])
    questions = [_parse_block(block) for block in blocks[1:]]
    if not questions:
        raise QuizImportError("Quiz file did not contain any questions.")

    return Quiz(
        id="",
        title=header["title"],
        description=header["description"],
        teacher_id=teacher_id,
        time_limit_minutes=header["time_limit"],
        questions=questions,
        is_published=header["published"],
    )


def _split_blocks(text: str) -> list[str]:
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---":
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        if stripped:
            current_block.append(raw_line)
        elif current_block:
            # Blank line encountered after content - finalize current block
            blocks.append("\n".join(current_block).strip())
            current_block = []
    if current_block:
        blocks.append("\n".join(current_block).strip())
    return [block for block in blocks if block]


def _value_of(line: str) -> str:
    return line.split(":", 1)[1].strip()


def _is_escaped(line: str) -> bool:
    return line == CONTINUATION_MARK or line.startswith(CONTINUATION_MARK + " ")


def _unescape(raw_line: str) -> str:
    return raw_line.lstrip()[len(CONTINUATION_MARK) + 1 :].rstrip()


def _parse_header(block: str) -> dict[str, object]:
    header: dict[str, object] = {
        "title": "",
        "description": "",
        "time_limit": DEFAULT_TIME_LIMIT_MINUTES,
        "published": False,
    }
    for raw_line in block.splitlines():
        line = raw_line.strip()
        upper = line.upper()
        if upper.startswith("TITLE:"):
            header["title"] = _value_of(line)
        elif upper.startswith("DESCRIPTION:"):
            header["description"] = _value_of(line)
        elif upper.startswith("TIMELIMIT:"):
            header["time_limit"] = _parse_positive_int(_value_of(line), "TIMELIMIT")
        elif upper.startswith("PUBLISHED:"):
            header["published"] = _parse_bool(_value_of(line), "PUBLISHED")
        else:
            raise QuizImportError(f"Unknown header line: '{line}'.")
    if not header["title"]:
        raise QuizImportError("TITLE cannot be empty.")
    return header


def _parse_block(block: str) -> Question:
    question_lines: list[str] = []
    options: dict[str, str] = {}
    type_code: str | None = None
    correct: str | None = None
    points: float = 1
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        if current_section is not None and _is_escaped(line):
            continued = _unescape(raw_line)
            if current_section == "Q":
                question_lines.append(continued)
            else:
                options[current_section] += f"\n{continued}"
            continue

        upper = line.upper()
        if upper.startswith(_HEADER_KEYS):
            raise QuizImportError("Header lines are only allowed in the first block.")

        if upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue

        if upper.startswith("TYPE:"):
            type_code = _value_of(line).upper()
            if type_code not in TYPE_CODES:
                raise QuizImportError("TYPE must be one of MC, TF or SHORT.")
            current_section = None
            continue

        if upper.startswith("CORRECT:"):
            correct = _value_of(line)
            current_section = None
            continue

        if upper.startswith("POINTS:"):
            raw_value = _value_of(line)
            try:
                points = float(raw_value) if "." in raw_value else int(raw_value)
            except ValueError as exc:
                raise QuizImportError("POINTS must be a number.") from exc
            if not math.isfinite(points) or points <= 0:
                raise QuizImportError("POINTS must be a positive finite number.")
            current_section = None
            continue

        if len(line) > 2 and line[0].upper() in OPTION_LETTERS and line[1] == ":":
            letter = line[0].upper()
            options[letter] = line[2:].strip()
            current_section = letter
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section in OPTION_LETTERS:
            options[current_section] = options[current_section] + f"\n{line}"
        else:
            raise QuizImportError(
                f"Encountered text outside of a known section: '{line}'."
            )

    question_text = "\n".join(question_lines).strip()
    if not question_text:
        raise QuizImportError("Question text missing (Q: ...)")
    if correct is None or not correct:
        raise QuizImportError(f"Question '{question_text[:40]}' needs a CORRECT: line.")

    question_type = TYPE_CODES[type_code] if type_code else None
    if question_type is None:
        if not options:
            raise QuizImportError("TYPE is required for questions without options.")
        question_type = QuestionType.MULTIPLE_CHOICE

    if question_type is QuestionType.MULTIPLE_CHOICE:
        return _build_multiple_choice(question_text, options, correct, points)
    if options:
        raise QuizImportError("Only multiple-choice questions can list options.")
    if question_type is QuestionType.TRUE_FALSE:
        return TrueFalseQuestion(
            id="", text=question_text, points=points, correct_answer=_parse_bool(correct, "CORRECT")
        )
    return ShortAnswerQuestion(id="", text=question_text, points=points, correct_answer=correct)


def _build_multiple_choice(
    question_text: str, options: dict[str, str], correct: str, points: float
) -> MultipleChoiceQuestion:
    letters = OPTION_LETTERS[: len(options)]
    if set(options) != set(letters):
        raise QuizImportError("Options must be lettered consecutively starting at A.")
    if len(letters) < 2:
        raise QuizImportError("Multiple-choice questions need at least two options.")
    option_list = [options[letter].strip() for letter in letters]
    if any(not opt for opt in option_list):
        raise QuizImportError("Option text cannot be empty.")
    correct_letter = correct.upper()
    if correct_letter not in letters:
        raise QuizImportError(f"CORRECT must be one of {', '.join(letters)}.")
    return MultipleChoiceQuestion(
        id="",
        text=question_text,
        points=points,
        options=option_list,
        correct_answer=letters.index(correct_letter),
    )


def _parse_positive_int(raw_value: str, key: str) -> int:
    try:
        parsed_value = int(raw_value)
    except ValueError as exc:  # pragma: no cover - conversion error details unnecessary
        raise QuizImportError(f"{key} must be a whole number.") from exc
    if parsed_value <= 0:
        raise QuizImportError(f"{key} must be a positive integer.")
    return parsed_value


def _parse_bool(raw_value: str, key: str) -> bool:
    upper = raw_value.strip().upper()
    if upper in _TRUE_WORDS:
        return True
    if upper in _FALSE_WORDS:
        return False
    raise QuizImportError(f"{key} must be TRUE or FALSE.")
