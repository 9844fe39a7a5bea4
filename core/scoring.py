"""
Answer-key decoding and scoring.

Stored answer keys come in three shapes:

* ``"Option N"`` with N the 1-based option number (emitted for new data)
* a raw 0-based index string, e.g. ``"2"``
* the literal option text

Selections are 0-based index strings; ``""`` means unanswered.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Sequence

from core.errors import ScoringError
from models import OPTION_COUNT, Question, UserAnswer

OPTION_LABEL_RE = re.compile(r"Option (\d+)")

KIND_OPTION_LABEL = "option_label"
KIND_INDEX = "index"
KIND_TEXT = "text"
KIND_UNKNOWN = "unknown"


@dataclass(frozen=True)
class AnswerKey:
    kind: str
    expected_index: int | None


@dataclass(frozen=True)
class ScoreResult:
    correct: int
    total: int

    @property
    def percentage(self) -> float:
        return percentage(self.correct, self.total)


def parse_option_label(correct_answer: str) -> int | None:
    """Return the 0-based index for ``"Option N"``, else None."""
    match = OPTION_LABEL_RE.fullmatch(correct_answer.strip())
    if not match:
        return None
    number = int(match.group(1))
    if not 1 <= number <= OPTION_COUNT:
        return None
    return number - 1


def format_answer_key(index: int) -> str:
    """Encode a 0-based option index in the canonical ``"Option N"`` form."""
    if not 0 <= index < OPTION_COUNT:
        raise ValueError(f"Option index out of range: {index}")
    return f"Option {index + 1}"


def _parse_index(value: str, option_count: int) -> int | None:
    if not value.isdigit():
        return None
    index = int(value)
    return index if 0 <= index < option_count else None


def decode_answer_key(correct_answer: str, options: Sequence[str]) -> AnswerKey:
    """Normalize a stored answer key to the index of the correct option."""
    label_index = parse_option_label(correct_answer)
    if label_index is not None:
        return AnswerKey(KIND_OPTION_LABEL, label_index)

    raw_index = _parse_index(correct_answer, len(options))
    if raw_index is not None:
        return AnswerKey(KIND_INDEX, raw_index)

    if correct_answer in options:
        return AnswerKey(KIND_TEXT, list(options).index(correct_answer))

    return AnswerKey(KIND_UNKNOWN, None)


def is_correct(question: Question, selected_option: str) -> bool:
    if selected_option == "":
        return False

    expected = parse_option_label(question.correct_answer)
    if expected is not None:
        return selected_option == str(expected)

    if question.correct_answer == selected_option:
        return True

    selected_index = _parse_index(selected_option, len(question.options))
    if selected_index is None:
        return False
    return question.options[selected_index] == question.correct_answer


def score(questions: Sequence[Question], answers: Iterable[UserAnswer]) -> ScoreResult:
    """Tally correct answers; questions without a matching answer are wrong."""
    selections = {answer.question_id: answer.selected_option for answer in answers}
    correct = sum(
        1
        for question in questions
        if is_correct(question, selections.get(question.question_id, ""))
    )
    return ScoreResult(correct=correct, total=len(questions))


def percentage(correct: int, total: int) -> float:
    """Percentage of correct answers rounded to 2 decimals."""
    if total <= 0:
        raise ScoringError("Cannot score a session without questions")
    return round(correct / total * 100, 2)
