"""CSV question-bank parsing and validation."""
from __future__ import annotations

import csv
import io
import logging

from core.errors import ValidationError
from core.scoring import format_answer_key, parse_option_label
from models import OPTION_COUNT, QuestionRow

logger = logging.getLogger(__name__)

OPTION_COLUMNS = [f"Option {n}" for n in range(1, OPTION_COUNT + 1)]
REQUIRED_COLUMNS = [
    "No.",
    "Category",
    "Sub-Category",
    "Question",
    *OPTION_COLUMNS,
    "Answer",
]


def normalize_answer(answer: str, options: list[str]) -> str | None:
    """
    Convert a CSV answer cell to the ``"Option N"`` form.

    Accepts ``"Option N"``, the literal option text, or a 0-based index.
    Returns None when no option can be identified.
    """
    answer = answer.strip()
    label_index = parse_option_label(answer)
    if label_index is not None:
        return format_answer_key(label_index)
    if answer in options:
        return format_answer_key(options.index(answer))
    if answer.isdigit() and int(answer) < len(options):
        return format_answer_key(int(answer))
    return None


class CsvQuestionExtractor:
    """Parses an uploaded CSV question bank into validated rows."""

    def __init__(self, text: str, source: str = "upload") -> None:
        self.text = text
        self.source = source
        self.logs: list[str] = []

    def _reader(self) -> csv.DictReader:
        return csv.DictReader(io.StringIO(self.text.lstrip("\ufeff")))

    def _check_columns(self, headers: list[str]) -> None:
        present = {header.strip() for header in headers}
        missing = [column for column in REQUIRED_COLUMNS if column not in present]
        if missing:
            raise ValidationError(f"Missing required columns: {', '.join(missing)}")

    def _row(self, line: int, raw: dict[str, str | None]) -> QuestionRow | None:
        cells = {
            (key or "").strip(): (value or "").strip()
            for key, value in raw.items()
            if not isinstance(value, list)
        }
        if not any(cells.values()):
            self.logs.append(f"Line {line}: empty row skipped.")
            return None

        category = cells.get("Category", "")
        question_text = cells.get("Question", "")
        options = [cells.get(column, "") for column in OPTION_COLUMNS]

        if not category:
            raise ValidationError(f"Line {line}: Category is required")
        if not question_text:
            raise ValidationError(f"Line {line}: Question is required")
        empty = [column for column, value in zip(OPTION_COLUMNS, options) if not value]
        if empty:
            raise ValidationError(f"Line {line}: empty {', '.join(empty)}")

        answer = normalize_answer(cells.get("Answer", ""), options)
        if answer is None:
            raise ValidationError(
                f"Line {line}: Answer does not identify one of the four options"
            )

        return QuestionRow(
            number=cells.get("No.", ""),
            category=category,
            sub_category=cells.get("Sub-Category", ""),
            question_text=question_text,
            options=options,
            answer=answer,
        )

    def extract(self) -> list[QuestionRow]:
        reader = self._reader()
        self._check_columns(reader.fieldnames or [])

        rows: list[QuestionRow] = []
        # header is line 1
        for line, raw in enumerate(reader, start=2):
            row = self._row(line, raw)
            if row is not None:
                rows.append(row)

        if not rows:
            raise ValidationError("CSV file contains no data")

        logger.debug("Parsed %d questions from %s", len(rows), self.source)
        return rows


def parse_question_csv(data: bytes | str, source: str = "upload") -> list[QuestionRow]:
    """Decode and parse a CSV question bank."""
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ValidationError("CSV file must be UTF-8 encoded") from exc
    return CsvQuestionExtractor(data, source).extract()
