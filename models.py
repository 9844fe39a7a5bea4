from __future__ import annotations
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import List

OPTION_COUNT = 4


@dataclass
class Question:
    question_id: str
    test_id: str
    category: str
    sub_category: str
    question_text: str
    options: List[str]
    correct_answer: str


@dataclass
class TestInfo:
    __test__ = False

    test_id: str
    title: str
    time_limit: int  # minutes
    questions_count: int | None = None
    created_by: int | None = None
    created_at: datetime | None = None


@dataclass
class UserAnswer:
    question_id: str
    selected_option: str = ""  # "" | "0".."3"

    @property
    def answered(self) -> bool:
        return self.selected_option != ""


@dataclass
class QuestionRow:
    number: str
    category: str
    sub_category: str
    question_text: str
    options: List[str] = field(default_factory=list)
    answer: str = ""


def encode_options(options: List[str]) -> str:
    return json.dumps(list(options), ensure_ascii=False)


def decode_options(raw: str | None) -> List[str]:
    """Decode the single-field option encoding; bad data yields no options."""
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return []
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]
