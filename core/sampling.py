"""
Category-balanced random question sampling.

A session uses either the whole question set or a subset of
``target_count`` questions spread evenly over categories. Categories are
visited in sorted order; the first ``target_count % len(categories)``
categories get one extra question. A category that holds fewer questions
than its share contributes all it has and the shortfall is not
redistributed, so the result can be smaller than ``target_count``.
"""
from __future__ import annotations

import logging
import random
from collections import Counter
from typing import Iterable, Sequence

from core.errors import ValidationError
from models import Question, QuestionRow

logger = logging.getLogger(__name__)


def group_by_category(questions: Iterable[Question]) -> dict[str, list[Question]]:
    """Group questions by category, preserving input order inside a group."""
    groups: dict[str, list[Question]] = {}
    for question in questions:
        groups.setdefault(question.category, []).append(question)
    return groups


def category_distribution(questions: Iterable[Question | QuestionRow]) -> dict[str, int]:
    """Count questions per category."""
    return dict(Counter(question.category for question in questions))


def allocate(category_sizes: dict[str, int], target_count: int) -> dict[str, int]:
    """
    Compute how many questions each category should contribute.

    Returns the requested share per category, already capped at what the
    category holds.
    """
    categories = sorted(category_sizes)
    if not categories:
        return {}
    base, remainder = divmod(target_count, len(categories))
    shares: dict[str, int] = {}
    for category in categories:
        wanted = base
        if remainder > 0:
            wanted += 1
            remainder -= 1
        shares[category] = min(wanted, category_sizes[category])
    return shares


def select_questions(
    questions: Sequence[Question],
    target_count: int | None = None,
    rng: random.Random | None = None,
) -> list[Question]:
    """
    Pick the questions for one session.

    Args:
        questions: Full question set of the test
        target_count: Desired number of questions; ``None`` means all
        rng: Random source, injectable for reproducible tests

    Returns:
        Selected questions in shuffled order, each at most once.
    """
    rng = rng or random.Random()
    selected = list(questions)

    if target_count is not None and target_count <= 0:
        raise ValidationError("Questions count must be a positive integer")

    if target_count is None or target_count >= len(selected):
        rng.shuffle(selected)
        return selected

    groups = group_by_category(selected)
    shares = allocate({name: len(items) for name, items in groups.items()}, target_count)

    picked: list[Question] = []
    for category, share in shares.items():
        picked.extend(rng.sample(groups[category], share))

    if len(picked) < target_count:
        logger.info(
            "Sampled %d of %d requested questions; some categories were short",
            len(picked),
            target_count,
        )

    rng.shuffle(picked)
    return picked
