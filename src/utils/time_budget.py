"""
Per-question time budgets.

A trivia's total duration (minutes) is split uniformly across its questions.
The split is floor-based and the remainder is not handed out, so the sum of
allocations may fall short of the nominal duration by up to count-1 seconds.
"""
import math
from typing import Iterable, List, Optional, Sequence, TypeVar

from src.infrastructure.config import settings

DEFAULT_QUESTION_TIME = settings.DEFAULT_QUESTION_TIME_SECONDS
MIN_AVERAGE_QUESTION_TIME = 5

Q = TypeVar("Q")


def allocate(total_minutes: float, item_count: int) -> int:
    """Seconds per item for a total duration in minutes."""
    if item_count <= 0:
        return DEFAULT_QUESTION_TIME
    return max(1, math.floor(total_minutes * 60 / item_count))


def average(seconds: Iterable[Optional[int]]) -> int:
    """
    Rounded mean allocation, never below 5s. Missing allocations count as
    the default. Display only: it never overwrites stored values.
    """
    values = [DEFAULT_QUESTION_TIME if s is None else s for s in seconds]
    if not values:
        return DEFAULT_QUESTION_TIME
    # round() here must be half-up, not banker's rounding
    mean = sum(values) / len(values)
    return max(MIN_AVERAGE_QUESTION_TIME, math.floor(mean + 0.5))


def redistribute(questions: Sequence[Q], total_minutes: float) -> List[Q]:
    """Copies of `questions` with every allocation set to the uniform split."""
    if not questions:
        return list(questions)
    per_question = allocate(total_minutes, len(questions))
    return [q.model_copy(update={"time_seconds": per_question}) for q in questions]
