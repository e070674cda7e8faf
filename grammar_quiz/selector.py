from __future__ import annotations

from typing import Iterable, Tuple

from .models import FilterCriteria, Question


def select_questions(bank: Iterable[Question], criteria: FilterCriteria) -> Tuple[Question, ...]:
    return tuple(q for q in bank if criteria.matches(q))


def count_matching(bank: Iterable[Question], criteria: FilterCriteria) -> int:
    return sum(1 for q in bank if criteria.matches(q))
