"""Shared fixtures: small synthetic question banks."""

from __future__ import annotations

from typing import Iterable

import pytest

from grammar_quiz.models import (
    Difficulty,
    Explanation,
    Grade,
    GrammarPoint,
    Option,
    Question,
)


def make_question(
    qid: str,
    correct: str = "a",
    option_ids: Iterable[str] = ("a", "b", "c", "d"),
    difficulty: Difficulty = Difficulty.BEGINNER,
    grade: Grade = Grade.PRIMARY_HIGH,
    category: GrammarPoint = GrammarPoint.CONJUNCTION,
) -> Question:
    options = tuple(
        Option(id=oid, text=f"option {oid}", is_correct=(oid == correct)) for oid in option_ids
    )
    return Question(
        id=qid,
        sentence=f"Sentence {qid} with a ______ in it.",
        options=options,
        explanation=Explanation(
            correct_answer=f"option {correct}",
            rule="rule",
            example="example",
            pitfall="pitfall",
        ),
        difficulty=difficulty,
        grade=grade,
        category=category,
    )


@pytest.fixture
def two_questions():
    """Q1 answered by "b", Q2 answered by "a"."""
    return (make_question("q1", correct="b"), make_question("q2", correct="a"))


@pytest.fixture
def mixed_bank():
    return (
        make_question("1", difficulty=Difficulty.BEGINNER, grade=Grade.PRIMARY_HIGH),
        make_question("2", difficulty=Difficulty.ADVANCED, grade=Grade.JUNIOR_HIGH),
        make_question("3", difficulty=Difficulty.INTERMEDIATE, grade=Grade.JUNIOR_HIGH),
        make_question("4", difficulty=Difficulty.BEGINNER, grade=Grade.PRIMARY_HIGH),
        make_question("5", difficulty=Difficulty.ADVANCED, grade=Grade.JUNIOR_HIGH),
        make_question("6", difficulty=Difficulty.INTERMEDIATE, grade=Grade.PRIMARY_LOW),
    )
