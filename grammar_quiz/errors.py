"""Errors raised by the quiz engine and the question bank loader.

Engine errors signal a caller stepping outside the session workflow. They are
raised before any state is touched, so a failed call leaves the session as it was.
"""

from __future__ import annotations


class QuizError(Exception):
    """Base class for quiz errors."""


class EmptyQuestionSetError(QuizError):
    """A session was started with no questions to ask."""

    def __init__(self) -> None:
        super().__init__("cannot start a session without questions")


class NoSelectionError(QuizError):
    """An answer was submitted before any option was selected."""

    def __init__(self, question_id: str) -> None:
        self.question_id = question_id
        super().__init__(f"no option selected for question '{question_id}'")


class InvalidStateError(QuizError):
    """An operation was called in a phase that does not allow it."""


class UnknownOptionError(QuizError):
    """A selection referenced an option that the current question does not have."""

    def __init__(self, question_id: str, option_id: str) -> None:
        self.question_id = question_id
        self.option_id = option_id
        super().__init__(f"question '{question_id}' has no option '{option_id}'")


class QuestionBankError(QuizError, ValueError):
    """The question bank data is malformed."""
