from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

from .config import logger
from .errors import EmptyQuestionSetError, InvalidStateError, NoSelectionError, UnknownOptionError
from .models import (
    Completed,
    FilterCriteria,
    InProgress,
    NotStarted,
    Phase,
    Question,
    QuestionStatus,
    QuizResult,
    SessionState,
)


class SessionController:
    """Drives one quiz session: select, submit, advance until Completed.

    Every operation checks its preconditions before assigning anything, so a
    raised error never leaves the state half-updated.
    """

    def __init__(self) -> None:
        self._state: Optional[SessionState] = None

    @property
    def state(self) -> Optional[SessionState]:
        return self._state

    @property
    def phase(self) -> Phase:
        if self._state is None:
            return NotStarted()
        return self._state.phase

    @property
    def current_question(self) -> Optional[Question]:
        if self._state is None:
            return None
        return self._state.current_question

    @property
    def selected_option_id(self) -> Optional[str]:
        question = self.current_question
        if question is None or self._state is None:
            return None
        return self._state.answers.get(question.id)

    @property
    def is_last_question(self) -> bool:
        phase = self.phase
        if not isinstance(phase, InProgress) or self._state is None:
            return False
        return phase.index == self._state.total - 1

    def start(self, active_questions: Sequence[Question]) -> SessionState:
        questions = tuple(active_questions)
        if not questions:
            raise EmptyQuestionSetError()
        self._state = SessionState(active_questions=questions, phase=InProgress(index=0))
        logger.debug("Session started with %s questions", len(questions))
        return self._state

    def select_answer(self, option_id: str) -> SessionState:
        state, phase = self._require_in_progress("select an answer")
        if phase.submitted:
            raise InvalidStateError("cannot change answer after submission")
        question = state.active_questions[phase.index]
        if question.find_option(option_id) is None:
            raise UnknownOptionError(question.id, option_id)
        state.answers[question.id] = option_id
        return state

    def submit_answer(self) -> bool:
        state, phase = self._require_in_progress("submit an answer")
        if phase.submitted:
            raise InvalidStateError("answer already submitted for this question")
        question = state.active_questions[phase.index]
        selected_id = state.answers.get(question.id)
        if selected_id is None:
            raise NoSelectionError(question.id)

        selected = question.find_option(selected_id)
        is_correct = selected is not None and selected.is_correct
        if is_correct:
            state.score += 1
        state.phase = InProgress(index=phase.index, status=QuestionStatus.SUBMITTED)
        logger.debug("Question %s submitted: correct=%s score=%s", question.id, is_correct, state.score)
        return is_correct

    def advance(self) -> SessionState:
        state, phase = self._require_in_progress("advance")
        if not phase.submitted:
            raise InvalidStateError("cannot advance before submitting the current answer")
        if phase.index == state.total - 1:
            state.phase = Completed()
            logger.debug("Session completed: %s/%s", state.score, state.total)
        else:
            state.phase = InProgress(index=phase.index + 1)
        return state

    def progress(self) -> float:
        phase = self.phase
        if isinstance(phase, Completed):
            return 1.0
        if isinstance(phase, InProgress) and self._state is not None:
            done = phase.index + (1 if phase.submitted else 0)
            return done / self._state.total
        return 0.0

    def result(self) -> QuizResult:
        state = self._state
        if state is None or not isinstance(state.phase, Completed):
            raise InvalidStateError("result is only available once the session is completed")
        # Halves round up.
        percentage = int(math.floor(state.score * 100 / state.total + 0.5))
        return QuizResult(score=state.score, total=state.total, percentage=percentage)

    def restart(self) -> None:
        self._state = None

    def _require_in_progress(self, action: str) -> tuple[SessionState, InProgress]:
        state = self._state
        if state is None:
            raise InvalidStateError(f"cannot {action}: session not started")
        if not isinstance(state.phase, InProgress):
            raise InvalidStateError(f"cannot {action}: session completed")
        return state, state.phase


@dataclass
class UserSession:
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    controller: SessionController = field(default_factory=SessionController)


SESSIONS: Dict[int, UserSession] = {}


def get_session(user_id: int) -> UserSession:
    if user_id not in SESSIONS:
        SESSIONS[user_id] = UserSession()
    return SESSIONS[user_id]


def reset_session(user_id: int) -> UserSession:
    session = get_session(user_id)
    session.controller.restart()
    return session
