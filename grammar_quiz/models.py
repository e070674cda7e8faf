from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple, Union


class Difficulty(str, Enum):
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"

    @property
    def label(self) -> str:
        return _DIFFICULTY_LABELS[self]


class Grade(str, Enum):
    PRIMARY_LOW = "PRIMARY_LOW"
    PRIMARY_HIGH = "PRIMARY_HIGH"
    JUNIOR_HIGH = "JUNIOR_HIGH"

    @property
    def label(self) -> str:
        return _GRADE_LABELS[self]


class GrammarPoint(str, Enum):
    RELATIVE_CLAUSE = "RELATIVE_CLAUSE"
    ADVERBIAL_CLAUSE = "ADVERBIAL_CLAUSE"
    NON_FINITE_VERB = "NON_FINITE_VERB"
    CONJUNCTION = "CONJUNCTION"
    ABSOLUTE_CONSTRUCTION = "ABSOLUTE_CONSTRUCTION"
    PREPOSITION = "PREPOSITION"

    @property
    def label(self) -> str:
        return _GRAMMAR_POINT_LABELS[self]


_DIFFICULTY_LABELS = {
    Difficulty.BEGINNER: "初级",
    Difficulty.INTERMEDIATE: "中级",
    Difficulty.ADVANCED: "高级",
}

_GRADE_LABELS = {
    Grade.PRIMARY_LOW: "小学低年级",
    Grade.PRIMARY_HIGH: "小学高年级",
    Grade.JUNIOR_HIGH: "初中",
}

_GRAMMAR_POINT_LABELS = {
    GrammarPoint.RELATIVE_CLAUSE: "定语从句",
    GrammarPoint.ADVERBIAL_CLAUSE: "状语从句",
    GrammarPoint.NON_FINITE_VERB: "非谓语动词",
    GrammarPoint.CONJUNCTION: "连词",
    GrammarPoint.ABSOLUTE_CONSTRUCTION: "独立主格",
    GrammarPoint.PREPOSITION: "介词",
}


@dataclass(frozen=True)
class Option:
    id: str
    text: str
    is_correct: bool = False


@dataclass(frozen=True)
class Explanation:
    correct_answer: str
    rule: str
    example: str
    pitfall: str


@dataclass(frozen=True)
class Question:
    id: str
    sentence: str
    options: Tuple[Option, ...]
    explanation: Explanation
    difficulty: Difficulty
    grade: Grade
    category: GrammarPoint

    def find_option(self, option_id: str) -> Optional[Option]:
        return next((o for o in self.options if o.id == option_id), None)

    @property
    def correct_option(self) -> Option:
        # The bank loader guarantees exactly one correct option.
        return next(o for o in self.options if o.is_correct)


@dataclass(frozen=True)
class FilterCriteria:
    grade: Optional[Grade] = None
    difficulty: Optional[Difficulty] = None

    def matches(self, question: Question) -> bool:
        if self.grade is not None and question.grade != self.grade:
            return False
        if self.difficulty is not None and question.difficulty != self.difficulty:
            return False
        return True


class QuestionStatus(str, Enum):
    PENDING = "PENDING"
    SUBMITTED = "SUBMITTED"


@dataclass(frozen=True)
class NotStarted:
    pass


@dataclass(frozen=True)
class InProgress:
    index: int
    status: QuestionStatus = QuestionStatus.PENDING

    @property
    def submitted(self) -> bool:
        return self.status is QuestionStatus.SUBMITTED


@dataclass(frozen=True)
class Completed:
    pass


Phase = Union[NotStarted, InProgress, Completed]


@dataclass
class SessionState:
    active_questions: Tuple[Question, ...]
    phase: Phase = field(default_factory=NotStarted)
    answers: Dict[str, str] = field(default_factory=dict)
    score: int = 0

    @property
    def total(self) -> int:
        return len(self.active_questions)

    @property
    def current_index(self) -> Optional[int]:
        if isinstance(self.phase, InProgress):
            return self.phase.index
        return None

    @property
    def submitted_current(self) -> bool:
        return isinstance(self.phase, InProgress) and self.phase.submitted

    @property
    def current_question(self) -> Optional[Question]:
        index = self.current_index
        if index is None:
            return None
        return self.active_questions[index]


@dataclass(frozen=True)
class QuizResult:
    score: int
    total: int
    percentage: int
