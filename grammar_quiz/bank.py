from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar, Union

from .config import logger
from .errors import QuestionBankError
from .models import Difficulty, Explanation, Grade, GrammarPoint, Option, Question
from .text_utils import count_blanks

DEFAULT_BANK_PATH = Path(__file__).resolve().parent / "data" / "questions.json"

E = TypeVar("E", bound=Enum)


def _require(raw: Dict[str, Any], key: str, where: str) -> Any:
    if key not in raw:
        raise QuestionBankError(f"{where}: missing field '{key}'")
    return raw[key]


def _require_text(raw: Dict[str, Any], key: str, where: str) -> str:
    value = _require(raw, key, where)
    if not isinstance(value, str) or not value.strip():
        raise QuestionBankError(f"{where}: field '{key}' must be a non-empty string")
    return value


def _parse_enum(enum_cls: Type[E], value: Any, where: str) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise QuestionBankError(f"{where}: unknown {enum_cls.__name__} '{value}' (expected one of {allowed})") from None


def _parse_option(raw: Any, where: str) -> Option:
    if not isinstance(raw, dict):
        raise QuestionBankError(f"{where}: option must be an object")
    is_correct = raw.get("isCorrect", False)
    if not isinstance(is_correct, bool):
        raise QuestionBankError(f"{where}: 'isCorrect' must be true or false")
    return Option(
        id=str(_require(raw, "id", where)),
        text=_require_text(raw, "text", where),
        is_correct=is_correct,
    )


def _parse_explanation(raw: Any, where: str) -> Explanation:
    if not isinstance(raw, dict):
        raise QuestionBankError(f"{where}: explanation must be an object")
    return Explanation(
        correct_answer=_require_text(raw, "correctAnswer", where),
        rule=_require_text(raw, "rule", where),
        example=_require_text(raw, "example", where),
        pitfall=_require_text(raw, "pitfall", where),
    )


def parse_question(raw: Dict[str, Any]) -> Question:
    if not isinstance(raw, dict):
        raise QuestionBankError("question must be an object")
    qid = str(_require(raw, "id", "question"))
    where = f"question '{qid}'"

    sentence = _require_text(raw, "sentence", where)
    blanks = count_blanks(sentence)
    if blanks != 1:
        raise QuestionBankError(f"{where}: sentence must contain exactly one blank, found {blanks}")

    raw_options = _require(raw, "options", where)
    if not isinstance(raw_options, list) or len(raw_options) < 2:
        raise QuestionBankError(f"{where}: at least two options are required")
    options = tuple(_parse_option(o, where) for o in raw_options)

    seen: set = set()
    for option in options:
        if option.id in seen:
            raise QuestionBankError(f"{where}: duplicate option id '{option.id}'")
        seen.add(option.id)
    correct = sum(1 for o in options if o.is_correct)
    if correct != 1:
        raise QuestionBankError(f"{where}: expected exactly one correct option, found {correct}")

    return Question(
        id=qid,
        sentence=sentence,
        options=options,
        explanation=_parse_explanation(_require(raw, "explanation", where), where),
        difficulty=_parse_enum(Difficulty, _require(raw, "difficulty", where), where),
        grade=_parse_enum(Grade, _require(raw, "grade", where), where),
        category=_parse_enum(GrammarPoint, _require(raw, "category", where), where),
    )


def parse_question_bank(data: Any) -> Tuple[Question, ...]:
    if not isinstance(data, list):
        raise QuestionBankError("question bank must be a list of questions")
    questions: List[Question] = []
    seen_ids: set = set()
    for raw in data:
        question = parse_question(raw)
        if question.id in seen_ids:
            raise QuestionBankError(f"duplicate question id '{question.id}'")
        seen_ids.add(question.id)
        questions.append(question)
    if not questions:
        raise QuestionBankError("question bank is empty")
    return tuple(questions)


def load_question_bank(path: Optional[Union[str, Path]] = None) -> Tuple[Question, ...]:
    bank_path = Path(path) if path else DEFAULT_BANK_PATH
    try:
        data = json.loads(bank_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise QuestionBankError(f"cannot read question bank {bank_path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise QuestionBankError(f"question bank {bank_path} is not valid JSON: {exc}") from exc
    bank = parse_question_bank(data)
    logger.info("Loaded %s questions from %s", len(bank), bank_path)
    return bank
