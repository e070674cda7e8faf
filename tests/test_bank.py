"""Tests for question bank loading and validation."""

import copy
import json

import pytest

from grammar_quiz.bank import DEFAULT_BANK_PATH, load_question_bank, parse_question, parse_question_bank
from grammar_quiz.errors import QuestionBankError
from grammar_quiz.models import Difficulty, FilterCriteria, Grade, GrammarPoint
from grammar_quiz.selector import select_questions

RAW_QUESTION = {
    "id": "x1",
    "sentence": "I won't go ______ I am invited.",
    "options": [
        {"id": "a", "text": "if", "isCorrect": False},
        {"id": "b", "text": "unless", "isCorrect": True},
    ],
    "explanation": {
        "correctAnswer": "unless",
        "rule": "unless means if not",
        "example": "You will fail unless you work hard.",
        "pitfall": "unless is not until",
    },
    "difficulty": "BEGINNER",
    "grade": "PRIMARY_HIGH",
    "category": "CONJUNCTION",
}


def raw(**overrides):
    data = copy.deepcopy(RAW_QUESTION)
    data.update(overrides)
    return data


class TestBundledBank:
    def test_loads_default_bank(self):
        bank = load_question_bank()
        assert len(bank) == 8
        assert [q.id for q in bank] == [str(i) for i in range(1, 9)]

    def test_every_question_has_one_correct_option(self):
        for question in load_question_bank():
            assert sum(o.is_correct for o in question.options) == 1
            assert question.correct_option.text == question.explanation.correct_answer

    def test_default_path_exists(self):
        assert DEFAULT_BANK_PATH.is_file()

    def test_junior_high_advanced_selection(self):
        bank = load_question_bank()
        criteria = FilterCriteria(grade=Grade.JUNIOR_HIGH, difficulty=Difficulty.ADVANCED)
        assert [q.id for q in select_questions(bank, criteria)] == ["3", "5"]

    def test_primary_low_has_no_questions(self):
        bank = load_question_bank()
        assert select_questions(bank, FilterCriteria(grade=Grade.PRIMARY_LOW)) == ()


class TestParseQuestion:
    def test_parses_fields(self):
        question = parse_question(raw())
        assert question.id == "x1"
        assert question.difficulty is Difficulty.BEGINNER
        assert question.category is GrammarPoint.CONJUNCTION
        assert question.correct_option.id == "b"
        assert question.explanation.pitfall == "unless is not until"

    def test_numeric_id_becomes_string(self):
        assert parse_question(raw(id=5)).id == "5"

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"sentence": "No blank here."}, "exactly one blank"),
            ({"sentence": "Two __ blanks __ here."}, "exactly one blank"),
            ({"options": [{"id": "a", "text": "if", "isCorrect": True}]}, "at least two options"),
            (
                {"options": [{"id": "a", "text": "if"}, {"id": "b", "text": "as"}]},
                "exactly one correct option",
            ),
            (
                {
                    "options": [
                        {"id": "a", "text": "if", "isCorrect": True},
                        {"id": "a", "text": "as", "isCorrect": False},
                    ]
                },
                "duplicate option id",
            ),
            ({"difficulty": "EXPERT"}, "unknown Difficulty"),
            ({"grade": "COLLEGE"}, "unknown Grade"),
            ({"category": "TENSE"}, "unknown GrammarPoint"),
            ({"explanation": {"correctAnswer": "unless"}}, "missing field 'rule'"),
            ({"sentence": "  "}, "non-empty string"),
        ],
    )
    def test_rejects_malformed_question(self, overrides, message):
        with pytest.raises(QuestionBankError, match=message):
            parse_question(raw(**overrides))

    def test_missing_field(self):
        data = raw()
        del data["grade"]
        with pytest.raises(QuestionBankError, match="missing field 'grade'"):
            parse_question(data)


class TestParseQuestionBank:
    def test_duplicate_question_ids(self):
        with pytest.raises(QuestionBankError, match="duplicate question id"):
            parse_question_bank([raw(), raw()])

    def test_empty_bank(self):
        with pytest.raises(QuestionBankError, match="empty"):
            parse_question_bank([])

    def test_not_a_list(self):
        with pytest.raises(QuestionBankError):
            parse_question_bank({"questions": []})

    def test_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_question_bank([])


class TestLoadQuestionBank:
    def test_loads_custom_file(self, tmp_path):
        path = tmp_path / "bank.json"
        path.write_text(json.dumps([raw(), raw(id="x2")]), encoding="utf-8")
        bank = load_question_bank(path)
        assert [q.id for q in bank] == ["x1", "x2"]

    def test_accepts_string_path(self, tmp_path):
        path = tmp_path / "bank.json"
        path.write_text(json.dumps([raw()]), encoding="utf-8")
        assert len(load_question_bank(str(path))) == 1

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bank.json"
        path.write_text("[{", encoding="utf-8")
        with pytest.raises(QuestionBankError, match="not valid JSON"):
            load_question_bank(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(QuestionBankError, match="cannot read"):
            load_question_bank(tmp_path / "missing.json")
