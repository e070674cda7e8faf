from __future__ import annotations

from .models import QuizResult


def build_recommendation(result: QuizResult) -> str:
    if result.total and result.score == result.total:
        return "太棒了！你是语法大师！"
    if result.score > result.total / 2:
        return "做得不错！继续加油！"
    return "别灰心，多练习会更好！"
