from __future__ import annotations

import asyncio
from dataclasses import replace
from enum import Enum
from typing import Optional, Sequence, Tuple, Type, TypeVar

from aiogram import F, Router
from aiogram.exceptions import TelegramBadRequest
from aiogram.filters import CommandStart
from aiogram.types import BufferedInputFile, CallbackQuery, InlineKeyboardMarkup, Message
from aiogram.utils.keyboard import InlineKeyboardBuilder

from .config import logger
from .errors import EmptyQuestionSetError, NoSelectionError, QuizError, UnknownOptionError
from .models import Completed, Difficulty, FilterCriteria, Grade, Question, QuizResult
from .recommendations import build_recommendation
from .selector import count_matching, select_questions
from .session import SessionController, get_session, reset_session
from .text_utils import fill_blank, progress_bar
from .tts import sentence_to_mp3

ALL = "ALL"
GRADE_PREFIX = "grade:"
DIFFICULTY_PREFIX = "diff:"
OPTION_PREFIX = "opt:"
LISTEN_PREFIX = "listen:"
START = "start"
SUBMIT_PREFIX = "submit:"
NEXT_PREFIX = "next:"
RESTART = "restart"

E = TypeVar("E", bound=Enum)

router = Router()


# Rendering

def grade_keyboard(selected: Optional[Grade] = None) -> InlineKeyboardMarkup:
    keyboard = InlineKeyboardBuilder()
    keyboard.button(text=_mark("全部年级", selected is None), callback_data=GRADE_PREFIX + ALL)
    for grade in Grade:
        keyboard.button(text=_mark(grade.label, grade is selected), callback_data=GRADE_PREFIX + grade.value)
    keyboard.adjust(1)
    return keyboard.as_markup()


def difficulty_keyboard(selected: Optional[Difficulty] = None) -> InlineKeyboardMarkup:
    keyboard = InlineKeyboardBuilder()
    keyboard.button(text=_mark("全部难度", selected is None), callback_data=DIFFICULTY_PREFIX + ALL)
    for difficulty in Difficulty:
        keyboard.button(
            text=_mark(difficulty.label, difficulty is selected),
            callback_data=DIFFICULTY_PREFIX + difficulty.value,
        )
    keyboard.adjust(2, 3)
    return keyboard.as_markup()


def start_keyboard(count: int) -> InlineKeyboardMarkup:
    keyboard = InlineKeyboardBuilder()
    if count > 0:
        keyboard.button(text=f"开始挑战 ({count} 题)", callback_data=START)
    keyboard.button(text="重新选择", callback_data=RESTART)
    keyboard.adjust(1)
    return keyboard.as_markup()


def question_keyboard(question: Question, selected_id: Optional[str] = None) -> InlineKeyboardMarkup:
    keyboard = InlineKeyboardBuilder()
    for option in question.options:
        label = f"{option.id.upper()}. {option.text}"
        keyboard.button(
            text=_mark(label, option.id == selected_id, marker="●"),
            callback_data=f"{OPTION_PREFIX}{question.id}:{option.id}",
        )
    if selected_id is not None:
        keyboard.button(text="提交答案", callback_data=SUBMIT_PREFIX + question.id)
    keyboard.adjust(1)
    return keyboard.as_markup()


def feedback_keyboard(question: Question, is_last: bool) -> InlineKeyboardMarkup:
    keyboard = InlineKeyboardBuilder()
    keyboard.button(text="🔊 朗读", callback_data=LISTEN_PREFIX + question.id)
    keyboard.button(text="查看结果" if is_last else "下一题", callback_data=NEXT_PREFIX + question.id)
    keyboard.adjust(2)
    return keyboard.as_markup()


def result_keyboard() -> InlineKeyboardMarkup:
    keyboard = InlineKeyboardBuilder()
    keyboard.button(text="再来一次", callback_data=RESTART)
    return keyboard.as_markup()


def render_criteria(criteria: FilterCriteria) -> str:
    grade = criteria.grade.label if criteria.grade else "全部年级"
    difficulty = criteria.difficulty.label if criteria.difficulty else "全部难度"
    return f"{grade} · {difficulty}"


def render_question(controller: SessionController) -> str:
    state = controller.state
    question = controller.current_question
    if state is None or question is None or state.current_index is None:
        raise ValueError("no question is active")
    progress = controller.progress()
    return (
        f"第 {state.current_index + 1} / {state.total} 题 · {question.difficulty.label} · {question.category.label}\n"
        f"{progress_bar(progress)} {round(progress * 100)}%   得分: {state.score}\n\n"
        f"{question.sentence}"
    )


def render_feedback(question: Question, selected_id: str, is_correct: bool) -> str:
    selected = question.find_option(selected_id)
    answer_text = selected.text if selected else question.correct_option.text
    verdict = "✅ 回答正确！" if is_correct else "❌ 回答错误"
    explanation = question.explanation
    return (
        f"{verdict}\n"
        f"{fill_blank(question.sentence, answer_text)}\n\n"
        f"正确答案: {explanation.correct_answer}\n"
        f"语法规则: {explanation.rule}\n"
        f"例句: {explanation.example}\n"
        f"易错点: {explanation.pitfall}"
    )


def render_result(result: QuizResult) -> str:
    return (
        "挑战完成！\n\n"
        f"{result.percentage}%\n"
        f"{build_recommendation(result)}\n"
        f"你完成了本次挑战，得分: {result.score} / {result.total}"
    )


def _mark(text: str, selected: bool, marker: str = "✓") -> str:
    return f"{marker} {text}" if selected else text


def _parse_choice(value: str, enum_cls: Type[E]) -> Optional[E]:
    if value == ALL:
        return None
    return enum_cls(value)


def _misuse_notice(exc: QuizError) -> str:
    if isinstance(exc, NoSelectionError):
        return "请先选择一个选项"
    if isinstance(exc, UnknownOptionError):
        return "这个选项不属于当前题目"
    if isinstance(exc, EmptyQuestionSetError):
        return "暂无匹配题目"
    return "现在不能这样操作"


async def _reject(callback: CallbackQuery, exc: QuizError) -> None:
    logger.warning("User %s: %s", callback.from_user.id, exc)
    await callback.answer(_misuse_notice(exc))


def _split_option_data(data: str) -> Tuple[str, str]:
    question_id, _, option_id = data[len(OPTION_PREFIX):].rpartition(":")
    return question_id, option_id


async def _is_stale(callback: CallbackQuery, controller: SessionController, question_id: str) -> bool:
    question = controller.current_question
    if question is not None and question.id == question_id:
        return False
    logger.warning("User %s pressed a button of question %s that is no longer active", callback.from_user.id, question_id)
    await callback.answer("这道题已经结束了")
    return True


# Handlers

@router.message(CommandStart())
async def start(message: Message) -> None:
    user = message.from_user
    if not user:
        return
    session = reset_session(user.id)
    await message.answer(
        "你好！这里是语法实验室，专为中小学生打造的互动语法练习。\n"
        "通过情境化练习，攻克定语从句、非谓语动词等核心难点。",
    )
    await message.answer("请选择年级:", reply_markup=grade_keyboard(session.criteria.grade))


@router.callback_query(F.data.startswith(GRADE_PREFIX))
async def on_grade(callback: CallbackQuery) -> None:
    session = get_session(callback.from_user.id)
    try:
        grade = _parse_choice((callback.data or "")[len(GRADE_PREFIX):], Grade)
    except ValueError:
        await callback.answer()
        return
    session.criteria = replace(session.criteria, grade=grade)
    await callback.answer()
    if isinstance(callback.message, Message):
        await callback.message.answer("请选择难度:", reply_markup=difficulty_keyboard(session.criteria.difficulty))


@router.callback_query(F.data.startswith(DIFFICULTY_PREFIX))
async def on_difficulty(callback: CallbackQuery, bank: Sequence[Question]) -> None:
    session = get_session(callback.from_user.id)
    try:
        difficulty = _parse_choice((callback.data or "")[len(DIFFICULTY_PREFIX):], Difficulty)
    except ValueError:
        await callback.answer()
        return
    session.criteria = replace(session.criteria, difficulty=difficulty)
    await callback.answer()
    if not isinstance(callback.message, Message):
        return
    count = count_matching(bank, session.criteria)
    text = render_criteria(session.criteria)
    if count == 0:
        text += "\n暂无匹配题目，换个条件试试吧。"
    await callback.message.answer(text, reply_markup=start_keyboard(count))


@router.callback_query(F.data == START)
async def on_start_quiz(callback: CallbackQuery, bank: Sequence[Question]) -> None:
    session = get_session(callback.from_user.id)
    questions = select_questions(bank, session.criteria)
    try:
        session.controller.start(questions)
    except QuizError as exc:
        await _reject(callback, exc)
        return
    logger.info("User %s started a quiz: %s, %s questions", callback.from_user.id, session.criteria, len(questions))
    await callback.answer("开始挑战！")
    if isinstance(callback.message, Message):
        await send_question(callback.message, session.controller)


async def send_question(message: Message, controller: SessionController) -> None:
    question = controller.current_question
    if question is None:
        return
    await message.answer(
        render_question(controller),
        reply_markup=question_keyboard(question, controller.selected_option_id),
    )


@router.callback_query(F.data.startswith(OPTION_PREFIX))
async def on_option(callback: CallbackQuery) -> None:
    controller = get_session(callback.from_user.id).controller
    question_id, option_id = _split_option_data(callback.data or "")
    if await _is_stale(callback, controller, question_id):
        return
    try:
        controller.select_answer(option_id)
    except QuizError as exc:
        await _reject(callback, exc)
        return
    await callback.answer()
    question = controller.current_question
    if not isinstance(callback.message, Message) or question is None:
        return
    try:
        await callback.message.edit_reply_markup(reply_markup=question_keyboard(question, option_id))
    except TelegramBadRequest as exc:
        # Same option pressed twice: the markup is unchanged.
        logger.debug("Keyboard not updated: %s", exc)


@router.callback_query(F.data.startswith(SUBMIT_PREFIX))
async def on_submit(callback: CallbackQuery) -> None:
    controller = get_session(callback.from_user.id).controller
    if await _is_stale(callback, controller, (callback.data or "")[len(SUBMIT_PREFIX):]):
        return
    question = controller.current_question
    try:
        is_correct = controller.submit_answer()
    except QuizError as exc:
        await _reject(callback, exc)
        return
    await callback.answer()
    selected_id = controller.selected_option_id
    if not isinstance(callback.message, Message) or question is None or selected_id is None:
        return
    await callback.message.answer(
        render_feedback(question, selected_id, is_correct),
        reply_markup=feedback_keyboard(question, controller.is_last_question),
    )


@router.callback_query(F.data.startswith(LISTEN_PREFIX))
async def on_listen(callback: CallbackQuery) -> None:
    state = get_session(callback.from_user.id).controller.state
    question_id = (callback.data or "")[len(LISTEN_PREFIX):]
    question = None
    if state is not None:
        question = next((q for q in state.active_questions if q.id == question_id), None)
    if question is None or not isinstance(callback.message, Message):
        await callback.answer()
        return
    await callback.answer("正在生成朗读…")
    sentence = fill_blank(question.sentence, question.correct_option.text)
    try:
        audio_data = await asyncio.to_thread(sentence_to_mp3, sentence)
        await callback.message.answer_audio(
            audio=BufferedInputFile(audio_data, filename="sentence.mp3"),
            caption=sentence,
        )
    except Exception as exc:  # noqa: BLE001
        logger.exception("gTTS failed")
        await callback.message.answer(f"朗读失败: {exc}")


@router.callback_query(F.data.startswith(NEXT_PREFIX))
async def on_next(callback: CallbackQuery) -> None:
    controller = get_session(callback.from_user.id).controller
    if await _is_stale(callback, controller, (callback.data or "")[len(NEXT_PREFIX):]):
        return
    try:
        state = controller.advance()
    except QuizError as exc:
        await _reject(callback, exc)
        return
    await callback.answer()
    if not isinstance(callback.message, Message):
        return
    if isinstance(state.phase, Completed):
        result = controller.result()
        logger.info("User %s finished: %s/%s", callback.from_user.id, result.score, result.total)
        await callback.message.answer(render_result(result), reply_markup=result_keyboard())
        return
    await send_question(callback.message, controller)


@router.callback_query(F.data == RESTART)
async def on_restart(callback: CallbackQuery) -> None:
    session = reset_session(callback.from_user.id)
    await callback.answer()
    if isinstance(callback.message, Message):
        await callback.message.answer("请选择年级:", reply_markup=grade_keyboard(session.criteria.grade))
