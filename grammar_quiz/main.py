import argparse
import asyncio
from collections import Counter
from typing import Optional, Sequence

from aiogram import Bot, Dispatcher

from .bank import load_question_bank
from .config import QUESTION_BANK_PATH, TELEGRAM_BOT_TOKEN, logger, validate_settings
from .errors import QuestionBankError
from .handlers import router
from .models import Question


async def run_bot(bank: Sequence[Question]) -> None:
    validate_settings()
    bot = Bot(TELEGRAM_BOT_TOKEN)
    dispatcher = Dispatcher(bank=bank)
    dispatcher.include_router(router)
    logger.info("Bot is starting with %s questions", len(bank))
    await dispatcher.start_polling(bot)


def summarize_bank(bank: Sequence[Question]) -> str:
    counts = Counter((q.grade, q.difficulty) for q in bank)
    lines = [f"{len(bank)} questions"]
    for (grade, difficulty), count in sorted(counts.items(), key=lambda item: (item[0][0].value, item[0][1].value)):
        lines.append(f"  {grade.value:<13} {difficulty.value:<13} {count}")
    return "\n".join(lines)


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Grammar quiz bot entrypoint")
    parser.add_argument(
        "--bank",
        default=QUESTION_BANK_PATH or None,
        help="Path to a question bank JSON file (defaults to the bundled bank)",
    )
    parser.add_argument(
        "--check-bank",
        action="store_true",
        help="Validate the question bank, print a summary and exit",
    )
    args = parser.parse_args(argv)

    try:
        bank = load_question_bank(args.bank)
    except QuestionBankError as exc:
        parser.exit(1, f"Invalid question bank: {exc}\n")
    if args.check_bank:
        print(summarize_bank(bank))
        return

    try:
        asyncio.run(run_bot(bank))
    except (KeyboardInterrupt, SystemExit):
        logger.info("Bot stopped")


if __name__ == "__main__":
    main()
