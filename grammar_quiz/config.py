import logging
import os
from pathlib import Path
from typing import Dict

logger = logging.getLogger("grammarquiz")


def read_env_file(path: str = ".env") -> Dict[str, str]:
    """Parse ``KEY=value`` lines; comments, blank and malformed lines are skipped."""
    env_path = Path(path)
    if not env_path.is_file():
        return {}
    values: Dict[str, str] = {}
    try:
        lines = env_path.read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        logger.warning("Could not read %s: %s", env_path, exc)
        return {}
    for line in lines:
        key, sep, value = line.strip().partition("=")
        key = key.strip()
        if not sep or not key or key.startswith("#"):
            continue
        values[key] = value.strip().strip("\"'")
    return values


def load_env(path: str = ".env") -> None:
    # Real environment variables win over the file.
    for key, value in read_env_file(path).items():
        os.environ.setdefault(key, value)


load_env()

TELEGRAM_BOT_TOKEN = os.getenv("BOT_TOKEN", "")
QUESTION_BANK_PATH = os.getenv("QUESTION_BANK_PATH", "")
TTS_LANG = os.getenv("TTS_LANG") or "en"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO))


def validate_settings() -> None:
    if not TELEGRAM_BOT_TOKEN:
        raise RuntimeError("BOT_TOKEN is not set; put it in the environment or in .env")
