import re

BLANK_RE = re.compile(r"_{2,}")


def count_blanks(sentence: str) -> int:
    return len(BLANK_RE.findall(sentence))


def fill_blank(sentence: str, text: str) -> str:
    filled = BLANK_RE.sub(lambda _: text, sentence, count=1)
    # A filled blank at the start of the sentence keeps the sentence capitalised.
    if sentence.lstrip().startswith("_") and filled:
        stripped = filled.lstrip()
        offset = len(filled) - len(stripped)
        filled = filled[:offset] + stripped[:1].upper() + stripped[1:]
    return filled


def progress_bar(fraction: float, width: int = 10) -> str:
    fraction = max(0.0, min(1.0, fraction))
    filled = int(round(fraction * width))
    return "▓" * filled + "░" * (width - filled)
