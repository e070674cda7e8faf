from io import BytesIO

from gtts import gTTS  # type: ignore

from .config import TTS_LANG


def sentence_to_mp3(sentence: str, lang: str = TTS_LANG, slow: bool = False) -> bytes:
    """Render a completed quiz sentence as MP3 bytes with Google TTS."""
    with BytesIO() as buffer:
        gTTS(text=sentence, lang=lang, slow=slow).write_to_fp(buffer)
        return buffer.getvalue()
