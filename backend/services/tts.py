"""OpenAI text-to-speech rendering for tutor messages."""
import logging

from openai import AsyncOpenAI

from config import settings

logger = logging.getLogger(__name__)

# OpenAI voices: nova (warm female, American), onyx (deep male),
# fable (warm, British storytelling), echo (neutral male).
VOICE_MAP = {
    "american": {"female": "nova", "male": "onyx"},
    "british": {"female": "fable", "male": "echo"},
}

MIN_SPEED = 0.25
MAX_SPEED = 4.0


def select_voice(accent: str, gender: str) -> str:
    return VOICE_MAP.get(accent, {}).get(gender) or VOICE_MAP["american"]["female"]


def clamp_speed(speed: float) -> float:
    return max(MIN_SPEED, min(MAX_SPEED, speed))


def _get_client() -> AsyncOpenAI:
    if not settings.OPENAI_API_KEY:
        raise RuntimeError("OPENAI_API_KEY is not configured")
    return AsyncOpenAI(api_key=settings.OPENAI_API_KEY)


async def synthesize(text: str, accent: str = "american", gender: str = "female", speed: float = 1.0) -> bytes:
    """Render text to MP3 bytes."""
    client = _get_client()
    response = await client.audio.speech.create(
        model=settings.TTS_MODEL,
        voice=select_voice(accent, gender),
        input=text,
        speed=clamp_speed(speed),
        response_format="mp3",
    )
    audio = response.content
    logger.debug("Synthesized %d bytes of audio for %d chars", len(audio), len(text))
    return audio
