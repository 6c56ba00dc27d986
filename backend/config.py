import logging

from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    ANTHROPIC_API_KEY: str = ""
    OPENAI_API_KEY: str = ""
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/app.db"
    ENVIRONMENT: str = "development"

    TUTOR_MODEL: str = "claude-sonnet-4-5"
    TUTOR_MAX_TOKENS: int = 500
    # No reply within this window is treated like a network failure.
    TUTOR_TIMEOUT_SECONDS: float = 30.0
    HISTORY_WINDOW: int = 20
    DIFFICULTY_WINDOW: int = 3
    FAREWELL_DELAY_SECONDS: float = 2.5

    TTS_MODEL: str = "tts-1"
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()

if not settings.ANTHROPIC_API_KEY:
    logger.warning(
        "ANTHROPIC_API_KEY is not set. POST /api/conversation/start will return 503 "
        "until it is configured."
    )
