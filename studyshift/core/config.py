from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── AI Provider ───────────────────────────────────────────────────────────
    AI_PROVIDER: str = "groq"

    @field_validator("AI_PROVIDER")
    @classmethod
    def validate_ai_provider(cls, v: str) -> str:
        allowed = {"groq", "gemini"}
        if v.lower() not in allowed:
            raise ValueError(f"AI_PROVIDER must be one of {allowed}, got '{v}'")
        return v.lower()

    # Groq (Llama 3)
    GROQ_API_KEY: Optional[str] = None
    GROQ_MODEL: str = "llama-3.3-70b-versatile"

    # Google (Gemini)
    GOOGLE_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.0-flash"

    # ── Decoding ──────────────────────────────────────────────────────────────
    TEMPERATURE: float = 0.7
    MAX_NEW_TOKENS: int = 1024
    MINDMAP_MAX_NEW_TOKENS: int = 2048
    AI_TIMEOUT_SECONDS: Optional[float] = None  # None = wait indefinitely

    # ── Limits ────────────────────────────────────────────────────────────────
    MIN_TEXT_LENGTH: int = 10
    DEFAULT_ITEM_COUNT: int = 5

    # ── Core ──────────────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalise_log_level(cls, v: str) -> str:
        return v.upper()

    CORS_ORIGINS: List[str] = ["*"]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
