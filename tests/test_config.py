import pytest
from pydantic import ValidationError

from studyshift.core.config import Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("LOG_LEVEL", "AI_PROVIDER"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.AI_PROVIDER == "groq"
    assert settings.TEMPERATURE == 0.7
    assert settings.LOG_LEVEL == "INFO"


def test_lowercase_log_level_is_normalised(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")

    assert Settings(_env_file=None).LOG_LEVEL == "DEBUG"


def test_provider_is_case_insensitive(monkeypatch):
    monkeypatch.setenv("AI_PROVIDER", "Gemini")

    assert Settings(_env_file=None).AI_PROVIDER == "gemini"


def test_unknown_provider_is_rejected(monkeypatch):
    monkeypatch.setenv("AI_PROVIDER", "hybrid")

    with pytest.raises(ValidationError, match="AI_PROVIDER must be one of"):
        Settings(_env_file=None)
