import asyncio

import pytest
from fastapi.testclient import TestClient

from studyshift import ai_engine
from studyshift.api.endpoints import transformations
from studyshift.main import app
from studyshift.services.storage_service import MemStorage


SAMPLE_TEXT = (
    "Photosynthesis is the process used by plants to turn sunlight into chemical energy. "
    "It takes place in the chloroplasts using the pigment chlorophyll. "
    "Oxygen is released as a by-product of splitting water molecules."
)


class FakeModel:
    """Stands in for the provider call; records prompts and replays a canned reply."""

    def __init__(self):
        self.reply = None
        self.error = None
        self.calls = []

    async def __call__(self, prompt, max_new_tokens=None):
        self.calls.append((prompt, max_new_tokens))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def fake_model(monkeypatch):
    model = FakeModel()
    monkeypatch.setattr(ai_engine, "call_model", model)
    return model


@pytest.fixture
def offline_model(fake_model):
    """Model call that always fails, forcing the fallback path."""
    fake_model.error = ConnectionError("inference endpoint unreachable")
    return fake_model


@pytest.fixture
def run():
    return asyncio.run


@pytest.fixture
def store(monkeypatch):
    fresh = MemStorage()
    monkeypatch.setattr(transformations, "storage", fresh)
    return fresh


@pytest.fixture
def client(store):
    return TestClient(app)


@pytest.fixture
def sample_text():
    return SAMPLE_TEXT
