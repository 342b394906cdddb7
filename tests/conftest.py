import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

from src.interview_relay.config import load_settings  # noqa: E402

from .utils import CountingStore, FakeCompletionClient, FakeSpeechClient  # noqa: E402


@pytest.fixture
def store() -> CountingStore:
    return CountingStore()


@pytest.fixture
def completion() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture
def speech() -> FakeSpeechClient:
    return FakeSpeechClient()


@pytest.fixture
def client(store, completion, speech):
    from fastapi.testclient import TestClient

    from src.interview_relay.api import dependencies as deps
    from src.interview_relay.api.main import app

    settings = load_settings({"RELAY_RECORD_STORE_IMPL": "memory", "RELAY_STREAM_BUFFER": "4"})
    app.dependency_overrides[deps.get_settings] = lambda: settings
    app.dependency_overrides[deps.get_record_store] = lambda: store
    app.dependency_overrides[deps.get_completion_client] = lambda: completion
    app.dependency_overrides[deps.get_speech_client] = lambda: speech
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
