"""
Shared fixtures for the Meseca tests.

Backends are replaced by httpx.MockTransport handlers, and conversation memory
lives in a temp directory per test.
"""

import json
from pathlib import Path
from typing import Callable, Optional

import httpx
import pytest

from meseca.clients import GenerationClient, RecognitionClient, SynthesisClient
from meseca.config import Settings
from meseca.services import ConversationStore, JsonFileMemoryBackend, VoiceGateway

Handler = Callable[[httpx.Request], httpx.Response]


def not_called(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"Unexpected backend call: {request.method} {request.url}")


@pytest.fixture
def memory_path(tmp_path) -> Path:
    """Location of the persisted memory document."""
    return tmp_path / "tts_memory.json"


@pytest.fixture
def store(memory_path) -> ConversationStore:
    """A loaded store backed by a fresh JSON file."""
    store = ConversationStore(JsonFileMemoryBackend(memory_path))
    store.load()
    return store


@pytest.fixture
def upload_dir(tmp_path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def test_settings(tmp_path, memory_path, upload_dir) -> Settings:
    """Settings that never read the developer's .env file."""
    return Settings(
        _env_file=None,
        memory_file=str(memory_path),
        upload_dir=str(upload_dir),
        static_dir=str(tmp_path / "no-static"),
        rate_limit_max=1000,
    )


@pytest.fixture
def gateway_factory(store, upload_dir):
    """Build a VoiceGateway whose backends are mock transports."""

    def factory(
        generation: Handler = not_called,
        synthesis: Handler = not_called,
        recognition: Handler = not_called,
        max_upload_bytes: Optional[int] = None
    ) -> VoiceGateway:
        kwargs = {}
        if max_upload_bytes is not None:
            kwargs["max_upload_bytes"] = max_upload_bytes
        return VoiceGateway(
            store=store,
            generation=GenerationClient(
                "http://llm.test", transport=httpx.MockTransport(generation)
            ),
            synthesis=SynthesisClient(
                "http://tts.test", transport=httpx.MockTransport(synthesis)
            ),
            recognition=RecognitionClient(
                "http://whisper.test", transport=httpx.MockTransport(recognition)
            ),
            upload_dir=upload_dir,
            **kwargs
        )

    return factory


@pytest.fixture
def saved_history(memory_path):
    """Read the conversation history as written to disk."""

    def read():
        with open(memory_path, "r", encoding="utf-8") as f:
            return json.load(f)["conversationHistory"]

    return read
