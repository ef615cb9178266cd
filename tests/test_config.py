"""
Tests for environment-driven settings.
"""

import json

import pytest
from pydantic import ValidationError

from meseca.config import Settings, default_services


def test_defaults(monkeypatch):
    for name in ("PORT", "ALLOWED_ORIGIN", "MEMORY_FILE", "SUPERVISED_SERVICES"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.port == 5000
    assert settings.allowed_origin == "http://localhost:8080"
    assert settings.memory_file == "./tts_memory.json"
    assert settings.history_max_entries == 200
    assert settings.context_entries == 20
    assert settings.backend_timeout_seconds is None
    assert settings.launcher_port == 3000
    assert [(s.name, s.port) for s in settings.supervised_services] == [
        ("Gateway Server", 5000),
        ("VITS Server", 7000),
        ("Whisper Server", 7001),
    ]


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("PORT", "5050")
    monkeypatch.setenv("ALLOWED_ORIGIN", "http://example.test")
    monkeypatch.setenv("OLLAMA_URL", "http://gpu-box:11434")
    monkeypatch.setenv("RATE_LIMIT_MAX", "5")

    settings = Settings(_env_file=None)

    assert settings.port == 5050
    assert settings.allowed_origin == "http://example.test"
    assert settings.ollama_url == "http://gpu-box:11434"
    assert settings.rate_limit_max == 5


def test_supervised_services_from_json(monkeypatch):
    monkeypatch.setenv("SUPERVISED_SERVICES", json.dumps([
        {"name": "Piper", "port": 7200, "command": "piper-server", "args": ["--port", "7200"]}
    ]))

    settings = Settings(_env_file=None)

    assert len(settings.supervised_services) == 1
    assert settings.supervised_services[0].command == "piper-server"
    assert settings.supervised_services[0].args == ["--port", "7200"]


def test_env_file(tmp_path, monkeypatch):
    monkeypatch.delenv("LLM_MODEL", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("LLM_MODEL=mistral\nUNRELATED_KEY=ignored\n", encoding="utf-8")

    settings = Settings(_env_file=str(env_file))

    assert settings.llm_model == "mistral"


@pytest.mark.parametrize("name,value", [
    ("HISTORY_MAX_ENTRIES", "0"),
    ("BACKEND_CONNECT_ATTEMPTS", "0"),
    ("RATE_LIMIT_WINDOW_MS", "-1"),
])
def test_invalid_values_rejected(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_default_services_are_independent_copies():
    first = default_services()
    second = default_services()

    assert first == second
    assert first is not second
