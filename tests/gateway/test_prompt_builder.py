"""
Tests for prompt rendering.
"""

from meseca.models import ConversationEntry
from meseca.services import build_persona, build_prompt


def test_default_persona():
    assert build_persona() == (
        "You are Meseca, a concise energetic assistant trained by Dev. Be helpful and safe."
    )


def test_prompt_layout():
    context = [
        ConversationEntry(role="user", content="hello"),
        ConversationEntry(role="assistant", content="hi there"),
        ConversationEntry(role="user", content="how are you?"),
    ]

    prompt = build_prompt("PERSONA", context, "how are you?")

    assert prompt == (
        "PERSONA\n"
        "\n"
        "Chat history:\n"
        "user: hello\n"
        "assistant: hi there\n"
        "user: how are you?\n"
        "\n"
        "User: how are you?\n"
        "Assistant:"
    )


def test_prompt_with_empty_history():
    prompt = build_prompt("PERSONA", [], "hello")

    assert prompt == "PERSONA\n\nChat history:\n\n\nUser: hello\nAssistant:"


def test_prompt_is_deterministic():
    """Identical inputs always render byte-identical prompts."""
    context = [ConversationEntry(role="user", content="ping")]
    persona = build_persona("Nova", "Sam")

    first = build_prompt(persona, context, "pong?")
    second = build_prompt(persona, list(context), "pong?")

    assert first == second
    assert first.encode("utf-8") == second.encode("utf-8")


def test_prompt_accepts_any_iterable():
    context = (ConversationEntry(role="user", content=str(i)) for i in range(2))

    prompt = build_prompt("P", context, "m")

    assert "user: 0\nuser: 1" in prompt
