"""
Prompt rendering for the text generation backend.

Pure functions only: the same persona, context and message always render the
same prompt.
"""

from typing import Iterable

from meseca.models.conversation import ConversationEntry

PERSONA_TEMPLATE = (
    "You are {name}, a concise energetic assistant trained by {developer}. "
    "Be helpful and safe."
)


def build_persona(name: str = "Meseca", developer: str = "Dev") -> str:
    """Render the assistant persona description."""
    return PERSONA_TEMPLATE.format(name=name, developer=developer)


def render_history(entries: Iterable[ConversationEntry]) -> str:
    """One ``role: content`` line per entry, oldest first."""
    return "\n".join(f"{entry.role}: {entry.content}" for entry in entries)


def build_prompt(
    persona: str,
    recent_context: Iterable[ConversationEntry],
    user_message: str
) -> str:
    """
    Build the generation prompt.

    Args:
        persona: Persona description placed at the top
        recent_context: Trailing conversation entries in chronological order
        user_message: The new user turn

    Returns:
        Prompt ending with the assistant cue
    """
    history = render_history(recent_context)
    return f"{persona}\n\nChat history:\n{history}\n\nUser: {user_message}\nAssistant:"
