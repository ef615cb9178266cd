"""
Service layer implementations.
"""

from .conversation_store import ConversationStore, JsonFileMemoryBackend, MemoryBackend
from .gateway import VoiceGateway
from .prompt_builder import build_persona, build_prompt

__all__ = [
    "ConversationStore",
    "JsonFileMemoryBackend",
    "MemoryBackend",
    "VoiceGateway",
    "build_persona",
    "build_prompt",
]
