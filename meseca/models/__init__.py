"""
Data models for the Meseca gateway.
"""

from .conversation import ConversationEntry, PersistedMemory, Role
from .gateway_models import ChatRequest, ChatResponse, StatusResponse, SynthesisRequest

__all__ = [
    # Conversation memory
    "ConversationEntry",
    "PersistedMemory",
    "Role",
    # HTTP bodies
    "ChatRequest",
    "ChatResponse",
    "StatusResponse",
    "SynthesisRequest",
]
