"""
Conversation memory models.
"""

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "assistant"]


class ConversationEntry(BaseModel):
    """A single turn in the conversation history."""

    role: Role
    content: str

    model_config = ConfigDict(frozen=True)


class PersistedMemory(BaseModel):
    """Everything the gateway writes to durable storage."""

    conversation_history: List[ConversationEntry] = Field(
        default_factory=list,
        alias="conversationHistory",
        description="Chronological conversation turns, oldest first"
    )
    user_profile: Dict[str, Any] = Field(
        default_factory=dict,
        alias="userProfile",
        description="Opaque user metadata, persisted as-is"
    )

    model_config = ConfigDict(populate_by_name=True)

    def to_document(self) -> Dict[str, Any]:
        """Serialize with the on-disk key names."""
        return self.model_dump(by_alias=True)
