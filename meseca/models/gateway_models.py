"""
Request and response bodies for the gateway HTTP surface.

Presence and emptiness of the required text fields are checked by the gateway
service, not here, so the same rules apply to callers that bypass HTTP.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """Chat turn sent by the client."""

    message: Optional[str] = Field(default=None, description="User message")
    max_tokens: int = Field(default=512, ge=1, description="Generation length limit")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"message": "What's the weather like on Mars?", "max_tokens": 256}
        }
    )


class ChatResponse(BaseModel):
    """Assistant reply for a chat turn."""

    reply: str


class SynthesisRequest(BaseModel):
    """Text to be spoken by the synthesis backend."""

    text: Optional[str] = Field(default=None, description="Text to synthesize")


class StatusResponse(BaseModel):
    """Liveness payload for the root route."""

    status: str = "ok"
    msg: str
