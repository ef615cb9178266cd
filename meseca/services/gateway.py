"""
Gateway request handling: chat, speech synthesis and speech recognition.

The gateway validates client input, forwards it to the right backend and, for
chat, keeps the conversation store up to date. Handlers raise GatewayError
subclasses; the HTTP layer turns them into responses.
"""

import logging
from pathlib import Path
from typing import Any, Optional, Union

import httpx

from meseca.clients import GenerationClient, RecognitionClient, SynthesisClient
from meseca.services.conversation_store import DEFAULT_CONTEXT_ENTRIES, ConversationStore
from meseca.services.prompt_builder import build_persona, build_prompt
from meseca.services.upload_staging import AsyncReadable, staged_upload
from meseca.utils.error_handler import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 512
DEFAULT_MAX_UPLOAD_BYTES = 20 * 1024 * 1024


def _require_text(value: Any, message: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError(message)
    return value


class VoiceGateway:
    """
    Forwards client requests to the voice backends.

    The conversation store is the only state shared between requests. It is
    used without locking, so concurrent chat turns may interleave their
    history entries.
    """

    def __init__(
        self,
        store: ConversationStore,
        generation: GenerationClient,
        synthesis: SynthesisClient,
        recognition: RecognitionClient,
        persona: Optional[str] = None,
        context_entries: int = DEFAULT_CONTEXT_ENTRIES,
        upload_dir: Union[str, Path] = "uploads",
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    ):
        self.store = store
        self.generation = generation
        self.synthesis = synthesis
        self.recognition = recognition
        self.persona = persona or build_persona()
        self.context_entries = context_entries
        self.upload_dir = Path(upload_dir)
        self.max_upload_bytes = max_upload_bytes

    async def chat(self, message: Any, max_tokens: int = DEFAULT_MAX_TOKENS) -> str:
        """
        Run one chat turn.

        The user entry is persisted before the backend is called, so a failed
        turn still leaves a record of what was asked.

        Returns:
            The trimmed assistant reply

        Raises:
            ValidationError: If ``message`` is missing, empty or not text
            BackendError: If the generation backend fails
        """
        message = _require_text(message, "Invalid 'message' field")

        self.store.append_user(message)

        prompt = build_prompt(
            self.persona,
            self.store.recent_context(self.context_entries),
            message
        )
        raw_reply = await self.generation.generate(prompt, max_tokens=max_tokens)

        reply = raw_reply.strip()
        self.store.append_assistant(reply)
        return reply

    async def synthesize(self, text: Any) -> httpx.Response:
        """
        Start speech synthesis for ``text``.

        Returns:
            The backend's open streaming response; the caller relays and closes it

        Raises:
            ValidationError: If ``text`` is missing, empty or not text
            BackendError: If the synthesis backend fails
        """
        text = _require_text(text, "Missing 'text' field")
        return await self.synthesis.synthesize(text)

    async def transcribe(
        self,
        upload: Optional[AsyncReadable],
        filename: Optional[str] = None,
        content_type: Optional[str] = None
    ) -> Any:
        """
        Transcribe an uploaded audio file.

        The upload is staged to a temp file that never outlives this call.

        Raises:
            ValidationError: If no file was uploaded
            PayloadTooLargeError: If the upload exceeds the size bound
            BackendError: If the recognition backend fails
        """
        if upload is None:
            raise ValidationError("Missing file field 'file'")

        suffix = Path(filename).suffix if filename else None
        async with staged_upload(upload, self.upload_dir, self.max_upload_bytes, suffix) as path:
            return await self.recognition.transcribe(
                path,
                filename=filename or path.name,
                content_type=content_type
            )

    async def aclose(self) -> None:
        """Close the backend clients."""
        for client in (self.generation, self.synthesis, self.recognition):
            try:
                await client.aclose()
            except Exception as e:
                logger.error(f"Error closing {client.role} client: {e}")
