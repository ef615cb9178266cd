"""
Speech synthesis backend client (VITS-style ``/tts``).
"""

import httpx

from meseca.clients.base import BackendClient


class SynthesisClient(BackendClient):
    """Requests audio for a piece of text."""

    role = "TTS"

    async def synthesize(self, text: str) -> httpx.Response:
        """
        Start synthesis and return the open streaming response.

        The body has not been read. The caller must drain it with
        ``aiter_bytes()`` and close it with ``aclose()``.
        """
        return await self._send("POST", "/tts", stream=True, json={"text": text})
