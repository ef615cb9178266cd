"""
Speech recognition backend client (Whisper-style ``/whisper``).
"""

from pathlib import Path
from typing import Any, Optional, Union

from meseca.clients.base import BackendClient

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class RecognitionClient(BackendClient):
    """Uploads audio files for transcription."""

    role = "Whisper"

    async def transcribe(
        self,
        path: Union[str, Path],
        filename: Optional[str] = None,
        content_type: Optional[str] = None
    ) -> Any:
        """
        Send the file at ``path`` as multipart field ``file``.

        Returns:
            The backend's decoded JSON, unmodified
        """
        path = Path(path)
        with open(path, "rb") as fh:
            files = {"file": (filename or path.name, fh, content_type or DEFAULT_CONTENT_TYPE)}
            response = await self._send("POST", "/whisper", files=files)
        return response.json()
