"""
Request-scoped staging of uploaded files.

An upload is copied chunk by chunk into a temp file that is removed when the
``staged_upload`` block exits, whatever the exit path.
"""

import logging
import os
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional, Protocol, Union

from meseca.utils.error_handler import PayloadTooLargeError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class AsyncReadable(Protocol):
    async def read(self, size: int = -1) -> bytes:
        ...


@asynccontextmanager
async def staged_upload(
    upload: AsyncReadable,
    directory: Union[str, Path],
    max_bytes: int,
    suffix: Optional[str] = None
) -> AsyncIterator[Path]:
    """
    Stage ``upload`` on disk and yield the temp file path.

    Raises:
        PayloadTooLargeError: If the upload exceeds ``max_bytes``
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=directory, prefix="upload-", suffix=suffix or "")
    tmp_path = Path(tmp_name)
    try:
        written = 0
        with os.fdopen(fd, "wb") as fh:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise PayloadTooLargeError(max_bytes)
                fh.write(chunk)
        logger.debug(f"Staged upload of {written} bytes at {tmp_path}")
        yield tmp_path
    finally:
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Failed to remove staged upload {tmp_path}: {e}")
