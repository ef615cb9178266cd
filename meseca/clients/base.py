"""
Shared HTTP plumbing for the backend clients.

Each client forwards one kind of request to one backend and relays the
outcome. Non-success statuses and transport failures both surface as
BackendError carrying whatever body the backend sent back.
"""

import logging
import time
from typing import Any, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential
)

from meseca.utils.error_handler import BackendError

logger = logging.getLogger(__name__)


def create_timeout(timeout_seconds: Optional[float]) -> httpx.Timeout:
    """No timeout unless one is configured."""
    return httpx.Timeout(timeout_seconds)


class BackendClient:
    """Base client for a single backend service."""

    role = "Backend"

    def __init__(
        self,
        base_url: str,
        timeout_seconds: Optional[float] = None,
        connect_attempts: int = 1,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the client.

        Args:
            base_url: Backend base URL, without trailing slash
            timeout_seconds: Per-request timeout, None to wait indefinitely
            connect_attempts: Attempts made when the connection is refused
            transport: Optional transport override (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.connect_attempts = max(1, connect_attempts)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=create_timeout(timeout_seconds),
            transport=transport
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(
        self,
        method: str,
        endpoint: str,
        stream: bool = False,
        **kwargs: Any
    ) -> httpx.Response:
        """
        Send a request and return the successful response.

        With ``stream=True`` the body is left unread and the caller owns
        closing the response.

        Raises:
            BackendError: On transport failure or non-success status
        """
        start_time = time.monotonic()
        try:
            response = await self._send_with_retry(method, endpoint, stream, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{self.role} request {method} {endpoint} failed: {e}")
            raise BackendError(self.role, detail=str(e))

        duration = time.monotonic() - start_time
        logger.info(
            f"{self.role} request completed: {method} {endpoint} - {response.status_code}",
            extra={"status_code": response.status_code, "duration_seconds": round(duration, 3)}
        )

        if not response.is_success:
            detail = await self._read_error_body(response)
            raise BackendError(self.role, detail=detail, upstream_status=response.status_code)

        return response

    async def _send_with_retry(
        self,
        method: str,
        endpoint: str,
        stream: bool,
        **kwargs: Any
    ) -> httpx.Response:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.connect_attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            retry=retry_if_exception_type(httpx.ConnectError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True
        )
        async for attempt in retrying:
            with attempt:
                request = self._client.build_request(method, endpoint, **kwargs)
                return await self._client.send(request, stream=stream)

    @staticmethod
    async def _read_error_body(response: httpx.Response) -> str:
        try:
            await response.aread()
            return response.text
        except httpx.HTTPError:
            return ""
        finally:
            await response.aclose()
