"""
Rate limiting for the gateway.

Uses slowapi with one default limit applied to every route, keyed by client
address. Counters live in slowapi's in-memory storage, one limiter per app.
"""

import logging
import math

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."


def rate_limit_for(window_ms: int, max_requests: int) -> str:
    """
    Render a limit string such as ``"60/60 seconds"``.

    Windows shorter than a second, or not a whole number of seconds, are
    rounded up to the next second.
    """
    window_seconds = max(1, math.ceil(window_ms / 1000))
    return f"{max_requests}/{window_seconds} seconds"


def create_limiter(window_ms: int = 60_000, max_requests: int = 60) -> Limiter:
    """Create a limiter that applies the same default limit to every route."""
    return Limiter(
        key_func=get_remote_address,
        default_limits=[rate_limit_for(window_ms, max_requests)],
        headers_enabled=True
    )


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Return the 429 body with the limiter's headers.

    Kept synchronous: SlowAPIMiddleware calls the registered handler without
    awaiting it.
    """
    logger.warning(f"Rate limit exceeded for {get_remote_address(request)} on {request.url.path}")
    response = JSONResponse(status_code=429, content={"error": RATE_LIMIT_MESSAGE})
    return request.app.state.limiter._inject_headers(response, request.state.view_rate_limit)


def configure_rate_limiting(app: FastAPI, limiter: Limiter) -> Limiter:
    """
    Attach ``limiter`` to the app.

    Args:
        app: FastAPI application instance
        limiter: Limiter built by create_limiter

    Returns:
        The attached limiter
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
    return limiter
