"""
HTTP middleware for the gateway.
"""

from .rate_limiter import configure_rate_limiting, create_limiter, rate_limit_for
from .security_headers import SecurityHeadersMiddleware

__all__ = ["SecurityHeadersMiddleware", "configure_rate_limiting", "create_limiter", "rate_limit_for"]
