"""
Error taxonomy for the Meseca gateway.

Every error the gateway surfaces to a client is a GatewayError carrying the
HTTP status it maps to. Persistence errors exist for classification and
logging only; the conversation store never lets them escape.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Error categories for classification."""
    VALIDATION = "validation"
    BACKEND = "backend"
    PERSISTENCE = "persistence"
    INTERNAL = "internal"


class GatewayError(Exception):
    """Base exception for gateway errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        category: ErrorCategory,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None
    ):
        self.message = message
        self.category = category
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(message)

    @property
    def detail(self) -> Optional[str]:
        """Diagnostic text returned to the client next to the message."""
        return self.details.get("detail")

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.detail is not None:
            body["detail"] = self.detail
        return body


class ValidationError(GatewayError):
    """Malformed or missing client input. Raised before any side effect."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCategory.VALIDATION, details)


class PayloadTooLargeError(ValidationError):
    """Upload exceeded the configured size bound."""

    status_code = 413

    def __init__(self, limit_bytes: int):
        super().__init__(
            "File too large",
            details={"detail": f"Upload exceeds {limit_bytes} bytes", "limit_bytes": limit_bytes}
        )


class BackendError(GatewayError):
    """A backend returned a non-success status or could not be reached."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(
        self,
        backend: str,
        detail: str = "",
        upstream_status: Optional[int] = None
    ):
        self.backend = backend
        self.upstream_status = upstream_status
        super().__init__(
            f"{backend} backend error",
            ErrorCategory.BACKEND,
            details={"detail": detail, "upstream_status": upstream_status}
        )


class PersistenceError(GatewayError):
    """Conversation memory could not be loaded or saved."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCategory.PERSISTENCE, details)


class InternalError(GatewayError):
    """Anything unexpected, caught at the handler boundary."""

    def __init__(self, detail: str):
        super().__init__("Internal error", ErrorCategory.INTERNAL, details={"detail": detail})


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    """Render a GatewayError as the JSON error body."""
    if exc.category is ErrorCategory.BACKEND:
        logger.warning(f"{exc.message} on {request.url.path}: {exc.detail}")
    elif exc.category is ErrorCategory.VALIDATION:
        logger.info(f"Rejected request to {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map FastAPI's request-shape errors onto the 400 validation response."""
    errors = exc.errors()
    missing_file = any(
        err.get("type") == "missing" and tuple(err.get("loc", ()))[-1:] == ("file",)
        for err in errors
    )
    if missing_file:
        error = ValidationError("Missing file field 'file'")
    else:
        fields = ", ".join(str(err.get("loc", ("",))[-1]) for err in errors)
        error = ValidationError("Invalid request", details={"detail": f"Invalid field(s): {fields}"})
    return await gateway_error_handler(request, error)
