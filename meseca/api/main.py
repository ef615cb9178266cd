"""
Main FastAPI application for the Meseca gateway.
"""

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from meseca import __version__
from meseca.api.gateway_endpoints import router as gateway_router
from meseca.clients import GenerationClient, RecognitionClient, SynthesisClient
from meseca.config import Settings, get_settings
from meseca.middleware import SecurityHeadersMiddleware, configure_rate_limiting, create_limiter
from meseca.services import ConversationStore, JsonFileMemoryBackend, VoiceGateway, build_persona
from meseca.utils.error_handler import (
    GatewayError,
    gateway_error_handler,
    request_validation_handler
)

logger = logging.getLogger(__name__)


def build_gateway(settings: Settings) -> VoiceGateway:
    """Load conversation memory and wire the backend clients."""
    store = ConversationStore(
        JsonFileMemoryBackend(settings.memory_file),
        max_entries=settings.history_max_entries
    )
    store.load()

    client_options = {
        "timeout_seconds": settings.backend_timeout_seconds,
        "connect_attempts": settings.backend_connect_attempts,
    }
    return VoiceGateway(
        store=store,
        generation=GenerationClient(settings.ollama_url, model=settings.llm_model, **client_options),
        synthesis=SynthesisClient(settings.vits_url, **client_options),
        recognition=RecognitionClient(settings.whisper_url, **client_options),
        persona=build_persona(settings.persona_name, settings.persona_developer),
        context_entries=settings.context_entries,
        upload_dir=settings.upload_dir,
        max_upload_bytes=settings.max_upload_bytes
    )


def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[VoiceGateway] = None
) -> FastAPI:
    """
    Create the gateway application.

    Args:
        settings: Settings to use (defaults to environment settings)
        gateway: Pre-built gateway; when given, startup skips building one
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_gateway = getattr(app.state, "gateway", None) is None
        if owns_gateway:
            try:
                app.state.gateway = build_gateway(settings)
            except Exception as e:
                logger.error(f"Failed to initialize gateway: {e}")
                raise

        logger.info(f"Meseca server listening on http://{settings.host}:{settings.port}")
        logger.info(f"Allowed origin: {settings.allowed_origin}")

        yield

        logger.info("Shutting down Meseca server...")
        if owns_gateway:
            await app.state.gateway.aclose()
            app.state.gateway = None

    app = FastAPI(
        title="Meseca Gateway",
        description="Gateway for the text generation, speech synthesis and recognition backends",
        version=__version__,
        lifespan=lifespan
    )
    app.state.gateway = gateway

    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        """Add request processing time to headers."""
        start_time = time.time()
        response = await call_next(request)
        process_time = (time.time() - start_time) * 1000
        response.headers["X-Process-Time"] = f"{process_time:.2f}ms"
        return response

    configure_rate_limiting(
        app,
        create_limiter(
            window_ms=settings.rate_limit_window_ms,
            max_requests=settings.rate_limit_max
        )
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.allowed_origin],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(gateway_router)

    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/static", StaticFiles(directory=static_dir), name="static")

    return app


app = create_app()


def main():
    """Run the gateway with uvicorn."""
    import uvicorn

    from meseca.utils.logging_config import setup_logging

    settings = get_settings()
    setup_logging(settings)
    uvicorn.run(
        "meseca.api.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    main()
