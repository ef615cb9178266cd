"""
Gateway API endpoints.

Each handler lets GatewayError propagate to the registered exception handler
and converts anything unexpected into InternalError.
"""

import logging

import httpx
from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from meseca.models import ChatRequest, ChatResponse, StatusResponse, SynthesisRequest
from meseca.services.gateway import VoiceGateway
from meseca.utils.error_handler import GatewayError, InternalError

logger = logging.getLogger(__name__)

AUDIO_MEDIA_TYPE = "audio/wav"


def get_gateway(request: Request) -> VoiceGateway:
    """Get the gateway instance built at startup."""
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise RuntimeError("Gateway not initialized")
    return gateway


router = APIRouter(tags=["gateway"])


@router.get("/", response_model=StatusResponse)
async def root() -> StatusResponse:
    """Liveness check."""
    return StatusResponse(status="ok", msg="Meseca server")


@router.post("/api/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    gateway: VoiceGateway = Depends(get_gateway)
) -> ChatResponse:
    """
    Run a chat turn against the text generation backend.

    The user message and the reply are both recorded in conversation memory.
    """
    try:
        reply = await gateway.chat(request.message, max_tokens=request.max_tokens)
    except GatewayError:
        raise
    except Exception as e:
        logger.exception(f"chat error: {e}")
        raise InternalError(str(e))

    return ChatResponse(reply=reply)


async def _relay(upstream: httpx.Response):
    try:
        async for chunk in upstream.aiter_bytes():
            yield chunk
    finally:
        await upstream.aclose()


@router.post("/api/tts")
async def text_to_speech(
    request: SynthesisRequest,
    gateway: VoiceGateway = Depends(get_gateway)
) -> StreamingResponse:
    """Stream synthesized audio from the synthesis backend."""
    try:
        upstream = await gateway.synthesize(request.text)
    except GatewayError:
        raise
    except Exception as e:
        logger.exception(f"tts proxy error: {e}")
        raise InternalError(str(e))

    # Also closed after the response, in case the relay never started
    return StreamingResponse(
        _relay(upstream),
        media_type=AUDIO_MEDIA_TYPE,
        background=BackgroundTask(upstream.aclose)
    )


@router.post("/api/whisper")
async def speech_to_text(
    file: UploadFile = File(...),
    gateway: VoiceGateway = Depends(get_gateway)
) -> JSONResponse:
    """Transcribe an uploaded audio file; the backend's JSON is relayed as-is."""
    try:
        result = await gateway.transcribe(
            file,
            filename=file.filename,
            content_type=file.content_type
        )
    except GatewayError:
        raise
    except Exception as e:
        logger.exception(f"whisper proxy error: {e}")
        raise InternalError(str(e))
    finally:
        await file.close()

    return JSONResponse(content=result)
