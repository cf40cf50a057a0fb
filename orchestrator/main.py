# orchestrator/main.py
"""Nexus orchestration service."""
import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from agents.voice_agent import decode_pcm
from orchestrator.client import GenerationClient
from orchestrator.config import settings
from orchestrator.errors import (
    AudioDecodeError,
    AuthenticationError,
    CapabilityGateError,
    EmptyPromptError,
    PipelineBusyError,
    PipelineError,
    VideoGenerationTimeoutError,
)
from orchestrator.media_store import MediaStore
from orchestrator.models import HealthResponse, Message, PipelineStatus, RunRequest, RunResponse
from orchestrator.pipeline import PipelineCoordinator

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Nexus Orchestrator",
    description="Routes requests to the best Gemini model and normalizes the results.",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], allow_credentials=True,
    allow_methods=["*"], allow_headers=["*"],
)

# Singletons (initialized at startup)
_client_instance: Optional[GenerationClient] = None
_media_store_instance: Optional[MediaStore] = None
_coordinator_instance: Optional[PipelineCoordinator] = None


@app.on_event("startup")
async def startup_event():
    global _client_instance, _media_store_instance, _coordinator_instance
    try:
        _media_store_instance = MediaStore()
        _client_instance = GenerationClient()
        _coordinator_instance = PipelineCoordinator.from_client(_client_instance, _media_store_instance)
        logger.info(f"Orchestrator startup complete. Decision model: {settings.ORCHESTRATOR_MODEL}")
    except Exception as e:
        logger.critical(f"Pipeline failed to initialize during startup: {e}", exc_info=True)
        _coordinator_instance = None


@app.on_event("shutdown")
async def shutdown_event():
    if _client_instance is not None:
        await _client_instance.aclose()
    if _media_store_instance is not None:
        _media_store_instance.close()


def get_coordinator_dependency() -> PipelineCoordinator:
    if _coordinator_instance is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                            detail="Pipeline is not initialized. Service is unavailable.")
    return _coordinator_instance


def get_media_store_dependency() -> MediaStore:
    if _media_store_instance is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                            detail="Media store is not initialized.")
    return _media_store_instance


# --- Exception Handlers ---

def _status_for(exc: PipelineError) -> int:
    if isinstance(exc, PipelineBusyError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, (EmptyPromptError, AudioDecodeError)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, AuthenticationError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, CapabilityGateError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, VideoGenerationTimeoutError):
        return status.HTTP_504_GATEWAY_TIMEOUT
    return status.HTTP_502_BAD_GATEWAY


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    status_code = _status_for(exc)
    logger.error(f"{exc.kind} for {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({"detail": exc.message, "error": exc.kind}),
    )


@app.get("/health", response_model=HealthResponse, tags=["Utility"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="ok" if _coordinator_instance is not None else "degraded",
        agent="Orchestrator",
        version=app.version,
        models={
            "orchestrator": settings.ORCHESTRATOR_MODEL,
            "text": settings.FAST_TEXT_MODEL,
            "reasoning": settings.PRO_TEXT_MODEL,
            "image": settings.IMAGE_MODEL,
            "image_high_res": settings.HIGH_RES_IMAGE_MODEL,
            "video": settings.VIDEO_MODEL,
            "audio": settings.TTS_MODEL,
        },
    )


@app.post("/run", response_model=RunResponse, tags=["Orchestration"])
async def run(request: RunRequest, coordinator: PipelineCoordinator = Depends(get_coordinator_dependency)) -> RunResponse:
    """Run one full turn: route the request, execute it and return the assistant message."""
    message = await coordinator.submit(request.input)
    return RunResponse(message=message, decision=message.orchestration)


@app.get("/status", response_model=PipelineStatus, tags=["Orchestration"])
async def pipeline_status(coordinator: PipelineCoordinator = Depends(get_coordinator_dependency)) -> PipelineStatus:
    return coordinator.status()


@app.get("/messages", response_model=List[Message], tags=["Conversation"])
async def list_messages(coordinator: PipelineCoordinator = Depends(get_coordinator_dependency)) -> List[Message]:
    return list(coordinator.messages)


@app.get("/messages/{message_id}/audio", tags=["Conversation"])
async def message_audio(message_id: str, coordinator: PipelineCoordinator = Depends(get_coordinator_dependency)):
    """Decode a message's raw PCM and return it as WAV for playback."""
    message = coordinator.get_message(message_id)
    if message is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Message '{message_id}' not found.")
    if not message.audio_data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Message '{message_id}' has no audio.")

    buffer = decode_pcm(message.audio_data, settings.AUDIO_SAMPLE_RATE, settings.AUDIO_CHANNELS)
    return Response(content=buffer.to_wav_bytes(), media_type="audio/wav")


@app.get("/media/{media_id}", tags=["Conversation"])
async def get_media(media_id: str, media_store: MediaStore = Depends(get_media_store_dependency)):
    stored = media_store.get(media_id)
    if stored is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Media '{media_id}' not found.")
    mime_type, data = stored
    return Response(content=data, media_type=mime_type)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("orchestrator.main:app", host=settings.HOST, port=settings.PORT, reload=True)
