"""Realtime snippet transcription proxied to Groq Whisper."""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from lesson_coach.controllers.dependencies import RealtimeTranscriberDep
from lesson_coach.services import RemoteServiceError

router = APIRouter(prefix="/api/realtime", tags=["realtime"])

logger = logging.getLogger(__name__)

MAX_AUDIO_BYTES = 25 * 1024 * 1024


@router.post("/transcribe")
async def transcribe_snippet(request: Request, transcriber: RealtimeTranscriberDep):
    """Transcribe a raw audio body (webm/wav/octet-stream) and return ``{"text": ...}``."""

    if transcriber is None:
        logger.error("Realtime transcription requested without GROQ_API_KEY")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Missing GROQ_API_KEY"},
        )

    audio_bytes = await request.body()
    if not audio_bytes:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "No audio data received"},
        )
    if len(audio_bytes) > MAX_AUDIO_BYTES:
        return JSONResponse(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            content={"error": "Audio payload exceeds 25 MB"},
        )

    content_type = request.headers.get("content-type") or "audio/webm"
    if content_type == "application/octet-stream":
        content_type = "audio/webm"
    extension = "wav" if "wav" in content_type else "webm"

    try:
        text = await transcriber.transcribe_bytes(
            audio_bytes,
            filename=f"realtime_audio.{extension}",
            mime_type=content_type,
        )
    except RemoteServiceError as exc:
        logger.error("Groq Whisper transcription failed: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to transcribe audio", "details": str(exc)},
        )

    logger.info("Realtime transcription complete (%d chars)", len(text))
    return {"text": text}
