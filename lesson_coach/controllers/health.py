"""Diagnostic endpoints."""

from typing import Any

from fastapi import APIRouter, Request

router = APIRouter(prefix="/api", tags=["health"])

ENDPOINTS = (
    "POST /api/recording/transcribe-chunk",
    "GET /api/recording/download/:sessionId",
    "POST /api/realtime/transcribe",
    "POST /api/analyze",
    "POST /api/analyze/stream",
    "GET /api/flags?sessionId=<sessionId>",
    "POST /api/flags",
    "PUT /api/flags/:id",
    "DELETE /api/flags/:id",
    "GET /api/video-metadata",
    "GET /api/timestamps?sessionId=<sessionId>",
    "GET /api/lesson/:sessionId",
    "GET /api/pedagogy?sessionId=<sessionId>",
    "GET /api/pedagogy/preferences?email=<email>",
    "POST /api/pedagogy/preferences",
    "GET /api/progress?fromDate=<date>&toDate=<date>",
)


@router.get("/health")
async def api_health(request: Request) -> dict[str, Any]:
    """Report which providers are configured and which endpoints exist."""

    state = request.app.state
    return {
        "status": "ok",
        "database": "Supabase" if state.datastore.is_configured else "not configured",
        "providers": {
            "recording_transcription": not state.recording_pipeline.degraded,
            "realtime_transcription": state.realtime_transcriber is not None,
            "analysis": state.llm_client.is_configured,
        },
        "endpoints": list(ENDPOINTS),
    }
