"""Lesson analysis endpoints proxied to the Anthropic Messages API."""

import json
import logging
from typing import AsyncIterator

from fastapi import APIRouter
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse

from lesson_coach.controllers.dependencies import LlmClientDep
from lesson_coach.services import CoachServiceError, ProviderNotConfiguredError, ValidationError
from lesson_coach.views import AnalyzeRequest

router = APIRouter(prefix="/api/analyze", tags=["analysis"])

logger = logging.getLogger(__name__)


def _require_text(payload: AnalyzeRequest) -> str:
    if not payload.text:
        raise ValidationError("Missing text")
    return payload.text


@router.post("")
async def analyze(payload: AnalyzeRequest, llm: LlmClientDep):
    """Relay the provider's status code and body unchanged."""

    if not llm.is_configured:
        raise ProviderNotConfiguredError("Missing ANTHROPIC_API_KEY", status_code=400)
    text = _require_text(payload)

    status_code, body = await llm.analyze(text, payload.prompt)
    if isinstance(body, str):
        return PlainTextResponse(body, status_code=status_code)
    return JSONResponse(body, status_code=status_code)


@router.post("/stream")
async def analyze_stream(payload: AnalyzeRequest, llm: LlmClientDep) -> StreamingResponse:
    """Stream text deltas as ``data: {"text": ...}`` lines, then ``data: {"end": true}``.

    The 200 status is sent before the provider is contacted. On a provider
    failure the stream ends with a plain ``Error: <message>`` line and no end
    marker.
    """

    if not llm.is_configured:
        raise ProviderNotConfiguredError("Missing ANTHROPIC_API_KEY", status_code=400)
    text = _require_text(payload)

    async def event_stream() -> AsyncIterator[str]:
        try:
            async for delta in llm.stream_text(text, payload.prompt):
                yield f"data: {json.dumps({'text': delta})}\n\n"
        except CoachServiceError as exc:
            logger.error("Streaming analysis failed: %s", exc)
            yield f"Error: {exc}"
            return
        yield f"data: {json.dumps({'end': True})}\n\n"

    return StreamingResponse(event_stream(), media_type="text/plain; charset=utf-8")
