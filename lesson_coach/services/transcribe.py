"""Speech-to-text forwarding over multipart HTTP uploads."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Mapping

import httpx
from fastapi.concurrency import run_in_threadpool

from lesson_coach.config.settings import ElevenLabsConfig, GroqConfig
from lesson_coach.services.errors import RemoteServiceError
from lesson_coach.telemetry import observe_transcription

logger = logging.getLogger(__name__)

_BODY_PREVIEW_LIMIT = 500


class TranscriptionForwarder:
    """Send one audio file to a remote speech-to-text endpoint.

    The forwarder performs no retries; callers decide what to do with a
    :class:`RemoteServiceError`.
    """

    def __init__(
        self,
        *,
        provider: str,
        url: str,
        headers: Mapping[str, str],
        form_fields: Mapping[str, str],
        timeout_seconds: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._provider = provider
        self._url = url
        self._headers = dict(headers)
        self._form_fields = dict(form_fields)
        self._timeout = timeout_seconds
        self._transport = transport

    @property
    def provider(self) -> str:
        return self._provider

    async def transcribe(self, file_path: Path | str, mime_hint: str | None = None) -> str:
        """Upload the file at ``file_path`` and return the recognized text."""

        path = Path(file_path)
        data = await run_in_threadpool(path.read_bytes)
        return await self.transcribe_bytes(data, filename=path.name, mime_type=mime_hint)

    async def transcribe_bytes(
        self,
        data: bytes,
        *,
        filename: str,
        mime_type: str | None = None,
    ) -> str:
        files = {"file": (filename, data, mime_type or "application/octet-stream")}
        started = time.perf_counter()
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.post(
                    self._url,
                    headers=self._headers,
                    data=self._form_fields,
                    files=files,
                )
            except httpx.RequestError as exc:
                observe_transcription(self._provider, "error", time.perf_counter() - started)
                raise RemoteServiceError(f"{self._provider} request failed: {exc}") from exc

        elapsed = time.perf_counter() - started
        if response.is_error:
            observe_transcription(self._provider, "error", elapsed)
            body = response.text[:_BODY_PREVIEW_LIMIT]
            logger.warning(
                "%s transcription failed status=%s body=%s",
                self._provider,
                response.status_code,
                body,
            )
            raise RemoteServiceError(
                f"{self._provider} transcription failed with status {response.status_code}",
                provider_status=response.status_code,
                body=body,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            observe_transcription(self._provider, "error", elapsed)
            raise RemoteServiceError(
                f"{self._provider} returned a non-JSON response",
                provider_status=response.status_code,
                body=response.text[:_BODY_PREVIEW_LIMIT],
            ) from exc

        observe_transcription(self._provider, "ok", elapsed)
        text = payload.get("text") if isinstance(payload, dict) else None
        logger.debug("%s transcribed %s (%d bytes)", self._provider, filename, len(data))
        return text or ""


def create_elevenlabs_forwarder(
    config: ElevenLabsConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> TranscriptionForwarder | None:
    """Return the ElevenLabs forwarder, or ``None`` when no API key is configured."""

    if not config.is_configured:
        return None
    return TranscriptionForwarder(
        provider="elevenlabs",
        url=f"{config.base_url.rstrip('/')}/v1/speech-to-text",
        headers={"xi-api-key": config.api_key.get_secret_value()},
        form_fields={"model_id": config.model_id},
        timeout_seconds=config.timeout_seconds,
        transport=transport,
    )


def create_groq_whisper_client(
    config: GroqConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> TranscriptionForwarder | None:
    """Return the Groq Whisper client, or ``None`` when no API key is configured."""

    if not config.is_configured:
        return None
    return TranscriptionForwarder(
        provider="groq",
        url=f"{config.base_url.rstrip('/')}/openai/v1/audio/transcriptions",
        headers={"Authorization": f"Bearer {config.api_key.get_secret_value()}"},
        form_fields={"model": config.model, "response_format": "json"},
        timeout_seconds=config.timeout_seconds,
        transport=transport,
    )


__all__ = [
    "TranscriptionForwarder",
    "create_elevenlabs_forwarder",
    "create_groq_whisper_client",
]
