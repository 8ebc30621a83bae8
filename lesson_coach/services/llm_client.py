"""Thin Anthropic Messages API client for lesson analysis."""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator

import httpx

from lesson_coach.config.settings import AnthropicConfig
from lesson_coach.services.errors import ProviderNotConfiguredError, RemoteServiceError

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are an expert pedagogy analyst. Analyze the lesson."


class AnthropicLlmClient:
    """Invoke the Messages API with the configured model and limits."""

    def __init__(
        self,
        config: AnthropicConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return self._config.is_configured

    def _headers(self) -> dict[str, str]:
        if not self._config.is_configured:
            raise ProviderNotConfiguredError("Missing ANTHROPIC_API_KEY", status_code=400)
        return {
            "x-api-key": self._config.api_key.get_secret_value(),
            "anthropic-version": self._config.api_version,
            "content-type": "application/json",
        }

    def _payload(self, text: str, system_prompt: str | None, *, stream: bool) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self._config.model,
            "max_tokens": self._config.max_tokens,
            "system": system_prompt or DEFAULT_SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": text}],
        }
        if stream:
            payload["stream"] = True
        return payload

    @property
    def _url(self) -> str:
        return f"{self._config.base_url.rstrip('/')}/v1/messages"

    async def analyze(self, text: str, system_prompt: str | None = None) -> tuple[int, Any]:
        """Return ``(status_code, body)`` exactly as the provider answered.

        The body is decoded JSON when possible and raw text otherwise.
        """

        headers = self._headers()
        async with httpx.AsyncClient(
            timeout=self._config.timeout_seconds, transport=self._transport
        ) as client:
            try:
                response = await client.post(
                    self._url,
                    headers=headers,
                    json=self._payload(text, system_prompt, stream=False),
                )
            except httpx.RequestError as exc:
                raise RemoteServiceError(f"Anthropic request failed: {exc}") from exc

        if response.is_error:
            logger.warning("Anthropic analysis returned status=%s", response.status_code)
        try:
            return response.status_code, response.json()
        except ValueError:
            return response.status_code, response.text

    async def stream_text(self, text: str, system_prompt: str | None = None) -> AsyncIterator[str]:
        """Yield text deltas from a streamed Messages API response."""

        headers = self._headers()
        async with httpx.AsyncClient(
            timeout=self._config.timeout_seconds, transport=self._transport
        ) as client:
            async with client.stream(
                "POST",
                self._url,
                headers=headers,
                json=self._payload(text, system_prompt, stream=True),
            ) as response:
                if response.is_error:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise RemoteServiceError(
                        f"Anthropic streaming failed with status {response.status_code}",
                        provider_status=response.status_code,
                        body=body[:500],
                    )
                async for line in response.aiter_lines():
                    delta = _text_delta(line)
                    if delta:
                        yield delta


def _text_delta(line: str) -> str | None:
    if not line.startswith("data: "):
        return None
    try:
        event = json.loads(line[6:])
    except ValueError:
        return None
    if not isinstance(event, dict) or event.get("type") != "content_block_delta":
        return None
    delta = event.get("delta") or {}
    if delta.get("type") != "text_delta":
        return None
    return delta.get("text")


__all__ = ["AnthropicLlmClient", "DEFAULT_SYSTEM_PROMPT"]
