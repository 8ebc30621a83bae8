"""Access logging middleware for FastAPI requests."""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

logger = logging.getLogger("lesson_coach.middleware.structured")

COLOR_RESET = "\u001b[0m"
COLOR_GREEN = "\u001b[32m"
COLOR_CYAN = "\u001b[36m"
COLOR_YELLOW = "\u001b[33m"
COLOR_RED = "\u001b[31m"

_SESSION_HINT_KEYS = ("sessionId", "session_id")
_QUIET_PATHS = frozenset({"/health", "/metrics"})


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Log one colored line per request and a JSON copy at debug level.

    Request bodies are never read here; chunk uploads are summarized by
    their declared ``content-length``. Lesson session ids are picked up
    from the query string or the matched path parameters.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        started = time.perf_counter()
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
            "bytes_in": request.headers.get("content-length"),
        }

        try:
            response = await call_next(request)
        except Exception as exc:  # pragma: no cover
            entry.update(status=500, duration_ms=_elapsed_ms(started), error=repr(exc))
            entry["session"] = _session_hint(request)
            logger.exception(_console_line(entry))
            raise

        entry.update(status=response.status_code, duration_ms=_elapsed_ms(started))
        entry["session"] = _session_hint(request)

        if request.url.path in _QUIET_PATHS:
            logger.debug(_console_line(entry))
            return response

        logger.log(_level_for(response.status_code), _console_line(entry))
        logger.debug(json.dumps(entry, default=str, separators=(",", ":")))
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def _session_hint(request: Request) -> str | None:
    sources = (request.query_params, request.scope.get("path_params") or {})
    for source in sources:
        for key in _SESSION_HINT_KEYS:
            value = source.get(key)
            if value:
                return str(value)
    return None


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


def _console_line(entry: dict[str, Any]) -> str:
    status = entry.get("status") or 0
    if 200 <= status < 300:
        color = COLOR_GREEN
    elif 400 <= status < 500:
        color = COLOR_YELLOW
    elif status >= 500:
        color = COLOR_RED
    else:
        color = COLOR_CYAN

    fields = ("method", "path", "status", "duration_ms", "bytes_in", "session", "client_ip")
    message = " ".join(
        f"{name}={entry.get(name) if entry.get(name) is not None else '-'}" for name in fields
    )
    return f"{color}{message}{COLOR_RESET}"
