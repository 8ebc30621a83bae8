"""Per-request Prometheus instrumentation labelled by route template."""

from __future__ import annotations

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from lesson_coach.telemetry import REQUESTS_IN_PROGRESS, observe_request

SERVICE_PATHS = frozenset({"/metrics", "/health"})
UNMATCHED_ROUTE = "unmatched"


def route_label(request: Request) -> str:
    """Route template such as ``/api/lesson/{session_id}``, never the concrete path."""

    route = request.scope.get("route")
    template = getattr(route, "path_format", None) or getattr(route, "path", None)
    return template or UNMATCHED_ROUTE


class TelemetryMiddleware(BaseHTTPMiddleware):
    """Count, time and track in-flight API requests.

    Service endpoints are passed through unmeasured. A request whose handler
    raises is recorded with status 500 before the exception propagates.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in SERVICE_PATHS:
            return await call_next(request)

        in_progress = REQUESTS_IN_PROGRESS.labels(method=request.method)
        in_progress.inc()
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            in_progress.dec()
            observe_request(
                request.method,
                route_label(request),
                status_code,
                time.perf_counter() - started,
            )


__all__ = ["SERVICE_PATHS", "TelemetryMiddleware", "route_label"]
