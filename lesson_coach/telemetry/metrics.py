"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
    ),
)

REQUESTS_IN_PROGRESS = Gauge(
    "http_requests_in_progress",
    "HTTP requests currently being handled",
    ("method",),
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

CHUNK_COUNTER = Counter(
    "recording_chunks_total",
    "Recording chunks received, by outcome",
    ("outcome",),
)

TRANSCRIPTION_LATENCY = Histogram(
    "transcription_request_duration_seconds",
    "Speech-to-text provider round trip in seconds",
    ("provider", "outcome"),
    buckets=(0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)

FINALIZED_SESSIONS = Counter(
    "recording_sessions_finalized_total",
    "Recording sessions whose transcript was written",
)

SWEPT_SESSIONS = Counter(
    "recording_sessions_swept_total",
    "Recording session directories deleted by the retention sweeper",
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    safe_route = route or "unknown"
    safe_method = method or "UNKNOWN"
    status_label = str(status_code)
    observed_duration = duration_seconds if duration_seconds >= 0 else 0

    REQUEST_COUNT.labels(
        method=safe_method,
        route=safe_route,
        status=status_label,
    ).inc()
    REQUEST_LATENCY.labels(
        method=safe_method,
        route=safe_route,
    ).observe(observed_duration)

    if status_code >= 500:
        ERROR_COUNTER.labels(
            method=safe_method,
            route=safe_route,
        ).inc()


def observe_chunk(outcome: str) -> None:
    CHUNK_COUNTER.labels(outcome=outcome).inc()


def observe_transcription(provider: str, outcome: str, duration_seconds: float) -> None:
    TRANSCRIPTION_LATENCY.labels(provider=provider, outcome=outcome).observe(
        max(duration_seconds, 0)
    )
