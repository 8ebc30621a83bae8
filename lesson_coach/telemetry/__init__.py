"""Telemetry helpers and metrics."""

from .metrics import (
    CHUNK_COUNTER,
    ERROR_COUNTER,
    FINALIZED_SESSIONS,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    REQUESTS_IN_PROGRESS,
    SWEPT_SESSIONS,
    TRANSCRIPTION_LATENCY,
    observe_chunk,
    observe_request,
    observe_transcription,
)

__all__ = [
    "CHUNK_COUNTER",
    "ERROR_COUNTER",
    "FINALIZED_SESSIONS",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "REQUESTS_IN_PROGRESS",
    "SWEPT_SESSIONS",
    "TRANSCRIPTION_LATENCY",
    "observe_chunk",
    "observe_request",
    "observe_transcription",
]
