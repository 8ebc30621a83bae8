"""Typed containers shared across the recording pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True)
class ChunkSubmission:
    """One uploaded chunk plus the metadata sent alongside it."""

    session_key: str
    index: int
    is_final: bool
    mime_type: str | None
    audio_bytes: bytes


@dataclass(frozen=True)
class ChunkOutcome:
    """Result of submitting one chunk.

    ``success`` is false only when the transcription provider failed; the
    chunk audio is kept on disk so the client can retry the same index.
    """

    success: bool
    index: int
    recognized_text: str | None = None
    error: str | None = None
    finalized: bool = False


@dataclass(frozen=True)
class RecordingDownload:
    """Everything the HTTP layer needs to stream a session download."""

    filename: str
    media_type: str
    body: Iterator[bytes]
    content_length: int | None = None
