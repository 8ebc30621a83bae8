"""Download packaging for recorded sessions."""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Iterator

from lesson_coach.pipelines.recording.types import RecordingDownload
from lesson_coach.services.errors import NotFoundError
from lesson_coach.services.storage import TRANSCRIPT_FILENAME, SessionDirectoryManager

logger = logging.getLogger("lesson_coach.pipelines.recording")

ZIP_MEDIA_TYPE = "application/zip"


def audio_media_type(extension: str) -> str:
    return "audio/webm" if extension.lower() == ".webm" else "audio/mpeg"


class _ChunkSink:
    """Write-only, unseekable file object that hands written bytes back to a generator."""

    def __init__(self) -> None:
        self._parts: list[bytes] = []

    def write(self, data: bytes) -> int:
        if data:
            self._parts.append(bytes(data))
        return len(data)

    def flush(self) -> None:
        return None

    def drain(self) -> bytes:
        data = b"".join(self._parts)
        self._parts.clear()
        return data


def iter_file(path: Path, block_size: int) -> Iterator[bytes]:
    with path.open("rb") as source:
        while True:
            block = source.read(block_size)
            if not block:
                break
            yield block


def iter_stored_zip(entries: list[zipfile.ZipInfo], sources: list[Path], block_size: int) -> Iterator[bytes]:
    """Yield a ZIP_STORED archive of ``sources`` without building it in memory."""

    sink = _ChunkSink()
    with zipfile.ZipFile(sink, mode="w", compression=zipfile.ZIP_STORED) as archive:
        for info, source_path in zip(entries, sources):
            with source_path.open("rb") as source, archive.open(info, mode="w") as target:
                while True:
                    block = source.read(block_size)
                    if not block:
                        break
                    target.write(block)
                    pending = sink.drain()
                    if pending:
                        yield pending
            pending = sink.drain()
            if pending:
                yield pending
    pending = sink.drain()
    if pending:
        yield pending


class ArchiveBuilder:
    """Turn a session directory into a single download stream."""

    def __init__(self, storage: SessionDirectoryManager, *, block_size: int = 64 * 1024) -> None:
        self._storage = storage
        self._block_size = block_size

    def build_download(self, session_key: str) -> RecordingDownload:
        if not self._storage.exists(session_key):
            raise NotFoundError("Recording not found")
        directory = self._storage.session_dir(session_key)

        chunks = self._storage.list_chunks(session_key)
        if not chunks:
            raise NotFoundError("No audio chunks found")

        logger.info("Downloading %d chunk(s) for session %s", len(chunks), session_key)
        if len(chunks) == 1:
            return self._single_chunk(directory / chunks[0], f"Lesson_{session_key}")

        try:
            return self._archive(session_key, directory, chunks)
        except (OSError, ValueError):
            logger.exception("Archive preparation failed for %s; serving first chunk only", session_key)
            return self._single_chunk(directory / chunks[0], "Lesson")

    def _single_chunk(self, path: Path, stem: str) -> RecordingDownload:
        try:
            size = path.stat().st_size
        except FileNotFoundError:
            raise NotFoundError("No audio chunks found") from None
        return RecordingDownload(
            filename=f"{stem}{path.suffix}",
            media_type=audio_media_type(path.suffix),
            body=iter_file(path, self._block_size),
            content_length=size,
        )

    def _archive(self, session_key: str, directory: Path, chunks: list[str]) -> RecordingDownload:
        sources = [directory / name for name in chunks]
        transcript = directory / TRANSCRIPT_FILENAME
        if transcript.is_file():
            sources.append(transcript)

        entries = []
        for source in sources:
            info = zipfile.ZipInfo.from_file(source, arcname=source.name)
            info.compress_type = zipfile.ZIP_STORED
            entries.append(info)

        return RecordingDownload(
            filename=f"Lesson_{session_key}_{len(chunks)}chunks.zip",
            media_type=ZIP_MEDIA_TYPE,
            body=iter_stored_zip(entries, sources, self._block_size),
        )


__all__ = ["ArchiveBuilder", "audio_media_type", "iter_file", "iter_stored_zip"]
