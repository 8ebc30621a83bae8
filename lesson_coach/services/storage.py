"""Filesystem layout for recording sessions.

Each session lives in ``<root>/<session_key>/`` and holds ``chunk_<i>.<ext>``
audio files, a ``manifest.json`` sidecar keyed by chunk index and, once the
session is finalized, ``transcript.txt``. Uploads are first written to the
staging directory and then moved into place with an atomic replace.
"""

from __future__ import annotations

import json
import logging
import os
import re
import shutil
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator
from uuid import uuid4

from lesson_coach.services.chunk_store import ChunkTranscript
from lesson_coach.services.errors import FilesystemError, ValidationError

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "manifest.json"
TRANSCRIPT_FILENAME = "transcript.txt"
CHUNK_PREFIX = "chunk_"

_SESSION_KEY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,127}$")
_CHUNK_NAME_PATTERN = re.compile(r"^chunk_(\d+)(\.[A-Za-z0-9]+)?$")


@dataclass(frozen=True)
class SessionEntry:
    """A session directory found on disk."""

    session_key: str
    path: Path
    modified_at: float


def chunk_index_from_name(filename: str) -> int | None:
    """Return the integer index embedded in ``chunk_<n>.<ext>`` or ``None``."""

    match = _CHUNK_NAME_PATTERN.match(filename)
    if not match:
        return None
    return int(match.group(1))


class SessionDirectoryManager:
    """Own the recordings root: session directories, manifests and staging."""

    def __init__(self, root: Path | str, *, staging_dirname: str = "temp") -> None:
        self._root = Path(root).resolve()
        self._staging_dirname = staging_dirname
        self._in_flight_staging: set[str] = set()
        self._staging_lock = threading.Lock()

    @property
    def root(self) -> Path:
        return self._root

    @property
    def staging_dir(self) -> Path:
        return self._root / self._staging_dirname

    def validate_session_key(self, session_key: str) -> str:
        key = (session_key or "").strip()
        if not key:
            raise ValidationError("sessionId is required")
        if not _SESSION_KEY_PATTERN.match(key) or key == self._staging_dirname:
            raise ValidationError(f"Invalid sessionId: {session_key!r}")
        return key

    def session_dir(self, session_key: str) -> Path:
        return self._root / self.validate_session_key(session_key)

    def exists(self, session_key: str) -> bool:
        return self.session_dir(session_key).is_dir()

    def ensure_dir(self, session_key: str) -> Path:
        """Create the session directory if needed and return its absolute path."""

        path = self.session_dir(session_key)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(f"Could not create session directory {path.name}: {exc}") from exc
        return path

    def chunk_path(self, session_key: str, index: int, extension: str) -> Path:
        suffix = extension if extension.startswith(".") else f".{extension}"
        return self.session_dir(session_key) / f"{CHUNK_PREFIX}{index}{suffix}"

    def transcript_path(self, session_key: str) -> Path:
        return self.session_dir(session_key) / TRANSCRIPT_FILENAME

    def store_chunk(self, session_key: str, index: int, extension: str, data: bytes) -> Path:
        """Write ``data`` through the staging area and move it over the chunk path."""

        target = self.chunk_path(session_key, index, extension)
        self.ensure_dir(session_key)
        try:
            self.staging_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(f"Could not create staging directory: {exc}") from exc

        staged_name = uuid4().hex
        staged = self.staging_dir / staged_name
        with self._staging_lock:
            self._in_flight_staging.add(staged_name)
        try:
            staged.write_bytes(data)
            os.replace(staged, target)
        except OSError as exc:
            staged.unlink(missing_ok=True)
            raise FilesystemError(f"Could not store chunk {index} for {session_key}: {exc}") from exc
        finally:
            with self._staging_lock:
                self._in_flight_staging.discard(staged_name)
        return target

    def purge_staging(self) -> tuple[int, int]:
        """Delete staged files that do not belong to an upload in progress.

        Returns ``(removed, failed)`` counts.
        """

        if not self.staging_dir.is_dir():
            return 0, 0
        with self._staging_lock:
            busy = set(self._in_flight_staging)
        removed = failed = 0
        for entry in self.staging_dir.iterdir():
            if entry.name in busy or not entry.is_file():
                continue
            try:
                entry.unlink()
                removed += 1
            except OSError:
                logger.warning("Could not delete staging file %s", entry.name)
                failed += 1
        return removed, failed

    # Manifest -------------------------------------------------------------

    def _manifest_path(self, session_key: str) -> Path:
        return self.session_dir(session_key) / MANIFEST_FILENAME

    def read_manifest(self, session_key: str) -> dict[str, Any]:
        path = self._manifest_path(session_key)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {"session": session_key, "chunks": {}}
        except (OSError, ValueError) as exc:
            logger.warning("Unreadable manifest for session=%s: %s", session_key, exc)
            return {"session": session_key, "chunks": {}}
        if not isinstance(raw, dict) or not isinstance(raw.get("chunks"), dict):
            return {"session": session_key, "chunks": {}}
        return raw

    def _write_manifest(self, session_key: str, manifest: dict[str, Any]) -> None:
        path = self._manifest_path(session_key)
        tmp_path = path.with_name(f".{MANIFEST_FILENAME}.{uuid4().hex}")
        try:
            tmp_path.write_text(json.dumps(manifest, indent=2, sort_keys=True), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise FilesystemError(f"Could not write manifest for {session_key}: {exc}") from exc

    def record_chunk(
        self,
        session_key: str,
        index: int,
        filename: str,
        *,
        mime_type: str | None,
        size: int,
    ) -> None:
        """Register a stored chunk file in the manifest, resetting any previous text."""

        manifest = self.read_manifest(session_key)
        chunks = manifest["chunks"]
        previous = chunks.get(str(index))
        if isinstance(previous, dict) and previous.get("file") not in (None, filename):
            stale = self.session_dir(session_key) / previous["file"]
            stale.unlink(missing_ok=True)
        chunks[str(index)] = {
            "file": filename,
            "mime_type": mime_type,
            "size": size,
            "text": None,
            "updated_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        }
        manifest["session"] = session_key
        self._write_manifest(session_key, manifest)

    def record_transcription(self, session_key: str, index: int, text: str) -> None:
        manifest = self.read_manifest(session_key)
        entry = manifest["chunks"].get(str(index))
        if not isinstance(entry, dict):
            logger.warning("Transcription for unknown chunk session=%s index=%s", session_key, index)
            return
        entry["text"] = text
        self._write_manifest(session_key, manifest)

    def mark_finalized(self, session_key: str) -> None:
        manifest = self.read_manifest(session_key)
        manifest["session"] = session_key
        manifest["finalized_at"] = datetime.now(timezone.utc).isoformat(timespec="seconds")
        self._write_manifest(session_key, manifest)

    def is_finalized(self, session_key: str) -> bool:
        return bool(self.read_manifest(session_key).get("finalized_at"))

    def transcribed_chunks(self, session_key: str) -> list[ChunkTranscript]:
        """Return manifest chunks that already carry recognized text."""

        result = []
        for key, entry in self.read_manifest(session_key)["chunks"].items():
            if isinstance(entry, dict) and entry.get("text") is not None and key.isdigit():
                result.append(ChunkTranscript(index=int(key), text=entry["text"]))
        result.sort(key=lambda item: item.index)
        return result

    # Listing --------------------------------------------------------------

    def list_chunks(self, session_key: str) -> list[str]:
        """Return chunk filenames ordered by chunk index."""

        directory = self.session_dir(session_key)
        if not directory.is_dir():
            return []

        indexed: dict[int, str] = {}
        for key, entry in self.read_manifest(session_key)["chunks"].items():
            if not key.isdigit() or not isinstance(entry, dict):
                continue
            filename = entry.get("file")
            if isinstance(filename, str) and (directory / filename).is_file():
                indexed[int(key)] = filename

        # Files written without a manifest entry keep their filename-derived index.
        for path in directory.iterdir():
            index = chunk_index_from_name(path.name)
            if index is not None and index not in indexed and path.is_file():
                indexed[index] = path.name

        return [indexed[index] for index in sorted(indexed)]

    def write_transcript(self, session_key: str, text: str) -> Path:
        path = self.transcript_path(session_key)
        try:
            path.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise FilesystemError(f"Could not write transcript for {session_key}: {exc}") from exc
        return path

    def delete_session(self, session_key: str) -> bool:
        """Remove the session tree; returns ``False`` when it was already gone."""

        path = self.session_dir(session_key)
        if not path.exists():
            return False
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise FilesystemError(f"Could not delete session {session_key}: {exc}") from exc
        return True

    def iter_sessions(self) -> Iterator[SessionEntry]:
        if not self._root.is_dir():
            return
        for path in self._root.iterdir():
            if path.name == self._staging_dirname or not _SESSION_KEY_PATTERN.match(path.name):
                continue
            try:
                if not path.is_dir():
                    continue
                modified_at = path.stat().st_mtime
            except OSError:
                continue
            yield SessionEntry(session_key=path.name, path=path, modified_at=modified_at)


__all__ = [
    "SessionDirectoryManager",
    "SessionEntry",
    "chunk_index_from_name",
    "MANIFEST_FILENAME",
    "TRANSCRIPT_FILENAME",
]
