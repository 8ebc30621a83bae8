"""Request ingestion helpers for chunk uploads."""

from __future__ import annotations

from typing import Final

from fastapi import UploadFile

from lesson_coach.services.errors import ValidationError

DEFAULT_EXTENSION: Final[str] = ".webm"


def resolve_extension(mime_type: str | None) -> str:
    """Map the declared MIME type to the on-disk extension (``.webm`` unless it says mp4)."""

    declared = (mime_type or "").lower()
    if "webm" in declared:
        return ".webm"
    if "mp4" in declared:
        return ".mp4"
    return DEFAULT_EXTENSION


def parse_chunk_number(value: str | int | None) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("chunkNumber is required")
    try:
        index = int(str(value).strip())
    except ValueError:
        raise ValidationError(f"chunkNumber must be an integer, got {value!r}") from None
    if index < 0:
        raise ValidationError("chunkNumber must be non-negative")
    return index


def parse_final_flag(value: str | bool | None) -> bool:
    if isinstance(value, bool):
        return value
    return (value or "").strip().lower() == "true"


async def read_audio_bytes(audio_file: UploadFile | None) -> bytes:
    """Load the upload fully into memory, rejecting missing or empty payloads."""

    if audio_file is None:
        raise ValidationError("No audio file uploaded")

    audio_bytes = await audio_file.read()
    await audio_file.close()

    if not audio_bytes:
        raise ValidationError("Uploaded audio file is empty")
    return audio_bytes


__all__ = [
    "DEFAULT_EXTENSION",
    "parse_chunk_number",
    "parse_final_flag",
    "read_audio_bytes",
    "resolve_extension",
]
