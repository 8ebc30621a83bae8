"""Recording pipeline package.

Modules follow the path of an uploaded chunk:

1. `ingestion` – parse form fields and read the upload.
2. `pipeline` – store, transcribe, order and finalize chunks.
3. `archive` – package a session for download.

The FastAPI controller imports from here so transport code stays out of
the pipeline itself.
"""

from .archive import ArchiveBuilder, audio_media_type
from .ingestion import (
    parse_chunk_number,
    parse_final_flag,
    read_audio_bytes,
    resolve_extension,
)
from .pipeline import RecordingPipeline
from .types import ChunkOutcome, ChunkSubmission, RecordingDownload

__all__ = [
    "ArchiveBuilder",
    "ChunkOutcome",
    "ChunkSubmission",
    "RecordingDownload",
    "RecordingPipeline",
    "audio_media_type",
    "parse_chunk_number",
    "parse_final_flag",
    "read_audio_bytes",
    "resolve_extension",
]
