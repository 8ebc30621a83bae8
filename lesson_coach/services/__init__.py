"""Service layer: recording state, storage and external integrations."""

from .chunk_store import ChunkStore, ChunkTranscript
from .datastore import SupabaseDatastore
from .errors import (
    CoachServiceError,
    FilesystemError,
    NotFoundError,
    ProviderNotConfiguredError,
    RemoteServiceError,
    ValidationError,
)
from .llm_client import AnthropicLlmClient
from .retention import RetentionSweeper
from .storage import SessionDirectoryManager
from .transcribe import (
    TranscriptionForwarder,
    create_elevenlabs_forwarder,
    create_groq_whisper_client,
)

__all__ = [
    "AnthropicLlmClient",
    "ChunkStore",
    "ChunkTranscript",
    "CoachServiceError",
    "FilesystemError",
    "NotFoundError",
    "ProviderNotConfiguredError",
    "RemoteServiceError",
    "RetentionSweeper",
    "SessionDirectoryManager",
    "SupabaseDatastore",
    "TranscriptionForwarder",
    "ValidationError",
    "create_elevenlabs_forwarder",
    "create_groq_whisper_client",
]
