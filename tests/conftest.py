from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from lesson_coach.config.settings import (  # noqa: E402
    AnthropicConfig,
    ElevenLabsConfig,
    GroqConfig,
    RecordingConfig,
    Settings,
    SupabaseConfig,
)
from lesson_coach.services import (  # noqa: E402
    ChunkStore,
    RemoteServiceError,
    SessionDirectoryManager,
)
from lesson_coach.services.storage import chunk_index_from_name  # noqa: E402


class FakeTranscriber:
    """Stand-in for the ElevenLabs forwarder keyed by chunk index."""

    def __init__(
        self,
        texts: dict[int, str] | None = None,
        failures: set[int] | None = None,
        delays: dict[int, float] | None = None,
    ) -> None:
        self.texts = texts or {}
        self.failures = set(failures or ())
        self.delays = delays or {}
        self.calls: list[str] = []

    async def transcribe(self, file_path, mime_hint=None) -> str:
        name = Path(file_path).name
        self.calls.append(name)
        index = chunk_index_from_name(name)
        delay = self.delays.get(index)
        if delay:
            await asyncio.sleep(delay)
        if index in self.failures:
            raise RemoteServiceError(
                "elevenlabs transcription failed with status 503",
                provider_status=503,
                body="unavailable",
            )
        return self.texts.get(index, f"text-{index}")


@pytest.fixture()
def storage(tmp_path: Path) -> SessionDirectoryManager:
    return SessionDirectoryManager(tmp_path / "RECORDINGS")


@pytest.fixture()
def chunk_store() -> ChunkStore:
    return ChunkStore()


@pytest.fixture()
def app_settings(tmp_path: Path) -> Settings:
    logs = tmp_path / "logs"
    return Settings(
        log_file=str(logs / "app.log"),
        recording_log_file=str(logs / "recording_pipeline.log"),
        transcript_log_file=str(logs / "transcripts.log"),
        recordings=RecordingConfig(root=tmp_path / "RECORDINGS"),
        elevenlabs=ElevenLabsConfig(api_key=None),
        groq=GroqConfig(api_key=None),
        anthropic=AnthropicConfig(api_key=None),
        supabase=SupabaseConfig(url=None, key=None),
    )
