"""Common FastAPI dependencies reused across controllers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from lesson_coach.pipelines.recording import ArchiveBuilder, RecordingPipeline
from lesson_coach.services import AnthropicLlmClient, SupabaseDatastore, TranscriptionForwarder


def get_recording_pipeline(request: Request) -> RecordingPipeline:
    return request.app.state.recording_pipeline


def get_archive_builder(request: Request) -> ArchiveBuilder:
    return request.app.state.archive_builder


def get_realtime_transcriber(request: Request) -> TranscriptionForwarder | None:
    return request.app.state.realtime_transcriber


def get_llm_client(request: Request) -> AnthropicLlmClient:
    return request.app.state.llm_client


def get_datastore(request: Request) -> SupabaseDatastore:
    return request.app.state.datastore


PipelineDep = Annotated[RecordingPipeline, Depends(get_recording_pipeline)]
ArchiveDep = Annotated[ArchiveBuilder, Depends(get_archive_builder)]
RealtimeTranscriberDep = Annotated[TranscriptionForwarder | None, Depends(get_realtime_transcriber)]
LlmClientDep = Annotated[AnthropicLlmClient, Depends(get_llm_client)]
DatastoreDep = Annotated[SupabaseDatastore, Depends(get_datastore)]


__all__ = [
    "ArchiveDep",
    "DatastoreDep",
    "LlmClientDep",
    "PipelineDep",
    "RealtimeTranscriberDep",
    "get_archive_builder",
    "get_datastore",
    "get_llm_client",
    "get_realtime_transcriber",
    "get_recording_pipeline",
]
