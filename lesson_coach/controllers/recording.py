"""Lesson recording endpoints.

Chunks are uploaded one at a time while the teacher records. Each upload is
stored, transcribed and ordered by `lesson_coach.pipelines.recording.RecordingPipeline`
(see that module for the stages); the chunk flagged ``isFinal`` writes the
session transcript. Downloads stream either the single chunk or a store-only
zip of every chunk plus the transcript.
"""

from typing import Optional

from fastapi import APIRouter, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse

from lesson_coach.controllers.dependencies import ArchiveDep, PipelineDep
from lesson_coach.pipelines.recording import (
    parse_chunk_number,
    parse_final_flag,
    read_audio_bytes,
)
from lesson_coach.views import ChunkTranscriptionResponse, ErrorResponse

router = APIRouter(prefix="/api/recording", tags=["recording"])

_AUDIO_UPLOAD = File(None)
_SESSION_ID_FORM = Form(None, alias="sessionId")
_CHUNK_NUMBER_FORM = Form(None, alias="chunkNumber")
_IS_FINAL_FORM = Form(None, alias="isFinal")
_MIME_TYPE_FORM = Form(None, alias="mimeType")


@router.post(
    "/transcribe-chunk",
    response_model=ChunkTranscriptionResponse,
    response_model_exclude_unset=True,
    response_model_by_alias=True,
    responses={400: {"model": ErrorResponse}},
)
async def transcribe_chunk(
    pipeline: PipelineDep,
    audio: Optional[UploadFile] = _AUDIO_UPLOAD,
    session_id: Optional[str] = _SESSION_ID_FORM,
    chunk_number: Optional[str] = _CHUNK_NUMBER_FORM,
    is_final: Optional[str] = _IS_FINAL_FORM,
    mime_type: Optional[str] = _MIME_TYPE_FORM,
) -> ChunkTranscriptionResponse:
    """Store one audio chunk, transcribe it and return the recognized text.

    A provider failure is reported in the body (``success: false``) with a
    200 status; the chunk stays on disk so the client can resend the same
    ``chunkNumber``.
    """

    audio_bytes = await read_audio_bytes(audio)
    index = parse_chunk_number(chunk_number)
    outcome = await pipeline.submit_chunk(
        session_id or "",
        index,
        parse_final_flag(is_final),
        mime_type or (audio.content_type if audio else None),
        audio_bytes,
    )

    if not outcome.success:
        return ChunkTranscriptionResponse(
            success=False,
            error=outcome.error,
            transcript=None,
            chunk_number=outcome.index,
        )

    if pipeline.degraded:
        return ChunkTranscriptionResponse(
            success=True,
            transcript=None,
            chunk_number=outcome.index,
            message="Transcription skipped (no API key)",
        )

    return ChunkTranscriptionResponse(
        success=True,
        transcript=outcome.recognized_text,
        chunk_number=outcome.index,
    )


@router.get(
    "/download/{session_id}",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def download_recording(session_id: str, archive: ArchiveDep) -> StreamingResponse:
    """Stream the recorded audio of a session as a single file or a zip."""

    download = await run_in_threadpool(archive.build_download, session_id)
    headers = {"Content-Disposition": f'attachment; filename="{download.filename}"'}
    if download.content_length is not None:
        headers["Content-Length"] = str(download.content_length)
    return StreamingResponse(download.body, media_type=download.media_type, headers=headers)
