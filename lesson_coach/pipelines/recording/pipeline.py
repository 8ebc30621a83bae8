"""Chunked recording pipeline: persist, transcribe, order and finalize."""

from __future__ import annotations

import logging

from fastapi.concurrency import run_in_threadpool

from lesson_coach.pipelines.recording.ingestion import resolve_extension
from lesson_coach.pipelines.recording.types import ChunkOutcome, ChunkSubmission
from lesson_coach.services.chunk_store import ChunkStore, ChunkTranscript
from lesson_coach.services.errors import RemoteServiceError, ValidationError
from lesson_coach.services.storage import SessionDirectoryManager
from lesson_coach.services.transcribe import TranscriptionForwarder
from lesson_coach.telemetry import FINALIZED_SESSIONS, observe_chunk

logger = logging.getLogger("lesson_coach.pipelines.recording")
transcript_logger = logging.getLogger("lesson_coach.logs.transcript")


class RecordingPipeline:
    """Accept sequential audio chunks for a session and build its transcript.

    A submission goes through four steps:

    1. store the raw bytes as ``chunk_<index>.<ext>`` (staged, then atomically
       replaced so a retried index overwrites the previous upload);
    2. register the chunk in the session manifest;
    3. forward the file to the transcription provider;
    4. record the text in the :class:`ChunkStore` and, for the final chunk,
       write ``transcript.txt`` and release the in-memory state.

    When no transcriber is configured the pipeline runs in degraded mode:
    chunks are stored for download but never transcribed.
    """

    def __init__(
        self,
        storage: SessionDirectoryManager,
        store: ChunkStore,
        transcriber: TranscriptionForwarder | None,
    ) -> None:
        self._storage = storage
        self._store = store
        self._transcriber = transcriber

    @property
    def degraded(self) -> bool:
        return self._transcriber is None

    async def submit_chunk(
        self,
        session_key: str,
        index: int,
        is_final: bool,
        mime_type: str | None,
        audio_bytes: bytes,
    ) -> ChunkOutcome:
        key = self._storage.validate_session_key(session_key)
        if not audio_bytes:
            raise ValidationError("No audio file uploaded")
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise ValidationError("chunkNumber must be a non-negative integer")

        submission = ChunkSubmission(
            session_key=key,
            index=index,
            is_final=is_final,
            mime_type=mime_type,
            audio_bytes=audio_bytes,
        )
        logger.info(
            "Received chunk %s for session %s (%d bytes, final=%s)",
            index,
            key,
            len(audio_bytes),
            is_final,
        )

        async with self._store.track(key):
            return await self._process(submission)

    async def _process(self, submission: ChunkSubmission) -> ChunkOutcome:
        key, index = submission.session_key, submission.index
        extension = resolve_extension(submission.mime_type)

        chunk_path = await run_in_threadpool(
            self._storage.store_chunk, key, index, extension, submission.audio_bytes
        )
        async with self._store.exclusive(key):
            await run_in_threadpool(
                self._storage.record_chunk,
                key,
                index,
                chunk_path.name,
                mime_type=submission.mime_type,
                size=len(submission.audio_bytes),
            )

        if self._transcriber is None:
            logger.warning("No transcription provider configured, skipping chunk %s for %s", index, key)
            observe_chunk("skipped")
            return ChunkOutcome(success=True, index=index, recognized_text=None)

        try:
            text = await self._transcriber.transcribe(chunk_path, f"audio/{extension.lstrip('.')}")
        except RemoteServiceError as exc:
            logger.error(
                "Transcription failed for chunk %s of %s (provider_status=%s); keeping %s for retry",
                index,
                key,
                exc.provider_status,
                chunk_path.name,
            )
            observe_chunk("failed")
            return ChunkOutcome(success=False, index=index, error=str(exc))

        logger.info("Chunk %s of %s transcribed (%d chars)", index, key, len(text))
        transcript_logger.info("chunk | session=%s | index=%s | text=%s", key, index, text)

        finalized = False
        async with self._store.exclusive(key):
            await run_in_threadpool(self._storage.record_transcription, key, index, text)
            after_finalize = False
            if not self._store.entries(key):
                # Restart or a chunk after finalization: rebuild from the manifest.
                self._store.seed(key, await run_in_threadpool(self._storage.transcribed_chunks, key))
                after_finalize = await run_in_threadpool(self._storage.is_finalized, key)
            self._store.append(key, ChunkTranscript(index=index, text=text))

            if submission.is_final:
                # False when another final submission is already waiting to finalize.
                if await self._store.wait_until_idle(key):
                    await self._finalize(key)
                    finalized = True
            elif after_finalize:
                logger.info("Chunk %s of %s arrived after finalization; rewriting transcript", index, key)
                await self._finalize(key)
                finalized = True

        observe_chunk("transcribed")
        return ChunkOutcome(success=True, index=index, recognized_text=text, finalized=finalized)

    async def _finalize(self, session_key: str) -> None:
        full_text = self._store.concatenate(session_key)
        chunk_count = len(self._store.entries(session_key))
        await run_in_threadpool(self._storage.write_transcript, session_key, full_text)
        await run_in_threadpool(self._storage.mark_finalized, session_key)
        logger.info(
            "Final transcript saved for session %s (%d chunks, %d chars)",
            session_key,
            chunk_count,
            len(full_text),
        )

        self._store.clear(session_key)
        removed, failed = await run_in_threadpool(self._storage.purge_staging)
        logger.info(
            "Cleaned up session %s from memory; staging files removed=%d failed=%d",
            session_key,
            removed,
            failed,
        )
        FINALIZED_SESSIONS.inc()


__all__ = ["RecordingPipeline"]
