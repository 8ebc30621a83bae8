"""Application entry point and FastAPI app factory."""

from __future__ import annotations

import logging
from datetime import timedelta
from logging.handlers import RotatingFileHandler
import sys
from pathlib import Path

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from .config.settings import Settings, settings
from .controllers import analysis, flags, health, lessons, realtime, recording
from .middleware import StructuredLoggingMiddleware, TelemetryMiddleware
from .pipelines.recording import ArchiveBuilder, RecordingPipeline
from .services import (
    AnthropicLlmClient,
    ChunkStore,
    CoachServiceError,
    FilesystemError,
    RetentionSweeper,
    SessionDirectoryManager,
    SupabaseDatastore,
    create_elevenlabs_forwarder,
    create_groq_whisper_client,
)

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _rotating_handler(path_value: str, max_bytes: int, fmt: str) -> RotatingFileHandler:
    log_path = Path(path_value)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_path,
        maxBytes=max_bytes,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def _configure_logging(app_settings: Settings) -> None:
    """Stream logs to stdout and rotating files; give the pipeline its own files."""

    logging.getLogger().handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(logging.Formatter(_LOG_FORMAT))

    root_logger = logging.getLogger()
    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(_rotating_handler(app_settings.log_file, 1_000_000, _LOG_FORMAT))
    root_logger.setLevel(logging.DEBUG if app_settings.debug else logging.INFO)

    middleware_logger = logging.getLogger("lesson_coach.middleware.structured")
    middleware_logger.handlers.clear()
    middleware_stdout = logging.StreamHandler(sys.stdout)
    middleware_stdout.setFormatter(logging.Formatter("%(message)s"))
    middleware_logger.addHandler(middleware_stdout)
    middleware_logger.setLevel(logging.INFO)
    middleware_logger.propagate = False

    pipeline_logger = logging.getLogger("lesson_coach.pipelines.recording")
    pipeline_logger.handlers.clear()
    pipeline_logger.addHandler(
        _rotating_handler(
            app_settings.recording_log_file,
            500_000,
            "%(asctime)s | %(levelname)s | %(message)s",
        )
    )
    pipeline_logger.setLevel(logging.INFO)

    transcript_logger = logging.getLogger("lesson_coach.logs.transcript")
    transcript_logger.handlers.clear()
    transcript_logger.addHandler(
        _rotating_handler(
            app_settings.transcript_log_file,
            500_000,
            "%(asctime)s | %(levelname)s | %(message)s",
        )
    )
    transcript_logger.setLevel(logging.INFO)
    transcript_logger.propagate = False

    noisy_loggers = [
        "httpx",
        "httpcore",
        "urllib3",
        "multipart",
    ]
    for name in noisy_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    app_settings = app_settings or settings
    _configure_logging(app_settings)

    app = FastAPI(
        title=app_settings.app_name,
        version=app_settings.app_version,
        debug=app_settings.debug,
        description="Teacher coaching backend: lesson recording and provider proxies",
    )

    recordings = app_settings.recordings
    storage = SessionDirectoryManager(recordings.root, staging_dirname=recordings.staging_dirname)
    chunk_store = ChunkStore()
    transcriber = create_elevenlabs_forwarder(app_settings.elevenlabs)
    if transcriber is None:
        logger.warning("ELEVENLABS_API_KEY not set; recording chunks will not be transcribed")

    app.state.settings = app_settings
    app.state.storage = storage
    app.state.chunk_store = chunk_store
    app.state.recording_pipeline = RecordingPipeline(storage, chunk_store, transcriber)
    app.state.archive_builder = ArchiveBuilder(storage, block_size=recordings.read_block_size)
    app.state.realtime_transcriber = create_groq_whisper_client(app_settings.groq)
    app.state.llm_client = AnthropicLlmClient(app_settings.anthropic)
    app.state.datastore = SupabaseDatastore(app_settings.supabase)
    app.state.sweeper = RetentionSweeper(
        storage,
        retention=timedelta(days=recordings.retention_days),
        interval=timedelta(hours=recordings.sweep_interval_hours),
        startup_delay=recordings.sweep_startup_delay_seconds,
        active_sessions=chunk_store.active_sessions,
    )

    app.add_middleware(TelemetryMiddleware)
    app.add_middleware(StructuredLoggingMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=app_settings.cors_allow_credentials,
        allow_methods=app_settings.cors_allow_methods,
        allow_headers=app_settings.cors_allow_headers,
    )

    app.include_router(recording.router)
    app.include_router(realtime.router)
    app.include_router(analysis.router)
    app.include_router(flags.router)
    app.include_router(lessons.router)
    app.include_router(health.router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Root endpoint."""

        return {
            "message": f"Welcome to {app_settings.app_name}",
            "version": app_settings.app_version,
            "status": "operational",
        }

    @app.get("/health", include_in_schema=False)
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""

        return {
            "status": "healthy",
            "service": app_settings.app_name,
            "version": app_settings.app_version,
        }

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Expose application metrics for Prometheus scraping."""

        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.exception_handler(CoachServiceError)
    async def service_exception_handler(request, exc: CoachServiceError):
        if isinstance(exc, FilesystemError):
            logger.error("Filesystem error on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc)},
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    @app.on_event("startup")
    async def startup_event() -> None:
        storage.root.mkdir(parents=True, exist_ok=True)
        app.state.sweeper.start()

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        await app.state.sweeper.stop()

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "lesson_coach.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
