"""Lesson review, pedagogy preference and progress endpoints backed by Supabase."""

import logging

from fastapi import APIRouter, Query

from lesson_coach.controllers.dependencies import DatastoreDep
from lesson_coach.services import (
    NotFoundError,
    ProviderNotConfiguredError,
    SupabaseDatastore,
    ValidationError,
)
from lesson_coach.services.lesson_metrics import (
    lesson_progress,
    to_display_datetime,
    transcript_segments,
)
from lesson_coach.views import (
    LessonMeta,
    LessonProgress,
    LessonResponse,
    PedagogyResponse,
    PreferencesRequest,
    PreferencesResponse,
    ProgressResponse,
    SuccessResponse,
    TranscriptSegment,
    VideoMetadataItem,
)

router = APIRouter(prefix="/api", tags=["lessons"])

logger = logging.getLogger(__name__)


def _require_datastore(datastore: SupabaseDatastore) -> None:
    if not datastore.is_configured:
        raise ProviderNotConfiguredError("Lessons require Supabase")


async def _find_lesson(datastore: SupabaseDatastore, session_id: str) -> dict:
    _require_datastore(datastore)
    lesson = await datastore.get_lesson_by_session_id(session_id)
    if not lesson:
        raise NotFoundError("Lesson not found")
    return lesson


@router.get("/video-metadata", response_model=list[VideoMetadataItem])
async def video_metadata(datastore: DatastoreDep) -> list[VideoMetadataItem]:
    if not datastore.is_configured:
        return []
    lessons = await datastore.list_lessons()
    return [
        VideoMetadataItem(
            session_id=lesson.get("session_id"),
            title=lesson.get("title"),
            uploaded_at=lesson.get("uploaded_at"),
            uploaded_at_formatted=to_display_datetime(lesson.get("uploaded_at")),
            transcript_file=lesson.get("transcript_file") or None,
        )
        for lesson in lessons
    ]


@router.get("/timestamps", response_model=list[TranscriptSegment])
async def timestamps(
    datastore: DatastoreDep,
    session_id: str | None = Query(None, alias="sessionId"),
) -> list[TranscriptSegment]:
    if not session_id:
        raise ValidationError("sessionId parameter is required")
    lesson = await _find_lesson(datastore, session_id)
    return [TranscriptSegment(**segment) for segment in transcript_segments(lesson.get("transcript_content"))]


@router.get("/lesson/{session_id}", response_model=LessonResponse)
async def get_lesson(session_id: str, datastore: DatastoreDep) -> LessonResponse:
    """Lesson metadata plus its speaker-attributed transcript segments."""

    lesson = await _find_lesson(datastore, session_id)
    return LessonResponse(
        meta=LessonMeta(
            session_id=lesson.get("session_id"),
            title=lesson.get("title"),
            uploaded_at=lesson.get("uploaded_at"),
            transcript_file=lesson.get("transcript_file") or None,
        ),
        transcript=[
            TranscriptSegment(**segment)
            for segment in transcript_segments(lesson.get("transcript_content"))
        ],
    )


@router.get("/pedagogy", response_model=PedagogyResponse)
async def get_pedagogy(
    datastore: DatastoreDep,
    session_id: str | None = Query(None, alias="sessionId"),
) -> PedagogyResponse:
    if not session_id:
        raise ValidationError("sessionId required")
    _require_datastore(datastore)
    row = await datastore.get_pedagogy(session_id)
    if not row:
        raise NotFoundError("Lesson not found")
    return PedagogyResponse(
        pedagogy_analysis=row.get("pedagogy_analysis") or None,
        transcript=row.get("transcript_content") or [],
        word_transcript=row.get("word_transcript") or None,
    )


@router.get("/pedagogy/preferences", response_model=PreferencesResponse)
async def get_preferences(
    datastore: DatastoreDep,
    email: str | None = Query(None),
) -> PreferencesResponse:
    """``preferences`` is ``null`` when nothing is stored; clients fall back to defaults."""

    if not email:
        raise ValidationError("Email required")
    if not datastore.is_configured:
        return PreferencesResponse()
    return PreferencesResponse(preferences=await datastore.get_pedagogy_preferences(email))


@router.post(
    "/pedagogy/preferences", response_model=SuccessResponse, response_model_exclude_none=True
)
async def save_preferences(payload: PreferencesRequest, datastore: DatastoreDep) -> SuccessResponse:
    if not payload.email or not payload.preferences:
        raise ValidationError("Email and preferences required")
    if datastore.is_configured and await datastore.save_pedagogy_preferences(
        payload.email, payload.preferences
    ):
        logger.info("Pedagogy preferences saved for %s", payload.email)
        return SuccessResponse()
    return SuccessResponse(note="Saved locally only")


@router.get("/progress", response_model=ProgressResponse)
async def progress(
    datastore: DatastoreDep,
    from_date: str | None = Query(None, alias="fromDate"),
    to_date: str | None = Query(None, alias="toDate"),
) -> ProgressResponse:
    """Per-lesson talk share, wait time, question count and feedback, newest first."""

    if not datastore.is_configured:
        return ProgressResponse(lessons=[])
    lessons = await datastore.list_lessons_for_progress(from_date, to_date)
    return ProgressResponse(lessons=[LessonProgress(**lesson_progress(lesson)) for lesson in lessons])
