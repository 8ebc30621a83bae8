"""Lesson flag endpoints backed by the Supabase datastore."""

import logging
from typing import Any

from fastapi import APIRouter, Query

from lesson_coach.controllers.dependencies import DatastoreDep
from lesson_coach.services import NotFoundError, ValidationError
from lesson_coach.views import FlagCreateRequest, FlagUpdateRequest, SuccessResponse

router = APIRouter(prefix="/api/flags", tags=["flags"])

logger = logging.getLogger(__name__)


@router.get("")
async def list_flags(
    datastore: DatastoreDep,
    session_id: str | None = Query(None, alias="sessionId"),
) -> list[dict[str, Any]]:
    if not session_id:
        raise ValidationError("sessionId required")
    if not datastore.is_configured:
        return []
    return await datastore.list_flags(session_id)


@router.post("")
async def create_flag(payload: FlagCreateRequest, datastore: DatastoreDep) -> dict[str, Any]:
    """Create a flag, or return the existing one at the same timestamp."""

    if not payload.session_id or payload.timestamp is None:
        raise ValidationError("sessionId and timestamp required")

    lesson = await datastore.get_lesson_by_session_id(payload.session_id)
    if not lesson:
        raise NotFoundError("Lesson not found")

    timestamp = int(payload.timestamp)
    existing = await datastore.find_flag(payload.session_id, timestamp)
    if existing:
        return existing

    created = await datastore.insert_flag(
        {
            "lesson_id": lesson["id"],
            "session_id": payload.session_id,
            "timestamp": timestamp,
            "text": payload.text or "",
            "speaker": payload.speaker or "",
            "role": payload.role or "",
            "note": payload.note or "",
        }
    )
    logger.info("Flag created session=%s timestamp=%s", payload.session_id, timestamp)
    return created or {"success": True}


@router.put("/{flag_id}", response_model=SuccessResponse, response_model_exclude_none=True)
async def update_flag(flag_id: str, payload: FlagUpdateRequest, datastore: DatastoreDep) -> SuccessResponse:
    await datastore.update_flag_note(flag_id, payload.note or "")
    return SuccessResponse()


@router.delete("/{flag_id}", response_model=SuccessResponse, response_model_exclude_none=True)
async def delete_flag(flag_id: str, datastore: DatastoreDep) -> SuccessResponse:
    await datastore.delete_flag(flag_id)
    return SuccessResponse()
