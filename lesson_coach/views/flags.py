"""Schemas for lesson flag requests."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FlagCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(default=None, alias="sessionId")
    timestamp: Optional[float] = None
    text: Optional[str] = None
    speaker: Optional[str] = None
    role: Optional[str] = None
    note: Optional[str] = None


class FlagUpdateRequest(BaseModel):
    note: Optional[str] = None
