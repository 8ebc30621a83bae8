"""Schemas for the recording endpoints."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ChunkTranscriptionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    transcript: Optional[str] = None
    chunk_number: int = Field(alias="chunkNumber")
    error: Optional[str] = None
    message: Optional[str] = None
