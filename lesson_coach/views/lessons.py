"""Schemas for lesson review, pedagogy and progress endpoints."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class TranscriptSegment(BaseModel):
    speaker: Any = None
    start: Any = None
    end: Any = None
    text: Any = None
    role: Any = None


class VideoMetadataItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(default=None, alias="sessionId")
    title: Optional[str] = None
    uploaded_at: Optional[str] = Field(default=None, alias="uploadedAt")
    uploaded_at_formatted: Optional[str] = Field(default=None, alias="uploadedAtFormatted")
    transcript_file: Optional[str] = Field(default=None, alias="transcriptFile")


class LessonMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(default=None, alias="sessionId")
    title: Optional[str] = None
    uploaded_at: Optional[str] = Field(default=None, alias="uploadedAt")
    transcript_file: Optional[str] = Field(default=None, alias="transcriptFile")


class LessonResponse(BaseModel):
    meta: LessonMeta
    transcript: list[TranscriptSegment]


class PedagogyResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pedagogy_analysis: Any = None
    transcript: Any = Field(default_factory=list)
    word_transcript: Any = Field(default=None, alias="wordTranscript")


class PreferencesRequest(BaseModel):
    email: Optional[str] = None
    preferences: Any = None


class PreferencesResponse(BaseModel):
    preferences: Any = None


class LessonProgress(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(default=None, alias="sessionId")
    title: str
    uploaded_at: Optional[str] = Field(default=None, alias="uploadedAt")
    teacher_talk_percent: int = Field(alias="teacherTalkPercent")
    avg_wait_time: int | float = Field(alias="avgWaitTime")
    total_questions: int | float = Field(alias="totalQuestions")
    feedback: Any = ""


class ProgressResponse(BaseModel):
    lessons: list[LessonProgress]
