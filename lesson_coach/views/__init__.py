"""Pydantic schemas used as views in the MVC architecture."""

from .analysis import AnalyzeRequest
from .common import ErrorResponse, SuccessResponse
from .flags import FlagCreateRequest, FlagUpdateRequest
from .lessons import (
    LessonMeta,
    LessonProgress,
    LessonResponse,
    PedagogyResponse,
    PreferencesRequest,
    PreferencesResponse,
    ProgressResponse,
    TranscriptSegment,
    VideoMetadataItem,
)
from .recording import ChunkTranscriptionResponse

__all__ = [
    "AnalyzeRequest",
    "ChunkTranscriptionResponse",
    "ErrorResponse",
    "FlagCreateRequest",
    "FlagUpdateRequest",
    "LessonMeta",
    "LessonProgress",
    "LessonResponse",
    "PedagogyResponse",
    "PreferencesRequest",
    "PreferencesResponse",
    "ProgressResponse",
    "SuccessResponse",
    "TranscriptSegment",
    "VideoMetadataItem",
]
