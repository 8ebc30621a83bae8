"""Shape stored lesson rows for the review and progress endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

SEGMENT_FIELDS = ("speaker", "start", "end", "text", "role")


def to_display_datetime(value: Any) -> Any:
    """Format an ISO timestamp as ``DD/MM/YYYY - HH:MM``; other values pass through."""

    if not isinstance(value, str):
        return value
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.strftime("%d/%m/%Y - %H:%M")


def transcript_segments(content: Any) -> list[dict[str, Any]]:
    if not isinstance(content, list):
        return []
    return [
        {field: segment.get(field) for field in SEGMENT_FIELDS}
        for segment in content
        if isinstance(segment, Mapping)
    ]


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def teacher_talk_percent(segments: list[dict[str, Any]]) -> int:
    """Share of TEACHER time over TEACHER plus STUDENT time, rounded half up."""

    teacher = student = 0.0
    for segment in segments:
        duration = _number(segment.get("end")) - _number(segment.get("start"))
        if segment.get("role") == "TEACHER":
            teacher += duration
        elif segment.get("role") == "STUDENT":
            student += duration
    total = teacher + student
    if total <= 0:
        return 0
    return int(teacher / total * 100 + 0.5)


def lesson_progress(lesson: Mapping[str, Any]) -> dict[str, Any]:
    pedagogy = lesson.get("pedagogy_analysis") or {}
    analysis = lesson.get("analysis") or {}
    wait_times = pedagogy.get("wait_time_analysis") or {}
    question_summary = (pedagogy.get("question_analysis") or {}).get("summary") or {}

    return {
        "session_id": lesson.get("session_id"),
        "title": lesson.get("title") or "Untitled",
        "uploaded_at": lesson.get("uploaded_at"),
        "teacher_talk_percent": teacher_talk_percent(
            transcript_segments(lesson.get("transcript_content"))
        ),
        "avg_wait_time": wait_times.get("average") or 0,
        "total_questions": question_summary.get("total_questions_analyzed") or 0,
        "feedback": analysis.get("summary") or "",
    }


__all__ = ["lesson_progress", "teacher_talk_percent", "to_display_datetime", "transcript_segments"]
