"""Tests for the realtime, analysis, flags, lessons and health endpoints."""

from __future__ import annotations

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from lesson_coach.config.settings import AnthropicConfig, GroqConfig, SupabaseConfig
from lesson_coach.main import create_app
from lesson_coach.services import AnthropicLlmClient, SupabaseDatastore, create_groq_whisper_client


@pytest.fixture()
def app(app_settings):
    return create_app(app_settings)


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


# Realtime -----------------------------------------------------------------


def test_realtime_requires_groq_key(client: TestClient) -> None:
    response = client.post(
        "/api/realtime/transcribe",
        content=b"audio",
        headers={"content-type": "audio/webm"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Missing GROQ_API_KEY"}


def _with_groq(app, handler) -> None:
    app.state.realtime_transcriber = create_groq_whisper_client(
        GroqConfig(api_key="gsk-test"),
        transport=httpx.MockTransport(handler),
    )


def test_realtime_transcribes_raw_body(client: TestClient, app) -> None:
    seen: dict[str, bytes] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = request.read()
        return httpx.Response(200, json={"text": "can I go to the bathroom"})

    _with_groq(app, handler)

    response = client.post(
        "/api/realtime/transcribe",
        content=b"RIFF-wav-data",
        headers={"content-type": "audio/wav"},
    )

    assert response.status_code == 200
    assert response.json() == {"text": "can I go to the bathroom"}
    assert b'filename="realtime_audio.wav"' in seen["body"]
    assert b"RIFF-wav-data" in seen["body"]


def test_realtime_rejects_empty_body(client: TestClient, app) -> None:
    _with_groq(app, lambda request: httpx.Response(200, json={"text": "unused"}))

    response = client.post(
        "/api/realtime/transcribe",
        content=b"",
        headers={"content-type": "application/octet-stream"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "No audio data received"}


def test_realtime_reports_provider_failure(client: TestClient, app) -> None:
    _with_groq(app, lambda request: httpx.Response(500, text="upstream exploded"))

    response = client.post(
        "/api/realtime/transcribe",
        content=b"audio",
        headers={"content-type": "audio/webm"},
    )

    assert response.status_code == 500
    payload = response.json()
    assert payload["error"] == "Failed to transcribe audio"
    assert "500" in payload["details"]


# Analysis -----------------------------------------------------------------


def test_analyze_requires_anthropic_key(client: TestClient) -> None:
    response = client.post("/api/analyze", json={"text": "lesson transcript"})

    assert response.status_code == 400
    assert response.json() == {"error": "Missing ANTHROPIC_API_KEY"}


def _with_anthropic(app, handler) -> None:
    app.state.llm_client = AnthropicLlmClient(
        AnthropicConfig(api_key="sk-ant-test"),
        transport=httpx.MockTransport(handler),
    )


def test_analyze_requires_text(client: TestClient, app) -> None:
    _with_anthropic(app, lambda request: httpx.Response(200, json={}))

    response = client.post("/api/analyze", json={"prompt": "be brief"})

    assert response.status_code == 400
    assert response.json() == {"error": "Missing text"}


def test_analyze_relays_provider_response(client: TestClient, app) -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["headers"] = request.headers
        seen["payload"] = json.loads(request.read())
        return httpx.Response(
            200,
            json={"content": [{"type": "text", "text": "Great pacing."}]},
        )

    _with_anthropic(app, handler)

    response = client.post("/api/analyze", json={"text": "lesson transcript", "prompt": "Rate pacing."})

    assert response.status_code == 200
    assert response.json() == {"content": [{"type": "text", "text": "Great pacing."}]}
    assert seen["headers"]["x-api-key"] == "sk-ant-test"
    assert seen["headers"]["anthropic-version"] == "2023-06-01"
    payload = seen["payload"]
    assert payload["model"] == "claude-sonnet-4-5-20250929"
    assert payload["max_tokens"] == 2000
    assert payload["system"] == "Rate pacing."
    assert payload["messages"] == [{"role": "user", "content": "lesson transcript"}]


def test_analyze_relays_provider_error_status(client: TestClient, app) -> None:
    _with_anthropic(
        app,
        lambda request: httpx.Response(429, json={"type": "error", "error": {"type": "rate_limit_error"}}),
    )

    response = client.post("/api/analyze", json={"text": "lesson transcript"})

    assert response.status_code == 429
    assert response.json()["error"]["type"] == "rate_limit_error"


def test_analyze_stream_emits_text_then_end(client: TestClient, app) -> None:
    events = [
        {"type": "message_start", "message": {}},
        {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "Good "}},
        {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "lesson."}},
        {"type": "message_stop"},
    ]
    body = "".join(f"event: {event['type']}\ndata: {json.dumps(event)}\n\n" for event in events)
    _with_anthropic(
        app,
        lambda request: httpx.Response(
            200, content=body.encode(), headers={"content-type": "text/event-stream"}
        ),
    )

    response = client.post("/api/analyze/stream", json={"text": "lesson transcript"})

    assert response.status_code == 200
    assert response.text == (
        'data: {"text": "Good "}\n\n'
        'data: {"text": "lesson."}\n\n'
        'data: {"end": true}\n\n'
    )


def test_analyze_stream_failure_ends_with_error_line(client: TestClient, app) -> None:
    _with_anthropic(app, lambda request: httpx.Response(529, json={"type": "error"}))

    response = client.post("/api/analyze/stream", json={"text": "lesson transcript"})

    assert response.status_code == 200
    assert response.text == "Error: Anthropic streaming failed with status 529"
    assert '"end"' not in response.text


# Flags --------------------------------------------------------------------


class FakeSupabase:
    """Minimal PostgREST double holding lessons, flags and onboarding sessions in memory."""

    def __init__(self) -> None:
        self.lessons = [
            {
                "id": "lesson-row-1",
                "session_id": "lesson_1",
                "title": "Fractions",
                "uploaded_at": "2024-03-05T09:07:00",
                "transcript_file": None,
                "transcript_content": [
                    {
                        "speaker": "A",
                        "start": 0,
                        "end": 30,
                        "text": "Today we start fractions",
                        "role": "TEACHER",
                        "confidence": 0.9,
                    },
                    {"speaker": "B", "start": 30, "end": 40, "text": "Is a half bigger?", "role": "STUDENT"},
                ],
                "analysis": {"summary": "Strong questioning"},
                "pedagogy_analysis": {
                    "wait_time_analysis": {"average": 2.5},
                    "question_analysis": {"summary": {"total_questions_analyzed": 7}},
                },
                "word_transcript": {"words": [{"text": "Today", "start": 0.0}]},
            },
            {
                "id": "lesson-row-2",
                "session_id": "lesson_2",
                "title": None,
                "uploaded_at": "2024-02-10T14:30:00",
                "transcript_file": "lesson_2.json",
                "transcript_content": None,
                "analysis": None,
                "pedagogy_analysis": None,
                "word_transcript": None,
            },
        ]
        self.flags: list[dict] = []
        self.onboarding: list[dict] = []
        self.requests: list[tuple[str, str]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append((request.method, request.url.path))
        params = request.url.params
        if request.url.path.endswith("/lessons"):
            rows = self.lessons
            if "session_id" in params:
                session = params["session_id"].removeprefix("eq.")
                rows = [row for row in rows if row["session_id"] == session]
            for condition in params.get_list("uploaded_at"):
                operator, _, bound = condition.partition(".")
                if operator == "gte":
                    rows = [row for row in rows if row["uploaded_at"] >= bound]
                else:
                    rows = [row for row in rows if row["uploaded_at"] <= bound]
            return httpx.Response(200, json=rows)
        if request.url.path.endswith("/onboarding_sessions"):
            return self._onboarding(request)

        session = params.get("session_id", "").removeprefix("eq.")
        if request.method == "GET":
            rows = [row for row in self.flags if row["session_id"] == session]
            if "timestamp" in params:
                timestamp = int(params["timestamp"].removeprefix("eq."))
                rows = [row for row in rows if row["timestamp"] == timestamp]
            return httpx.Response(200, json=rows)
        if request.method == "POST":
            assert request.headers["prefer"] == "return=representation"
            (row,) = json.loads(request.read())
            created = {"id": f"flag-{len(self.flags) + 1}", **row}
            self.flags.append(created)
            return httpx.Response(201, json=[created])
        flag_id = params.get("id", "").removeprefix("eq.")
        if request.method == "PATCH":
            for row in self.flags:
                if row["id"] == flag_id:
                    row.update(json.loads(request.read()))
            return httpx.Response(204)
        if request.method == "DELETE":
            self.flags = [row for row in self.flags if row["id"] != flag_id]
            return httpx.Response(204)
        return httpx.Response(405)

    def _onboarding(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        if request.method == "GET":
            email = params.get("email", "").removeprefix("eq.")
            rows = sorted(
                (row for row in self.onboarding if row["email"] == email),
                key=lambda row: row["created_at"],
                reverse=True,
            )
            return httpx.Response(200, json=rows[: int(params.get("limit", len(rows)))])
        if request.method == "PATCH":
            row_id = params.get("id", "").removeprefix("eq.")
            for row in self.onboarding:
                if str(row["id"]) == row_id:
                    row.update(json.loads(request.read()))
            return httpx.Response(204)
        return httpx.Response(405)


@pytest.fixture()
def supabase(app) -> FakeSupabase:
    fake = FakeSupabase()
    app.state.datastore = SupabaseDatastore(
        SupabaseConfig(url="https://project.supabase.co", key="service-key"),
        transport=httpx.MockTransport(fake),
    )
    return fake


def test_flags_without_datastore(client: TestClient) -> None:
    assert client.get("/api/flags", params={"sessionId": "lesson_1"}).json() == []

    response = client.post("/api/flags", json={"sessionId": "lesson_1", "timestamp": 12})

    assert response.status_code == 501
    assert response.json() == {"error": "Flags require Supabase"}


def test_flags_require_session_id(client: TestClient) -> None:
    response = client.get("/api/flags")

    assert response.status_code == 400
    assert response.json() == {"error": "sessionId required"}


def test_flag_lifecycle(client: TestClient, supabase: FakeSupabase) -> None:
    created = client.post(
        "/api/flags",
        json={"sessionId": "lesson_1", "timestamp": 42.0, "text": "Quiet please", "speaker": "A"},
    )
    assert created.status_code == 200
    flag = created.json()
    assert flag["lesson_id"] == "lesson-row-1"
    assert flag["timestamp"] == 42
    assert flag["note"] == ""

    duplicate = client.post("/api/flags", json={"sessionId": "lesson_1", "timestamp": 42})
    assert duplicate.json()["id"] == flag["id"]
    assert len(supabase.flags) == 1

    listed = client.get("/api/flags", params={"sessionId": "lesson_1"})
    assert [row["id"] for row in listed.json()] == [flag["id"]]

    updated = client.put(f"/api/flags/{flag['id']}", json={"note": "follow up"})
    assert updated.json() == {"success": True}
    assert supabase.flags[0]["note"] == "follow up"

    deleted = client.delete(f"/api/flags/{flag['id']}")
    assert deleted.json() == {"success": True}
    assert supabase.flags == []


def test_flag_for_unknown_lesson(client: TestClient, supabase: FakeSupabase) -> None:
    response = client.post("/api/flags", json={"sessionId": "lesson_404", "timestamp": 1})

    assert response.status_code == 404
    assert response.json() == {"error": "Lesson not found"}


def test_flag_requires_timestamp(client: TestClient, supabase: FakeSupabase) -> None:
    response = client.post("/api/flags", json={"sessionId": "lesson_1"})

    assert response.status_code == 400
    assert response.json() == {"error": "sessionId and timestamp required"}


def test_datastore_error_surfaces_as_bad_gateway(client: TestClient, app) -> None:
    app.state.datastore = SupabaseDatastore(
        SupabaseConfig(url="https://project.supabase.co", key="service-key"),
        transport=httpx.MockTransport(lambda request: httpx.Response(503, text="paused")),
    )

    response = client.get("/api/flags", params={"sessionId": "lesson_1"})

    assert response.status_code == 502
    assert "503" in response.json()["error"]


# Lessons ------------------------------------------------------------------


def test_lesson_endpoints_without_datastore(client: TestClient) -> None:
    assert client.get("/api/video-metadata").json() == []
    assert client.get("/api/progress").json() == {"lessons": []}
    assert client.get("/api/pedagogy/preferences", params={"email": "t@school.org"}).json() == {
        "preferences": None
    }

    saved = client.post(
        "/api/pedagogy/preferences",
        json={"email": "t@school.org", "preferences": {"focus": "questioning"}},
    )
    assert saved.json() == {"success": True, "note": "Saved locally only"}

    response = client.get("/api/lesson/lesson_1")

    assert response.status_code == 501
    assert response.json() == {"error": "Lessons require Supabase"}


def test_video_metadata_lists_lessons(client: TestClient, supabase: FakeSupabase) -> None:
    response = client.get("/api/video-metadata")

    assert response.status_code == 200
    assert response.json() == [
        {
            "sessionId": "lesson_1",
            "title": "Fractions",
            "uploadedAt": "2024-03-05T09:07:00",
            "uploadedAtFormatted": "05/03/2024 - 09:07",
            "transcriptFile": None,
        },
        {
            "sessionId": "lesson_2",
            "title": None,
            "uploadedAt": "2024-02-10T14:30:00",
            "uploadedAtFormatted": "10/02/2024 - 14:30",
            "transcriptFile": "lesson_2.json",
        },
    ]


def test_lesson_and_timestamps_return_transcript_segments(
    client: TestClient, supabase: FakeSupabase
) -> None:
    segments = [
        {"speaker": "A", "start": 0, "end": 30, "text": "Today we start fractions", "role": "TEACHER"},
        {"speaker": "B", "start": 30, "end": 40, "text": "Is a half bigger?", "role": "STUDENT"},
    ]

    lesson = client.get("/api/lesson/lesson_1")

    assert lesson.status_code == 200
    assert lesson.json() == {
        "meta": {
            "sessionId": "lesson_1",
            "title": "Fractions",
            "uploadedAt": "2024-03-05T09:07:00",
            "transcriptFile": None,
        },
        "transcript": segments,
    }
    assert client.get("/api/timestamps", params={"sessionId": "lesson_1"}).json() == segments
    assert client.get("/api/lesson/lesson_2").json()["transcript"] == []


def test_lesson_lookups_report_missing_input_and_rows(
    client: TestClient, supabase: FakeSupabase
) -> None:
    missing_param = client.get("/api/timestamps")
    assert missing_param.status_code == 400
    assert missing_param.json() == {"error": "sessionId parameter is required"}

    for path in (
        "/api/lesson/lesson_404",
        "/api/timestamps?sessionId=lesson_404",
        "/api/pedagogy?sessionId=lesson_404",
    ):
        response = client.get(path)
        assert response.status_code == 404
        assert response.json() == {"error": "Lesson not found"}


def test_pedagogy_returns_analysis_and_transcripts(client: TestClient, supabase: FakeSupabase) -> None:
    response = client.get("/api/pedagogy", params={"sessionId": "lesson_1"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["pedagogy_analysis"]["wait_time_analysis"] == {"average": 2.5}
    assert payload["transcript"] == supabase.lessons[0]["transcript_content"]
    assert payload["wordTranscript"] == {"words": [{"text": "Today", "start": 0.0}]}

    empty = client.get("/api/pedagogy", params={"sessionId": "lesson_2"})
    assert empty.json() == {"pedagogy_analysis": None, "transcript": [], "wordTranscript": None}


def test_pedagogy_preferences_update_newest_onboarding_session(
    client: TestClient, supabase: FakeSupabase
) -> None:
    supabase.onboarding = [
        {"id": 1, "email": "t@school.org", "created_at": "2024-01-01T00:00:00", "pedagogy_preferences": None},
        {"id": 2, "email": "t@school.org", "created_at": "2024-02-01T00:00:00", "pedagogy_preferences": None},
    ]
    preferences = {"focus": "wait time", "level": "secondary"}

    saved = client.post("/api/pedagogy/preferences", json={"email": "t@school.org", "preferences": preferences})

    assert saved.json() == {"success": True}
    assert supabase.onboarding[0]["pedagogy_preferences"] is None
    assert supabase.onboarding[1]["pedagogy_preferences"] == preferences

    fetched = client.get("/api/pedagogy/preferences", params={"email": "t@school.org"})
    assert fetched.json() == {"preferences": preferences}

    unknown = client.post("/api/pedagogy/preferences", json={"email": "new@school.org", "preferences": preferences})
    assert unknown.json() == {"success": True, "note": "Saved locally only"}

    incomplete = client.post("/api/pedagogy/preferences", json={"email": "t@school.org"})
    assert incomplete.status_code == 400
    assert incomplete.json() == {"error": "Email and preferences required"}


def test_progress_summarizes_each_lesson(client: TestClient, supabase: FakeSupabase) -> None:
    response = client.get("/api/progress")

    assert response.status_code == 200
    assert response.json() == {
        "lessons": [
            {
                "sessionId": "lesson_1",
                "title": "Fractions",
                "uploadedAt": "2024-03-05T09:07:00",
                "teacherTalkPercent": 75,
                "avgWaitTime": 2.5,
                "totalQuestions": 7,
                "feedback": "Strong questioning",
            },
            {
                "sessionId": "lesson_2",
                "title": "Untitled",
                "uploadedAt": "2024-02-10T14:30:00",
                "teacherTalkPercent": 0,
                "avgWaitTime": 0,
                "totalQuestions": 0,
                "feedback": "",
            },
        ]
    }


def test_progress_filters_by_upload_date(client: TestClient, supabase: FakeSupabase) -> None:
    response = client.get("/api/progress", params={"fromDate": "2024-03-01", "toDate": "2024-03-31"})

    assert [lesson["sessionId"] for lesson in response.json()["lessons"]] == ["lesson_1"]

    only_start = client.get("/api/progress", params={"fromDate": "2024-03-01"})
    assert len(only_start.json()["lessons"]) == 2


# Health -------------------------------------------------------------------


def test_api_health_reports_providers(client: TestClient) -> None:
    response = client.get("/api/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["database"] == "not configured"
    assert payload["providers"] == {
        "recording_transcription": False,
        "realtime_transcription": False,
        "analysis": False,
    }
    assert "POST /api/recording/transcribe-chunk" in payload["endpoints"]
    assert "GET /api/lesson/:sessionId" in payload["endpoints"]


def test_metrics_endpoint(client: TestClient) -> None:
    client.get("/api/health")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text


def test_metrics_label_requests_by_route_template(client: TestClient, supabase: FakeSupabase) -> None:
    client.get("/api/lesson/lesson_2")
    client.get("/api/no-such-endpoint")

    text = client.get("/metrics").text

    assert 'route="/api/lesson/{session_id}"' in text
    assert 'route="unmatched"' in text
    assert "lesson_2" not in text
    assert 'http_requests_in_progress{method="GET"} 0.0' in text
