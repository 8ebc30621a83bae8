"""Supabase (PostgREST) client for lessons, flags and onboarding preferences."""

from __future__ import annotations

import logging
from typing import Any, Mapping
from urllib.parse import quote

import httpx

from lesson_coach.config.settings import SupabaseConfig
from lesson_coach.services.errors import ProviderNotConfiguredError, RemoteServiceError

logger = logging.getLogger(__name__)

_LESSON_COLUMNS = "id,session_id,title,uploaded_at,transcript_content,transcript_file,analysis"


class SupabaseDatastore:
    """Row access over the Supabase REST endpoint (``/rest/v1``)."""

    def __init__(
        self,
        config: SupabaseConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return self._config.is_configured

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        if not self._config.is_configured:
            raise ProviderNotConfiguredError("Flags require Supabase")

        key = self._config.key.get_secret_value()
        request_headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
        }
        if headers:
            request_headers.update(headers)

        url = f"{self._config.url.rstrip('/')}/rest/v1{endpoint}"
        async with httpx.AsyncClient(
            timeout=self._config.timeout_seconds, transport=self._transport
        ) as client:
            try:
                response = await client.request(method, url, json=json, headers=request_headers)
            except httpx.RequestError as exc:
                raise RemoteServiceError(f"Supabase request failed: {exc}") from exc

        if response.is_error:
            logger.warning(
                "Supabase %s %s failed status=%s", method, endpoint, response.status_code
            )
            raise RemoteServiceError(
                f"Supabase request failed: {response.status_code} {response.reason_phrase}",
                provider_status=response.status_code,
                body=response.text[:500],
            )
        return response

    async def list_lessons(self) -> list[dict[str, Any]]:
        response = await self.request("GET", f"/lessons?select={_LESSON_COLUMNS}")
        return response.json()

    async def get_lesson_by_session_id(self, session_id: str) -> dict[str, Any] | None:
        response = await self.request(
            "GET",
            f"/lessons?session_id=eq.{quote(session_id)}"
            f"&select={_LESSON_COLUMNS},pedagogy_analysis",
        )
        rows = response.json()
        return rows[0] if rows else None

    async def get_pedagogy(self, session_id: str) -> dict[str, Any] | None:
        response = await self.request(
            "GET",
            f"/lessons?session_id=eq.{quote(session_id)}"
            "&select=pedagogy_analysis,transcript_content,word_transcript",
        )
        rows = response.json()
        return rows[0] if rows else None

    async def list_lessons_for_progress(
        self,
        from_date: str | None = None,
        to_date: str | None = None,
    ) -> list[dict[str, Any]]:
        """Lessons newest first; both dates are needed for the range filter to apply."""

        endpoint = (
            "/lessons?select=session_id,title,uploaded_at,analysis,pedagogy_analysis,"
            "transcript_content&order=uploaded_at.desc"
        )
        if from_date and to_date:
            endpoint += (
                f"&uploaded_at=gte.{quote(from_date)}T00:00:00"
                f"&uploaded_at=lte.{quote(to_date)}T23:59:59"
            )
        response = await self.request("GET", endpoint)
        return response.json()

    async def _latest_onboarding(self, email: str, columns: str) -> dict[str, Any] | None:
        response = await self.request(
            "GET",
            f"/onboarding_sessions?select={columns}&email=eq.{quote(email)}"
            "&order=created_at.desc&limit=1",
        )
        rows = response.json()
        return rows[0] if rows else None

    async def get_pedagogy_preferences(self, email: str) -> Any:
        row = await self._latest_onboarding(email, "pedagogy_preferences")
        return (row or {}).get("pedagogy_preferences") or None

    async def save_pedagogy_preferences(self, email: str, preferences: Any) -> bool:
        """Store preferences on the newest onboarding session; ``False`` when there is none."""

        row = await self._latest_onboarding(email, "id")
        if not row:
            return False
        await self.request(
            "PATCH",
            f"/onboarding_sessions?id=eq.{quote(str(row['id']))}",
            json={"pedagogy_preferences": preferences},
        )
        return True

    async def list_flags(self, session_id: str) -> list[dict[str, Any]]:
        response = await self.request(
            "GET", f"/flags?session_id=eq.{quote(session_id)}&select=*&order=timestamp"
        )
        return response.json()

    async def find_flag(self, session_id: str, timestamp: int) -> dict[str, Any] | None:
        response = await self.request(
            "GET",
            f"/flags?session_id=eq.{quote(session_id)}&timestamp=eq.{timestamp}&select=*",
        )
        rows = response.json()
        return rows[0] if rows else None

    async def insert_flag(self, row: Mapping[str, Any]) -> dict[str, Any] | None:
        response = await self.request(
            "POST",
            "/flags?select=*",
            json=[dict(row)],
            headers={"Prefer": "return=representation"},
        )
        rows = response.json()
        return rows[0] if rows else None

    async def update_flag_note(self, flag_id: str, note: str) -> None:
        await self.request("PATCH", f"/flags?id=eq.{quote(flag_id)}", json={"note": note})

    async def delete_flag(self, flag_id: str) -> None:
        await self.request("DELETE", f"/flags?id=eq.{quote(flag_id)}")


__all__ = ["SupabaseDatastore"]
