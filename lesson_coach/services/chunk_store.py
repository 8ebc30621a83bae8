"""In-memory ordered store of transcribed chunks, keyed by recording session."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Iterable


@dataclass(frozen=True)
class ChunkTranscript:
    """Recognized text for one chunk of a recording session."""

    index: int
    text: str | None


@dataclass
class _SessionSlot:
    condition: asyncio.Condition = field(default_factory=asyncio.Condition)
    in_flight: int = 0
    references: int = 0
    finalizing: bool = False


class ChunkStore:
    """Hold per-session transcripts until the session is finalized.

    Each session key is an independent unit of mutation. Callers wrap a chunk
    submission in :meth:`track` and perform the append/finalize sequence
    inside :meth:`exclusive` so that finalization runs once, after every
    other submission for the same session has completed.
    """

    def __init__(self) -> None:
        self._entries: dict[str, list[ChunkTranscript]] = {}
        self._slots: dict[str, _SessionSlot] = {}

    def append(self, session_key: str, chunk: ChunkTranscript) -> None:
        """Insert ``chunk`` replacing any entry with the same index, keeping index order."""

        entries = [item for item in self._entries.get(session_key, []) if item.index != chunk.index]
        entries.append(chunk)
        entries.sort(key=lambda item: item.index)
        self._entries[session_key] = entries

    def seed(self, session_key: str, chunks: Iterable[ChunkTranscript]) -> None:
        """Load previously recognized chunks (e.g. from the session manifest)."""

        for chunk in chunks:
            self.append(session_key, chunk)

    def entries(self, session_key: str) -> list[ChunkTranscript]:
        return list(self._entries.get(session_key, []))

    def has_session(self, session_key: str) -> bool:
        return session_key in self._entries or session_key in self._slots

    def concatenate(self, session_key: str) -> str:
        """Join recognized texts in index order with single spaces."""

        return " ".join(item.text or "" for item in self._entries.get(session_key, []))

    def clear(self, session_key: str) -> None:
        self._entries.pop(session_key, None)

    def active_sessions(self) -> set[str]:
        return set(self._entries) | set(self._slots)

    @asynccontextmanager
    async def track(self, session_key: str) -> AsyncIterator[None]:
        """Count a chunk submission as in flight for the duration of the block."""

        slot = self._acquire_slot(session_key)
        async with slot.condition:
            slot.in_flight += 1
        try:
            yield
        finally:
            async with slot.condition:
                slot.in_flight -= 1
                slot.condition.notify_all()
            self._release_slot(session_key, slot)

    @asynccontextmanager
    async def exclusive(self, session_key: str) -> AsyncIterator[None]:
        """Serialize store mutation for one session."""

        slot = self._acquire_slot(session_key)
        try:
            async with slot.condition:
                yield
        finally:
            self._release_slot(session_key, slot)

    async def wait_until_idle(self, session_key: str) -> bool:
        """Wait, inside :meth:`exclusive`, until the caller is the only submission in flight.

        Returns ``False`` without waiting when another submission of the
        session is already waiting to finalize; that submission will see the
        caller's append once the caller leaves :meth:`track`.
        """

        slot = self._slots.get(session_key)
        if slot is None:
            return True
        if slot.finalizing:
            return False
        slot.finalizing = True
        try:
            await slot.condition.wait_for(lambda: slot.in_flight <= 1)
        finally:
            slot.finalizing = False
        return True

    def _acquire_slot(self, session_key: str) -> _SessionSlot:
        slot = self._slots.get(session_key)
        if slot is None:
            slot = self._slots[session_key] = _SessionSlot()
        slot.references += 1
        return slot

    def _release_slot(self, session_key: str, slot: _SessionSlot) -> None:
        slot.references -= 1
        if slot.references <= 0 and self._slots.get(session_key) is slot:
            del self._slots[session_key]


__all__ = ["ChunkStore", "ChunkTranscript"]
