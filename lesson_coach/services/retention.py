"""Background retention sweeper for recording session directories."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import timedelta
from typing import Awaitable, Callable, Collection

from fastapi.concurrency import run_in_threadpool

from lesson_coach.services.errors import FilesystemError
from lesson_coach.services.storage import SessionDirectoryManager
from lesson_coach.telemetry import SWEPT_SESSIONS

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


class RetentionSweeper:
    """Delete session directories whose mtime is older than the retention window.

    Sessions reported by ``active_sessions`` (recordings with in-memory state
    or requests in flight) are never deleted, whatever their age.
    """

    def __init__(
        self,
        storage: SessionDirectoryManager,
        *,
        retention: timedelta = timedelta(days=7),
        interval: timedelta = timedelta(hours=24),
        startup_delay: float = 5.0,
        active_sessions: Callable[[], Collection[str]] | None = None,
        clock: Clock = time.time,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._storage = storage
        self._retention = retention
        self._interval = interval
        self._startup_delay = startup_delay
        self._active_sessions = active_sessions or (lambda: ())
        self._clock = clock
        self._sleep = sleep
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep_once(
        self,
        now: float | None = None,
        active: Collection[str] | None = None,
    ) -> list[str]:
        """Run one pass and return the deleted session keys."""

        current = self._clock() if now is None else now
        cutoff = current - self._retention.total_seconds()
        active = set(self._active_sessions() if active is None else active)
        deleted: list[str] = []

        for entry in self._storage.iter_sessions():
            if entry.modified_at >= cutoff:
                continue
            if entry.session_key in active:
                logger.info("Skipping expired but active recording session: %s", entry.session_key)
                continue
            try:
                if self._storage.delete_session(entry.session_key):
                    deleted.append(entry.session_key)
                    logger.info("Deleted old recording session: %s", entry.session_key)
            except FilesystemError:
                logger.exception("Could not delete recording session %s", entry.session_key)

        if deleted:
            SWEPT_SESSIONS.inc(len(deleted))
            logger.info("Cleanup complete: deleted %d old session(s)", len(deleted))
        return deleted

    async def run(self) -> None:
        await self._sleep(self._startup_delay)
        while True:
            try:
                # Snapshot in-memory state on the loop thread before going to the pool.
                active = set(self._active_sessions())
                await run_in_threadpool(self.sweep_once, None, active)
            except Exception:  # pragma: no cover - keep the schedule alive
                logger.exception("Retention sweep failed")
            await self._sleep(self._interval.total_seconds())

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self.run(), name="recording-retention-sweeper")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


__all__ = ["RetentionSweeper"]
