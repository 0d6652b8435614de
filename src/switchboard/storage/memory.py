"""
In-memory storage provider — for development and tests.

Sessions are lost on restart. Stores serialized dicts so every read builds a
fresh Session and callers can never alias stored state.

Optionally runs a background cleanup sweep every `cleanup_interval` seconds
once start() is called.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

from switchboard.session.models import Session
from switchboard.storage.base import (
    SessionFilter,
    StorageEvent,
    StorageEventType,
    StorageProvider,
    StorageStats,
    summarize_sessions,
)

logger = logging.getLogger(__name__)


class MemoryStorageProvider(StorageProvider):
    def __init__(self, max_age: float | None = None, cleanup_interval: float = 0.0):
        super().__init__()
        self._sessions: dict[str, dict[str, Any]] = {}
        self._max_age = max_age
        self._cleanup_interval = cleanup_interval
        self._cleanup_task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._cleanup_task or not (self._cleanup_interval and self._max_age):
            return
        self._cleanup_task = asyncio.create_task(
            self._cleanup_loop(), name="switchboard-session-cleanup"
        )
        logger.info(
            "Memory storage cleanup every %.0fs (max_age=%.0fs)",
            self._cleanup_interval,
            self._max_age,
        )

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self._cleanup_interval)
            try:
                await self.cleanup(self._max_age)
            except Exception as e:
                logger.error(f"Session cleanup failed: {e}", exc_info=True)
                self._emit(StorageEvent(type=StorageEventType.ERROR.value, error=e))

    # ─── CRUD ────────────────────────────────────────────────────

    async def create_session(self, session_id: str, session: Session) -> None:
        self._sessions[session_id] = session.to_dict()
        self._emit(
            StorageEvent(type=StorageEventType.SESSION_CREATED.value, session_id=session_id)
        )

    async def get_session(self, session_id: str) -> Session | None:
        data = self._sessions.get(session_id)
        if data is None:
            return None
        return Session.from_dict(data)

    async def update_session(self, session_id: str, session: Session) -> None:
        self._sessions[session_id] = session.to_dict()
        self._emit(
            StorageEvent(type=StorageEventType.SESSION_UPDATED.value, session_id=session_id)
        )

    async def delete_session(self, session_id: str) -> bool:
        if self._sessions.pop(session_id, None) is None:
            return False
        self._emit(
            StorageEvent(type=StorageEventType.SESSION_DELETED.value, session_id=session_id)
        )
        return True

    async def get_sessions(self, filter: SessionFilter | None = None) -> list[Session]:
        sessions = [Session.from_dict(data) for data in self._sessions.values()]
        if filter is None:
            return sessions
        return [s for s in sessions if filter.matches(s)]

    # ─── Maintenance ─────────────────────────────────────────────

    async def cleanup(self, max_age: float) -> int:
        self._emit(StorageEvent(type=StorageEventType.CLEANUP_STARTED.value))
        cutoff = time.time() - max_age
        stale = [
            session_id
            for session_id, data in self._sessions.items()
            if data["last_activity"] < cutoff
        ]
        deleted = 0
        for session_id in stale:
            if await self.delete_session(session_id):
                deleted += 1
        self._emit(
            StorageEvent(
                type=StorageEventType.CLEANUP_COMPLETED.value, deleted_count=deleted
            )
        )
        if deleted:
            logger.info("Cleaned up %d idle sessions", deleted)
        return deleted

    async def health_check(self) -> bool:
        return True

    async def get_stats(self) -> StorageStats:
        size = sum(len(json.dumps(data)) for data in self._sessions.values())
        sessions = [Session.from_dict(data) for data in self._sessions.values()]
        return summarize_sessions(sessions, size, time.time())

    async def shutdown(self) -> None:
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
        self._sessions.clear()
