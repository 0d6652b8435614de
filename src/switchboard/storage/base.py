"""
Storage provider interface — where sessions live between turns.

The session manager only ever talks to this contract. Implementations must
return independent copies from reads: mutating a returned Session must not
change what is stored until update_session() is called with it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from switchboard.session.models import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionFilter:
    """Query over stored sessions. Unset fields match everything.

    Time bounds are inclusive epoch seconds.
    """

    user_id: str | None = None
    modality: str | None = None
    start_from: float | None = None
    start_to: float | None = None
    activity_from: float | None = None
    activity_to: float | None = None

    def matches(self, session: Session) -> bool:
        if self.user_id is not None and session.user_id != self.user_id:
            return False
        if self.modality is not None and session.current_modality != self.modality:
            return False
        if self.start_from is not None and session.start_time < self.start_from:
            return False
        if self.start_to is not None and session.start_time > self.start_to:
            return False
        if self.activity_from is not None and session.last_activity < self.activity_from:
            return False
        if self.activity_to is not None and session.last_activity > self.activity_to:
            return False
        return True


@dataclass(frozen=True)
class StorageStats:
    total_sessions: int = 0
    active_last_24h: int = 0
    avg_duration: float = 0.0  # seconds between start_time and last_activity
    modality_distribution: dict[str, int] = field(
        default_factory=lambda: {"text": 0, "voice": 0}
    )
    storage_size_bytes: int = 0


class StorageEventType(str, Enum):
    SESSION_CREATED = "session_created"
    SESSION_UPDATED = "session_updated"
    SESSION_DELETED = "session_deleted"
    CLEANUP_STARTED = "cleanup_started"
    CLEANUP_COMPLETED = "cleanup_completed"
    ERROR = "error"


@dataclass(frozen=True)
class StorageEvent:
    type: str
    session_id: str | None = None
    deleted_count: int | None = None
    error: Exception | None = None


StorageEventHandler = Callable[[StorageEvent], None]


class StorageProvider(ABC):
    """Session persistence interface."""

    def __init__(self) -> None:
        self._handlers: list[StorageEventHandler] = []

    # ─── Core CRUD ───────────────────────────────────────────────

    @abstractmethod
    async def create_session(self, session_id: str, session: Session) -> None:
        ...

    @abstractmethod
    async def get_session(self, session_id: str) -> Session | None:
        ...

    @abstractmethod
    async def update_session(self, session_id: str, session: Session) -> None:
        ...

    @abstractmethod
    async def delete_session(self, session_id: str) -> bool:
        ...

    # ─── Batch ───────────────────────────────────────────────────

    @abstractmethod
    async def get_sessions(self, filter: SessionFilter | None = None) -> list[Session]:
        ...

    async def delete_sessions(self, filter: SessionFilter | None = None) -> int:
        deleted = 0
        for session in await self.get_sessions(filter):
            if await self.delete_session(session.session_id):
                deleted += 1
        return deleted

    # ─── Maintenance ─────────────────────────────────────────────

    @abstractmethod
    async def cleanup(self, max_age: float) -> int:
        """Delete sessions idle for longer than `max_age` seconds. Returns the count."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        ...

    @abstractmethod
    async def get_stats(self) -> StorageStats:
        ...

    async def start(self) -> None:
        """Acquire resources. No-op unless the backend needs a connection."""

    @abstractmethod
    async def shutdown(self) -> None:
        ...

    # ─── Events ──────────────────────────────────────────────────

    def on(self, handler: StorageEventHandler) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def off(self, handler: StorageEventHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def _emit(self, event: StorageEvent) -> None:
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Storage event handler failed: {e}", exc_info=True)


def summarize_sessions(
    sessions: list[Session], storage_size_bytes: int, now: float
) -> StorageStats:
    """Build StorageStats from a full list of stored sessions."""
    day_ago = now - 24 * 60 * 60
    distribution = {"text": 0, "voice": 0}
    durations = []
    active = 0
    for session in sessions:
        distribution[session.current_modality] = (
            distribution.get(session.current_modality, 0) + 1
        )
        durations.append(session.last_activity - session.start_time)
        if session.last_activity > day_ago:
            active += 1
    return StorageStats(
        total_sessions=len(sessions),
        active_last_24h=active,
        avg_duration=sum(durations) / len(durations) if durations else 0.0,
        modality_distribution=distribution,
        storage_size_bytes=storage_size_bytes,
    )
