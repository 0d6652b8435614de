"""
SQLite Storage Provider — durable single-node session persistence.

Same aiosqlite pattern as the rest of the codebase: one connection,
WAL journal, explicit commits. The queryable columns (user, modality,
timestamps) are stored alongside the full session as a JSON document.

Usage:
    storage = SQLiteStorageProvider(db_path=Path("sessions.db"))
    await storage.start()
    await storage.create_session("s1", Session(session_id="s1"))
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any

import aiosqlite

import switchboard.core.config as config_module
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

_COLUMNS = "session_id, user_id, start_time, last_activity, current_modality, state"


class SQLiteStorageProvider(StorageProvider):
    """
    One table:
    - sessions: indexed lookup columns + the serialized session document
    """

    def __init__(self, db_path: Path | None = None):
        super().__init__()
        self.db_path = db_path or Path(config_module.config.storage.db_path)
        self._db: aiosqlite.Connection | None = None

    async def start(self) -> None:
        if self._db:
            return
        self._db = await aiosqlite.connect(str(self.db_path))
        await self._db.execute("PRAGMA journal_mode=WAL")

        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                session_id TEXT PRIMARY KEY,
                user_id TEXT,
                start_time REAL NOT NULL,
                last_activity REAL NOT NULL,
                current_modality TEXT NOT NULL,
                state TEXT NOT NULL
            )
        """)
        await self._db.execute("""
            CREATE INDEX IF NOT EXISTS idx_sessions_user
            ON sessions(user_id)
        """)
        await self._db.execute("""
            CREATE INDEX IF NOT EXISTS idx_sessions_activity
            ON sessions(last_activity)
        """)

        await self._db.commit()
        logger.info("SQLite session storage started (db=%s)", self.db_path)

    async def shutdown(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    def _conn(self) -> aiosqlite.Connection:
        assert self._db is not None, "SQLiteStorageProvider not started"
        return self._db

    # ─── CRUD ────────────────────────────────────────────────────

    async def create_session(self, session_id: str, session: Session) -> None:
        await self._write(session_id, session)
        self._emit(
            StorageEvent(type=StorageEventType.SESSION_CREATED.value, session_id=session_id)
        )

    async def update_session(self, session_id: str, session: Session) -> None:
        await self._write(session_id, session)
        self._emit(
            StorageEvent(type=StorageEventType.SESSION_UPDATED.value, session_id=session_id)
        )

    async def _write(self, session_id: str, session: Session) -> None:
        db = self._conn()
        await db.execute(
            """
            INSERT OR REPLACE INTO sessions
                (session_id, user_id, start_time, last_activity, current_modality, state)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                session_id,
                session.user_id,
                session.start_time,
                session.last_activity,
                session.current_modality,
                json.dumps(session.to_dict()),
            ),
        )
        await db.commit()

    async def get_session(self, session_id: str) -> Session | None:
        async with self._conn().execute(
            f"SELECT {_COLUMNS} FROM sessions WHERE session_id = ?",
            (session_id,),
        ) as cursor:
            row = await cursor.fetchone()
            if row is None:
                return None
            return Session.from_dict(json.loads(row[5]))

    async def delete_session(self, session_id: str) -> bool:
        db = self._conn()
        async with db.execute(
            "DELETE FROM sessions WHERE session_id = ?", (session_id,)
        ) as cursor:
            deleted = cursor.rowcount
        await db.commit()
        if deleted:
            self._emit(
                StorageEvent(
                    type=StorageEventType.SESSION_DELETED.value, session_id=session_id
                )
            )
        return bool(deleted)

    async def get_sessions(self, filter: SessionFilter | None = None) -> list[Session]:
        clauses: list[str] = []
        params: list[Any] = []
        if filter is not None:
            for column, op, value in (
                ("user_id", "=", filter.user_id),
                ("current_modality", "=", filter.modality),
                ("start_time", ">=", filter.start_from),
                ("start_time", "<=", filter.start_to),
                ("last_activity", ">=", filter.activity_from),
                ("last_activity", "<=", filter.activity_to),
            ):
                if value is not None:
                    clauses.append(f"{column} {op} ?")
                    params.append(value)

        query = f"SELECT {_COLUMNS} FROM sessions"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY last_activity DESC"

        sessions = []
        async with self._conn().execute(query, params) as cursor:
            async for row in cursor:
                sessions.append(Session.from_dict(json.loads(row[5])))
        return sessions

    # ─── Maintenance ─────────────────────────────────────────────

    async def cleanup(self, max_age: float) -> int:
        self._emit(StorageEvent(type=StorageEventType.CLEANUP_STARTED.value))
        db = self._conn()
        async with db.execute(
            "DELETE FROM sessions WHERE last_activity < ?",
            (time.time() - max_age,),
        ) as cursor:
            deleted = cursor.rowcount or 0
        await db.commit()
        self._emit(
            StorageEvent(
                type=StorageEventType.CLEANUP_COMPLETED.value, deleted_count=deleted
            )
        )
        if deleted:
            logger.info("Cleaned up %d idle sessions", deleted)
        return deleted

    async def health_check(self) -> bool:
        if self._db is None:
            return False
        try:
            async with self._db.execute("SELECT 1") as cursor:
                await cursor.fetchone()
            return True
        except Exception as e:
            logger.warning(f"SQLite health check failed: {e}")
            return False

    async def get_stats(self) -> StorageStats:
        sessions = []
        size = 0
        async with self._conn().execute("SELECT state FROM sessions") as cursor:
            async for row in cursor:
                size += len(row[0])
                sessions.append(Session.from_dict(json.loads(row[0])))
        return summarize_sessions(sessions, size, time.time())
