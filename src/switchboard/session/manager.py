"""
Session Manager — session lifecycle and cross-modality context bridging.

Owns:
- Session CRUD against a pluggable StorageProvider
- Per-turn bookkeeping: modality switches, bounded memory bank and flow
  history, email entity extraction, write-once topic classification
- Producing bridged context when the user changes modality

Every mutating call is a read-modify-write against storage. With
serialize_sessions on (the default) those cycles are serialized per session
id; with it off, concurrent calls on one session race and the last write
wins.

Updates are not transactional: if the final persist fails, the Session the
caller already holds reflects the mutation but storage does not.
"""

from __future__ import annotations

import logging
import time
from contextlib import nullcontext
from typing import AsyncContextManager

import switchboard.core.config as config_module
from switchboard.bridge.context_bridge import BridgeDirection, ContextBridge
from switchboard.core.errors import SessionNotFoundError
from switchboard.core.metrics import metrics
from switchboard.session.extraction import (
    detect_topic,
    extract_entities,
    merge_entities,
    to_memory_item,
)
from switchboard.session.locks import SessionLocks
from switchboard.session.models import FlowState, Message, Modality, Session
from switchboard.storage.base import SessionFilter, StorageProvider, StorageStats

logger = logging.getLogger(__name__)

MODALITY_SWITCH_STEP = "modality_switch"
CONTEXT_BRIDGED_STEP = "context_bridged"


class SessionManager:
    def __init__(
        self,
        storage: StorageProvider | None = None,
        bridge: ContextBridge | None = None,
        serialize_sessions: bool | None = None,
    ) -> None:
        cfg = config_module.config.session
        if storage is None:
            from switchboard.storage.registry import get_storage_provider

            storage = get_storage_provider()
        if serialize_sessions is None:
            serialize_sessions = cfg.serialize_sessions
        self.storage = storage
        self.bridge = bridge or ContextBridge()
        self._locks = SessionLocks() if serialize_sessions else None
        self._recent_count = cfg.recent_context_count
        self._summary_count = cfg.summary_count

    async def start(self) -> None:
        await self.storage.start()

    def _guard(self, session_id: str) -> AsyncContextManager[None]:
        if self._locks is None:
            return nullcontext()
        return self._locks.hold(session_id)

    async def _require(self, session_id: str) -> Session:
        session = await self.storage.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    # ─── Lifecycle ───────────────────────────────────────────────

    async def create_session(
        self, session_id: str, user_id: str | None = None
    ) -> Session:
        """Return the stored session for this id, creating it if absent."""
        async with self._guard(session_id):
            existing = await self.storage.get_session(session_id)
            if existing is not None:
                return existing

            session = Session(session_id=session_id, user_id=user_id)
            await self.storage.create_session(session_id, session)
            metrics.inc("session.created")
            logger.info(
                "Session created",
                extra={"session_id": session_id, "user_id": user_id},
            )
            return session

    async def get_session(self, session_id: str) -> Session | None:
        return await self.storage.get_session(session_id)

    async def destroy_session(self, session_id: str) -> bool:
        deleted = await self.storage.delete_session(session_id)
        if deleted:
            logger.info("Session destroyed", extra={"session_id": session_id})
        return deleted

    async def shutdown(self) -> None:
        await self.storage.shutdown()

    # ─── Turns ───────────────────────────────────────────────────

    async def update_session(
        self, session_id: str, message: Message, modality: str
    ) -> Session:
        """Record one turn and return the updated session."""
        modality = Modality(modality).value
        async with self._guard(session_id):
            session = await self._require(session_id)
            context = session.context

            if modality != session.current_modality:
                session.metadata.modality_switches += 1
                context.conversation_flow.append(
                    FlowState(
                        step=MODALITY_SWITCH_STEP,
                        modality=modality,
                        data={"from": session.current_modality, "to": modality},
                    )
                )
                metrics.inc("session.modality_switches", labels={"to": modality})
                logger.info(
                    "Modality switch %s -> %s",
                    session.current_modality,
                    modality,
                    extra={"session_id": session_id, "modality": modality},
                )

            session.current_modality = modality
            session.total_messages += 1
            session.last_activity = time.time()

            context.memory_bank.add(to_memory_item(message))

            found = extract_entities(message.content, source=message.modality)
            merge_entities(context.entities, found)

            # Write-once: the first classification sticks for the session's lifetime
            if context.topic is None:
                context.topic = detect_topic(message.content)

            await self.storage.update_session(session_id, session)
            return session

    async def record_response_time(self, session_id: str, elapsed_ms: float) -> Session:
        """Fold one reply latency into metadata.average_response_time."""
        async with self._guard(session_id):
            session = await self._require(session_id)
            meta = session.metadata
            meta.response_count += 1
            meta.average_response_time += (
                elapsed_ms - meta.average_response_time
            ) / meta.response_count
            await self.storage.update_session(session_id, session)
            return session

    # ─── Bridging ────────────────────────────────────────────────

    async def bridge_context_for_modality(
        self, session_id: str, target_modality: str
    ) -> str:
        """Context string to hand the response generator when continuing in `target_modality`."""
        target = Modality(target_modality).value
        async with self._guard(session_id):
            session = await self._require(session_id)
            source = session.current_modality
            direction = BridgeDirection.resolve(source, target)

            if direction is BridgeDirection.SAME:
                return self.bridge.recent_context(
                    session.context.memory_bank, self._recent_count
                )

            bridged = self.bridge.bridge_memories(
                session.context.memory_bank, direction, self._recent_count
            )
            bridge_type = f"{source}_to_{target}"
            session.context.conversation_flow.append(
                FlowState(
                    step=CONTEXT_BRIDGED_STEP,
                    modality=target,
                    data={"from": source, "to": target, "bridgeType": bridge_type},
                )
            )
            await self.storage.update_session(session_id, session)

            metrics.inc("session.bridges", labels={"type": bridge_type})
            logger.info(
                "Context bridged (%d chars)",
                len(bridged),
                extra={"session_id": session_id, "bridge_type": bridge_type},
            )
            return bridged

    async def get_conversation_summary(self, session_id: str) -> str:
        session = await self.storage.get_session(session_id)
        if session is None:
            return ""

        summary = ""
        if session.context.topic:
            summary += f"Topic: {session.context.topic}\n"

        recent = session.context.memory_bank.recent(self._summary_count)
        if recent:
            summary += "Recent conversation:\n"
            for item in recent:
                summary += f"- {item.content} ({item.modality})\n"
        return summary

    # ─── Maintenance ─────────────────────────────────────────────

    async def list_sessions(self, filter: SessionFilter | None = None) -> list[Session]:
        return await self.storage.get_sessions(filter)

    async def cleanup_expired(self, max_age: float | None = None) -> int:
        """Delete sessions idle longer than `max_age` seconds (default from config)."""
        if max_age is None:
            max_age = config_module.config.storage.max_age
        return await self.storage.cleanup(max_age)

    async def get_stats(self) -> StorageStats:
        return await self.storage.get_stats()

    async def health_check(self) -> bool:
        return await self.storage.health_check()
