"""Tests for the session manager: turns, switches, bridging, maintenance."""

from __future__ import annotations

import asyncio
import itertools
import time

import pytest
import pytest_asyncio

from switchboard.core.errors import SessionNotFoundError
from switchboard.core.metrics import metrics
from switchboard.session.manager import SessionManager
from switchboard.session.models import Message, Session
from switchboard.storage.base import SessionFilter
from switchboard.storage.memory import MemoryStorageProvider


class YieldingStorage(MemoryStorageProvider):
    """Memory storage that yields to the loop on every read, like a real backend."""

    async def get_session(self, session_id: str) -> Session | None:
        session = await super().get_session(session_id)
        await asyncio.sleep(0)
        return session


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest_asyncio.fixture
async def manager():
    mgr = SessionManager(storage=MemoryStorageProvider())
    await mgr.start()
    yield mgr
    await mgr.shutdown()


_ticks = itertools.count()


def _msg(content: str, modality: str = "text") -> Message:
    # Strictly increasing timestamps so recency order is deterministic
    return Message(
        content=content,
        modality=modality,
        timestamp=time.time() + next(_ticks) * 1e-3,
    )


# ── Lifecycle ───────────────────────────────────────────────


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_create_session_defaults(self, manager):
        session = await manager.create_session("s1", user_id="u1")
        assert session.current_modality == "text"
        assert session.total_messages == 0
        assert session.user_id == "u1"
        assert len(session.context.memory_bank) == 0
        assert metrics.counter("session.created") == 1

    @pytest.mark.asyncio
    async def test_create_session_returns_existing(self, manager):
        await manager.create_session("s1")
        await manager.update_session("s1", _msg("hello"), "text")
        again = await manager.create_session("s1", user_id="other")
        assert again.total_messages == 1
        assert again.user_id is None
        assert metrics.counter("session.created") == 1

    @pytest.mark.asyncio
    async def test_get_missing_session(self, manager):
        assert await manager.get_session("nope") is None

    @pytest.mark.asyncio
    async def test_destroy_session(self, manager):
        await manager.create_session("s1")
        assert await manager.destroy_session("s1") is True
        assert await manager.get_session("s1") is None
        assert await manager.destroy_session("s1") is False

    @pytest.mark.asyncio
    async def test_default_storage_from_config(self):
        mgr = SessionManager()
        assert isinstance(mgr.storage, MemoryStorageProvider)


# ── Turns ───────────────────────────────────────────────────


class TestUpdateSession:
    @pytest.mark.asyncio
    async def test_missing_session_raises(self, manager):
        with pytest.raises(SessionNotFoundError) as exc_info:
            await manager.update_session("ghost", _msg("hi"), "text")
        assert exc_info.value.session_id == "ghost"
        assert str(exc_info.value) == "Session ghost not found"

    @pytest.mark.asyncio
    async def test_not_found_is_a_key_error(self, manager):
        with pytest.raises(KeyError):
            await manager.update_session("ghost", _msg("hi"), "text")

    @pytest.mark.asyncio
    async def test_unknown_modality_rejected(self, manager):
        await manager.create_session("s1")
        with pytest.raises(ValueError):
            await manager.update_session("s1", _msg("hi"), "video")

    @pytest.mark.asyncio
    async def test_counts_and_persists(self, manager):
        await manager.create_session("s1")
        before = time.time()
        await manager.update_session("s1", _msg("hello"), "text")
        stored = await manager.get_session("s1")
        assert stored.total_messages == 1
        assert stored.last_activity >= before
        assert [m.content for m in stored.context.memory_bank] == ["hello"]

    @pytest.mark.asyncio
    async def test_memory_bank_is_bounded(self, manager):
        await manager.create_session("s1")
        for i in range(55):
            await manager.update_session("s1", _msg(f"message {i}"), "text")
        session = await manager.get_session("s1")
        assert session.total_messages == 55
        assert len(session.context.memory_bank) == 50

    @pytest.mark.asyncio
    async def test_important_memories_survive_eviction(self, manager):
        await manager.create_session("s1")
        await manager.update_session("s1", _msg("where is my parcel?"), "text")
        for i in range(60):
            await manager.update_session("s1", _msg(f"statement {i}"), "text")
        session = await manager.get_session("s1")
        contents = [m.content for m in session.context.memory_bank]
        assert "where is my parcel?" in contents
        assert "statement 0" not in contents

    @pytest.mark.asyncio
    async def test_alternating_turns_count_switches(self, manager):
        await manager.create_session("s1")
        for modality in ("text", "voice", "text", "voice"):
            await manager.update_session("s1", _msg("turn", modality), modality)
        session = await manager.get_session("s1")
        assert session.metadata.modality_switches == 3
        assert session.current_modality == "voice"
        assert session.context.conversation_flow.steps() == ["modality_switch"] * 3
        first = session.context.conversation_flow[0]
        assert first.data == {"from": "text", "to": "voice"}
        assert first.modality == "voice"
        assert metrics.counter("session.modality_switches", labels={"to": "voice"}) == 2

    @pytest.mark.asyncio
    async def test_flow_history_is_bounded(self, manager):
        await manager.create_session("s1")
        for i in range(25):
            modality = "voice" if i % 2 == 0 else "text"
            await manager.update_session("s1", _msg("turn", modality), modality)
        session = await manager.get_session("s1")
        assert session.metadata.modality_switches == 25
        assert len(session.context.conversation_flow) == 20

    @pytest.mark.asyncio
    async def test_topic_is_write_once(self, manager):
        await manager.create_session("s1")
        await manager.update_session("s1", _msg("hello there"), "text")
        await manager.update_session("s1", _msg("where is my order"), "text")
        session = await manager.get_session("s1")
        assert session.context.topic == "general"

    @pytest.mark.asyncio
    async def test_topic_from_first_message(self, manager):
        await manager.create_session("s1")
        await manager.update_session("s1", _msg("update my account"), "text")
        await manager.update_session("s1", _msg("and my order"), "text")
        session = await manager.get_session("s1")
        assert session.context.topic == "account_management"

    @pytest.mark.asyncio
    async def test_email_entities_deduplicated(self, manager):
        await manager.create_session("s1")
        await manager.update_session("s1", _msg("mail me at a@x.com"), "text")
        await manager.update_session("s1", _msg("a@x.com or b@y.org", "voice"), "voice")
        session = await manager.get_session("s1")
        entities = session.context.entities
        assert [e.value for e in entities] == ["a@x.com", "b@y.org"]
        assert entities[0].source == "text"
        assert entities[1].source == "voice"


# ── Bridging ────────────────────────────────────────────────


class TestBridging:
    @pytest.mark.asyncio
    async def test_same_modality_returns_recent_items(self, manager):
        await manager.create_session("s1")
        for content in ("one", "two", "three", "four"):
            await manager.update_session("s1", _msg(content), "text")
        context = await manager.bridge_context_for_modality("s1", "text")
        assert context == "four\nthree\ntwo"
        session = await manager.get_session("s1")
        assert len(session.context.conversation_flow) == 0
        assert metrics.counter("session.bridges", labels={"type": "text_to_text"}) == 0

    @pytest.mark.asyncio
    async def test_text_to_voice_records_flow(self, manager):
        await manager.create_session("s1")
        await manager.update_session("s1", _msg("I need a refund"), "text")
        await manager.update_session("s1", _msg("It was damaged"), "text")

        context = await manager.bridge_context_for_modality("s1", "voice")

        assert context.startswith("We were just discussing: It was damaged. I need a refund")
        session = await manager.get_session("s1")
        last = session.context.conversation_flow[-1]
        assert last.step == "context_bridged"
        assert last.modality == "voice"
        assert last.data == {"from": "text", "to": "voice", "bridgeType": "text_to_voice"}
        assert session.current_modality == "text"
        assert metrics.counter("session.bridges", labels={"type": "text_to_voice"}) == 1

    @pytest.mark.asyncio
    async def test_voice_to_text_lists_voice_turns(self, manager):
        await manager.create_session("s1")
        await manager.update_session("s1", _msg("track my parcel", "voice"), "voice")
        context = await manager.bridge_context_for_modality("s1", "text")
        assert context.startswith("Previous voice conversation context:\n1. track my parcel\n")
        session = await manager.get_session("s1")
        assert session.context.conversation_flow[-1].data["bridgeType"] == "voice_to_text"

    @pytest.mark.asyncio
    async def test_bridge_empty_session(self, manager):
        await manager.create_session("s1")
        assert await manager.bridge_context_for_modality("s1", "voice") == ""

    @pytest.mark.asyncio
    async def test_bridge_missing_session_raises(self, manager):
        with pytest.raises(SessionNotFoundError):
            await manager.bridge_context_for_modality("ghost", "voice")


# ── Summary & response time ─────────────────────────────────


class TestSummary:
    @pytest.mark.asyncio
    async def test_summary_format(self, manager):
        await manager.create_session("s1")
        await manager.update_session("s1", _msg("my order is late"), "text")
        await manager.update_session("s1", _msg("any update", "voice"), "voice")
        summary = await manager.get_conversation_summary("s1")
        assert summary == (
            "Topic: order_management\n"
            "Recent conversation:\n"
            "- any update (voice)\n"
            "- my order is late (text)\n"
        )

    @pytest.mark.asyncio
    async def test_summary_limited_to_five(self, manager):
        await manager.create_session("s1")
        for i in range(8):
            await manager.update_session("s1", _msg(f"m{i}"), "text")
        summary = await manager.get_conversation_summary("s1")
        assert summary.count("\n- ") == 5
        assert "- m7 (text)" in summary
        assert "- m2 (text)" not in summary

    @pytest.mark.asyncio
    async def test_summary_missing_session(self, manager):
        assert await manager.get_conversation_summary("ghost") == ""

    @pytest.mark.asyncio
    async def test_summary_new_session(self, manager):
        await manager.create_session("s1")
        assert await manager.get_conversation_summary("s1") == ""

    @pytest.mark.asyncio
    async def test_record_response_time_running_mean(self, manager):
        await manager.create_session("s1")
        await manager.record_response_time("s1", 100.0)
        session = await manager.record_response_time("s1", 200.0)
        assert session.metadata.response_count == 2
        assert session.metadata.average_response_time == pytest.approx(150.0)


# ── Maintenance ─────────────────────────────────────────────


class TestMaintenance:
    @pytest.mark.asyncio
    async def test_list_sessions_filtered(self, manager):
        await manager.create_session("a", user_id="u1")
        await manager.create_session("b", user_id="u2")
        await manager.update_session("b", _msg("hi", "voice"), "voice")

        by_user = await manager.list_sessions(SessionFilter(user_id="u1"))
        assert [s.session_id for s in by_user] == ["a"]
        voice = await manager.list_sessions(SessionFilter(modality="voice"))
        assert [s.session_id for s in voice] == ["b"]
        assert len(await manager.list_sessions()) == 2

    @pytest.mark.asyncio
    async def test_cleanup_expired(self, manager):
        stale = Session(session_id="old", last_activity=time.time() - 7200)
        await manager.storage.create_session("old", stale)
        await manager.create_session("fresh")

        assert await manager.cleanup_expired(max_age=3600) == 1
        assert await manager.get_session("old") is None
        assert await manager.get_session("fresh") is not None

    @pytest.mark.asyncio
    async def test_stats_and_health(self, manager):
        await manager.create_session("a")
        await manager.create_session("b")
        await manager.update_session("b", _msg("hi", "voice"), "voice")
        stats = await manager.get_stats()
        assert stats.total_sessions == 2
        assert stats.modality_distribution == {"text": 1, "voice": 1}
        assert await manager.health_check() is True


# ── Concurrency ─────────────────────────────────────────────


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_same_session_updates_are_serialized(self):
        mgr = SessionManager(storage=YieldingStorage(), serialize_sessions=True)
        await mgr.create_session("s1")
        await asyncio.gather(
            *(mgr.update_session("s1", _msg(f"m{i}"), "text") for i in range(20))
        )
        session = await mgr.get_session("s1")
        assert session.total_messages == 20
        assert len(session.context.memory_bank) == 20

    @pytest.mark.asyncio
    async def test_unserialized_updates_lose_writes(self):
        mgr = SessionManager(storage=YieldingStorage(), serialize_sessions=False)
        await mgr.create_session("s1")
        await asyncio.gather(
            *(mgr.update_session("s1", _msg(f"m{i}"), "text") for i in range(20))
        )
        session = await mgr.get_session("s1")
        assert session.total_messages < 20

    @pytest.mark.asyncio
    async def test_different_sessions_proceed_independently(self):
        mgr = SessionManager(storage=YieldingStorage())
        for sid in ("a", "b", "c"):
            await mgr.create_session(sid)
        await asyncio.gather(
            *(
                mgr.update_session(sid, _msg("hi"), "text")
                for sid in ("a", "b", "c")
                for _ in range(5)
            )
        )
        for sid in ("a", "b", "c"):
            assert (await mgr.get_session(sid)).total_messages == 5
        assert len(mgr._locks) == 0
