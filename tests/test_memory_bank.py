"""Tests for the bounded memory bank and flow history."""

from __future__ import annotations

import pytest

from switchboard.session.memory import FlowHistory, MemoryBank
from switchboard.session.models import FlowState, MemoryItem


def _item(id: str, importance: float, timestamp: float, modality: str = "text"):
    return MemoryItem(
        id=id,
        content=f"content {id}",
        importance=importance,
        timestamp=timestamp,
        modality=modality,
    )


# ── MemoryBank ──────────────────────────────────────────────


class TestMemoryBank:
    def test_rejects_zero_capacity(self):
        with pytest.raises(ValueError):
            MemoryBank(capacity=0)

    def test_default_capacity_from_config(self):
        assert MemoryBank().capacity == 50

    def test_add_below_capacity_evicts_nothing(self):
        bank = MemoryBank(capacity=3)
        assert bank.add(_item("a", 0.5, 1.0)) is None
        assert bank.add(_item("b", 0.5, 2.0)) is None
        assert len(bank) == 2

    def test_never_exceeds_capacity(self):
        bank = MemoryBank(capacity=50)
        for i in range(55):
            bank.add(_item(f"m{i}", 0.5, float(i)))
        assert len(bank) == 50

    def test_evicts_lowest_importance_first(self):
        bank = MemoryBank(capacity=2)
        bank.add(_item("low", 0.2, 1.0))
        bank.add(_item("high", 0.8, 2.0))
        evicted = bank.add(_item("mid", 0.5, 3.0))
        assert evicted.id == "low"
        assert {m.id for m in bank} == {"high", "mid"}

    def test_equal_importance_evicts_oldest(self):
        bank = MemoryBank(capacity=2)
        bank.add(_item("old", 0.5, 1.0))
        bank.add(_item("newer", 0.5, 2.0))
        evicted = bank.add(_item("newest", 0.5, 3.0))
        assert evicted.id == "old"

    def test_incoming_item_rejected_when_it_ranks_lowest(self):
        bank = MemoryBank(capacity=2)
        bank.add(_item("a", 0.8, 2.0))
        bank.add(_item("b", 0.8, 3.0))
        evicted = bank.add(_item("c", 0.3, 4.0))
        assert evicted.id == "c"
        assert [m.id for m in bank] == ["a", "b"]

    def test_full_tie_keeps_earlier_insertion(self):
        bank = MemoryBank(capacity=1)
        bank.add(_item("first", 0.5, 1.0))
        evicted = bank.add(_item("second", 0.5, 1.0))
        assert evicted.id == "second"
        assert [m.id for m in bank] == ["first"]

    def test_keeps_top_items_by_importance_then_recency(self):
        bank = MemoryBank(capacity=3)
        items = [
            _item("q1", 0.8, 1.0),
            _item("s1", 0.5, 2.0),
            _item("s2", 0.5, 3.0),
            _item("q2", 0.8, 4.0),
            _item("s3", 0.5, 5.0),
        ]
        for item in items:
            bank.add(item)
        assert [m.id for m in bank.ranked()] == ["q2", "q1", "s3"]

    def test_items_preserve_insertion_order(self):
        bank = MemoryBank(capacity=5)
        for i, ts in enumerate([5.0, 1.0, 3.0]):
            bank.add(_item(f"m{i}", 0.5, ts))
        assert [m.id for m in bank.items()] == ["m0", "m1", "m2"]

    def test_recent_is_newest_first(self):
        bank = MemoryBank(capacity=10)
        for i in range(5):
            bank.add(_item(f"m{i}", 0.5, float(i)))
        assert [m.id for m in bank.recent(3)] == ["m4", "m3", "m2"]

    def test_recent_filters_by_modality(self):
        bank = MemoryBank(capacity=10)
        bank.add(_item("t1", 0.5, 1.0, "text"))
        bank.add(_item("v1", 0.5, 2.0, "voice"))
        bank.add(_item("t2", 0.5, 3.0, "text"))
        assert [m.id for m in bank.recent(5, modality="voice")] == ["v1"]
        assert [m.id for m in bank.recent(5, modality="text")] == ["t2", "t1"]

    def test_recent_timestamp_tie_keeps_insertion_order(self):



# ── FlowHistory ─────────────────────────────────────────────


class TestFlowHistory:
    def test_fifo_eviction(self):
        flow = FlowHistory(capacity=20)
        for i in range(25):
            flow.append(FlowState(step=f"step{i}", modality="text"))
        assert len(flow) == 20
        assert flow[0].step == "step5"
        assert flow[-1].step == "step24"

    def test_steps(self):
        flow = FlowHistory(capacity=3)
        flow.append(FlowState(step="modality_switch", modality="voice"))
        flow.append(FlowState(step="context_bridged", modality="text"))
        assert flow.steps() == ["modality_switch", "context_bridged"]
