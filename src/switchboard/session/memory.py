"""
Bounded per-session memory structures.

MemoryBank — fixed-capacity, importance-ranked store. Keeps the items with
the highest (importance, timestamp); among exact ties the earlier insertion
survives. Backed by a min-heap whose root is always the next eviction
candidate, so an insert past capacity costs O(log n).

FlowHistory — fixed-capacity FIFO of flow states (oldest evicted first).
"""

from __future__ import annotations

import heapq
import itertools
from collections import deque
from typing import TYPE_CHECKING, Iterator

import switchboard.core.config as config_module

if TYPE_CHECKING:
    from switchboard.session.models import FlowState, MemoryItem


class MemoryBank:
    def __init__(self, capacity: int | None = None):
        if capacity is None:
            capacity = config_module.config.session.memory_capacity
        if capacity < 1:
            raise ValueError("MemoryBank capacity must be at least 1")
        self.capacity = capacity
        # Heap entries: (importance, timestamp, -sequence, item)
        # Root = lowest importance, then oldest, then latest inserted.
        self._heap: list[tuple[float, float, int, "MemoryItem"]] = []
        self._sequence = itertools.count()

    def add(self, item: "MemoryItem") -> "MemoryItem | None":
        """Insert an item. Returns the evicted item, if any (may be `item` itself)."""
        entry = (item.importance, item.timestamp, -next(self._sequence), item)
        if len(self._heap) < self.capacity:
            heapq.heappush(self._heap, entry)
            return None
        evicted = heapq.heappushpop(self._heap, entry)
        return evicted[3]

    def items(self) -> list["MemoryItem"]:
        """All retained items in insertion order."""
        return [entry[3] for entry in sorted(self._heap, key=lambda e: -e[2])]

    def ranked(self) -> list["MemoryItem"]:
        """Retained items ordered by (importance desc, timestamp desc)."""
        return [entry[3] for entry in sorted(self._heap, reverse=True, key=lambda e: e[:3])]

    def recent(self, count: int, modality: str | None = None) -> list["MemoryItem"]:
        """The `count` newest items, newest first, optionally of one modality."""
        entries = [
            e for e in self._heap if modality is None or e[3].modality == modality
        ]
        # Newer timestamp first; a timestamp tie keeps insertion order
        entries.sort(key=lambda e: (-e[1], -e[2]))
        return [e[3] for e in entries[:count]]

    def __len__(self) -> int:
        return len(self._heap)

    def __iter__(self) -> Iterator["MemoryItem"]:
        return iter(self.items())

    def __repr__(self) -> str:
        return f"MemoryBank(size={len(self)}, capacity={self.capacity})"


class FlowHistory:
    def __init__(self, capacity: int | None = None):
        if capacity is None:
            capacity = config_module.config.session.flow_capacity
        self.capacity = capacity
        self._states: deque["FlowState"] = deque(maxlen=capacity)

    def append(self, state: "FlowState") -> None:
        self._states.append(state)

    def steps(self) -> list[str]:
        return [s.step for s in self._states]

    def __len__(self) -> int:
        return len(self._states)

    def __iter__(self) -> Iterator["FlowState"]:
        return iter(self._states)

    def __getitem__(self, index: int) -> "FlowState":
        return self._states[index]

    def __repr__(self) -> str:
        return f"FlowHistory(size={len(self)}, capacity={self.capacity})"
