"""
Switchboard Metrics — in-process counters and latency windows.

No external dependencies; hosts export snapshot() however they like.

Usage:
    from switchboard.core.metrics import metrics

    metrics.inc("session.modality_switches", labels={"to": "voice"})
    metrics.observe("router.stt_latency_ms", 342.1)

    metrics.counter("session.bridges", labels={"type": "text_to_voice"})  # -> int
    metrics.summary("router.stt_latency_ms")  # -> {"count": .., "p50": .., ...}
"""

from __future__ import annotations

import time
from collections import Counter, deque


def _summarize(samples: deque[float]) -> dict[str, float]:
    ordered = sorted(samples)
    n = len(ordered)
    return {
        "count": n,
        "mean": sum(ordered) / n,
        "min": ordered[0],
        "max": ordered[-1],
        "p50": ordered[n // 2],
        "p95": ordered[min(int(n * 0.95), n - 1)],
    }


class MetricsCollector:
    """Labelled counters plus bounded observation windows."""

    WINDOW = 1000

    def __init__(self) -> None:
        self._counters: Counter[str] = Counter()
        self._windows: dict[str, deque[float]] = {}
        self._started_at = time.time()

    # ── Counters ──────────────────────────────────────────────────

    def inc(self, name: str, value: int = 1, labels: dict | None = None) -> None:
        self._counters[self._key(name, labels)] += value

    def counter(self, name: str, labels: dict | None = None) -> int:
        return self._counters[self._key(name, labels)]

    # ── Observations ──────────────────────────────────────────────

    def observe(self, name: str, value: float, labels: dict | None = None) -> None:
        """Record one sample; the oldest drops once WINDOW samples are held."""
        key = self._key(name, labels)
        window = self._windows.get(key)
        if window is None:
            window = self._windows[key] = deque(maxlen=self.WINDOW)
        window.append(value)

    def summary(self, name: str, labels: dict | None = None) -> dict[str, float] | None:
        window = self._windows.get(self._key(name, labels))
        return _summarize(window) if window else None

    # ── Export ────────────────────────────────────────────────────

    def snapshot(self) -> dict:
        return {
            "uptime_seconds": round(time.time() - self._started_at, 1),
            "counters": dict(self._counters),
            "observations": {
                key: _summarize(window)
                for key, window in self._windows.items()
                if window
            },
        }

    def reset(self) -> None:
        self._counters.clear()
        self._windows.clear()

    @staticmethod
    def _key(name: str, labels: dict | None) -> str:
        # session.bridges{type=text_to_voice}
        if not labels:
            return name
        rendered = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{rendered}}}"


# Process-wide collector
metrics = MetricsCollector()
