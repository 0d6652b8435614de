"""
Switchboard Logging — readable dev output, JSON lines for production.

Library modules only ever call logging.getLogger(__name__). Applications
embedding switchboard call setup_logging() once at startup.

Structured extras (pass via logger.info(..., extra={...})):
    session_id, user_id, modality, bridge_type, duration_ms, status

In text mode, session_id and modality are rendered as a short tag after the
logger name so interleaved sessions stay distinguishable.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import time
from datetime import datetime, timezone
from typing import TextIO

RESET = "\033[0m"
DIM = "\033[2m"

LEVEL_COLORS = {
    "DEBUG": "\033[36m",  # Cyan
    "INFO": "\033[32m",  # Green
    "WARNING": "\033[33m",  # Yellow
    "ERROR": "\033[31m",  # Red
    "CRITICAL": "\033[1;31m",  # Bold red
}

MODALITY_COLORS = {
    "voice": "\033[35m",  # Magenta
    "text": "\033[34m",  # Blue
}

STRUCTURED_FIELDS = (
    "session_id",
    "user_id",
    "modality",
    "bridge_type",
    "duration_ms",
    "status",
)

NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "openai",
    "openai._base_client",
    "deepgram",
    "aiosqlite",
)


class ColorFormatter(logging.Formatter):
    """Terminal formatter: `12:00:01 [switchboard.session.manager] INFO (s1/voice): msg`."""

    def __init__(self, use_color: bool = True):
        super().__init__(datefmt="%H:%M:%S")
        self.use_color = use_color

    def _paint(self, text: str, color: str) -> str:
        return f"{color}{text}{RESET}" if self.use_color and color else text

    def format(self, record: logging.LogRecord) -> str:
        level = self._paint(record.levelname, LEVEL_COLORS.get(record.levelname, ""))
        name = self._paint(f"[{record.name}]", DIM)

        tag_parts = []
        session_id = getattr(record, "session_id", None)
        if session_id:
            tag_parts.append(str(session_id))
        modality = getattr(record, "modality", None)
        if modality:
            tag_parts.append(self._paint(str(modality), MODALITY_COLORS.get(modality, "")))
        tag = f" ({'/'.join(tag_parts)})" if tag_parts else ""

        line = f"{self.formatTime(record, self.datefmt)} {name} {level}{tag}: {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class StructuredFormatter(logging.Formatter):
    """One JSON object per line; structured extras land at the top level.

    Enable with SWITCHBOARD_LOG_FORMAT=json.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        entry.update(
            {
                key: getattr(record, key)
                for key in STRUCTURED_FIELDS
                if getattr(record, key, None) is not None
            }
        )
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class StageTimer:
    """Wall-clock timing across the stages of one turn.

    Usage:
        timer = StageTimer()
        result = await stt.transcribe(...)
        timer.mark("stt")
        timer.elapsed_ms("stt")  # -> 123.4
        timer.summary()          # -> "stt: 123ms | total: 125ms"
    """

    def __init__(self):
        self._start = time.monotonic()
        self._last = self._start
        self._stages: dict[str, float] = {}

    def mark(self, stage: str) -> None:
        now = time.monotonic()
        self._stages[stage] = (now - self._last) * 1000
        self._last = now

    def elapsed_ms(self, stage: str) -> float | None:
        """Milliseconds spent between the previous mark (or start) and `stage`."""
        return self._stages.get(stage)

    def total_ms(self) -> float:
        return (time.monotonic() - self._start) * 1000

    def summary(self) -> str:
        parts = [f"{stage}: {ms:.0f}ms" for stage, ms in self._stages.items()]
        parts.append(f"total: {self.total_ms():.0f}ms")
        return " | ".join(parts)


def _should_use_color(stream: TextIO) -> bool:
    setting = os.getenv("SWITCHBOARD_LOG_COLOR", "auto").lower()
    if setting in ("true", "false"):
        return setting == "true"
    return hasattr(stream, "isatty") and stream.isatty()


def setup_logging(
    level: str | None = None,
    log_format: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Install a single root handler.

    Arguments override the environment:
        SWITCHBOARD_LOG_LEVEL  — DEBUG / INFO / WARNING / ERROR (default: INFO)
        SWITCHBOARD_LOG_COLOR  — true / false / auto (default: auto)
        SWITCHBOARD_LOG_FORMAT — text / json (default: text)
    """
    level_name = (level or os.getenv("SWITCHBOARD_LOG_LEVEL", "INFO")).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)
    log_format = (log_format or os.getenv("SWITCHBOARD_LOG_FORMAT", "text")).lower()
    stream = stream or sys.stdout

    if log_format == "json":
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = ColorFormatter(use_color=_should_use_color(stream))

    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("switchboard").debug(
        "Logging configured (level=%s, format=%s)", level_name, log_format
    )
