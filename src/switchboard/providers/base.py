"""
Provider base classes — the speech boundaries.

These abstract classes define what it means to be an STT or TTS provider.
The modality router never picks a vendor itself; it is handed objects that
honor these contracts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class TranscriptSegment:
    start: float
    end: float
    text: str
    confidence: float | None = None


@dataclass(frozen=True)
class TranscriptionResult:
    text: str
    confidence: float | None = None
    language: str | None = None
    duration: float | None = None  # seconds
    segments: list[TranscriptSegment] = field(default_factory=list)


@dataclass(frozen=True)
class SynthesisResult:
    audio_data: bytes
    duration: float | None = None  # seconds
    format: str | None = None
    sample_rate: int | None = None


class STTProvider(ABC):
    """Speech-to-text provider interface."""

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...

    @abstractmethod
    async def transcribe(
        self, audio: Any, options: dict[str, Any] | None = None
    ) -> TranscriptionResult:
        """Transcribe a complete audio payload. Raises on provider failure."""
        ...

    async def health_check(self) -> dict:
        return {"provider": self.__class__.__name__, "status": "unknown"}


class TTSProvider(ABC):
    """Text-to-speech provider interface."""

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...

    @abstractmethod
    async def synthesize(
        self, text: str, options: dict[str, Any] | None = None
    ) -> SynthesisResult:
        ...

    async def health_check(self) -> dict:
        return {"provider": self.__class__.__name__, "status": "unknown"}


AUDIO_FIELDS = ("audio_data", "audioData", "wav", "mp3", "webm", "blob")
BINARY_TYPES = (bytes, bytearray, memoryview)


def payload_field(payload: Any, key: str) -> Any:
    """Read `key` from a mapping payload, or the attribute of that name otherwise."""
    if isinstance(payload, Mapping):
        return payload.get(key)
    return getattr(payload, key, None)


def audio_bytes_of(audio: Any) -> bytes:
    """Pull raw bytes out of an audio payload (bytes-like, or a mapping/object carrying them)."""
    if isinstance(audio, BINARY_TYPES):
        return bytes(audio)
    for key in AUDIO_FIELDS:
        value = payload_field(audio, key)
        if isinstance(value, BINARY_TYPES):
            return bytes(value)
    raise TypeError(f"No audio bytes in payload of type {type(audio).__name__}")
