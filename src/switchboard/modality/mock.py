"""
Mock speech output and duration estimates.

Used when no speech provider is configured (or one fails) and mock fallback
is enabled. Deterministic: the same payload always yields the same result.
"""

from __future__ import annotations

from typing import Any

from switchboard.providers.base import (
    BINARY_TYPES,
    TranscriptionResult,
    audio_bytes_of,
    payload_field,
)

MOCK_TRANSCRIPT = "I'd like to speak with customer service about my order."
MOCK_CONFIDENCE = 0.85

# 16kHz, 16-bit mono PCM
BYTES_PER_SECOND = 32000
MIN_AUDIO_SECONDS = 0.5
DEFAULT_AUDIO_SECONDS = 3.5


def mock_transcription(audio: Any, language: str = "en-US") -> TranscriptionResult:
    # A string payload is treated as an already-spoken transcript
    if isinstance(audio, str):
        return TranscriptionResult(text=audio, confidence=1.0, language=language)
    return TranscriptionResult(
        text=MOCK_TRANSCRIPT,
        confidence=MOCK_CONFIDENCE,
        language=language,
        duration=estimate_audio_duration(audio),
    )


def estimate_audio_duration(audio: Any) -> float:
    """Seconds of audio: explicit duration metadata first, then byte length."""
    if audio is None or isinstance(audio, str):
        return DEFAULT_AUDIO_SECONDS

    if not isinstance(audio, BINARY_TYPES):
        duration = payload_field(audio, "duration")
        if not duration:
            duration = payload_field(payload_field(audio, "metadata"), "duration")
        if duration:
            return float(duration)
        try:
            audio = audio_bytes_of(audio)
        except TypeError:
            return DEFAULT_AUDIO_SECONDS

    if len(audio):
        return max(MIN_AUDIO_SECONDS, len(audio) / BYTES_PER_SECOND)

    return DEFAULT_AUDIO_SECONDS


def estimate_speech_duration(text: str, words_per_minute: int = 150) -> float:
    """Seconds needed to speak `text` at a fixed speaking rate (minimum 1s)."""
    words = len(text.split())
    return max(1.0, words / (words_per_minute / 60))
