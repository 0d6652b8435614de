"""
Speech providers — abstract STT/TTS interfaces plus reference adapters.

Concrete implementations (Deepgram, OpenAI) live alongside. Swap providers
by changing config, or inject any object honoring the interface.
"""

from switchboard.providers.base import (
    STTProvider,
    SynthesisResult,
    TranscriptionResult,
    TTSProvider,
)
from switchboard.providers.registry import get_stt_provider, get_tts_provider

__all__ = [
    "STTProvider",
    "TTSProvider",
    "TranscriptionResult",
    "SynthesisResult",
    "get_stt_provider",
    "get_tts_provider",
]
