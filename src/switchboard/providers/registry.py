"""
Provider Registry — factory functions to get the configured speech providers.

"none" means no provider: the router then either uses mocks or refuses voice.
Add a new provider? Just add an elif.
"""

from __future__ import annotations

import switchboard.core.config as config_module
from switchboard.providers.base import STTProvider, TTSProvider


def get_stt_provider() -> STTProvider | None:
    provider = config_module.config.stt.provider.lower()
    if provider == "none":
        return None
    elif provider == "deepgram":
        from switchboard.providers.deepgram_stt import DeepgramSTTProvider

        return DeepgramSTTProvider()
    raise ValueError(f"Unknown STT provider: {provider}")


def get_tts_provider() -> TTSProvider | None:
    provider = config_module.config.tts.provider.lower()
    if provider == "none":
        return None
    elif provider == "openai":
        from switchboard.providers.openai_tts import OpenAITTSProvider

        return OpenAITTSProvider()
    raise ValueError(f"Unknown TTS provider: {provider}")
