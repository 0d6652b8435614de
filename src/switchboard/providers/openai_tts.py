"""
OpenAI TTS Provider — text-to-speech synthesis.

Duration is computed exactly for PCM (24kHz, 16-bit mono) and left to the
router's words-per-minute estimate for compressed formats.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from openai import AsyncOpenAI

import switchboard.core.config as config_module
from switchboard.core.metrics import metrics
from switchboard.providers.base import SynthesisResult, TTSProvider

logger = logging.getLogger(__name__)

PCM_SAMPLE_RATE = 24000
PCM_BYTES_PER_SECOND = PCM_SAMPLE_RATE * 2


class OpenAITTSProvider(TTSProvider):
    def __init__(self):
        self.client: AsyncOpenAI | None = None

    async def start(self) -> None:
        if self.client:
            return
        cfg = config_module.config.tts
        self.client = AsyncOpenAI(api_key=cfg.api_key or None)
        logger.info(f"OpenAI TTS ready (voice={cfg.voice})")

    async def stop(self) -> None:
        self.client = None

    async def synthesize(
        self, text: str, options: dict[str, Any] | None = None
    ) -> SynthesisResult:
        if not self.client:
            raise RuntimeError("OpenAI TTS not started")

        cfg = config_module.config.tts
        options = options or {}
        response_format = options.get("format", cfg.response_format)
        started = time.time()
        metrics.inc("provider.tts.requests", labels={"provider": "openai"})

        try:
            response = await self.client.audio.speech.create(
                model=options.get("model", cfg.model),
                voice=options.get("voice", cfg.voice),
                input=text,
                speed=options.get("speed", 1.0),
                response_format=response_format,
            )
            audio = response.content
        except Exception:
            metrics.inc("provider.tts.errors", labels={"provider": "openai"})
            raise

        metrics.observe(
            "provider.tts.latency_ms",
            (time.time() - started) * 1000,
            labels={"provider": "openai"},
        )

        if response_format == "pcm":
            return SynthesisResult(
                audio_data=audio,
                duration=len(audio) / PCM_BYTES_PER_SECOND,
                format="pcm",
                sample_rate=PCM_SAMPLE_RATE,
            )
        return SynthesisResult(audio_data=audio, format=response_format)

    async def health_check(self) -> dict:
        cfg = config_module.config.tts
        return {
            "provider": "openai",
            "model": cfg.model,
            "voice": cfg.voice,
            "status": "ready" if self.client else "not_started",
        }
