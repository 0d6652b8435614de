"""
Deepgram STT Provider — batch transcription of complete utterances.

The modality router hands over whole voice turns, so only the prerecorded
endpoint is used; no live socket.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from deepgram import AsyncDeepgramClient

import switchboard.core.config as config_module
from switchboard.core.metrics import metrics
from switchboard.providers.base import (
    STTProvider,
    TranscriptionResult,
    TranscriptSegment,
    audio_bytes_of,
)

logger = logging.getLogger(__name__)


class DeepgramSTTProvider(STTProvider):
    def __init__(self):
        self.client: AsyncDeepgramClient | None = None

    async def start(self) -> None:
        if self.client:
            return
        cfg = config_module.config.stt
        if not cfg.api_key:
            raise ValueError("DEEPGRAM_API_KEY not set")
        self.client = AsyncDeepgramClient(api_key=cfg.api_key)
        logger.info("Deepgram STT ready (model=%s)", cfg.model)

    async def stop(self) -> None:
        self.client = None

    async def transcribe(
        self, audio: Any, options: dict[str, Any] | None = None
    ) -> TranscriptionResult:
        if not self.client:
            raise RuntimeError("Deepgram STT not started")

        cfg = config_module.config.stt
        options = options or {}
        started = time.time()
        metrics.inc("provider.stt.requests", labels={"provider": "deepgram"})

        try:
            response = await self.client.listen.v1.media.transcribe_file(
                request=audio_bytes_of(audio),
                model=options.get("model", cfg.model),
                language=options.get("language", cfg.language),
                smart_format=True,
            )
        except Exception:
            metrics.inc("provider.stt.errors", labels={"provider": "deepgram"})
            raise

        metrics.observe(
            "provider.stt.latency_ms",
            (time.time() - started) * 1000,
            labels={"provider": "deepgram"},
        )

        channel = response.results.channels[0]
        alternative = channel.alternatives[0]
        words = getattr(alternative, "words", None) or []
        return TranscriptionResult(
            text=(alternative.transcript or "").strip(),
            confidence=getattr(alternative, "confidence", None),
            language=getattr(channel, "detected_language", None)
            or options.get("language", cfg.language),
            duration=getattr(response.metadata, "duration", None),
            segments=[
                TranscriptSegment(
                    start=w.start, end=w.end, text=w.word, confidence=w.confidence
                )
                for w in words
            ],
        )

    async def health_check(self) -> dict:
        return {
            "provider": "deepgram",
            "model": config_module.config.stt.model,
            "status": "ready" if self.client else "not_started",
        }
