"""
Modality Router — normalizes inbound turns and formats outbound replies.

Inbound:  raw payload → detect_modality() → process_message() → Message
          (voice goes through the STT collaborator; text is trimmed)
Outbound: reply text → prepare_response() → Message with voice metadata
          from the TTS collaborator (or a words-per-minute estimate)

Providers are injected and can be swapped at runtime. When a provider is
missing or fails, the router either raises or, with mock fallback enabled,
substitutes synthetic output. Each substitution logs a warning and bumps the
router.mock_fallbacks counter; get_capabilities()["using_mocks"] reports
whether fallback is in play.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import switchboard.core.config as config_module
from switchboard.core.errors import CollaboratorUnavailableError
from switchboard.core.logging import StageTimer
from switchboard.core.metrics import metrics
from switchboard.modality.mock import (
    estimate_audio_duration,
    estimate_speech_duration,
    mock_transcription,
)
from switchboard.providers.base import (
    AUDIO_FIELDS,
    BINARY_TYPES,
    STTProvider,
    TranscriptionResult,
    TTSProvider,
    payload_field,
)
from switchboard.session.models import (
    ApiCall,
    Message,
    MessageMetadata,
    MessageRole,
    Modality,
    PerformanceMetadata,
    VoiceMetadata,
)

logger = logging.getLogger(__name__)

STT_SERVICE = "speech-to-text"
TTS_SERVICE = "text-to-speech"
MOCK_ENDPOINT = "mock"
DEFAULT_STT_CONFIDENCE = 0.95


class ModalityRouter:
    def __init__(
        self,
        stt: STTProvider | None = None,
        tts: TTSProvider | None = None,
        use_mock_when_unavailable: bool | None = None,
        default_stt_options: dict[str, Any] | None = None,
        default_tts_options: dict[str, Any] | None = None,
    ) -> None:
        cfg = config_module.config.modality
        if use_mock_when_unavailable is None:
            use_mock_when_unavailable = cfg.use_mock_when_unavailable
        self._stt = stt
        self._tts = tts
        self.use_mock_when_unavailable = use_mock_when_unavailable
        self._default_stt_options: dict[str, Any] = dict(default_stt_options or {})
        self._default_tts_options: dict[str, Any] = dict(default_tts_options or {})
        self._language = cfg.default_language
        self._words_per_minute = cfg.words_per_minute
        # Set while process_message runs. Not a lock: concurrent calls overlap freely.
        self._is_processing = False

    @classmethod
    def from_config(cls) -> ModalityRouter:
        """Build a router with the providers named in config."""
        from switchboard.providers.registry import get_stt_provider, get_tts_provider

        return cls(stt=get_stt_provider(), tts=get_tts_provider())

    async def start(self) -> None:
        for provider in (self._stt, self._tts):
            if provider is not None:
                await provider.start()

    async def stop(self) -> None:
        for provider in (self._stt, self._tts):
            if provider is not None:
                await provider.stop()

    # ─── Classification ──────────────────────────────────────────

    def detect_modality(self, payload: Any) -> str:
        """Voice if the payload is structurally audio; text otherwise."""
        if payload is None:
            return Modality.TEXT.value
        if isinstance(payload, BINARY_TYPES):
            return Modality.VOICE.value
        if isinstance(payload, str):
            return Modality.TEXT.value

        if payload_field(payload, "type") == "audio":
            return Modality.VOICE.value
        mime_type = payload_field(payload, "mime_type") or payload_field(
            payload, "mimeType"
        )
        if isinstance(mime_type, str) and mime_type.startswith("audio/"):
            return Modality.VOICE.value
        # Presence, not truthiness: an empty buffer is still audio
        if any(payload_field(payload, name) is not None for name in AUDIO_FIELDS):
            return Modality.VOICE.value
        return Modality.TEXT.value

    # ─── Inbound ─────────────────────────────────────────────────

    async def process_message(
        self, payload: Any, modality: str, session_id: str
    ) -> Message:
        """Normalize one inbound turn into a Message."""
        self._is_processing = True
        try:
            if Modality(modality) is Modality.VOICE:
                return await self._process_voice(payload, session_id)
            return self._process_text(payload)
        finally:
            self._is_processing = False

    async def _process_voice(self, payload: Any, session_id: str) -> Message:
        timer = StageTimer()
        result, endpoint = await self._transcribe(payload, self._default_stt_options)
        timer.mark("stt")
        elapsed_ms = timer.elapsed_ms("stt") or 0.0
        metrics.observe("router.stt_latency_ms", elapsed_ms)

        voice = VoiceMetadata(
            duration=result.duration or estimate_audio_duration(payload),
            language=result.language or self._language,
            confidence=(
                result.confidence
                if result.confidence is not None
                else DEFAULT_STT_CONFIDENCE
            ),
        )
        logger.info(
            "Transcribed voice turn via %s (%.0fms)",
            endpoint,
            elapsed_ms,
            extra={"session_id": session_id, "modality": Modality.VOICE.value},
        )
        return Message(
            role=MessageRole.USER.value,
            content=result.text,
            modality=Modality.VOICE.value,
            metadata=MessageMetadata(
                voice=voice,
                performance=PerformanceMetadata(
                    processing_time=timer.total_ms(),
                    api_calls=(
                        ApiCall(
                            service=STT_SERVICE,
                            endpoint=endpoint,
                            duration=elapsed_ms,
                            status=200,
                        ),
                    ),
                ),
            ),
        )

    def _process_text(self, payload: Any) -> Message:
        if isinstance(payload, Mapping):
            text = payload.get("text")
            payload = text if text is not None else payload.get("content")
        return Message(
            role=MessageRole.USER.value,
            content="" if payload is None else str(payload).strip(),
            modality=Modality.TEXT.value,
            metadata=MessageMetadata(
                performance=PerformanceMetadata(processing_time=1)
            ),
        )

    async def _transcribe(
        self, payload: Any, options: dict[str, Any]
    ) -> tuple[TranscriptionResult, str]:
        if self._stt is not None:
            try:
                result = await self._stt.transcribe(payload, dict(options))
                return result, self._stt.__class__.__name__
            except Exception as e:
                if not self.use_mock_when_unavailable:
                    raise
                logger.warning(f"Speech-to-text failed, using mock transcription: {e}")
        elif self.use_mock_when_unavailable:
            logger.warning(
                "No speech-to-text provider configured. Using mock transcription."
            )
        else:
            raise CollaboratorUnavailableError(
                STT_SERVICE,
                "No speech-to-text provider configured and mocks are disabled",
            )

        metrics.inc("router.mock_fallbacks", labels={"service": STT_SERVICE})
        return mock_transcription(payload, self._language), MOCK_ENDPOINT

    # ─── Outbound ────────────────────────────────────────────────

    async def prepare_response(
        self, content: str, target_modality: str, session_id: str
    ) -> Message:
        """Wrap a reply for the modality it will be delivered in."""
        if Modality(target_modality) is not Modality.VOICE:
            return Message(
                role=MessageRole.ASSISTANT.value,
                content=content,
                modality=Modality.TEXT.value,
                metadata=MessageMetadata(
                    performance=PerformanceMetadata(processing_time=1)
                ),
            )

        timer = StageTimer()
        voice, endpoint = await self._voice_metadata(content)
        timer.mark("tts")
        elapsed_ms = timer.elapsed_ms("tts") or 0.0
        api_calls: tuple[ApiCall, ...] = ()
        if endpoint != MOCK_ENDPOINT:
            api_calls = (
                ApiCall(
                    service=TTS_SERVICE, endpoint=endpoint, duration=elapsed_ms, status=200
                ),
            )
        logger.debug(
            "Prepared voice reply (%.1fs audio)",
            voice.duration,
            extra={"session_id": session_id, "modality": Modality.VOICE.value},
        )
        return Message(
            role=MessageRole.ASSISTANT.value,
            content=content,
            modality=Modality.VOICE.value,
            metadata=MessageMetadata(
                voice=voice,
                performance=PerformanceMetadata(
                    processing_time=timer.total_ms(), api_calls=api_calls
                ),
            ),
        )

    async def _voice_metadata(self, content: str) -> tuple[VoiceMetadata, str]:
        estimate = estimate_speech_duration(content, self._words_per_minute)
        if self._tts is not None:
            try:
                result = await self._tts.synthesize(
                    content, dict(self._default_tts_options)
                )
                voice = VoiceMetadata(
                    language=self._language,
                    confidence=1.0,
                    duration=result.duration or estimate,
                )
                return voice, self._tts.__class__.__name__
            except Exception as e:
                logger.error(f"Text-to-speech failed: {e}", exc_info=True)
                if not self.use_mock_when_unavailable:
                    raise
        elif self.use_mock_when_unavailable:
            logger.warning(
                "No text-to-speech provider configured. Using estimated duration."
            )
        else:
            raise CollaboratorUnavailableError(
                TTS_SERVICE,
                "No text-to-speech provider configured and mocks are disabled",
            )

        metrics.inc("router.mock_fallbacks", labels={"service": TTS_SERVICE})
        return (
            VoiceMetadata(language=self._language, confidence=1.0, duration=estimate),
            MOCK_ENDPOINT,
        )

    # ─── Direct provider access ──────────────────────────────────

    async def transcribe_with_options(
        self, audio: Any, options: dict[str, Any] | None = None
    ) -> TranscriptionResult:
        """Transcribe with per-call options layered over the defaults."""
        merged = {**self._default_stt_options, **(options or {})}
        result, _ = await self._transcribe(audio, merged)
        return result

    async def synthesize_with_options(
        self, text: str, options: dict[str, Any] | None = None
    ):
        """Synthesize with per-call options layered over the defaults. No mock path."""
        if self._tts is None:
            raise CollaboratorUnavailableError(
                TTS_SERVICE, "No text-to-speech provider configured"
            )
        return await self._tts.synthesize(
            text, {**self._default_tts_options, **(options or {})}
        )

    # ─── Configuration & introspection ───────────────────────────

    def set_speech_to_text_provider(self, provider: STTProvider | None) -> None:
        self._stt = provider

    def set_text_to_speech_provider(self, provider: TTSProvider | None) -> None:
        self._tts = provider

    def set_default_stt_options(self, options: dict[str, Any]) -> None:
        self._default_stt_options.update(options)

    def set_default_tts_options(self, options: dict[str, Any]) -> None:
        self._default_tts_options.update(options)

    @property
    def is_processing(self) -> bool:
        return self._is_processing

    def has_speech_to_text(self) -> bool:
        return self._stt is not None

    def has_text_to_speech(self) -> bool:
        return self._tts is not None

    def is_modality_supported(self, modality: str) -> bool:
        if modality == Modality.TEXT.value:
            return True
        if modality == Modality.VOICE.value:
            return self.has_speech_to_text() or self.use_mock_when_unavailable
        return False

    def get_capabilities(self) -> dict[str, bool]:
        return {
            "voice": self.is_modality_supported(Modality.VOICE.value),
            "text": True,
            "speech_to_text": self.has_speech_to_text(),
            "text_to_speech": self.has_text_to_speech(),
            "using_mocks": self.use_mock_when_unavailable
            and not (self.has_speech_to_text() and self.has_text_to_speech()),
        }
