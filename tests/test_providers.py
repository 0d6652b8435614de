"""Tests for speech provider interfaces, adapters and the registry."""

from __future__ import annotations

import dataclasses
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

import switchboard.core.config as config_module
from switchboard.providers.base import STTProvider, TTSProvider, audio_bytes_of
from switchboard.providers.registry import get_stt_provider, get_tts_provider


def _with(monkeypatch, **sections):
    monkeypatch.setattr(
        config_module,
        "config",
        dataclasses.replace(config_module.config, **sections),
    )


# ── Interfaces ──────────────────────────────────────────────


def test_stt_provider_is_abstract():
    with pytest.raises(TypeError):
        STTProvider()


def test_tts_provider_is_abstract():
    with pytest.raises(TypeError):
        TTSProvider()


def test_audio_bytes_of():
    assert audio_bytes_of(b"ab") == b"ab"
    assert audio_bytes_of(bytearray(b"ab")) == b"ab"
    assert audio_bytes_of({"audioData": b"cd"}) == b"cd"
    assert audio_bytes_of(SimpleNamespace(wav=b"ef")) == b"ef"
    with pytest.raises(TypeError):
        audio_bytes_of("not audio")


# ── Registry ────────────────────────────────────────────────


def test_registry_none_by_default():
    assert get_stt_provider() is None
    assert get_tts_provider() is None


def test_registry_unknown_provider(monkeypatch):
    _with(
        monkeypatch,
        stt=config_module.STTConfig(provider="whisper"),
        tts=config_module.TTSConfig(provider="polly"),
    )
    with pytest.raises(ValueError, match="Unknown STT provider"):
        get_stt_provider()
    with pytest.raises(ValueError, match="Unknown TTS provider"):
        get_tts_provider()


def test_registry_builds_vendor_adapters(monkeypatch):
    from switchboard.providers.deepgram_stt import DeepgramSTTProvider
    from switchboard.providers.openai_tts import OpenAITTSProvider

    _with(
        monkeypatch,
        stt=config_module.STTConfig(provider="deepgram"),
        tts=config_module.TTSConfig(provider="OpenAI"),
    )
    assert isinstance(get_stt_provider(), DeepgramSTTProvider)
    assert isinstance(get_tts_provider(), OpenAITTSProvider)


# ── Deepgram ────────────────────────────────────────────────


class TestDeepgramSTT:
    @pytest.mark.asyncio
    async def test_start_requires_api_key(self, monkeypatch):
        from switchboard.providers.deepgram_stt import DeepgramSTTProvider

        _with(monkeypatch, stt=config_module.STTConfig(provider="deepgram", api_key=""))
        with pytest.raises(ValueError, match="DEEPGRAM_API_KEY"):
            await DeepgramSTTProvider().start()

    @pytest.mark.asyncio
    async def test_transcribe_before_start(self):
        from switchboard.providers.deepgram_stt import DeepgramSTTProvider

        with pytest.raises(RuntimeError):
            await DeepgramSTTProvider().transcribe(b"\x00")

    @pytest.mark.asyncio
    async def test_transcribe_maps_response(self):
        from switchboard.providers.deepgram_stt import DeepgramSTTProvider

        word = MagicMock(start=0.0, end=0.4, word="hello", confidence=0.99)
        alternative = MagicMock(transcript=" hello ", confidence=0.97, words=[word])
        channel = MagicMock(alternatives=[alternative], detected_language="en")
        response = MagicMock()
        response.results.channels = [channel]
        response.metadata.duration = 1.25

        provider = DeepgramSTTProvider()
        provider.client = MagicMock()
        provider.client.listen.v1.media.transcribe_file = AsyncMock(return_value=response)

        result = await provider.transcribe(b"\x00\x01", {"language": "en"})

        assert result.text == "hello"
        assert result.confidence == 0.97
        assert result.language == "en"
        assert result.duration == 1.25
        assert result.segments[0].text == "hello"
        kwargs = provider.client.listen.v1.media.transcribe_file.call_args.kwargs
        assert kwargs["request"] == b"\x00\x01"

    @pytest.mark.asyncio
    async def test_transcribe_propagates_errors(self):
        from switchboard.providers.deepgram_stt import DeepgramSTTProvider

        provider = DeepgramSTTProvider()
        provider.client = MagicMock()
        provider.client.listen.v1.media.transcribe_file = AsyncMock(
            side_effect=ConnectionError("network")
        )
        with pytest.raises(ConnectionError):
            await provider.transcribe(b"\x00")


# ── OpenAI ──────────────────────────────────────────────────


class TestOpenAITTS:
    @pytest.mark.asyncio
    async def test_synthesize_before_start(self):
        from switchboard.providers.openai_tts import OpenAITTSProvider

        with pytest.raises(RuntimeError):
            await OpenAITTSProvider().synthesize("hi")

    @pytest.mark.asyncio
    async def test_pcm_duration_is_exact(self):
        from switchboard.providers.openai_tts import OpenAITTSProvider

        provider = OpenAITTSProvider()
        provider.client = MagicMock()
        provider.client.audio.speech.create = AsyncMock(
            return_value=MagicMock(content=b"\x00" * 48000)
        )
        result = await provider.synthesize("hi", {"format": "pcm"})
        assert result.duration == 1.0
        assert result.sample_rate == 24000
        kwargs = provider.client.audio.speech.create.call_args.kwargs
        assert kwargs["response_format"] == "pcm"
        assert kwargs["input"] == "hi"

    @pytest.mark.asyncio
    async def test_compressed_format_has_no_duration(self):
        from switchboard.providers.openai_tts import OpenAITTSProvider

        provider = OpenAITTSProvider()
        provider.client = MagicMock()
        provider.client.audio.speech.create = AsyncMock(
            return_value=MagicMock(content=b"ID3")
        )
        result = await provider.synthesize("hi")
        assert result.duration is None
        assert result.format == "mp3"
