"""
Switchboard Configuration — single source of truth for all settings.

Reads from environment variables with sensible defaults.
No config files, no YAML. Just env vars (and an optional .env).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class SessionConfig:
    """Session manager settings."""

    memory_capacity: int = 50
    flow_capacity: int = 20
    recent_context_count: int = 3
    summary_count: int = 5
    # Per-session serialization of read-modify-write cycles
    serialize_sessions: bool = True

    @classmethod
    def from_env(cls) -> SessionConfig:
        return cls(
            memory_capacity=int(os.getenv("SWITCHBOARD_MEMORY_CAPACITY", "50")),
            flow_capacity=int(os.getenv("SWITCHBOARD_FLOW_CAPACITY", "20")),
            recent_context_count=int(
                os.getenv("SWITCHBOARD_RECENT_CONTEXT_COUNT", "3")
            ),
            summary_count=int(os.getenv("SWITCHBOARD_SUMMARY_COUNT", "5")),
            serialize_sessions=_env_bool("SWITCHBOARD_SERIALIZE_SESSIONS", "true"),
        )


@dataclass(frozen=True)
class StorageConfig:
    """Session storage backend settings."""

    backend: str = "memory"  # memory | sqlite
    db_path: str = "switchboard_sessions.db"
    max_age: float = 3600.0  # seconds of inactivity before cleanup
    cleanup_interval: float = 0.0  # seconds; 0 disables the background sweep

    @classmethod
    def from_env(cls) -> StorageConfig:
        return cls(
            backend=os.getenv("SWITCHBOARD_STORAGE_BACKEND", "memory"),
            db_path=os.getenv("SWITCHBOARD_DB_PATH", "switchboard_sessions.db"),
            max_age=float(os.getenv("SWITCHBOARD_SESSION_MAX_AGE", "3600")),
            cleanup_interval=float(
                os.getenv("SWITCHBOARD_SESSION_CLEANUP_INTERVAL", "0")
            ),
        )


@dataclass(frozen=True)
class ModalityConfig:
    """Modality router settings."""

    # Off by default so collaborator outages are not silently hidden
    use_mock_when_unavailable: bool = False
    default_language: str = "en-US"
    words_per_minute: int = 150

    @classmethod
    def from_env(cls) -> ModalityConfig:
        return cls(
            use_mock_when_unavailable=_env_bool("SWITCHBOARD_USE_MOCKS", "false"),
            default_language=os.getenv("SWITCHBOARD_DEFAULT_LANGUAGE", "en-US"),
            words_per_minute=int(os.getenv("SWITCHBOARD_WORDS_PER_MINUTE", "150")),
        )


@dataclass(frozen=True)
class STTConfig:
    """Speech-to-text provider settings."""

    provider: str = "none"  # none | deepgram
    api_key: str = ""
    model: str = "nova-3"
    language: str = "en"

    @classmethod
    def from_env(cls) -> STTConfig:
        return cls(
            provider=os.getenv("SWITCHBOARD_STT_PROVIDER", "none"),
            api_key=os.getenv("DEEPGRAM_API_KEY", ""),
            model=os.getenv("SWITCHBOARD_STT_MODEL", "nova-3"),
            language=os.getenv("SWITCHBOARD_STT_LANGUAGE", "en"),
        )


@dataclass(frozen=True)
class TTSConfig:
    """Text-to-speech provider settings."""

    provider: str = "none"  # none | openai
    api_key: str = ""
    model: str = "tts-1"
    voice: str = "nova"
    response_format: str = "mp3"

    @classmethod
    def from_env(cls) -> TTSConfig:
        return cls(
            provider=os.getenv("SWITCHBOARD_TTS_PROVIDER", "none"),
            api_key=os.getenv("OPENAI_API_KEY", ""),
            model=os.getenv("SWITCHBOARD_TTS_MODEL", "tts-1"),
            voice=os.getenv("SWITCHBOARD_TTS_VOICE", "nova"),
            response_format=os.getenv("SWITCHBOARD_TTS_FORMAT", "mp3"),
        )


@dataclass(frozen=True)
class SwitchboardConfig:
    """Root configuration."""

    session: SessionConfig = field(default_factory=SessionConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    modality: ModalityConfig = field(default_factory=ModalityConfig)
    stt: STTConfig = field(default_factory=STTConfig)
    tts: TTSConfig = field(default_factory=TTSConfig)

    @classmethod
    def from_env(cls) -> SwitchboardConfig:
        return cls(
            session=SessionConfig.from_env(),
            storage=StorageConfig.from_env(),
            modality=ModalityConfig.from_env(),
            stt=STTConfig.from_env(),
            tts=TTSConfig.from_env(),
        )


# Singleton — import the module and read `config_module.config` so reloads apply
config = SwitchboardConfig.from_env()


def reload_config() -> SwitchboardConfig:
    """Re-read the environment and replace the module singleton."""
    global config
    config = SwitchboardConfig.from_env()
    return config
