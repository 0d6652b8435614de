"""
Session Models — data structures for per-session conversational state.

Hierarchy:
  Session → ConversationContext → (MemoryBank of MemoryItem,
                                   FlowHistory of FlowState,
                                   ExtractedEntity list)
          → SessionMetadata

Message is the normalized turn produced by the modality router and
consumed by the session manager.

Leaf records are frozen dataclasses. Session, its context and metadata are
mutable: the manager updates them in place and hands them back to storage.
Every model round-trips through to_dict()/from_dict() (JSON-safe; timestamps
are epoch seconds).
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from switchboard.session.memory import FlowHistory, MemoryBank


class Modality(str, Enum):
    """Interaction channel."""

    VOICE = "voice"
    TEXT = "text"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


def new_message_id() -> str:
    return f"msg_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


# ─── Message ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class VoiceMetadata:
    """Audio-side facts about a voice turn."""

    duration: float | None = None  # seconds
    language: str | None = None
    confidence: float | None = None
    audio_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "duration": self.duration,
            "language": self.language,
            "confidence": self.confidence,
            "audio_url": self.audio_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VoiceMetadata:
        return cls(
            duration=data.get("duration"),
            language=data.get("language"),
            confidence=data.get("confidence"),
            audio_url=data.get("audio_url"),
        )


@dataclass(frozen=True)
class ApiCall:
    """One outbound collaborator call made while processing a turn."""

    service: str
    endpoint: str
    duration: float  # ms
    status: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "service": self.service,
            "endpoint": self.endpoint,
            "duration": self.duration,
            "status": self.status,
        }


@dataclass(frozen=True)
class PerformanceMetadata:
    processing_time: float  # ms
    api_calls: tuple[ApiCall, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "processing_time": self.processing_time,
            "api_calls": [c.to_dict() for c in self.api_calls],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PerformanceMetadata:
        return cls(
            processing_time=data.get("processing_time", 0),
            api_calls=tuple(ApiCall(**c) for c in data.get("api_calls", [])),
        )


@dataclass(frozen=True)
class MessageMetadata:
    voice: VoiceMetadata | None = None
    performance: PerformanceMetadata | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "voice": self.voice.to_dict() if self.voice else None,
            "performance": self.performance.to_dict() if self.performance else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MessageMetadata:
        voice = data.get("voice")
        performance = data.get("performance")
        return cls(
            voice=VoiceMetadata.from_dict(voice) if voice else None,
            performance=(
                PerformanceMetadata.from_dict(performance) if performance else None
            ),
        )


@dataclass(frozen=True)
class Message:
    """A single normalized conversational turn."""

    content: str
    modality: str = Modality.TEXT.value
    role: str = MessageRole.USER.value
    id: str = field(default_factory=new_message_id)
    timestamp: float = field(default_factory=time.time)
    metadata: MessageMetadata = field(default_factory=MessageMetadata)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "modality": self.modality,
            "timestamp": self.timestamp,
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        return cls(
            id=data["id"],
            role=data.get("role", MessageRole.USER.value),
            content=data.get("content", ""),
            modality=data.get("modality", Modality.TEXT.value),
            timestamp=data.get("timestamp", time.time()),
            metadata=MessageMetadata.from_dict(data.get("metadata") or {}),
        )


# ─── Context records ─────────────────────────────────────────────


@dataclass(frozen=True)
class MemoryItem:
    """A retained conversational item, ranked by importance."""

    id: str
    content: str
    importance: float
    timestamp: float
    modality: str
    tags: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "importance": self.importance,
            "timestamp": self.timestamp,
            "tags": list(self.tags),
            "modality": self.modality,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MemoryItem:
        return cls(
            id=data["id"],
            content=data["content"],
            importance=data["importance"],
            timestamp=data["timestamp"],
            tags=tuple(data.get("tags", ())),
            modality=data["modality"],
        )


@dataclass(frozen=True)
class ExtractedEntity:
    """A structured fact pulled out of message text."""

    name: str
    type: str
    value: str
    confidence: float
    source: str = Modality.TEXT.value

    @property
    def key(self) -> tuple[str, str]:
        return (self.name, self.type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "value": self.value,
            "confidence": self.confidence,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExtractedEntity:
        return cls(**data)


@dataclass(frozen=True)
class FlowState:
    """Diagnostic record of a structural lifecycle event (switch, bridge)."""

    step: str
    modality: str
    timestamp: float = field(default_factory=time.time)
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": self.step,
            "modality": self.modality,
            "timestamp": self.timestamp,
            "data": dict(self.data),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FlowState:
        return cls(
            step=data["step"],
            modality=data["modality"],
            timestamp=data["timestamp"],
            data=dict(data.get("data") or {}),
        )


# ─── Session ─────────────────────────────────────────────────────


@dataclass
class ConversationContext:
    memory_bank: MemoryBank = field(default_factory=MemoryBank)
    conversation_flow: FlowHistory = field(default_factory=FlowHistory)
    entities: list[ExtractedEntity] = field(default_factory=list)
    topic: str | None = None
    intent: str | None = None
    mood: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "intent": self.intent,
            "mood": self.mood,
            "entities": [e.to_dict() for e in self.entities],
            "conversation_flow": [f.to_dict() for f in self.conversation_flow],
            "memory_bank": [m.to_dict() for m in self.memory_bank],
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        memory_capacity: int | None = None,
        flow_capacity: int | None = None,
    ) -> ConversationContext:
        memory_bank = MemoryBank(capacity=memory_capacity)
        for item in data.get("memory_bank", []):
            memory_bank.add(MemoryItem.from_dict(item))
        flow = FlowHistory(capacity=flow_capacity)
        for state in data.get("conversation_flow", []):
            flow.append(FlowState.from_dict(state))
        return cls(
            memory_bank=memory_bank,
            conversation_flow=flow,
            entities=[ExtractedEntity.from_dict(e) for e in data.get("entities", [])],
            topic=data.get("topic"),
            intent=data.get("intent"),
            mood=data.get("mood"),
        )


@dataclass
class SessionMetadata:
    modality_switches: int = 0
    average_response_time: float = 0.0  # ms
    response_count: int = 0
    max_age: float | None = None  # seconds
    user_satisfaction: float | None = None
    conversation_quality: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "modality_switches": self.modality_switches,
            "average_response_time": self.average_response_time,
            "response_count": self.response_count,
            "max_age": self.max_age,
            "user_satisfaction": self.user_satisfaction,
            "conversation_quality": self.conversation_quality,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionMetadata:
        return cls(
            modality_switches=data.get("modality_switches", 0),
            average_response_time=data.get("average_response_time", 0.0),
            response_count=data.get("response_count", 0),
            max_age=data.get("max_age"),
            user_satisfaction=data.get("user_satisfaction"),
            conversation_quality=data.get("conversation_quality"),
        )


@dataclass
class Session:
    """
    A conversation session — the top-level container.

    Created on first reference to a session id, mutated on every turn,
    destroyed by explicit deletion or a cleanup sweep on last_activity age.
    """

    session_id: str
    user_id: str | None = None
    start_time: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    current_modality: str = Modality.TEXT.value
    total_messages: int = 0
    context: ConversationContext = field(default_factory=ConversationContext)
    metadata: SessionMetadata = field(default_factory=SessionMetadata)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "start_time": self.start_time,
            "last_activity": self.last_activity,
            "current_modality": self.current_modality,
            "total_messages": self.total_messages,
            "context": self.context.to_dict(),
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        memory_capacity: int | None = None,
        flow_capacity: int | None = None,
    ) -> Session:
        return cls(
            session_id=data["session_id"],
            user_id=data.get("user_id"),
            start_time=data["start_time"],
            last_activity=data["last_activity"],
            current_modality=data.get("current_modality", Modality.TEXT.value),
            total_messages=data.get("total_messages", 0),
            context=ConversationContext.from_dict(
                data.get("context") or {},
                memory_capacity=memory_capacity,
                flow_capacity=flow_capacity,
            ),
            metadata=SessionMetadata.from_dict(data.get("metadata") or {}),
        )

    def copy(self) -> Session:
        """Deep, independent copy (storage never aliases caller state)."""
        return Session.from_dict(
            self.to_dict(),
            memory_capacity=self.context.memory_bank.capacity,
            flow_capacity=self.context.conversation_flow.capacity,
        )
