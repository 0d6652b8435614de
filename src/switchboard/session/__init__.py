"""
Session state — data model and bounded per-session structures.

Key components:
- Session / ConversationContext / SessionMetadata: mutable per-session state
- Message, MemoryItem, ExtractedEntity, FlowState: leaf records
- MemoryBank / FlowHistory: fixed-capacity containers
- SessionManager lives in switchboard.session.manager
"""

from switchboard.session.memory import FlowHistory, MemoryBank
from switchboard.session.models import (
    ConversationContext,
    ExtractedEntity,
    FlowState,
    MemoryItem,
    Message,
    MessageMetadata,
    MessageRole,
    Modality,
    Session,
    SessionMetadata,
    VoiceMetadata,
)

__all__ = [
    "Session",
    "SessionMetadata",
    "ConversationContext",
    "Message",
    "MessageMetadata",
    "MessageRole",
    "VoiceMetadata",
    "MemoryItem",
    "ExtractedEntity",
    "FlowState",
    "Modality",
    "MemoryBank",
    "FlowHistory",
]
