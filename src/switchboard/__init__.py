"""
Switchboard — multimodal session continuity for voice and text conversations.

Usage:
    from switchboard import ModalityRouter, SessionManager

    manager = SessionManager()
    router = ModalityRouter.from_config()
    await manager.start()

    session = await manager.create_session("s1")
    modality = router.detect_modality(payload)
    message = await router.process_message(payload, modality, "s1")
    await manager.update_session("s1", message, modality)
    context = await manager.bridge_context_for_modality("s1", "voice")
"""

from switchboard.session.models import Message, Modality, Session
from switchboard.bridge.context_bridge import BridgeDirection, ContextBridge
from switchboard.storage import SessionFilter, StorageProvider
from switchboard.providers.base import STTProvider, TTSProvider
from switchboard.modality.router import ModalityRouter
from switchboard.session.manager import SessionManager
from switchboard.core.errors import (
    CollaboratorError,
    CollaboratorUnavailableError,
    SessionNotFoundError,
    SwitchboardError,
)

__version__ = "0.1.0"

__all__ = [
    "SessionManager",
    "ModalityRouter",
    "ContextBridge",
    "BridgeDirection",
    "Session",
    "Message",
    "Modality",
    "SessionFilter",
    "StorageProvider",
    "STTProvider",
    "TTSProvider",
    "SwitchboardError",
    "SessionNotFoundError",
    "CollaboratorError",
    "CollaboratorUnavailableError",
]
