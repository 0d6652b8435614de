"""
Session storage — the persistence collaborator behind the session manager.

StorageProvider is the contract; MemoryStorageProvider (default) and
SQLiteStorageProvider are the shipped backends. Pick one by config.
"""

from switchboard.storage.base import (
    SessionFilter,
    StorageEvent,
    StorageEventType,
    StorageProvider,
    StorageStats,
)
from switchboard.storage.memory import MemoryStorageProvider
from switchboard.storage.registry import get_storage_provider

__all__ = [
    "StorageProvider",
    "SessionFilter",
    "StorageStats",
    "StorageEvent",
    "StorageEventType",
    "MemoryStorageProvider",
    "get_storage_provider",
]
