"""
Storage Registry — pick the session backend from config.

Add a backend? Add an elif.
"""

from __future__ import annotations

import logging
from pathlib import Path

import switchboard.core.config as config_module
from switchboard.storage.base import StorageProvider

logger = logging.getLogger(__name__)


def get_storage_provider() -> StorageProvider:
    cfg = config_module.config.storage
    backend = cfg.backend.lower()
    if backend == "memory":
        from switchboard.storage.memory import MemoryStorageProvider

        return MemoryStorageProvider(
            max_age=cfg.max_age, cleanup_interval=cfg.cleanup_interval
        )
    elif backend == "sqlite":
        from switchboard.storage.sqlite import SQLiteStorageProvider

        return SQLiteStorageProvider(db_path=Path(cfg.db_path))
    raise ValueError(f"Unknown storage backend: {backend}")
