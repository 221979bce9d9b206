"""Storage factory driven by the unified configuration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from offline_sync.storage.memory_store import InMemoryStorage
from offline_sync.storage.sqlite_store import SQLiteStorage

if TYPE_CHECKING:
    from offline_sync.core.events import EventBus
    from offline_sync.storage.base import SyncStorage
    from offline_sync.unified_config import UnifiedConfig

logger = logging.getLogger(__name__)


async def create_storage(config: UnifiedConfig, *, bus: EventBus | None = None) -> SyncStorage:
    """
    Create and initialize the storage backend named in the config.

    Args:
        config: Unified configuration
        bus: Event bus to receive object change events

    Returns:
        An initialized storage instance
    """
    storage: SyncStorage
    if config.storage.backend == "memory":
        storage = InMemoryStorage(bus=bus)
    else:
        storage = SQLiteStorage(config.db_path, bus=bus)

    await storage.initialize()
    logger.debug("Storage backend ready: %s", config.storage.backend)
    return storage
