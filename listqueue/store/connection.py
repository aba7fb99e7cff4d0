"""
Store connection management.
Creates the configured list store backend and holds the process-wide instance.
"""

import logging

from listqueue.config import Settings, get_settings
from listqueue.store.base import ListStore
from listqueue.store.memory import MemoryListStore
from listqueue.store.redis_store import RedisListStore

logger = logging.getLogger(__name__)

# Global store instance
_store: ListStore | None = None


def create_store(settings: Settings | None = None) -> ListStore:
    """
    Build a list store for the configured backend.

    Args:
        settings: Settings to use. Defaults to the cached application settings.

    Returns:
        ListStore: A new store instance.
    """
    settings = settings or get_settings()
    if settings.store_backend == "memory":
        return MemoryListStore()
    return RedisListStore.from_url(settings.redis_url)


async def init_store(store: ListStore | None = None) -> ListStore:
    """
    Initialize the process-wide store.
    Should be called on application startup.

    Args:
        store: A pre-built store to install instead of the configured backend.
    """
    global _store
    _store = store or create_store()
    logger.info(
        "Store initialized",
        extra={"backend": type(_store).__name__},
    )
    return _store


def get_store() -> ListStore:
    """
    Get the process-wide store.

    Raises:
        RuntimeError: If the store is not initialized.
    """
    if _store is None:
        raise RuntimeError("Store not initialized. Call init_store() first.")
    return _store


async def close_store() -> None:
    """
    Close the store connection.
    Should be called on application shutdown.
    """
    global _store
    if _store is not None:
        await _store.close()
        _store = None
        logger.info("Store closed")
