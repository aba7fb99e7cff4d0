"""
Store module.
Contains the list store contract, its backends, and connection management.
"""

from listqueue.store.base import ListOp, ListStore, OpKind, Transaction
from listqueue.store.connection import (
    close_store,
    create_store,
    get_store,
    init_store,
)
from listqueue.store.memory import MemoryListStore
from listqueue.store.redis_store import RedisListStore

__all__ = [
    "ListStore",
    "Transaction",
    "ListOp",
    "OpKind",
    "RedisListStore",
    "MemoryListStore",
    "create_store",
    "init_store",
    "get_store",
    "close_store",
]
