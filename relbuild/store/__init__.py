"""Remote object store: interface and implementations."""

from relbuild.store.base import MAX_LIST_KEYS, RemoteStore, StoreObject
from relbuild.store.memory import MemoryStore

__all__ = [
    "MAX_LIST_KEYS",
    "MemoryStore",
    "RemoteStore",
    "StoreObject",
]
