"""Local durable storage: key-value stores and the offline ledger cache."""

from pocket_ledger.services.cache.offline import OfflineCache
from pocket_ledger.services.cache.store import (
    JsonFileStore,
    KeyValueStore,
    MemoryKeyValueStore,
)

__all__ = [
    "JsonFileStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "OfflineCache",
]
