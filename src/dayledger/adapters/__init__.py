"""Adapters - I/O implementations of ports."""

from .json_store import (
    JsonCollectionStore,
    JsonSettingsStore,
    JsonStateStore,
    JsonStores,
    detect_host_timezone,
)
from .memory_store import (
    MemoryCollectionStore,
    MemorySettingsStore,
    MemoryStateStore,
    MemoryStores,
)

__all__ = [
    "JsonCollectionStore",
    "JsonSettingsStore",
    "JsonStateStore",
    "JsonStores",
    "detect_host_timezone",
    "MemoryCollectionStore",
    "MemorySettingsStore",
    "MemoryStateStore",
    "MemoryStores",
]
