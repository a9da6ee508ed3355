"""Ports - interfaces/protocols for external dependencies."""

from .stores import CollectionStore, SettingsStore, StateStore, StoreSet

__all__ = [
    "CollectionStore",
    "SettingsStore",
    "StateStore",
    "StoreSet",
]
