"""Persistence interfaces.

Every collection is loaded and replaced as a whole; the core never relies on
partial updates.
"""

from typing import Protocol

from dayledger.core.settings import Settings


class CollectionStore(Protocol):
    """A JSON-compatible array persisted as one unit."""

    def load_all(self) -> list:
        """Load every stored element. Missing or unreadable storage loads as []."""
        ...

    def replace_all(self, items: list) -> None:
        """Replace the stored collection. Raises PersistenceError on failure."""
        ...


class SettingsStore(Protocol):
    """Interface for the single per-user settings record."""

    def load(self) -> Settings:
        """Load settings, filling defaults for anything missing."""
        ...

    def save(self, settings: Settings) -> None:
        """Persist settings. Raises PersistenceError on failure."""
        ...


class StateStore(Protocol):
    """Interface for the persisted watcher flags."""

    def load(self) -> dict:
        ...

    def save(self, data: dict) -> None:
        ...


class StoreSet(Protocol):
    """Every store the engine reads and writes, one per collection."""

    tasks: CollectionStore
    ledger: CollectionStore
    updates: CollectionStore
    used_messages: CollectionStore
    monthly_stats: CollectionStore
    settings: SettingsStore
    state: StateStore
