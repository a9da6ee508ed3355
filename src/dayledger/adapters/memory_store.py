"""In-memory storage adapters for embedding and tests."""

import copy

from dayledger.core.settings import Settings


class MemoryCollectionStore:
    """Implements CollectionStore protocol in memory."""

    def __init__(self, items: list | None = None):
        self.items = list(items or [])

    def load_all(self) -> list:
        return copy.deepcopy(self.items)

    def replace_all(self, items: list) -> None:
        self.items = copy.deepcopy(list(items))


class MemorySettingsStore:
    """Implements SettingsStore protocol in memory."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()

    def load(self) -> Settings:
        return self.settings

    def save(self, settings: Settings) -> None:
        self.settings = settings


class MemoryStateStore:
    """Implements StateStore protocol in memory."""

    def __init__(self, data: dict | None = None):
        self.data = dict(data or {})

    def load(self) -> dict:
        return dict(self.data)

    def save(self, data: dict) -> None:
        self.data = dict(data)


class MemoryStores:
    """In-memory counterpart of JsonStores."""

    def __init__(self):
        self.tasks = MemoryCollectionStore()
        self.ledger = MemoryCollectionStore()
        self.updates = MemoryCollectionStore()
        self.used_messages = MemoryCollectionStore()
        self.monthly_stats = MemoryCollectionStore()
        self.settings = MemorySettingsStore()
        self.state = MemoryStateStore()
