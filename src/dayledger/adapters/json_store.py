"""JSON file storage adapters."""

import json
import logging
import os
from pathlib import Path

from dayledger.core.day_boundary import FALLBACK_TIMEZONE
from dayledger.core.settings import Settings, is_known_timezone
from dayledger.errors import PersistenceError

logger = logging.getLogger(__name__)

TASKS_FILE = "tasks.json"
STRIKES_FILE = "strikes.json"
UPDATES_FILE = "task-updates.json"
USED_MESSAGES_FILE = "used-messages.json"
MONTHLY_STATS_FILE = "monthly-stats.json"
SETTINGS_FILE = "settings.json"
STATE_FILE = "state.json"


def detect_host_timezone() -> str:
    """Best-effort IANA name of the host's zone, falling back to UTC."""
    candidate = os.environ.get("TZ", "").lstrip(":")
    if candidate and is_known_timezone(candidate):
        return candidate

    localtime = Path("/etc/localtime")
    try:
        target = str(localtime.resolve())
    except OSError:
        target = ""
    if "zoneinfo/" in target:
        candidate = target.split("zoneinfo/", 1)[1]
        if is_known_timezone(candidate):
            return candidate

    return FALLBACK_TIMEZONE


def _read_json(path: Path):
    """Parsed file content, or None when missing or unreadable."""
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read {path}: {e}")
        return None


def _write_json(path: Path, data) -> None:
    """Write via a temp file and rename so readers never see half a file."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False))
        os.replace(tmp, path)
    except (OSError, TypeError, ValueError) as e:
        raise PersistenceError(f"Could not write {path}: {e}") from e


class JsonCollectionStore:
    """
    One JSON array per file.

    Implements CollectionStore protocol. Content that is not an array loads as
    an empty collection.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()

    def load_all(self) -> list:
        data = _read_json(self.path)
        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning(f"{self.path} does not hold a JSON array, ignoring it")
            return []
        return data

    def replace_all(self, items: list) -> None:
        _write_json(self.path, list(items))


class JsonSettingsStore:
    """Implements SettingsStore protocol with a single JSON object."""

    def __init__(self, path: Path | str, default_timezone: str | None = None):
        self.path = Path(path).expanduser()
        self.default_timezone = default_timezone

    def load(self) -> Settings:
        default_timezone = self.default_timezone or detect_host_timezone()
        return Settings.from_dict(_read_json(self.path), default_timezone=default_timezone)

    def save(self, settings: Settings) -> None:
        _write_json(self.path, settings.to_dict())


class JsonStateStore:
    """Implements StateStore protocol with a single JSON object."""

    def __init__(self, path: Path | str):
        self.path = Path(path).expanduser()

    def load(self) -> dict:
        data = _read_json(self.path)
        return data if isinstance(data, dict) else {}

    def save(self, data: dict) -> None:
        _write_json(self.path, data)


class JsonStores:
    """Every store the engine needs, laid out in one data directory."""

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir).expanduser()
        self.tasks = JsonCollectionStore(self.data_dir / TASKS_FILE)
        self.ledger = JsonCollectionStore(self.data_dir / STRIKES_FILE)
        self.updates = JsonCollectionStore(self.data_dir / UPDATES_FILE)
        self.used_messages = JsonCollectionStore(self.data_dir / USED_MESSAGES_FILE)
        self.monthly_stats = JsonCollectionStore(self.data_dir / MONTHLY_STATS_FILE)
        self.settings = JsonSettingsStore(self.data_dir / SETTINGS_FILE)
        self.state = JsonStateStore(self.data_dir / STATE_FILE)
