"""Configuration management for dayledger."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DAYLEDGER_HOME = Path(os.environ.get("DAYLEDGER_HOME", Path.home() / "dayledger"))
CONFIG_FILE = DAYLEDGER_HOME / "config" / "dayledger.conf"
DATA_DIR = DAYLEDGER_HOME / "data"

# How often the host re-samples the wall clock to catch reset-hour and day crossings.
POLL_INTERVAL_SECONDS = 60
# Rapid successive writes of one collection coalesce inside this window.
SAVE_DEBOUNCE_SECONDS = 0.4
# Dirty collections are flushed at least this often, debounce or not.
FALLBACK_FLUSH_SECONDS = 10


@dataclass
class Config:
    """dayledger process configuration.

    Per-user settings (reset hour, timezone) are not part of this; they live in
    the settings store.
    """

    data_dir: str = ""
    poll_interval_seconds: int = POLL_INTERVAL_SECONDS
    save_debounce_seconds: float = SAVE_DEBOUNCE_SECONDS
    fallback_flush_seconds: int = FALLBACK_FLUSH_SECONDS

    def resolved_data_dir(self) -> Path:
        """Data directory from config, falling back to DAYLEDGER_HOME/data."""
        if self.data_dir:
            return Path(self.data_dir).expanduser()
        return DATA_DIR


def _parse_number(key: str, value: str, cast, minimum: float):
    try:
        number = cast(value)
    except ValueError:
        logger.warning(f"Ignoring {key.upper()}: {value!r} is not a number")
        return None
    if number < minimum:
        logger.warning(f"Ignoring {key.upper()}: {value!r} is below {minimum}")
        return None
    return number


def load_config(path: Path | None = None) -> Config:
    """Load configuration from dayledger.conf file."""
    config = Config()
    path = path or CONFIG_FILE

    if not path.exists():
        return config

    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip().lower()
        value = value.strip()

        # Handle quoted values with inline comments: "value" # comment
        if value.startswith('"') or value.startswith("'"):
            quote = value[0]
            end_quote = value.find(quote, 1)
            value = value[1:end_quote] if end_quote != -1 else value[1:]
        elif "#" in value:
            value = value.split("#")[0].strip()

        match key:
            case "data_dir":
                config.data_dir = value
            case "poll_interval_seconds":
                number = _parse_number(key, value, int, 1)
                if number is not None:
                    config.poll_interval_seconds = number
            case "save_debounce_seconds":
                number = _parse_number(key, value, float, 0)
                if number is not None:
                    config.save_debounce_seconds = number
            case "fallback_flush_seconds":
                number = _parse_number(key, value, int, 1)
                if number is not None:
                    config.fallback_flush_seconds = number
            case _:
                logger.debug(f"Unknown config key: {key}")

    return config
