"""Per-user day settings."""

import logging
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .day_boundary import FALLBACK_TIMEZONE

logger = logging.getLogger(__name__)

DEFAULT_RESET_HOUR = 9


def is_known_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, TypeError):
        return False
    return True


@dataclass(frozen=True)
class Settings:
    """Reset hour (0-23, local time) and IANA timezone for one user."""

    reset_hour: int = DEFAULT_RESET_HOUR
    timezone: str = FALLBACK_TIMEZONE

    @classmethod
    def from_dict(cls, data: dict | None, default_timezone: str = FALLBACK_TIMEZONE) -> "Settings":
        """Create Settings from a stored record, defaulting anything missing or invalid."""
        data = data if isinstance(data, dict) else {}

        reset_hour = data.get("resetHour", DEFAULT_RESET_HOUR)
        if not isinstance(reset_hour, int) or isinstance(reset_hour, bool) or not 0 <= reset_hour <= 23:
            logger.warning(f"Invalid resetHour {reset_hour!r}, using {DEFAULT_RESET_HOUR}")
            reset_hour = DEFAULT_RESET_HOUR

        timezone = data.get("timezone")
        if not isinstance(timezone, str) or not timezone:
            timezone = default_timezone

        return cls(reset_hour=reset_hour, timezone=timezone)

    def to_dict(self) -> dict:
        return {"resetHour": self.reset_hour, "timezone": self.timezone}

    def updated(self, reset_hour: int | None = None, timezone: str | None = None) -> "Settings":
        """Validated copy with the given fields changed. Raises ValueError on bad input."""
        if reset_hour is not None and not 0 <= reset_hour <= 23:
            raise ValueError("Reset hour must be an integer between 0 and 23")
        if timezone is not None and not is_known_timezone(timezone):
            raise ValueError(f"Unknown timezone: {timezone}")
        return Settings(
            reset_hour=self.reset_hour if reset_hour is None else reset_hour,
            timezone=self.timezone if timezone is None else timezone,
        )
