"""Effective day and month resolution - pure, no I/O.

The date key used by the ledger is the literal wall-clock date in the user's
timezone. Only the month key honours the reset hour: before the reset hour on
the 1st, the month still belongs to the previous calendar month.
"""

import logging
from datetime import date, datetime, timezone as dt_timezone
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

FALLBACK_TIMEZONE = "UTC"


@lru_cache(maxsize=64)
def resolve_timezone(name: str | None) -> ZoneInfo:
    """Return the ZoneInfo for an IANA name, falling back to UTC when unknown."""
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError, TypeError):
            logger.warning(f"Unknown timezone {name!r}, using {FALLBACK_TIMEZONE}")
    return ZoneInfo(FALLBACK_TIMEZONE)


def _as_aware(instant: datetime) -> datetime:
    # Naive instants are UTC
    if instant.tzinfo is None:
        return instant.replace(tzinfo=dt_timezone.utc)
    return instant


def wall_clock(instant: datetime, timezone: str | None) -> datetime:
    """The wall-clock reading of an instant in the given timezone."""
    return _as_aware(instant).astimezone(resolve_timezone(timezone))


def current_hour(instant: datetime, timezone: str | None) -> int:
    """Wall-clock hour (0-23) of an instant in the given timezone."""
    return wall_clock(instant, timezone).hour


def date_in_zone(instant: datetime, timezone: str | None) -> str:
    """Literal wall-clock date of an instant, as YYYY-MM-DD."""
    return wall_clock(instant, timezone).date().isoformat()


def effective_date(instant: datetime, timezone: str | None, reset_hour: int) -> str:
    """Effective date key (YYYY-MM-DD) used by the ledger and classifier.

    reset_hour is accepted for symmetry with effective_month but does not shift
    the date key.
    """
    return date_in_zone(instant, timezone)


def effective_month(instant: datetime, timezone: str | None, reset_hour: int) -> str:
    """Effective month key (YYYY-MM) used by monthly aggregates."""
    local = wall_clock(instant, timezone)
    year, month = local.year, local.month
    if local.day == 1 and local.hour < reset_hour:
        if month == 1:
            year, month = year - 1, 12
        else:
            month -= 1
    return f"{year:04d}-{month:02d}"


def month_of(date_key: str) -> str:
    """Month key (YYYY-MM) of a YYYY-MM-DD date key."""
    return date_key[:7]


def is_valid_date_key(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except (TypeError, ValueError):
        return False
    return len(value) == 10


def to_epoch_ms(instant: datetime) -> int:
    """Serialize an instant as epoch milliseconds."""
    return round(_as_aware(instant).timestamp() * 1000)


def from_epoch_ms(value: int | float) -> datetime:
    """Parse epoch milliseconds into an aware UTC datetime."""
    return datetime.fromtimestamp(value / 1000, tz=dt_timezone.utc)


def parse_instant(value) -> datetime:
    """Parse a stored instant: epoch milliseconds or an ISO-8601 string."""
    if isinstance(value, bool):
        raise ValueError(f"Not an instant: {value!r}")
    if isinstance(value, (int, float)):
        return from_epoch_ms(value)
    if isinstance(value, str):
        return _as_aware(datetime.fromisoformat(value))
    raise ValueError(f"Not an instant: {value!r}")
