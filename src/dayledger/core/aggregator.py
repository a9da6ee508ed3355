"""Daily and monthly statistics derived from the ledger - pure, no I/O.

Stored counters are caches. Everything here recomputes from the ledger and the
task set, and a fresh recomputation always wins over a stored value.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime

from dayledger.errors import MalformedRecordError

from .classifier import Classification
from .day_boundary import date_in_zone, month_of, parse_instant, to_epoch_ms
from .ledger import StrikeAction, StrikeEntry, StrikeLedger
from .tasks import Task

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonthlyAggregate:
    """Ledger counts for one effective month."""

    month: str
    strikes: int = 0
    completed: int = 0
    expired: int = 0


@dataclass(frozen=True)
class DailyAggregate:
    """Ledger summary for one effective day."""

    date: str
    total: int = 0  # distinct tasks touched that day
    completed_count: int = 0  # strike and completed events
    struck_count: int = 0
    expired_count: int = 0
    times: list[datetime] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.total == 0


def _expired_pairs(entries: list[StrikeEntry]) -> set[tuple[str, str]]:
    """(task_id, date) pairs that expired and were never handled that day."""
    expired = {(e.task_id, e.date) for e in entries if e.action is StrikeAction.EXPIRED}
    handled = {(e.task_id, e.date) for e in entries if e.is_handled}
    return expired - handled


def monthly_aggregate(ledger: StrikeLedger, month_key: str) -> MonthlyAggregate:
    """
    Count strike, completed and expired events whose date falls in month_key.

    Expired events count once per (task, day) and not at all for a day the
    task was also handled.
    """
    entries = ledger.entries_for_month(month_key)
    return MonthlyAggregate(
        month=month_key,
        strikes=sum(1 for e in entries if e.action is StrikeAction.STRIKE),
        completed=sum(1 for e in entries if e.action is StrikeAction.COMPLETED),
        expired=len(_expired_pairs(entries)),
    )


def daily_aggregate(ledger: StrikeLedger, date_key: str) -> DailyAggregate:
    """Summarize one day of the ledger."""
    entries = ledger.entries_for_date(date_key)
    return DailyAggregate(
        date=date_key,
        total=len({e.task_id for e in entries}),
        completed_count=sum(1 for e in entries if e.is_handled),
        struck_count=sum(1 for e in entries if e.action is StrikeAction.STRIKE),
        expired_count=len(_expired_pairs(entries)),
        times=sorted(e.timestamp for e in entries),
    )


def tasks_added_in_month(tasks: list[Task], month_key: str, timezone: str | None) -> int:
    """Tasks whose creation date, in the user's timezone, falls in month_key."""
    return sum(1 for t in tasks if month_of(date_in_zone(t.created_at, timezone)) == month_key)


def live_expired_count(classification: Classification) -> int:
    """Expired count straight from the current task state."""
    return len(classification.expired)


@dataclass(frozen=True)
class MonthlyStats:
    """Stored monthly counters. A cache, never a source of truth."""

    month: str
    strikes_count: int
    expired_count: int
    completed_count: int
    tasks_added_count: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def fresh(cls, month_key: str, now: datetime) -> "MonthlyStats":
        return cls(
            month=month_key,
            strikes_count=0,
            expired_count=0,
            completed_count=0,
            tasks_added_count=0,
            created_at=now,
            updated_at=now,
        )

    @classmethod
    def from_dict(cls, data: dict) -> "MonthlyStats":
        if not isinstance(data, dict) or not isinstance(data.get("month"), str):
            raise MalformedRecordError(f"Monthly stats record has no month: {data!r}")

        def count(key: str) -> int:
            value = data.get(key, 0)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                return 0
            return value

        try:
            created_at = parse_instant(data["createdAt"])
            updated_at = parse_instant(data.get("updatedAt", data["createdAt"]))
        except (KeyError, ValueError, OverflowError, OSError) as e:
            raise MalformedRecordError(f"Monthly stats for {data['month']} unusable: {e}") from e

        return cls(
            month=data["month"],
            strikes_count=count("strikesCount"),
            expired_count=count("expiredCount"),
            completed_count=count("completedCount"),
            tasks_added_count=count("tasksAddedCount"),
            created_at=created_at,
            updated_at=updated_at,
        )

    def to_dict(self) -> dict:
        return {
            "month": self.month,
            "strikesCount": self.strikes_count,
            "expiredCount": self.expired_count,
            "completedCount": self.completed_count,
            "tasksAddedCount": self.tasks_added_count,
            "createdAt": to_epoch_ms(self.created_at),
            "updatedAt": to_epoch_ms(self.updated_at),
        }


def find_monthly_stats(records: list, month_key: str) -> MonthlyStats | None:
    """Cached stats for a month, or None when missing or corrupt."""
    for record in records:
        if not isinstance(record, dict) or record.get("month") != month_key:
            continue
        try:
            return MonthlyStats.from_dict(record)
        except MalformedRecordError as e:
            logger.warning(f"Ignoring corrupt monthly stats: {e}")
            return None
    return None


def refresh_monthly_stats(
    cached: MonthlyStats | None,
    ledger: StrikeLedger,
    tasks: list[Task],
    month_key: str,
    timezone: str | None,
    now: datetime,
) -> MonthlyStats:
    """
    Recompute the stored counters for month_key.

    A missing or mismatched cache starts from a zeroed record; every counter is
    then replaced with a fresh count.
    """
    base = cached if cached is not None and cached.month == month_key else MonthlyStats.fresh(month_key, now)
    agg = monthly_aggregate(ledger, month_key)
    refreshed = replace(
        base,
        strikes_count=agg.strikes,
        expired_count=agg.expired,
        completed_count=agg.completed,
        tasks_added_count=tasks_added_in_month(tasks, month_key, timezone),
    )
    if refreshed != base:
        refreshed = replace(refreshed, updated_at=now)
    return refreshed


def merge_monthly_stats(records: list, stats: MonthlyStats) -> list[dict]:
    """Replace (or add) the record for stats.month, keeping the others as stored."""
    merged = [r for r in records if not (isinstance(r, dict) and r.get("month") == stats.month)]
    merged.append(stats.to_dict())
    return merged


@dataclass(frozen=True)
class Counters:
    """Dashboard counters: month totals plus today's live expired count."""

    month: str
    strikes: int
    expired: int
    completed: int


def counters(ledger: StrikeLedger, classification: Classification, month_key: str) -> Counters:
    """Month strike/completed counts with the live expired count for today."""
    agg = monthly_aggregate(ledger, month_key)
    return Counters(
        month=month_key,
        strikes=agg.strikes,
        expired=live_expired_count(classification),
        completed=agg.completed,
    )
