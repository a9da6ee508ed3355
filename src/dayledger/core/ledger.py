"""Append-only strike ledger - pure, no I/O.

Entries are kept in append order; undo relies on it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from dayledger.errors import MalformedRecordError

from .day_boundary import is_valid_date_key, month_of, parse_instant, to_epoch_ms

logger = logging.getLogger(__name__)


class StrikeAction(Enum):
    """What happened to a task on a given day."""

    STRIKE = "strike"  # handled for today, stays open
    COMPLETED = "completed"  # handled and closed for good
    EXPIRED = "expired"  # deadline passed without being handled


@dataclass(frozen=True)
class StrikeEntry:
    """A single ledger event. Immutable once written."""

    task_id: str
    date: str  # effective date, YYYY-MM-DD
    action: StrikeAction
    timestamp: datetime
    note: str | None = None

    @property
    def is_handled(self) -> bool:
        """Strike and completed entries mark the task handled for the day."""
        return self.action is not StrikeAction.EXPIRED

    @classmethod
    def from_dict(cls, data: dict) -> "StrikeEntry":
        """Create StrikeEntry from a stored record.

        Records written before actions were tracked have no action and count as
        strikes.
        """
        if not isinstance(data, dict):
            raise MalformedRecordError(f"Ledger record is not an object: {data!r}")
        task_id = data.get("taskId")
        date_key = data.get("date")
        if not isinstance(task_id, str) or not task_id:
            raise MalformedRecordError("Ledger record has no taskId")
        if not isinstance(date_key, str) or not is_valid_date_key(date_key):
            raise MalformedRecordError(f"Ledger record for {task_id} has a bad date: {date_key!r}")
        try:
            action = StrikeAction(data.get("action") or "strike")
            timestamp = parse_instant(data["ts"])
        except (KeyError, ValueError, OverflowError, OSError) as e:
            raise MalformedRecordError(f"Ledger record for {task_id} is unusable: {e}") from e
        note = data.get("note")
        return cls(
            task_id=task_id,
            date=date_key,
            action=action,
            timestamp=timestamp,
            note=note if isinstance(note, str) and note else None,
        )

    def to_dict(self) -> dict:
        data = {
            "taskId": self.task_id,
            "date": self.date,
            "ts": to_epoch_ms(self.timestamp),
            "action": self.action.value,
        }
        if self.note is not None:
            data["note"] = self.note
        return data


class StrikeLedger:
    """
    In-memory strike ledger.

    No deduplication happens on append; callers check "already handled today"
    first. Expired duplicates are tolerated and collapsed by the aggregator.
    """

    def __init__(self, entries: list[StrikeEntry] | None = None):
        self._entries: list[StrikeEntry] = list(entries or [])

    @classmethod
    def from_records(cls, records: list) -> "StrikeLedger":
        """Build a ledger from stored records, dropping the malformed ones."""
        entries = []
        for record in records:
            try:
                entries.append(StrikeEntry.from_dict(record))
            except MalformedRecordError as e:
                logger.warning(f"Dropping malformed ledger record: {e}")
        return cls(entries)

    def to_records(self) -> list[dict]:
        return [e.to_dict() for e in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    @property
    def entries(self) -> list[StrikeEntry]:
        """Snapshot of all entries in append order."""
        return list(self._entries)

    def append(self, entry: StrikeEntry) -> None:
        self._entries.append(entry)

    def extend(self, entries: list[StrikeEntry]) -> None:
        self._entries.extend(entries)

    def undo_last(self, task_id: str, effective_date: str) -> StrikeEntry | None:
        """Remove the most recently appended entry for (task_id, effective_date).

        Returns the removed entry, or None when nothing matched.
        """
        for index in range(len(self._entries) - 1, -1, -1):
            entry = self._entries[index]
            if entry.task_id == task_id and entry.date == effective_date:
                del self._entries[index]
                return entry
        return None

    def entries_for_date(self, date_key: str) -> list[StrikeEntry]:
        return [e for e in self._entries if e.date == date_key]

    def entries_for_month(self, month_key: str) -> list[StrikeEntry]:
        return [e for e in self._entries if month_of(e.date) == month_key]

    def entries_for_task(self, task_id: str) -> list[StrikeEntry]:
        return [e for e in self._entries if e.task_id == task_id]

    def handled_task_ids(self, date_key: str) -> set[str]:
        """Ids of tasks with a strike or completed entry on the given day."""
        return {e.task_id for e in self._entries if e.date == date_key and e.is_handled}

    def is_handled(self, task_id: str, date_key: str) -> bool:
        return any(
            e.task_id == task_id and e.date == date_key and e.is_handled for e in self._entries
        )

    def has_entry(self, task_id: str, date_key: str, action: StrikeAction) -> bool:
        return any(
            e.task_id == task_id and e.date == date_key and e.action is action for e in self._entries
        )

    def has_expired_entry(self, task_id: str, date_key: str) -> bool:
        return self.has_entry(task_id, date_key, StrikeAction.EXPIRED)
