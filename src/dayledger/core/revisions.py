"""Task revisions and structural edit diffs - pure, no I/O."""

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from dayledger.errors import MalformedRecordError

from .day_boundary import is_valid_date_key, parse_instant, to_epoch_ms
from .tasks import Task, normalize_tags

logger = logging.getLogger(__name__)


class TaskField(Enum):
    """Fields tracked in edit history, keyed by their stored name."""

    TITLE = "title"
    NOTES = "notes"
    DUE_DATE = "dueDate"
    DUE_HOUR = "dueHour"
    TAGS = "tags"
    COMPLETED = "completed"

    @property
    def attr(self) -> str:
        return _ATTRS[self]


_ATTRS = {
    TaskField.TITLE: "title",
    TaskField.NOTES: "notes",
    TaskField.DUE_DATE: "due_date",
    TaskField.DUE_HOUR: "due_hour",
    TaskField.TAGS: "tags",
    TaskField.COMPLETED: "completed",
}


@dataclass(frozen=True)
class FieldChange:
    """Old and new value of one tracked field."""

    field: TaskField
    old: object
    new: object

    def to_dict(self) -> dict:
        return {"old": _to_json(self.old), "new": _to_json(self.new)}


def _to_json(value):
    if isinstance(value, list):
        return list(value)
    return value


def _comparable(field: TaskField, value):
    # Tag order carries no meaning
    if field is TaskField.TAGS:
        return frozenset(value or ())
    return value


def diff(old: Task, new: Task) -> dict[TaskField, FieldChange]:
    """Changed tracked fields between two states of a task."""
    changes = {}
    for field in TaskField:
        old_value = getattr(old, field.attr)
        new_value = getattr(new, field.attr)
        if _comparable(field, old_value) != _comparable(field, new_value):
            changes[field] = FieldChange(field, old_value, new_value)
    return changes


def apply_diff(task: Task, changes: dict[TaskField, FieldChange]) -> Task:
    """Return task with every change's new value applied."""
    return replace(task, **{field.attr: change.new for field, change in changes.items()})


@dataclass(frozen=True)
class UpdateRecord:
    """One persisted edit of a task, with the full post-edit snapshot."""

    update_id: str
    task_id: str
    timestamp: datetime
    changes: dict[TaskField, FieldChange]
    snapshot: dict

    @classmethod
    def from_dict(cls, data: dict) -> "UpdateRecord":
        """Create UpdateRecord from a stored record.

        Diff entries for fields outside the tracked set (revision, updatedAt in
        older records) are skipped.
        """
        if not isinstance(data, dict):
            raise MalformedRecordError(f"Update record is not an object: {data!r}")
        update_id = data.get("updateId")
        task_id = data.get("taskId")
        raw_diff = data.get("diff")
        if not isinstance(update_id, str) or not isinstance(task_id, str):
            raise MalformedRecordError("Update record has no updateId/taskId")
        if not isinstance(raw_diff, dict):
            raise MalformedRecordError(f"Update {update_id} has no diff")
        try:
            timestamp = parse_instant(data["timestamp"])
        except (KeyError, ValueError, OverflowError, OSError) as e:
            raise MalformedRecordError(f"Update {update_id} has a bad timestamp: {e}") from e

        changes = {}
        for key, change in raw_diff.items():
            try:
                field = TaskField(key)
            except ValueError:
                continue
            if not isinstance(change, dict):
                raise MalformedRecordError(f"Update {update_id} has a bad diff entry for {key}")
            changes[field] = FieldChange(field, change.get("old"), change.get("new"))

        snapshot = data.get("fullSnapshot")
        return cls(
            update_id=update_id,
            task_id=task_id,
            timestamp=timestamp,
            changes=changes,
            snapshot=snapshot if isinstance(snapshot, dict) else {},
        )

    def to_dict(self) -> dict:
        return {
            "updateId": self.update_id,
            "taskId": self.task_id,
            "timestamp": to_epoch_ms(self.timestamp),
            "diff": {field.value: change.to_dict() for field, change in self.changes.items()},
            "fullSnapshot": self.snapshot,
        }


def load_updates(records: list) -> list[UpdateRecord]:
    """Build update records from storage, dropping the malformed ones."""
    updates = []
    for record in records:
        try:
            updates.append(UpdateRecord.from_dict(record))
        except MalformedRecordError as e:
            logger.warning(f"Dropping malformed update record: {e}")
    return updates


def _validated(field: TaskField, value):
    match field:
        case TaskField.TITLE:
            if not isinstance(value, str) or not value.strip():
                raise ValueError("Task title cannot be empty")
            return value.strip()
        case TaskField.NOTES:
            return (value or "").strip() or None
        case TaskField.DUE_DATE:
            if value in (None, ""):
                return None
            if not is_valid_date_key(value):
                raise ValueError(f"Invalid due date: {value!r} (expected YYYY-MM-DD)")
            return value
        case TaskField.DUE_HOUR:
            if value is None:
                return None
            if not isinstance(value, int) or not 0 <= value <= 23:
                raise ValueError(f"Invalid due hour: {value!r} (expected 0-23)")
            return value
        case TaskField.TAGS:
            return normalize_tags(value)
        case TaskField.COMPLETED:
            return bool(value)


def apply_edit(task: Task, now: datetime, **fields) -> tuple[Task, UpdateRecord | None]:
    """
    Apply an edit and produce its history record.

    Keyword names are Task attribute names (title, notes, due_date, due_hour,
    tags, completed). An edit that changes nothing returns the task untouched
    and no record; otherwise the revision goes up by exactly one, updated_at is
    stamped and the record carries the diff and full snapshot.
    """
    by_attr = {f.attr: f for f in TaskField}
    values = {}
    for name, value in fields.items():
        if name not in by_attr:
            raise TypeError(f"Unknown task field: {name}")
        values[name] = _validated(by_attr[name], value)

    candidate = replace(task, **values)
    changes = diff(task, candidate)
    if not changes:
        return task, None

    edited = replace(candidate, revision=task.revision + 1, updated_at=now)
    record = UpdateRecord(
        update_id=str(uuid.uuid4()),
        task_id=task.id,
        timestamp=now,
        changes=changes,
        snapshot=edited.to_dict(),
    )
    return edited, record


def history_for(updates: list[UpdateRecord], task_id: str) -> list[UpdateRecord]:
    """Update records for one task, newest first."""
    return sorted((u for u in updates if u.task_id == task_id), key=lambda u: u.timestamp, reverse=True)
