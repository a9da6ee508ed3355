"""Pure task domain logic - no I/O dependencies."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from dayledger.errors import MalformedRecordError

from .day_boundary import is_valid_date_key, parse_instant, to_epoch_ms

logger = logging.getLogger(__name__)


def normalize_tags(tags) -> list[str] | None:
    """Lowercase, trim and dedupe tags, keeping first-seen order. None when empty."""
    if not tags:
        return None
    seen: list[str] = []
    for tag in tags:
        if not isinstance(tag, str):
            continue
        tag = tag.strip().lower()
        if tag and tag not in seen:
            seen.append(tag)
    return seen or None


def parse_tags(raw: str) -> list[str] | None:
    """Parse a comma-separated tag string as typed by a user."""
    return normalize_tags(raw.split(","))


def _optional_due_hour(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int) and 0 <= value <= 23:
        return value
    return None


@dataclass
class Task:
    """A recurring daily task."""

    id: str
    title: str
    created_at: datetime
    updated_at: datetime
    completed: bool = False
    revision: int = 0
    notes: str | None = None
    due_date: str | None = None  # YYYY-MM-DD in the user's timezone
    due_hour: int | None = None  # legacy deadline-by-hour, superseded by due_date
    tags: list[str] | None = None

    @classmethod
    def new(
        cls,
        title: str,
        now: datetime,
        notes: str | None = None,
        due_date: str | None = None,
        due_hour: int | None = None,
        tags: list[str] | None = None,
    ) -> "Task":
        """Create a fresh task at revision 0."""
        title = title.strip()
        if not title:
            raise ValueError("Task title cannot be empty")
        if due_date is not None and not is_valid_date_key(due_date):
            raise ValueError(f"Invalid due date: {due_date!r} (expected YYYY-MM-DD)")
        if due_hour is not None and not 0 <= due_hour <= 23:
            raise ValueError(f"Invalid due hour: {due_hour} (expected 0-23)")
        return cls(
            id=str(uuid.uuid4()),
            title=title,
            created_at=now,
            updated_at=now,
            notes=(notes or "").strip() or None,
            due_date=due_date,
            due_hour=due_hour,
            tags=normalize_tags(tags),
        )

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        """Create Task from a stored record.

        Raises MalformedRecordError when a required field is missing or unusable.
        Invalid optional fields are dropped.
        """
        if not isinstance(data, dict):
            raise MalformedRecordError(f"Task record is not an object: {data!r}")
        task_id = data.get("id")
        title = data.get("title")
        if not isinstance(task_id, str) or not task_id:
            raise MalformedRecordError("Task record has no id")
        if not isinstance(title, str):
            raise MalformedRecordError(f"Task {task_id} has no title")
        try:
            created_at = parse_instant(data["createdAt"])
            updated_at = parse_instant(data.get("updatedAt", data["createdAt"]))
        except (KeyError, ValueError, OverflowError, OSError) as e:
            raise MalformedRecordError(f"Task {task_id} has a bad timestamp: {e}") from e

        revision = data.get("revision", 0)
        if not isinstance(revision, int) or isinstance(revision, bool) or revision < 0:
            revision = 0

        due_date = data.get("dueDate")
        if due_date is not None and not (isinstance(due_date, str) and is_valid_date_key(due_date)):
            logger.debug(f"Dropping invalid dueDate {due_date!r} on task {task_id}")
            due_date = None

        notes = data.get("notes")
        return cls(
            id=task_id,
            title=title,
            created_at=created_at,
            updated_at=updated_at,
            completed=bool(data.get("completed", False)),
            revision=revision,
            notes=notes if isinstance(notes, str) and notes else None,
            due_date=due_date,
            due_hour=_optional_due_hour(data.get("dueHour")),
            tags=normalize_tags(data.get("tags") if isinstance(data.get("tags"), list) else None),
        )

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible record. Unset optional fields are omitted."""
        data: dict = {
            "id": self.id,
            "revision": self.revision,
            "title": self.title,
            "completed": self.completed,
            "createdAt": to_epoch_ms(self.created_at),
            "updatedAt": to_epoch_ms(self.updated_at),
        }
        if self.notes is not None:
            data["notes"] = self.notes
        if self.due_date is not None:
            data["dueDate"] = self.due_date
        if self.due_hour is not None:
            data["dueHour"] = self.due_hour
        if self.tags:
            data["tags"] = list(self.tags)
        return data


def load_tasks(records: list) -> list[Task]:
    """Build tasks from stored records, dropping the malformed ones."""
    tasks = []
    for record in records:
        try:
            tasks.append(Task.from_dict(record))
        except MalformedRecordError as e:
            logger.warning(f"Dropping malformed task record: {e}")
    return tasks


def find_task(tasks: list[Task], task_id: str) -> Task | None:
    """Find a task by id."""
    return next((t for t in tasks if t.id == task_id), None)


def filter_tasks(tasks: list[Task], query: str = "", tags: list[str] | None = None) -> list[Task]:
    """
    Filter tasks by free-text query and required tags.

    The query matches title, notes or any tag (case-insensitive). Every
    selected tag must be present on the task.
    """
    q = query.strip().lower()
    wanted = normalize_tags(tags) or []

    def matches(t: Task) -> bool:
        if q:
            text_ok = (
                q in t.title.lower()
                or (t.notes is not None and q in t.notes.lower())
                or any(q in tag for tag in t.tags or [])
            )
            if not text_ok:
                return False
        return all(tag in (t.tags or []) for tag in wanted)

    return [t for t in tasks if matches(t)]


def all_tags(tasks: list[Task]) -> list[str]:
    """Sorted set of tags across all tasks."""
    return sorted({tag for t in tasks for tag in t.tags or []})
