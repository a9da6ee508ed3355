"""Active / Expired / Completed partitioning - pure, no I/O."""

from dataclasses import dataclass, field
from datetime import datetime

from .ledger import StrikeAction, StrikeEntry, StrikeLedger
from .tasks import Task


@dataclass
class Classification:
    """Disjoint partitions of a task set for one effective day."""

    today: str
    active: list[Task] = field(default_factory=list)
    expired: list[Task] = field(default_factory=list)
    completed: list[Task] = field(default_factory=list)
    handled_ids: set[str] = field(default_factory=set)

    def is_handled(self, task: Task) -> bool:
        """True if the task has a strike or completed entry for today."""
        return task.id in self.handled_ids

    @property
    def remaining(self) -> int:
        """Active tasks not yet handled today."""
        return sum(1 for t in self.active if t.id not in self.handled_ids)


def is_past_deadline(task: Task, today: str, current_hour: int) -> bool:
    """
    Deadline check ignoring the ledger.

    An absolute due date wins over the legacy due hour: with a due date the
    task expires the day after it, with only a due hour it expires once the
    wall clock reaches that hour.
    """
    if task.due_date:
        return today > task.due_date
    if task.due_hour is None:
        return False
    return current_hour >= task.due_hour


def classify(
    tasks: list[Task],
    ledger: StrikeLedger,
    today: str,
    current_hour: int,
) -> Classification:
    """
    Split tasks into Active, Expired and Completed for the effective day.

    Handled-today tasks stay Active but sort after the unhandled ones; the sort
    is stable otherwise. Pure function - no I/O.
    """
    handled = ledger.handled_task_ids(today)
    result = Classification(today=today, handled_ids=handled)

    for task in tasks:
        if task.completed:
            result.completed.append(task)
        elif task.id not in handled and is_past_deadline(task, today, current_hour):
            result.expired.append(task)
        else:
            result.active.append(task)

    result.active.sort(key=lambda t: t.id in handled)
    return result


def expired_entries_to_log(
    tasks: list[Task],
    ledger: StrikeLedger,
    today: str,
    current_hour: int,
    now: datetime,
) -> list[StrikeEntry]:
    """
    New ledger entries recording today's expired tasks.

    At most one expired entry per task per day; tasks already logged as expired
    today are skipped.
    """
    classification = classify(tasks, ledger, today, current_hour)
    return [
        StrikeEntry(task_id=t.id, date=today, action=StrikeAction.EXPIRED, timestamp=now)
        for t in classification.expired
        if not ledger.has_expired_entry(t.id, today)
    ]
