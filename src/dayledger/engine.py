"""Workflow layer between the CLI/scheduler and the functional core.

The engine owns the in-memory collections, runs every mutation through the
core, re-evaluates the day afterwards and hands snapshots to the persistence
writer. It is the single writer for its data directory.
"""

import logging
import random
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from apscheduler.schedulers.base import BaseScheduler

from .adapters.json_store import JsonStores
from .config import Config
from .core.aggregator import (
    Counters,
    DailyAggregate,
    MonthlyAggregate,
    MonthlyStats,
    counters,
    daily_aggregate,
    find_monthly_stats,
    merge_monthly_stats,
    monthly_aggregate,
    refresh_monthly_stats,
)
from .core.classifier import Classification, classify, expired_entries_to_log
from .core.completion import CompletionDetector, CompletionSignal
from .core.day_boundary import current_hour, effective_date, effective_month
from .core.ledger import StrikeAction, StrikeEntry, StrikeLedger
from .core.recap import RecapGenerator, RecapPayload
from .core.revisions import UpdateRecord, apply_edit, history_for, load_updates
from .core.settings import Settings
from .core.state import EngineState
from .core.tasks import Task, find_task, load_tasks
from .errors import PersistenceError, TaskCompletedError, TaskNotFoundError
from .persistence import DebouncedWriter
from .ports.stores import StoreSet

logger = logging.getLogger(__name__)

TASKS = "tasks"
LEDGER = "ledger"
UPDATES = "updates"
USED_MESSAGES = "used_messages"
MONTHLY_STATS = "monthly_stats"
STATE = "state"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Evaluation:
    """Outcome of one pass over the current instant."""

    now: datetime
    today: str
    month: str
    current_hour: int
    classification: Classification
    expired_logged: list[StrikeEntry] = field(default_factory=list)
    completion: CompletionSignal | None = None
    recap: RecapPayload | None = None


class Engine:
    """Temporal task-state engine for one user's data."""

    def __init__(
        self,
        stores: StoreSet,
        writer: DebouncedWriter | None = None,
        clock: Callable[[], datetime] = utcnow,
        rng: random.Random | None = None,
    ):
        self.stores = stores
        self.writer = writer or DebouncedWriter()
        self.clock = clock
        self._lock = threading.RLock()

        self.settings: Settings = stores.settings.load()
        self.tasks: list[Task] = load_tasks(stores.tasks.load_all())
        self.ledger = StrikeLedger.from_records(stores.ledger.load_all())
        self.updates: list[UpdateRecord] = load_updates(stores.updates.load_all())
        self.state = EngineState.from_stored(stores.state.load(), stores.used_messages.load_all())

        self.completion = CompletionDetector(self.state, rng=rng)
        self.recaps = RecapGenerator(self.state)
        self._pending_recap: RecapPayload | None = None

    @classmethod
    def open(cls, config: Config, scheduler: BaseScheduler | None = None) -> "Engine":
        """Engine over the JSON stores in the configured data directory."""
        stores = JsonStores(config.resolved_data_dir())
        writer = DebouncedWriter(scheduler, config.save_debounce_seconds)
        return cls(stores, writer)

    # ============== Persistence ==============

    def _save_tasks(self) -> None:
        self.writer.submit(TASKS, self.stores.tasks.replace_all, [t.to_dict() for t in self.tasks])

    def _save_ledger(self) -> None:
        self.writer.submit(LEDGER, self.stores.ledger.replace_all, self.ledger.to_records())

    def _save_updates(self) -> None:
        self.writer.submit(UPDATES, self.stores.updates.replace_all, [u.to_dict() for u in self.updates])

    def _save_used_messages(self) -> None:
        self.writer.submit(USED_MESSAGES, self.stores.used_messages.replace_all, list(self.state.used_message_ids))

    def _save_state(self) -> None:
        self.writer.submit(STATE, self.stores.state.save, self.state.to_dict())

    def close(self) -> bool:
        """Final flush. Returns False if anything could not be written."""
        with self._lock:
            ok = self.writer.flush()
        if not ok:
            logger.error("Some changes could not be saved before shutdown")
        return ok

    # ============== Day resolution ==============

    def now(self) -> datetime:
        return self.clock()

    def today(self, now: datetime | None = None) -> str:
        now = now or self.clock()
        return effective_date(now, self.settings.timezone, self.settings.reset_hour)

    def month(self, now: datetime | None = None) -> str:
        now = now or self.clock()
        return effective_month(now, self.settings.timezone, self.settings.reset_hour)

    def classify(self, now: datetime | None = None) -> Classification:
        now = now or self.clock()
        with self._lock:
            return classify(
                self.tasks,
                self.ledger,
                self.today(now),
                current_hour(now, self.settings.timezone),
            )

    # ============== Evaluation ==============

    def evaluate(self, now: datetime | None = None) -> Evaluation:
        """
        Re-derive the day's state and run the watchers.

        Logs newly expired tasks, classifies, then runs the completion detector
        and recap generator. Safe to call repeatedly: a second call with the
        same inputs logs nothing and emits nothing.
        """
        now = now or self.clock()
        with self._lock:
            today = self.today(now)
            hour = current_hour(now, self.settings.timezone)

            logged = expired_entries_to_log(self.tasks, self.ledger, today, hour, now)
            if logged:
                self.ledger.extend(logged)
                self._save_ledger()
                logger.info(f"Logged {len(logged)} expired task(s) for {today}")

            classification = classify(self.tasks, self.ledger, today, hour)

            before = self.state.to_dict()

            completion = self.completion.evaluate(classification)
            if completion is not None:
                self._save_used_messages()

            recap = self.recaps.evaluate(today, self.ledger)
            if recap is not None:
                self._pending_recap = recap
            if self.state.to_dict() != before:
                self._save_state()

            return Evaluation(
                now=now,
                today=today,
                month=self.month(now),
                current_hour=hour,
                classification=classification,
                expired_logged=logged,
                completion=completion,
                recap=recap,
            )

    def poll(self) -> Evaluation:
        """Periodic wall-clock sample, driven by the scheduler."""
        return self.evaluate()

    def acknowledge_completion(self) -> CompletionSignal | None:
        """Take the pending celebration, if any, marking it displayed."""
        with self._lock:
            return self.completion.acknowledge()

    def take_recap(self) -> RecapPayload | None:
        """Take the recap emitted by an earlier evaluation, if not yet shown."""
        with self._lock:
            recap, self._pending_recap = self._pending_recap, None
            return recap

    # ============== Task mutations ==============

    def get_task(self, task_id: str) -> Task:
        task = find_task(self.tasks, task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def _replace_task(self, task: Task) -> None:
        self.tasks = [task if t.id == task.id else t for t in self.tasks]

    def add_task(
        self,
        title: str,
        notes: str | None = None,
        due_date: str | None = None,
        due_hour: int | None = None,
        tags: list[str] | None = None,
    ) -> Task:
        """Create a task at revision 0. Newest tasks come first."""
        with self._lock:
            task = Task.new(title, self.clock(), notes=notes, due_date=due_date, due_hour=due_hour, tags=tags)
            self.tasks = [task, *self.tasks]
            self._save_tasks()
            self.evaluate()
            return task

    def edit_task(self, task_id: str, **fields) -> tuple[Task, UpdateRecord | None]:
        """
        Edit tracked fields of a task.

        No-op edits leave the revision alone and record nothing.
        """
        with self._lock:
            old = self.get_task(task_id)
            task, record = apply_edit(old, self.clock(), **fields)
            if record is None:
                return old, None
            self._replace_task(task)
            self.updates.append(record)
            self._save_tasks()
            self._save_updates()
            self.evaluate()
            return task, record

    def toggle_completed(self, task_id: str) -> Task:
        task = self.get_task(task_id)
        edited, _ = self.edit_task(task_id, completed=not task.completed)
        return edited

    def delete_task(self, task_id: str) -> Task:
        """Remove a task. Its ledger and update entries are left in place."""
        with self._lock:
            task = self.get_task(task_id)
            self.tasks = [t for t in self.tasks if t.id != task_id]
            self._save_tasks()
            self.evaluate()
            return task

    # ============== Ledger mutations ==============

    def strike(self, task_id: str, note: str | None = None) -> StrikeEntry | None:
        """
        Mark a task handled for today.

        Returns None without writing when the task is already handled today.
        Raises TaskCompletedError for a completed task.
        """
        with self._lock:
            task = self.get_task(task_id)
            if task.completed:
                raise TaskCompletedError(f"Task {task.title!r} is already completed")
            now = self.clock()
            today = self.today(now)
            if self.ledger.is_handled(task_id, today):
                return None
            entry = StrikeEntry(
                task_id=task_id,
                date=today,
                action=StrikeAction.STRIKE,
                timestamp=now,
                note=(note or "").strip() or None,
            )
            self.ledger.append(entry)
            self._save_ledger()
            self.evaluate(now)
            return entry

    def mark_completed(self, task_id: str, note: str | None = None) -> StrikeEntry | None:
        """
        Record a completed event for today and close the task.

        Returns None without writing when the task is already completed or
        already has a completed entry today.
        """
        with self._lock:
            task = self.get_task(task_id)
            now = self.clock()
            today = self.today(now)
            if task.completed or self.ledger.has_entry(task_id, today, StrikeAction.COMPLETED):
                return None
            entry = StrikeEntry(
                task_id=task_id,
                date=today,
                action=StrikeAction.COMPLETED,
                timestamp=now,
                note=(note or "").strip() or None,
            )
            self.ledger.append(entry)
            self._save_ledger()
            self.edit_task(task_id, completed=True)
            self.evaluate(now)
            return entry

    def reload_ledger(self) -> None:
        """
        Replace the in-memory ledger with the stored one.

        Pending ledger writes are flushed first; if that fails the in-memory
        ledger is newer than the store and is kept.
        """
        with self._lock:
            self.writer.flush(LEDGER)
            if self.writer.is_dirty(LEDGER):
                logger.warning("Ledger has unsaved changes, keeping the in-memory copy")
                return
            self.ledger = StrikeLedger.from_records(self.stores.ledger.load_all())

    def undo_strike(self, task_id: str) -> StrikeEntry | None:
        """Remove today's most recent ledger entry for a task, if any."""
        with self._lock:
            self.reload_ledger()
            now = self.clock()
            removed = self.ledger.undo_last(task_id, self.today(now))
            if removed is None:
                return None
            self._save_ledger()
            self.evaluate(now)
            return removed

    # ============== Reads ==============

    def history(self, task_id: str) -> list[UpdateRecord]:
        return history_for(self.updates, task_id)

    def daily_summary(self, date_key: str | None = None) -> DailyAggregate:
        with self._lock:
            return daily_aggregate(self.ledger, date_key or self.today())

    def monthly_summary(self, month_key: str | None = None) -> MonthlyAggregate:
        with self._lock:
            return monthly_aggregate(self.ledger, month_key or self.month())

    def counters(self) -> Counters:
        now = self.clock()
        with self._lock:
            return counters(self.ledger, self.classify(now), self.month(now))

    def monthly_stats(self, month_key: str | None = None) -> MonthlyStats:
        """Recompute the stored monthly counters and refresh the cache."""
        now = self.clock()
        month_key = month_key or self.month(now)
        with self._lock:
            records = self.stores.monthly_stats.load_all()
            cached = find_monthly_stats(records, month_key)
            stats = refresh_monthly_stats(
                cached, self.ledger, self.tasks, month_key, self.settings.timezone, now
            )
            if stats != cached:
                self.writer.submit(
                    MONTHLY_STATS,
                    self.stores.monthly_stats.replace_all,
                    merge_monthly_stats(records, stats),
                )
            return stats

    # ============== Settings ==============

    def update_settings(self, reset_hour: int | None = None, timezone: str | None = None) -> Settings:
        """
        Change the reset hour or timezone.

        Applies to later computations only; the ledger is not re-stamped.
        """
        with self._lock:
            self.settings = self.settings.updated(reset_hour=reset_hour, timezone=timezone)
            try:
                self.stores.settings.save(self.settings)
            except PersistenceError as e:
                logger.error(f"Failed to save settings: {e}")
            self.evaluate()
            return self.settings
