"""Functional core - pure business logic with no I/O."""

from .day_boundary import effective_date, effective_month, resolve_timezone, wall_clock
from .tasks import Task, filter_tasks, find_task
from .ledger import StrikeAction, StrikeEntry, StrikeLedger
from .classifier import Classification, classify, expired_entries_to_log
from .aggregator import (
    Counters,
    DailyAggregate,
    MonthlyAggregate,
    MonthlyStats,
    counters,
    daily_aggregate,
    monthly_aggregate,
    tasks_added_in_month,
)
from .settings import Settings
from .state import EngineState
from .completion import CompletionDetector, CompletionSignal
from .recap import RecapGenerator, RecapPayload, format_recap
from .revisions import FieldChange, TaskField, UpdateRecord, apply_edit, diff

__all__ = [
    # Day boundary
    "effective_date",
    "effective_month",
    "resolve_timezone",
    "wall_clock",
    # Tasks
    "Task",
    "filter_tasks",
    "find_task",
    # Ledger
    "StrikeAction",
    "StrikeEntry",
    "StrikeLedger",
    # Classifier
    "Classification",
    "classify",
    "expired_entries_to_log",
    # Aggregator
    "Counters",
    "DailyAggregate",
    "MonthlyAggregate",
    "MonthlyStats",
    "counters",
    "daily_aggregate",
    "monthly_aggregate",
    "tasks_added_in_month",
    # Settings
    "Settings",
    # Watchers
    "EngineState",
    "CompletionDetector",
    "CompletionSignal",
    "RecapGenerator",
    "RecapPayload",
    "format_recap",
    # Revisions
    "FieldChange",
    "TaskField",
    "UpdateRecord",
    "apply_edit",
    "diff",
]
