"""Tests for Active / Expired / Completed classification."""

from datetime import datetime, timezone

import pytest

from dayledger.core.classifier import classify, expired_entries_to_log, is_past_deadline
from dayledger.core.ledger import StrikeAction, StrikeEntry, StrikeLedger
from dayledger.core.tasks import Task

TODAY = "2025-01-15"


@pytest.fixture
def now():
    return datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


def make_task(task_id, now, **kwargs):
    return Task(id=task_id, title=f"Task {task_id}", created_at=now, updated_at=now, **kwargs)


def strike(task_id, date=TODAY, action=StrikeAction.STRIKE):
    return StrikeEntry(
        task_id=task_id, date=date, action=action, timestamp=datetime(2025, 1, 15, 8, tzinfo=timezone.utc)
    )


class TestIsPastDeadline:
    def test_no_deadline(self, now):
        assert not is_past_deadline(make_task("a", now), TODAY, 23)

    def test_due_hour_reached(self, now):
        task = make_task("a", now, due_hour=17)
        assert not is_past_deadline(task, TODAY, 16)
        assert is_past_deadline(task, TODAY, 17)

    def test_due_date_is_inclusive(self, now):
        task = make_task("a", now, due_date=TODAY)
        assert not is_past_deadline(task, TODAY, 23)
        assert is_past_deadline(task, "2025-01-16", 0)

    def test_due_date_wins_over_due_hour(self, now):
        task = make_task("a", now, due_date="2025-01-20", due_hour=8)
        assert not is_past_deadline(task, TODAY, 20)


class TestClassify:
    def test_unhandled_task_expires_at_due_hour(self, now):
        task = make_task("a", now, due_hour=17)
        ledger = StrikeLedger()

        assert [t.id for t in classify([task], ledger, TODAY, 16).active] == ["a"]
        assert [t.id for t in classify([task], ledger, TODAY, 17).expired] == ["a"]

    def test_struck_task_stays_active_after_due_hour(self, now):
        task = make_task("a", now, due_hour=17)
        ledger = StrikeLedger([strike("a")])

        result = classify([task], ledger, TODAY, 20)
        assert [t.id for t in result.active] == ["a"]
        assert result.expired == []
        assert result.is_handled(task)

    def test_strike_from_yesterday_does_not_protect(self, now):
        task = make_task("a", now, due_hour=17)
        ledger = StrikeLedger([strike("a", date="2025-01-14")])

        assert [t.id for t in classify([task], ledger, TODAY, 18).expired] == ["a"]

    def test_completed_tasks_partitioned_first(self, now):
        task = make_task("a", now, due_hour=1, completed=True)
        result = classify([task], StrikeLedger(), TODAY, 23)
        assert [t.id for t in result.completed] == ["a"]
        assert result.active == [] and result.expired == []

    def test_partitions_are_disjoint_and_cover_everything(self, now):
        tasks = [
            make_task("a", now),
            make_task("b", now, due_hour=9),
            make_task("c", now, completed=True),
            make_task("d", now, due_date="2025-01-10"),
        ]
        result = classify(tasks, StrikeLedger(), TODAY, 12)
        ids = [t.id for part in (result.active, result.expired, result.completed) for t in part]
        assert sorted(ids) == ["a", "b", "c", "d"]
        assert len(ids) == len(set(ids))

    def test_handled_tasks_sort_last_and_order_is_stable(self, now):
        tasks = [make_task(i, now) for i in ("a", "b", "c", "d")]
        ledger = StrikeLedger([strike("a"), strike("c")])

        result = classify(tasks, ledger, TODAY, 12)
        assert [t.id for t in result.active] == ["b", "d", "a", "c"]
        assert result.remaining == 2

    def test_expired_ledger_entry_does_not_count_as_handled(self, now):
        task = make_task("a", now, due_hour=9)
        ledger = StrikeLedger([strike("a", action=StrikeAction.EXPIRED)])
        assert [t.id for t in classify([task], ledger, TODAY, 12).expired] == ["a"]


class TestExpiredEntriesToLog:
    def test_logs_each_expired_task_once(self, now):
        tasks = [make_task("a", now, due_hour=9), make_task("b", now)]
        ledger = StrikeLedger()

        entries = expired_entries_to_log(tasks, ledger, TODAY, 12, now)
        assert [(e.task_id, e.action) for e in entries] == [("a", StrikeAction.EXPIRED)]
        assert entries[0].date == TODAY

        ledger.extend(entries)
        assert expired_entries_to_log(tasks, ledger, TODAY, 13, now) == []

    def test_logs_again_on_a_new_day(self, now):
        tasks = [make_task("a", now, due_hour=9)]
        ledger = StrikeLedger([strike("a", action=StrikeAction.EXPIRED)])
        entries = expired_entries_to_log(tasks, ledger, "2025-01-16", 10, now)
        assert [e.date for e in entries] == ["2025-01-16"]
