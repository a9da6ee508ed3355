"""Tests for the dayledger CLI."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from dayledger.cli import main
from dayledger.config import Config


@pytest.fixture
def data_dir(tmp_path):
    (tmp_path / "settings.json").write_text(json.dumps({"resetHour": 9, "timezone": "UTC"}))
    return tmp_path


@pytest.fixture
def runner(data_dir):
    with patch("dayledger.cli.load_config", return_value=Config(data_dir=str(data_dir))):
        yield CliRunner()


def stored_tasks(data_dir):
    return json.loads((data_dir / "tasks.json").read_text())


def add(runner, title, *args):
    result = runner.invoke(main, ["add", title, *args])
    assert result.exit_code == 0, result.output
    return result


class TestAdd:
    def test_add_persists_task(self, runner, data_dir):
        result = add(runner, "Water plants", "--tags", "Home, garden")
        tasks = stored_tasks(data_dir)

        assert len(tasks) == 1
        assert tasks[0]["title"] == "Water plants"
        assert tasks[0]["tags"] == ["home", "garden"]
        assert f"Added {tasks[0]['id'][:8]}: Water plants" in result.output

    def test_add_rejects_bad_due_date(self, runner, data_dir):
        result = runner.invoke(main, ["add", "Water plants", "--due", "soon"])
        assert result.exit_code == 1
        assert "Invalid due date" in result.output
        assert not (data_dir / "tasks.json").exists()


class TestList:
    def test_sections(self, runner):
        add(runner, "Water plants")
        result = runner.invoke(main, ["list"])
        assert result.exit_code == 0
        assert "Active (1)" in result.output
        assert "Water plants" in result.output
        assert "No expired tasks." in result.output
        assert "(1 remaining)" in result.output

    def test_json_and_filters(self, runner, data_dir):
        add(runner, "Water plants", "--tags", "home")
        add(runner, "Stretch", "--tags", "health")

        result = runner.invoke(main, ["list", "--json", "--tag", "health"])
        data = json.loads(result.output)
        assert [t["title"] for t in data["active"]] == ["Stretch"]
        assert data["active"][0]["handledToday"] is False
        assert data["expired"] == []


class TestStrike:
    def test_strike_by_prefix(self, runner, data_dir):
        add(runner, "Water plants")
        add(runner, "Stretch")
        task_id = stored_tasks(data_dir)[0]["id"]

        result = runner.invoke(main, ["strike", task_id[:8]])
        assert result.exit_code == 0
        assert "Struck Stretch" in result.output

        again = runner.invoke(main, ["strike", task_id])
        assert "Already handled today." in again.output

        strikes = json.loads((data_dir / "strikes.json").read_text())
        assert [(s["taskId"], s["action"]) for s in strikes] == [(task_id, "strike")]

    def test_last_strike_celebrates_once(self, runner, data_dir):
        add(runner, "Stretch")
        task_id = stored_tasks(data_dir)[0]["id"]

        result = runner.invoke(main, ["strike", task_id])
        assert "***" in result.output

        listing = runner.invoke(main, ["list"])
        assert "***" not in listing.output

    def test_unknown_task(self, runner):
        result = runner.invoke(main, ["strike", "nope"])
        assert result.exit_code == 1
        assert "no task matches 'nope'" in result.output

    def test_undo(self, runner, data_dir):
        add(runner, "Stretch")
        task_id = stored_tasks(data_dir)[0]["id"]
        runner.invoke(main, ["strike", task_id])

        result = runner.invoke(main, ["undo", task_id])
        assert "Undid strike on" in result.output
        assert json.loads((data_dir / "strikes.json").read_text()) == []

        again = runner.invoke(main, ["undo", task_id])
        assert "Nothing to undo today." in again.output

    def test_complete(self, runner, data_dir):
        add(runner, "Stretch")
        task_id = stored_tasks(data_dir)[0]["id"]

        result = runner.invoke(main, ["complete", task_id])
        assert "Completed Stretch." in result.output
        assert stored_tasks(data_dir)[0]["completed"] is True

    def test_complete_twice(self, runner, data_dir):
        add(runner, "Stretch")
        task_id = stored_tasks(data_dir)[0]["id"]
        runner.invoke(main, ["complete", task_id])

        result = runner.invoke(main, ["complete", task_id])
        assert "Already completed." in result.output
        strikes = json.loads((data_dir / "strikes.json").read_text())
        assert [s["action"] for s in strikes] == ["completed"]

    def test_strike_completed_task(self, runner, data_dir):
        add(runner, "Stretch")
        task_id = stored_tasks(data_dir)[0]["id"]
        runner.invoke(main, ["complete", task_id])

        result = runner.invoke(main, ["strike", task_id])
        assert result.exit_code == 1
        assert "already completed" in result.output


class TestEdit:
    def test_edit_and_history(self, runner, data_dir):
        add(runner, "Stretch")
        task_id = stored_tasks(data_dir)[0]["id"]

        result = runner.invoke(main, ["edit", task_id, "--title", "Yoga", "--due-hour", "7"])
        assert "Updated Yoga (revision 1): title, dueHour" in result.output

        history = runner.invoke(main, ["history", task_id])
        assert "revision 1" in history.output
        assert "title: 'Stretch' -> 'Yoga'" in history.output

        as_json = json.loads(runner.invoke(main, ["history", task_id, "--json"]).output)
        assert as_json[0]["diff"]["dueHour"] == {"old": None, "new": 7}

    def test_noop_edit(self, runner, data_dir):
        add(runner, "Stretch")
        task_id = stored_tasks(data_dir)[0]["id"]
        result = runner.invoke(main, ["edit", task_id, "--title", "Stretch"])
        assert "No changes." in result.output
        assert stored_tasks(data_dir)[0]["revision"] == 0

    def test_toggle(self, runner, data_dir):
        add(runner, "Stretch")
        task_id = stored_tasks(data_dir)[0]["id"]
        result = runner.invoke(main, ["toggle", task_id])
        assert "Stretch is now completed (revision 1)." in result.output

    def test_delete(self, runner, data_dir):
        add(runner, "Stretch")
        task_id = stored_tasks(data_dir)[0]["id"]
        result = runner.invoke(main, ["delete", task_id, "--yes"])
        assert "Deleted Stretch." in result.output
        assert stored_tasks(data_dir) == []


class TestSummaries:
    def test_today_json(self, runner, data_dir):
        add(runner, "Stretch")
        task_id = stored_tasks(data_dir)[0]["id"]
        runner.invoke(main, ["strike", task_id])

        data = json.loads(runner.invoke(main, ["today", "--json"]).output)
        assert data["total"] == 1
        assert data["completed"] == 1
        assert data["struck"] == 1
        assert len(data["times"]) == 1

    def test_today_rejects_bad_date(self, runner):
        result = runner.invoke(main, ["today", "--date", "yesterday"])
        assert result.exit_code == 1

    def test_stats_json(self, runner, data_dir):
        add(runner, "Stretch")
        data = json.loads(runner.invoke(main, ["stats", "--json"]).output)
        assert data["tasksAddedCount"] == 1
        assert data["strikesCount"] == 0
        assert data["expiredToday"] == 0
        assert (data_dir / "monthly-stats.json").exists()


class TestSettings:
    def test_show(self, runner):
        result = runner.invoke(main, ["settings"])
        assert "Reset hour: 09:00" in result.output
        assert "Timezone:   UTC" in result.output

    def test_change(self, runner, data_dir):
        result = runner.invoke(main, ["settings", "--reset-hour", "6", "--timezone", "Asia/Tokyo"])
        assert result.exit_code == 0
        assert "Timezone:   Asia/Tokyo" in result.output
        assert json.loads((data_dir / "settings.json").read_text()) == {"resetHour": 6, "timezone": "Asia/Tokyo"}

    def test_bad_timezone(self, runner):
        result = runner.invoke(main, ["settings", "--timezone", "Nowhere/Special"])
        assert result.exit_code == 1
        assert "Unknown timezone" in result.output


class TestTags:
    def test_lists_tags_in_use(self, runner):
        add(runner, "Water plants", "--tags", "home, garden")
        add(runner, "Stretch", "--tags", "health")
        result = runner.invoke(main, ["tags"])
        assert result.output.split() == ["garden", "health", "home"]

    def test_no_tags(self, runner):
        assert "No tags." in runner.invoke(main, ["tags"]).output


class TestNewDayRecap:
    @pytest.fixture
    def yesterday(self, data_dir):
        day = (datetime.now(timezone.utc) - timedelta(days=1)).date().isoformat()
        (data_dir / "tasks.json").write_text(json.dumps([{"id": "t1", "title": "Stretch", "createdAt": 0}]))
        (data_dir / "strikes.json").write_text(
            json.dumps([{"taskId": "t1", "date": day, "ts": 0, "action": "strike"}])
        )
        (data_dir / "state.json").write_text(json.dumps({"lastRecapDate": day, "allClearedOn": None}))
        return day

    @pytest.mark.parametrize("args", [["list", "--json"], ["today", "--json"], ["stats", "--json"]])
    def test_json_output_carries_recap(self, runner, yesterday, args):
        result = runner.invoke(main, args)
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["recap"] == {"date": yesterday, "totalTasks": 1, "completed": 1, "struck": 1, "expired": 0}
        assert data["completion"] is None

        follow_up = runner.invoke(main, ["list"])
        assert "Summary for" not in follow_up.output

    def test_settings_shows_recap(self, runner, yesterday):
        result = runner.invoke(main, ["settings", "--reset-hour", "8"])
        assert result.exit_code == 0
        assert f"Summary for {yesterday}" in result.output

    def test_recap_shown_once(self, runner, yesterday):
        first = runner.invoke(main, ["list"])
        assert f"Summary for {yesterday}" in first.output
        second = runner.invoke(main, ["list", "--json"])
        assert json.loads(second.output)["recap"] is None
