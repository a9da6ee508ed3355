"""dayledger CLI - daily task ledger."""

import json
import sys

import click

from .config import load_config
from .core.day_boundary import is_valid_date_key, wall_clock
from .core.recap import format_recap
from .core.tasks import Task, all_tags, filter_tasks, parse_tags
from .engine import Engine
from .errors import TaskCompletedError


def _open_engine() -> Engine:
    return Engine.open(load_config())


def _resolve_id(engine: Engine, task_ref: str) -> str:
    """Accept a full task id or a unique prefix of one."""
    matches = [t.id for t in engine.tasks if t.id.startswith(task_ref)]
    if task_ref in matches:
        return task_ref
    if len(matches) == 1:
        return matches[0]
    if not matches:
        click.echo(f"Error: no task matches '{task_ref}'", err=True)
    else:
        click.echo(f"Error: '{task_ref}' matches {len(matches)} tasks, be more specific", err=True)
    sys.exit(1)


def _show_notifications(engine: Engine) -> None:
    """Print a pending recap and celebration, then mark them shown."""
    recap = engine.take_recap()
    if recap is not None:
        click.echo(format_recap(recap))
        click.echo("")
    signal = engine.acknowledge_completion()
    if signal is not None:
        click.echo(f"*** {signal.message.text} ***")


def _notifications_json(engine: Engine) -> dict:
    """Pending recap and celebration as JSON fields, marking them shown."""
    recap = engine.take_recap()
    signal = engine.acknowledge_completion()
    return {
        "recap": recap.to_dict() if recap is not None else None,
        "completion": signal.message.text if signal is not None else None,
    }


def _emit_json(engine: Engine, data) -> None:
    click.echo(json.dumps(data, indent=2))
    if not engine.close():
        click.echo("Warning: some changes could not be saved.", err=True)


def _task_line(task: Task, handled: bool = False) -> str:
    marker = "x" if handled or task.completed else " "
    due = ""
    if task.due_date:
        due = f" (due {task.due_date})"
    elif task.due_hour is not None:
        due = f" (by {task.due_hour:02d}:00)"
    tags = f" [{', '.join(task.tags)}]" if task.tags else ""
    return f"[{marker}] {task.id[:8]}  {task.title}{due}{tags}"


def _task_json(task: Task, handled: bool = False) -> dict:
    data = task.to_dict()
    data["handledToday"] = handled
    return data


def _finish(engine: Engine) -> None:
    _show_notifications(engine)
    if not engine.close():
        click.echo("Warning: some changes could not be saved.", err=True)


@click.group()
@click.version_option()
def main():
    """dayledger - daily task ledger."""
    pass


@main.command()
@click.argument("title")
@click.option("--notes", "-n", default=None, help="Free-form notes")
@click.option("--due", "due_date", default=None, help="Due date (YYYY-MM-DD)")
@click.option("--due-hour", type=click.IntRange(0, 23), default=None, help="Daily deadline hour (0-23)")
@click.option("--tags", "-t", default="", help="Comma-separated tags")
def add(title: str, notes: str | None, due_date: str | None, due_hour: int | None, tags: str):
    """Add a task."""
    engine = _open_engine()
    try:
        task = engine.add_task(title, notes=notes, due_date=due_date, due_hour=due_hour, tags=parse_tags(tags))
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Added {task.id[:8]}: {task.title}")
    _finish(engine)


@main.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--query", "-q", default="", help="Filter by text in title, notes or tags")
@click.option("--tag", "tags", multiple=True, help="Only tasks with this tag (repeatable)")
def list_tasks(as_json: bool, query: str, tags: tuple[str, ...]):
    """List active, expired and completed tasks for today."""
    engine = _open_engine()
    evaluation = engine.evaluate()
    c = evaluation.classification

    sections = [
        ("active", filter_tasks(c.active, query, list(tags))),
        ("expired", filter_tasks(c.expired, query, list(tags))),
        ("completed", filter_tasks(c.completed, query, list(tags))),
    ]

    if as_json:
        _emit_json(
            engine,
            {
                "today": evaluation.today,
                **{name: [_task_json(t, c.is_handled(t)) for t in items] for name, items in sections},
                **_notifications_json(engine),
            },
        )
        return

    click.echo(f"Today: {evaluation.today}  ({c.remaining} remaining)\n")
    for name, items in sections:
        click.echo(f"{name.capitalize()} ({len(items)})")
        if not items:
            click.echo(f"  No {name} tasks.")
        for task in items:
            click.echo(f"  {_task_line(task, c.is_handled(task))}")
        click.echo("")
    _finish(engine)


@main.command()
def tags():
    """List every tag in use, for use with list --tag."""
    engine = _open_engine()
    names = all_tags(engine.tasks)
    if not names:
        click.echo("No tags.")
    for name in names:
        click.echo(name)
    engine.close()


@main.command()
@click.argument("task_ref")
@click.option("--note", default=None, help="Note stored with the strike")
def strike(task_ref: str, note: str | None):
    """Strike a task for today."""
    engine = _open_engine()
    task_id = _resolve_id(engine, task_ref)
    try:
        entry = engine.strike(task_id, note=note)
    except TaskCompletedError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    if entry is None:
        click.echo("Already handled today.")
    else:
        click.echo(f"Struck {engine.get_task(task_id).title} for {entry.date}. Undo with: dayledger undo {task_id[:8]}")
    _finish(engine)


@main.command()
@click.argument("task_ref")
@click.option("--note", default=None, help="Note stored with the completion")
def complete(task_ref: str, note: str | None):
    """Mark a task completed for good."""
    engine = _open_engine()
    task_id = _resolve_id(engine, task_ref)
    if engine.mark_completed(task_id, note=note) is None:
        click.echo("Already completed.")
    else:
        click.echo(f"Completed {engine.get_task(task_id).title}.")
    _finish(engine)


@main.command()
@click.argument("task_ref")
def undo(task_ref: str):
    """Undo today's most recent strike for a task."""
    engine = _open_engine()
    task_id = _resolve_id(engine, task_ref)
    removed = engine.undo_strike(task_id)
    if removed is None:
        click.echo("Nothing to undo today.")
    else:
        click.echo(f"Undid {removed.action.value} on {removed.date}.")
    _finish(engine)


@main.command()
@click.argument("task_ref")
def toggle(task_ref: str):
    """Toggle a task's completed flag."""
    engine = _open_engine()
    task = engine.toggle_completed(_resolve_id(engine, task_ref))
    state = "completed" if task.completed else "open"
    click.echo(f"{task.title} is now {state} (revision {task.revision}).")
    _finish(engine)


@main.command()
@click.argument("task_ref")
@click.option("--title", default=None, help="New title")
@click.option("--notes", default=None, help="New notes (empty string clears)")
@click.option("--due", "due_date", default=None, help="New due date (YYYY-MM-DD, empty string clears)")
@click.option("--due-hour", type=click.IntRange(0, 23), default=None, help="New daily deadline hour")
@click.option("--clear-due-hour", is_flag=True, help="Remove the daily deadline hour")
@click.option("--tags", default=None, help="Replace tags (comma-separated, empty string clears)")
def edit(
    task_ref: str,
    title: str | None,
    notes: str | None,
    due_date: str | None,
    due_hour: int | None,
    clear_due_hour: bool,
    tags: str | None,
):
    """Edit a task, recording the change in its history."""
    engine = _open_engine()
    task_id = _resolve_id(engine, task_ref)

    fields = {}
    if title is not None:
        fields["title"] = title
    if notes is not None:
        fields["notes"] = notes
    if due_date is not None:
        fields["due_date"] = due_date or None
    if clear_due_hour:
        fields["due_hour"] = None
    elif due_hour is not None:
        fields["due_hour"] = due_hour
    if tags is not None:
        fields["tags"] = parse_tags(tags)

    try:
        task, record = engine.edit_task(task_id, **fields)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if record is None:
        click.echo("No changes.")
    else:
        changed = ", ".join(f.value for f in record.changes)
        click.echo(f"Updated {task.title} (revision {task.revision}): {changed}")
    _finish(engine)


@main.command()
@click.argument("task_ref")
@click.confirmation_option(prompt="Delete this task?")
def delete(task_ref: str):
    """Delete a task. Its ledger history is kept."""
    engine = _open_engine()
    task = engine.delete_task(_resolve_id(engine, task_ref))
    click.echo(f"Deleted {task.title}.")
    _finish(engine)


@main.command()
@click.argument("task_ref")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def history(task_ref: str, as_json: bool):
    """Show a task's edit history, newest first."""
    engine = _open_engine()
    task_id = _resolve_id(engine, task_ref)
    records = engine.history(task_id)

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in records], indent=2))
        return

    if not records:
        click.echo("No edits recorded.")
        return

    tz = engine.settings.timezone
    for record in records:
        when = wall_clock(record.timestamp, tz).strftime("%Y-%m-%d %H:%M")
        revision = record.snapshot.get("revision", "?")
        click.echo(f"{when}  revision {revision}")
        for field, change in record.changes.items():
            click.echo(f"  {field.value}: {change.old!r} -> {change.new!r}")


@main.command()
@click.option("--date", "-d", "target_date", default=None, help="Day to summarize (YYYY-MM-DD), defaults to today")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def today(target_date: str | None, as_json: bool):
    """Summarize one day of the ledger."""
    if target_date and not is_valid_date_key(target_date):
        click.echo(f"Error: invalid date '{target_date}'", err=True)
        sys.exit(1)

    engine = _open_engine()
    engine.evaluate()
    summary = engine.daily_summary(target_date)
    tz = engine.settings.timezone

    if as_json:
        _emit_json(
            engine,
            {
                "date": summary.date,
                "total": summary.total,
                "completed": summary.completed_count,
                "struck": summary.struck_count,
                "expired": summary.expired_count,
                "times": [wall_clock(t, tz).isoformat() for t in summary.times],
                **_notifications_json(engine),
            },
        )
        return

    click.echo(f"{summary.date}: {summary.total} tasks touched")
    click.echo(f"  Handled: {summary.completed_count}  (struck {summary.struck_count})")
    click.echo(f"  Expired: {summary.expired_count}")
    if summary.times:
        times = ", ".join(wall_clock(t, tz).strftime("%H:%M") for t in summary.times)
        click.echo(f"  Times:   {times}")
    _finish(engine)


@main.command()
@click.option("--month", "-m", "month_key", default=None, help="Month (YYYY-MM), defaults to the current effective month")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def stats(month_key: str | None, as_json: bool):
    """Monthly counters."""
    engine = _open_engine()
    engine.evaluate()
    monthly = engine.monthly_stats(month_key)
    live = engine.counters()

    if as_json:
        data = monthly.to_dict()
        data["expiredToday"] = live.expired
        data.update(_notifications_json(engine))
        _emit_json(engine, data)
        return

    click.echo(f"Month {monthly.month}")
    click.echo(f"  Struck:      {monthly.strikes_count}")
    click.echo(f"  Completed:   {monthly.completed_count}")
    click.echo(f"  Expired:     {monthly.expired_count}")
    click.echo(f"  Tasks added: {monthly.tasks_added_count}")
    click.echo(f"  Expired today: {live.expired}")
    _finish(engine)


@main.command()
@click.option("--reset-hour", type=click.IntRange(0, 23), default=None, help="Hour the day's month key rolls over")
@click.option("--timezone", "tz", default=None, help="IANA timezone, e.g. Europe/Berlin")
def settings(reset_hour: int | None, tz: str | None):
    """Show or change the reset hour and timezone."""
    engine = _open_engine()
    if reset_hour is not None or tz is not None:
        try:
            engine.update_settings(reset_hour=reset_hour, timezone=tz)
        except ValueError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

    click.echo(f"Reset hour: {engine.settings.reset_hour:02d}:00")
    click.echo(f"Timezone:   {engine.settings.timezone}")
    _finish(engine)


@main.command()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def watch(debug: bool):
    """Stay running: log expirations, print recaps and celebrations."""
    import logging

    from .scheduler import run_watch

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else logging.INFO,
    )

    click.echo("Watching... Press Ctrl+C to stop")
    run_watch(click.echo)
    click.echo("\nStopped.")
