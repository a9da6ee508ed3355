"""Long-running host: periodic polling and persistence jobs."""

import logging
from datetime import datetime, timezone
from typing import Callable

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .config import Config, load_config
from .core.recap import format_recap
from .engine import Engine

logger = logging.getLogger(__name__)


def create_scheduler() -> BlockingScheduler:
    """Scheduler with a single worker so jobs never run concurrently."""
    return BlockingScheduler(
        executors={"default": ThreadPoolExecutor(max_workers=1)},
        job_defaults={"coalesce": True, "max_instances": 1},
    )


def poll_and_notify(engine: Engine, notify: Callable[[str], None]) -> None:
    """One poll: evaluate the current instant and deliver any notifications."""
    evaluation = engine.poll()

    recap = engine.take_recap()
    if recap is not None:
        notify(format_recap(recap))

    signal = engine.acknowledge_completion()
    if signal is not None:
        notify(signal.message.text)

    logger.debug(
        f"Polled {evaluation.today}: {len(evaluation.classification.active)} active, "
        f"{len(evaluation.classification.expired)} expired"
    )


def setup_scheduler(
    scheduler: BaseScheduler,
    engine: Engine,
    notify: Callable[[str], None],
    config: Config | None = None,
) -> BaseScheduler:
    """Add the poll and fallback flush jobs."""
    if config is None:
        config = load_config()

    scheduler.add_job(
        poll_and_notify,
        IntervalTrigger(seconds=config.poll_interval_seconds),
        args=[engine, notify],
        id="poll",
        next_run_time=datetime.now(timezone.utc),
    )
    logger.info(f"Polling every {config.poll_interval_seconds}s")

    scheduler.add_job(
        engine.writer.flush,
        IntervalTrigger(seconds=config.fallback_flush_seconds),
        id="fallback_flush",
    )
    logger.info(f"Flushing unsaved changes every {config.fallback_flush_seconds}s")

    return scheduler


def run_watch(notify: Callable[[str], None], config: Config | None = None) -> None:
    """Run until interrupted, flushing everything on the way out."""
    if config is None:
        config = load_config()

    scheduler = create_scheduler()
    engine = Engine.open(config, scheduler)
    setup_scheduler(scheduler, engine, notify, config)

    logger.info("Starting dayledger watcher...")
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Watcher stopped")
    finally:
        if scheduler.running:
            scheduler.shutdown(wait=False)
        engine.close()
