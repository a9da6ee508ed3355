"""Debounced, fire-and-forget persistence of in-memory collections.

The in-memory state is authoritative. A failed write is logged and the
snapshot stays dirty; the next flush (debounce, fallback interval or shutdown)
writes whatever is latest by then.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable

from apscheduler.schedulers.base import BaseScheduler

from .errors import PersistenceError

logger = logging.getLogger(__name__)


class DebouncedWriter:
    """
    Coalesces rapid writes per collection.

    With a scheduler, each submit (re)schedules a one-shot flush job for that
    collection, so only the last snapshot inside the debounce window is
    written. Without one, submits are written immediately.
    """

    def __init__(self, scheduler: BaseScheduler | None = None, debounce_seconds: float = 0.4):
        self.scheduler = scheduler
        self.debounce_seconds = debounce_seconds
        self._pending: dict[str, tuple[Callable, object]] = {}
        self._lock = threading.RLock()

    def submit(self, name: str, write: Callable, snapshot) -> None:
        """
        Queue a snapshot for writing with write(snapshot).

        Supersedes any unwritten snapshot of the same name. The caller hands
        over a fresh snapshot and must not mutate it afterwards.
        """
        with self._lock:
            self._pending[name] = (write, snapshot)

        if self.scheduler is None:
            self.flush(name)
            return

        run_date = datetime.now(timezone.utc) + timedelta(seconds=self.debounce_seconds)
        self.scheduler.add_job(
            self.flush,
            "date",
            run_date=run_date,
            args=[name],
            id=f"save_{name}",
            replace_existing=True,
        )

    def is_dirty(self, name: str | None = None) -> bool:
        with self._lock:
            if name is None:
                return bool(self._pending)
            return name in self._pending

    def flush(self, name: str | None = None) -> bool:
        """
        Write pending snapshots (one collection, or all of them).

        Returns True when nothing is left pending for what was asked.
        """
        with self._lock:
            names = [name] if name is not None else list(self._pending)
            ok = True
            for key in names:
                entry = self._pending.get(key)
                if entry is None:
                    continue
                write, snapshot = entry
                try:
                    write(snapshot)
                except PersistenceError as e:
                    logger.error(f"Failed to save {key}: {e}")
                    ok = False
                    continue
                # A newer snapshot may have been queued while writing
                if self._pending.get(key) is entry:
                    del self._pending[key]
                logger.debug(f"Saved {key}")
            return ok
