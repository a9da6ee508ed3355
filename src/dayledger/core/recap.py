"""Previous-day recap generation."""

import logging
from dataclasses import dataclass

from .aggregator import DailyAggregate, daily_aggregate
from .ledger import StrikeLedger
from .state import EngineState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecapPayload:
    """Summary of the last recorded day, shown once after the day advances."""

    date: str
    total_tasks: int
    completed_count: int
    struck_count: int
    expired_count: int

    @classmethod
    def from_aggregate(cls, agg: DailyAggregate) -> "RecapPayload":
        return cls(
            date=agg.date,
            total_tasks=agg.total,
            completed_count=agg.completed_count,
            struck_count=agg.struck_count,
            expired_count=agg.expired_count,
        )

    def completion_rate(self) -> int:
        """Handled events as a rounded percentage of tasks touched."""
        if self.total_tasks == 0:
            return 0
        return round(self.completed_count / self.total_tasks * 100)

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "totalTasks": self.total_tasks,
            "completed": self.completed_count,
            "struck": self.struck_count,
            "expired": self.expired_count,
        }


def format_recap(recap: RecapPayload) -> str:
    """Plain-text recap for notifications and the CLI."""
    lines = [
        f"Summary for {recap.date}",
        f"  Tasks:     {recap.total_tasks}",
        f"  Completed: {recap.completed_count}",
        f"  Struck:    {recap.struck_count}",
        f"  Expired:   {recap.expired_count}",
    ]
    if recap.completed_count > 0:
        if recap.completed_count >= recap.total_tasks:
            lines.append("Perfect day! Every task handled.")
        else:
            lines.append(f"{recap.completion_rate()}% completion rate")
    return "\n".join(lines)


class RecapGenerator:
    """Emits at most one recap per advance of the effective date."""

    def __init__(self, state: EngineState):
        self.state = state

    def evaluate(self, today: str, ledger: StrikeLedger) -> RecapPayload | None:
        """
        Compare the stored last recap date with today.

        On the very first evaluation today is recorded and nothing is emitted.
        When the date has advanced, the previous recap date is summarized and
        the stored date moves to today whether or not anything was emitted.
        """
        last = self.state.last_recap_date
        if last is None:
            self.state.last_recap_date = today
            return None
        if today <= last:
            return None

        agg = daily_aggregate(ledger, last)
        self.state.last_recap_date = today
        if agg.is_empty:
            logger.debug(f"Nothing recorded on {last}, skipping recap")
            return None

        logger.info(f"Recap ready for {last}: {agg.total} tasks touched")
        return RecapPayload.from_aggregate(agg)
