"""All-cleared detection for the day's active tasks."""

import logging
import random
from dataclasses import dataclass

from .classifier import Classification
from .messages import COMPLETION_MESSAGES, CompletionMessage
from .state import EngineState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionSignal:
    """One-shot notification that every active task was handled today."""

    date: str
    message: CompletionMessage


def pick_message(
    used_ids: list[str],
    pool: tuple[CompletionMessage, ...] = COMPLETION_MESSAGES,
    rng: random.Random | None = None,
) -> CompletionMessage:
    """
    Pick a random message whose id is not in used_ids.

    When every message has been used, used_ids is cleared in place and the
    whole pool is eligible again.
    """
    rng = rng or random.Random()
    used = set(used_ids)
    unused = [m for m in pool if m.msg_id not in used]
    if not unused:
        logger.info("Completion message pool exhausted, starting over")
        used_ids.clear()
        unused = list(pool)
    return rng.choice(unused)


class CompletionDetector:
    """
    Fires once per false -> true transition of "all active tasks handled today".

    Stays quiet while the condition holds and re-arms only when an unhandled
    active task shows up again (or the active partition empties).
    """

    def __init__(
        self,
        state: EngineState,
        pool: tuple[CompletionMessage, ...] = COMPLETION_MESSAGES,
        rng: random.Random | None = None,
    ):
        self.state = state
        self.pool = pool
        self.rng = rng or random.Random()

    def evaluate(self, classification: Classification) -> CompletionSignal | None:
        """Evaluate the current classification. Returns a signal on a new transition."""
        today = classification.today
        active = classification.active
        if not active:
            # Nothing to clear: vacuous, re-arm
            self.state.all_cleared_on = None
            return None

        all_cleared = all(classification.is_handled(t) for t in active)
        was_cleared = self.state.all_cleared_on == today
        signal = None
        if all_cleared and not was_cleared and self.state.pending_completion is None:
            message = pick_message(self.state.used_message_ids, self.pool, self.rng)
            self.state.used_message_ids.append(message.msg_id)
            signal = CompletionSignal(date=today, message=message)
            self.state.pending_completion = signal
            logger.info(f"All {len(active)} active tasks cleared for {today}")

        self.state.all_cleared_on = today if all_cleared else None
        return signal

    def acknowledge(self) -> CompletionSignal | None:
        """Mark the pending signal as displayed. Returns it, if there was one."""
        signal = self.state.pending_completion
        self.state.pending_completion = None
        return signal
