"""Process-scoped watcher state shared by the completion detector and recap generator."""

from dataclasses import dataclass, field

from .day_boundary import is_valid_date_key


def _date_or_none(value) -> str | None:
    if isinstance(value, str) and is_valid_date_key(value):
        return value
    return None


@dataclass
class EngineState:
    """
    Watcher state for one user.

    last_recap_date: effective date the last recap check ran for.
    used_message_ids: celebration messages already shown.
    all_cleared_on: effective date on which every active task was last seen
        handled; None once an unhandled task shows up again.
    pending_completion: signal emitted but not yet displayed (process only).
    """

    last_recap_date: str | None = None
    used_message_ids: list[str] = field(default_factory=list)
    all_cleared_on: str | None = None
    pending_completion: object | None = None

    @classmethod
    def from_stored(cls, data: dict | None, used_message_ids: list | None = None) -> "EngineState":
        """Rebuild state from the stored flags and used-message-id collection."""
        data = data or {}
        used = [m for m in used_message_ids or [] if isinstance(m, str)]
        return cls(
            last_recap_date=_date_or_none(data.get("lastRecapDate")),
            used_message_ids=used,
            all_cleared_on=_date_or_none(data.get("allClearedOn")),
        )

    def to_dict(self) -> dict:
        """Persisted flags. Used message ids are stored as their own collection."""
        return {"lastRecapDate": self.last_recap_date, "allClearedOn": self.all_cleared_on}
