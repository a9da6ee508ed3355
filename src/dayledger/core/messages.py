"""Fixed pool of celebration messages shown when the day's list is cleared."""

from dataclasses import dataclass
from enum import Enum


class MessageCategory(Enum):
    ENCOURAGEMENT = "encouragement"
    HUMOR = "humor"
    ACHIEVEMENT = "achievement"
    MOTIVATIONAL = "motivational"
    QUIRKY = "quirky"


@dataclass(frozen=True)
class CompletionMessage:
    """A celebration message. msg_id is stable across releases."""

    msg_id: str
    text: str
    category: MessageCategory
    version: int = 1


_TEXTS = {
    MessageCategory.ENCOURAGEMENT: (
        "enc",
        [
            "You crushed it today! All tasks completed!",
            "Fantastic work! You're on fire!",
            "Amazing! Every single task done!",
            "You're unstoppable! Great job!",
            "Incredible! You cleared your list!",
            "Outstanding performance today!",
            "Perfectly executed! Well done!",
            "Task master! You've conquered them all!",
        ],
    ),
    MessageCategory.HUMOR: (
        "hum",
        [
            "Your to-do list just filed a complaint for being too empty.",
            "Tasks: 0. You: all of them.",
            "Somewhere, a procrastinator just felt a disturbance in the force.",
            "Your checkboxes need a vacation after that.",
            "Even your coffee is impressed.",
            "The list tried to fight back. It did not go well.",
            "You've done so much today that tomorrow is nervous.",
            "Breaking news: local human finishes everything.",
        ],
    ),
    MessageCategory.ACHIEVEMENT: (
        "ach",
        [
            "Achievement unlocked: Clean Slate!",
            "Level up! Daily list cleared!",
            "Perfect day recorded!",
            "Streak material right there!",
            "100% of today's list handled!",
            "Gold medal in getting things done!",
            "New personal best: nothing left!",
            "Mission accomplished!",
        ],
    ),
    MessageCategory.MOTIVATIONAL: (
        "mot",
        [
            "Small steps every day add up. Today's steps are done.",
            "Consistency wins. You showed up today.",
            "Discipline today, freedom tomorrow.",
            "Progress, not perfection, and today was both.",
            "You kept your promises to yourself today.",
            "Momentum is built one cleared day at a time.",
            "The habit is the reward. Well done.",
            "Rest well. You earned it.",
        ],
    ),
    MessageCategory.QUIRKY: (
        "qui",
        [
            "You've summoned the completion dragon!",
            "Productivity wizard! Tasks vanished! *poof*",
            "Your task list just rage-quit!",
            "Achievement unlocked: Actually Adulting!",
            "Tasks tried to form a union, but you were quicker!",
            "Your efficiency is making robots self-conscious!",
            "You've speedrun reality itself!",
            "You've achieved what scientists call 'absolute taskiness'!",
        ],
    ),
}


def _build_pool() -> tuple[CompletionMessage, ...]:
    pool = []
    for category, (prefix, texts) in _TEXTS.items():
        for number, text in enumerate(texts, start=1):
            pool.append(CompletionMessage(f"{prefix}-{number:03d}", text, category))
    return tuple(pool)


COMPLETION_MESSAGES = _build_pool()
