"""Next-item selection and collection statistics."""

import math
import random
from datetime import datetime, timedelta

from fluency.models import Item, ResponseRecord, State

NEW_ITEM_WINDOW = 5
RECENT_RESPONSES = 20

# Items still being acquired come before stable ones.
STATE_PRIORITY = {
    State.NEW: 0,
    State.LEARNING: 1,
    State.RELEARNING: 1.5,
    State.REVIEW: 2,
}

_DAY = timedelta(days=1)


def is_due(item: Item, now: datetime) -> bool:
    return item.memory.due <= now


def sort_by_due(items: list[Item]) -> list[Item]:
    return sorted(items, key=lambda item: item.memory.due)


def sort_by_state_priority(items: list[Item]) -> list[Item]:
    return sorted(items, key=lambda item: (STATE_PRIORITY.get(item.memory.state, 999),
                                           item.memory.due))


def select_next(items: list[Item], now: datetime, rng=None,
                new_window: int = NEW_ITEM_WINDOW) -> Item | None:
    """Pick the item to present next.

    Due items first, by state priority then due date. With nothing due, a
    random pick among the first `new_window` not-yet-due new items. Failing
    that, whatever is due soonest.
    """
    if not items:
        return None

    due = [item for item in items if is_due(item, now)]
    if due:
        return sort_by_state_priority(due)[0]

    new = [item for item in items
           if not is_due(item, now) and item.memory.state == State.NEW]
    if new:
        window = new[:max(new_window, 1)]
        return (rng or random).choice(window)

    return sort_by_due(items)[0]


def compute_stats(items: list[Item], now: datetime) -> dict:
    stats = {"total": len(items), "due": 0, "new": 0, "learning": 0,
             "review": 0, "relearning": 0, "average_elapsed_days": 0.0}
    total_elapsed = 0.0
    for item in items:
        if is_due(item, now):
            stats["due"] += 1
        state = item.memory.state
        if state == State.NEW:
            stats["new"] += 1
        elif state == State.LEARNING:
            stats["learning"] += 1
        elif state == State.REVIEW:
            stats["review"] += 1
        elif state == State.RELEARNING:
            stats["relearning"] += 1
        total_elapsed += item.memory.elapsed_days
    if items:
        stats["average_elapsed_days"] = total_elapsed / len(items)
    return stats


def compute_response_stats(responses: list[ResponseRecord],
                           recent: int = RECENT_RESPONSES) -> dict:
    """Accuracy over all answers and the last `recent`, plus mean time of correct answers.

    Accuracies are fractions; every figure is 0 when there is nothing to count.
    """
    last = responses[-recent:] if recent > 0 else []
    correct_times = [r.response_time_ms for r in responses if r.correct]
    stats = {
        "responses": len(responses),
        "correct": len(correct_times),
        "recent_responses": len(last),
        "recent_correct": sum(1 for r in last if r.correct),
        "accuracy": 0.0,
        "recent_accuracy": 0.0,
        "average_correct_time_ms": 0.0,
    }
    if responses:
        stats["accuracy"] = len(correct_times) / len(responses)
    if correct_times:
        stats["average_correct_time_ms"] = sum(correct_times) / len(correct_times)
    if last:
        stats["recent_accuracy"] = stats["recent_correct"] / len(last)
    return stats


def upcoming_review_counts(items: list[Item], now: datetime,
                           horizon_days: int = 7) -> list[int]:
    """Number of items falling due on each of the next `horizon_days` days.

    Overdue items are left out; they already count as due.
    """
    counts = [0] * horizon_days
    for item in items:
        days = math.floor((item.memory.due - now) / _DAY)
        if 0 <= days < horizon_days:
            counts[days] += 1
    return counts
