"""Memory-state engine: advances an item's FSRS state after a graded review.

The memory model itself comes from fsrs-rs-python. This module only maps
between fluency's MemoryState and the library's memory/interval pairs, and
derives the maturity stage (learning/review/relearning) from the interval.
"""

import dataclasses
from datetime import datetime, timedelta

from fsrs_rs_python import DEFAULT_PARAMETERS, FSRS, MemoryState as FSRSMemory

from fluency.models import MemoryState, Rating, State

GRADUATION_DAYS = 1.0
MIN_INTERVAL_DAYS = 1 / 1440  # one minute
MAX_INTERVAL_DAYS = 36500.0


class MemoryEngine:
    def __init__(self, parameters: list[float] | None = None,
                 desired_retention: float = 0.9):
        self.fsrs = FSRS(parameters=list(parameters or DEFAULT_PARAMETERS))
        self.desired_retention = desired_retention

    def _to_fsrs_memory(self, state: MemoryState):
        if state.state == State.NEW or state.stability <= 0:
            return None
        return FSRSMemory(stability=max(0.1, float(state.stability)),
                          difficulty=max(1.0, min(10.0, float(state.difficulty))))

    def advance(self, state: MemoryState, rating: Rating, now: datetime) -> MemoryState:
        """Return the state after reviewing at `now` with `rating`."""
        if state.last_review is not None:
            days_elapsed = max(0.0, (now - state.last_review).total_seconds() / 86400)
        else:
            days_elapsed = 0.0

        next_states = self.fsrs.next_states(self._to_fsrs_memory(state),
                                            self.desired_retention,
                                            max(0, round(days_elapsed)))
        chosen = {
            Rating.AGAIN: next_states.again,
            Rating.HARD: next_states.hard,
            Rating.GOOD: next_states.good,
            Rating.EASY: next_states.easy,
        }[Rating(rating)]

        interval = max(MIN_INTERVAL_DAYS, min(MAX_INTERVAL_DAYS, float(chosen.interval)))
        lapses = state.lapses
        if rating == Rating.AGAIN and state.state == State.REVIEW:
            lapses += 1

        return dataclasses.replace(
            state,
            due=now + timedelta(days=interval),
            stability=float(chosen.memory.stability),
            difficulty=float(chosen.memory.difficulty),
            elapsed_days=days_elapsed,
            scheduled_days=interval,
            reps=state.reps + 1,
            lapses=lapses,
            state=next_stage(state.state, rating, interval),
            last_review=now,
        )


def next_stage(current: State, rating: Rating, interval_days: float) -> State:
    # A lapse on a mature item always relearns, whatever FSRS schedules.
    if rating == Rating.AGAIN and current in (State.REVIEW, State.RELEARNING):
        return State.RELEARNING
    if interval_days >= GRADUATION_DAYS:
        return State.REVIEW
    if rating == Rating.AGAIN:
        return State.LEARNING
    if current in (State.REVIEW, State.RELEARNING):
        return current
    return State.LEARNING
