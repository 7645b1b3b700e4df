"""Shared data classes used across fluency, decks, and the memory engine."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import IntEnum


class State(IntEnum):
    NEW = 0
    LEARNING = 1
    REVIEW = 2
    RELEARNING = 3


class Rating(IntEnum):
    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4


@dataclass
class MemoryState:
    due: datetime
    stability: float = 0.0
    difficulty: float = 0.0
    elapsed_days: float = 0.0
    scheduled_days: float = 0.0
    reps: int = 0
    lapses: int = 0
    state: State = State.NEW
    last_review: datetime | None = None

    @classmethod
    def new(cls, now: datetime) -> "MemoryState":
        """Empty state for an item that has never been reviewed, due at `now`."""
        return cls(due=now)


@dataclass
class Item:
    id: str
    deck_id: str
    content: dict
    memory: MemoryState


@dataclass
class AnswerCheck:
    correct: bool
    canonical_answer: str
    user_answer: str


@dataclass
class Percentiles:
    p25: float = 0
    p50: float = 0
    p75: float = 0
    p90: float = 0


@dataclass
class SpeedStats:
    samples: list[float] = field(default_factory=list)
    percentiles: Percentiles = field(default_factory=Percentiles)
    warmed_up: bool = False


@dataclass
class ResponseRecord:
    item_id: str
    answer: str
    correct: bool
    response_time_ms: float
    timestamp: datetime


SESSION_GAP = timedelta(hours=4)


@dataclass
class SessionState:
    last_review_date: datetime
    session_start_time: datetime
    total_session_time_ms: float = 0
    responses: list[ResponseRecord] = field(default_factory=list)
    speed_stats: dict[str, SpeedStats] = field(default_factory=dict)

    @classmethod
    def new(cls, now: datetime) -> "SessionState":
        return cls(last_review_date=now, session_start_time=now)


DEFAULT_DECKS = ["multiplication"]


@dataclass
class Settings:
    warmup_target: int = 50
    sound_enabled: bool = True
    show_upcoming_reviews: bool = True
    enabled_decks: list[str] = field(default_factory=lambda: list(DEFAULT_DECKS))
