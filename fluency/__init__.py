"""fluency: speed-graded spaced repetition for arithmetic and kana drills."""

__version__ = "0.1.0"

from fluency.models import (AnswerCheck, Item, MemoryState, Rating, ResponseRecord,
                            SessionState, Settings, SpeedStats, State)
from fluency.app import App

__all__ = ["App", "AnswerCheck", "Item", "MemoryState", "Rating", "ResponseRecord",
           "SessionState", "Settings", "SpeedStats", "State"]
