"""Grading: turn correctness and response time into a memory-engine rating."""

from datetime import datetime, timezone

from fluency.models import Rating, ResponseRecord, SpeedStats


def grade(correct: bool, response_time_ms: float, stats: SpeedStats) -> Rating:
    if not correct:
        return Rating.AGAIN
    if not stats.warmed_up:
        return Rating.GOOD

    p = stats.percentiles
    if response_time_ms <= p.p25:
        return Rating.EASY
    if response_time_ms <= p.p50:
        return Rating.GOOD
    if response_time_ms <= p.p75:
        return Rating.HARD
    # Correct but slow: not automatic yet.
    return Rating.AGAIN


def create_response_record(item_id: str, answer: str, correct: bool,
                           response_time_ms: float,
                           now: datetime | None = None) -> ResponseRecord:
    if now is None:
        now = datetime.now(timezone.utc)
    return ResponseRecord(item_id=item_id, answer=answer, correct=correct,
                          response_time_ms=response_time_ms, timestamp=now)
