"""Per-deck response latency statistics used for speed-based grading."""

import math

from fluency.models import Percentiles, SpeedStats

DEFAULT_WARMUP_TARGET = 50


def create_default() -> SpeedStats:
    return SpeedStats()


def calculate_percentiles(samples: list[float]) -> Percentiles:
    """Nearest-rank percentiles: sorted[floor(n * p)], no interpolation."""
    if not samples:
        return Percentiles()
    ordered = sorted(samples)
    n = len(ordered)
    return Percentiles(
        p25=ordered[math.floor(n * 0.25)],
        p50=ordered[math.floor(n * 0.5)],
        p75=ordered[math.floor(n * 0.75)],
        p90=ordered[math.floor(n * 0.9)],
    )


def update(current: SpeedStats, latency_ms: float,
           warmup_target: int = DEFAULT_WARMUP_TARGET) -> SpeedStats:
    samples = [*current.samples, latency_ms]
    return SpeedStats(samples=samples,
                      percentiles=calculate_percentiles(samples),
                      warmed_up=len(samples) >= warmup_target)
