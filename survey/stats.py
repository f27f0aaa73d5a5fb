"""
Throughput statistics.

Pure functions -- no I/O, no side effects.  Everything here is
deterministic and easy to unit-test.
"""
from __future__ import annotations

import statistics
from typing import Optional, Sequence

from .constants import DEFAULT_RUNS, MAX_RUNS, MIN_RUNS


def trimmed_mean(values: Sequence[float]) -> float:
    """
    Mean after dropping the single lowest and single highest value.

    Fewer than three values are averaged as-is; an empty sequence gives 0.0.
    """
    if not values:
        return 0.0
    if len(values) < 3:
        return float(statistics.mean(values))

    ordered = sorted(values)
    return float(statistics.mean(ordered[1:-1]))


def clamp_runs(runs: Optional[int]) -> int:
    """Clamp a requested run count into ``[MIN_RUNS, MAX_RUNS]``."""
    if runs is None:
        return DEFAULT_RUNS
    return max(MIN_RUNS, min(int(runs), MAX_RUNS))


def calculate_rate_mbps(total_bytes: int, elapsed_seconds: float) -> float:
    """Bytes over wall-clock seconds, in megabits per second."""
    if elapsed_seconds <= 0:
        return 0.0
    return (total_bytes * 8) / elapsed_seconds / 1_000_000


def format_speed(speed_mbps: float) -> str:
    """Human-readable speed string."""
    if speed_mbps >= 1000:
        return f"{speed_mbps / 1000:.2f} Gbps"
    return f"{speed_mbps:.2f} Mbps"
