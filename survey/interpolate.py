"""
Spatial estimation over a sparse set of grid measurements.

Inverse-distance weighting (power 2) fills cells nobody measured.  A cell
that *was* measured always reports its own value, so a heatmap reproduces
every real sample exactly.  All functions are pure and safe to call from
any number of callers.
"""
from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

from .constants import CONFIDENCE_RADIUS, COINCIDENT_DISTANCE, IDW_POWER, METRICS
from .grid import iter_cells
from .models import Measurement


# ---------------------------------------------------------------------------
# IDW
# ---------------------------------------------------------------------------

def idw_estimate(
    measurements: Sequence[Measurement],
    x: float,
    y: float,
    metric: str = "download",
    power: float = IDW_POWER,
) -> float:
    """
    Inverse-distance weighted estimate of *metric* at ``(x, y)``.

    A measurement closer than ``COINCIDENT_DISTANCE`` is returned directly
    instead of dividing by a near-zero distance.
    """
    weighted_sum = 0.0
    total_weight = 0.0

    for m in measurements:
        distance = math.hypot(x - m.grid_x, y - m.grid_y)
        if distance < COINCIDENT_DISTANCE:
            return m.value(metric)

        weight = 1.0 / distance ** power
        weighted_sum += weight * m.value(metric)
        total_weight += weight

    return weighted_sum / total_weight if total_weight > 0 else 0.0


def interpolate_speed(measurements: Sequence[Measurement], col: int, row: int) -> float:
    """
    Estimated download speed at grid cell ``(col, row)``.

    Only download values are read; upload heatmaps go through
    :func:`build_heatmap` with ``metric="upload"``.
    """
    for m in measurements:
        if m.grid_x == col and m.grid_y == row:
            return m.download

    if not measurements:
        return 0.0

    return idw_estimate(measurements, col, row, metric="download")


# ---------------------------------------------------------------------------
# Coverage
# ---------------------------------------------------------------------------

def min_distance(col: float, row: float, measurements: Sequence[Measurement]) -> float:
    """Distance to the nearest measurement (``inf`` when there are none)."""
    return min(
        (math.hypot(col - m.grid_x, row - m.grid_y) for m in measurements),
        default=math.inf,
    )


def confidence(col: float, row: float, measurements: Sequence[Measurement]) -> float:
    """1.0 on a measured cell, falling linearly to 0.0 at ``CONFIDENCE_RADIUS``."""
    if not measurements:
        return 0.0
    dist = min_distance(col, row, measurements)
    return max(0.0, min(1.0, 1.0 - dist / CONFIDENCE_RADIUS))


def suggest_cell(
    measurements: Sequence[Measurement],
    cols: int,
    rows: int,
) -> Optional[Tuple[int, int]]:
    """
    Next cell worth measuring: the unmeasured cell farthest from every sample.

    With no samples yet, the cell farthest from the grid centre is chosen.
    Returns ``None`` when every cell has been measured.
    """
    measured = {(m.grid_x, m.grid_y) for m in measurements}
    best: Optional[Tuple[int, int]] = None
    best_dist = -1.0

    for col, row in iter_cells(cols, rows):
        if (col, row) in measured:
            continue
        if measurements:
            dist = min_distance(col, row, measurements)
        else:
            dist = math.hypot(col - cols / 2, row - rows / 2)
        if dist > best_dist:
            best_dist = dist
            best = (col, row)

    return best


# ---------------------------------------------------------------------------
# Whole grid
# ---------------------------------------------------------------------------

def _cell_value(measurements: Sequence[Measurement], col: int, row: int, metric: str) -> float:
    if metric == "download":
        return interpolate_speed(measurements, col, row)
    if metric == "confidence":
        return confidence(col, row, measurements)
    if metric == "upload":
        for m in measurements:
            if m.grid_x == col and m.grid_y == row:
                return m.upload
        return idw_estimate(measurements, col, row, metric="upload")
    raise ValueError(f"Unknown metric: {metric}")


def build_heatmap(
    measurements: Sequence[Measurement],
    cols: int,
    rows: int,
    metric: str = "download",
) -> List[List[float]]:
    """Return a ``rows x cols`` matrix of per-cell estimates for *metric*."""
    if metric not in METRICS:
        raise ValueError(f"Unknown metric: {metric}")
    return [
        [_cell_value(measurements, col, row, metric) for col in range(cols)]
        for row in range(rows)
    ]
