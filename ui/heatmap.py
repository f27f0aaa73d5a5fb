"""
Terminal heatmap rendering.

Each grid cell becomes a coloured block in a ``rich`` table; measured cells
carry their rounded value so the real samples stand out from the
interpolated ones.
"""
from __future__ import annotations

from typing import List, Sequence, Tuple

from rich import box
from rich.table import Table
from rich.text import Text

from survey.interpolate import build_heatmap
from survey.models import Measurement

Color = Tuple[int, int, int]

_RED: Color = (231, 76, 60)
_YELLOW: Color = (251, 197, 49)
_GREEN: Color = (76, 209, 55)

_CONFIDENCE_LEVELS = [
    (0.7, "#51cf66", "High"),
    (0.4, "#fcc419", "Medium"),
    (-1.0, "#ff6b6b", "Low"),
]


# ---------------------------------------------------------------------------
# Colour scales
# ---------------------------------------------------------------------------

def _blend(a: Color, b: Color, t: float) -> Color:
    return tuple(round(x + (y - x) * t) for x, y in zip(a, b))


def speed_color(speed: float, min_speed: float, max_speed: float) -> str:
    """Red -> yellow -> green gradient across ``[min_speed, max_speed]``."""
    span = max_speed - min_speed
    if span < 1:
        return "#4cd137"

    normalized = max(0.0, min(1.0, (speed - min_speed) / span))
    if normalized < 0.5:
        r, g, b = _blend(_RED, _YELLOW, normalized * 2)
    else:
        r, g, b = _blend(_YELLOW, _GREEN, (normalized - 0.5) * 2)
    return f"#{r:02x}{g:02x}{b:02x}"


def confidence_color(value: float) -> str:
    for threshold, color, _ in _CONFIDENCE_LEVELS:
        if value > threshold:
            return color
    return _CONFIDENCE_LEVELS[-1][1]


def legend(measurements: Sequence[Measurement], metric: str) -> List[Tuple[str, str]]:
    """``(color, label)`` pairs from best to worst."""
    if metric == "confidence":
        return [(color, label) for _, color, label in _CONFIDENCE_LEVELS]

    values = [m.value(metric) for m in measurements] or [0.0]
    lo, hi = min(values), max(values)
    mid = (lo + hi) / 2
    return [(speed_color(v, lo, hi), f"{round(v)} Mbps") for v in (hi, mid, lo)]


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def render_heatmap(
    measurements: Sequence[Measurement],
    cols: int,
    rows: int,
    metric: str = "download",
) -> Table:
    """Build a rich table with one coloured cell per grid cell."""
    grid = build_heatmap(measurements, cols, rows, metric)
    measured = {(m.grid_x, m.grid_y) for m in measurements}

    if metric == "confidence":
        lo, hi = 0.0, 1.0
    else:
        values = [m.value(metric) for m in measurements] or [0.0]
        lo, hi = min(values), max(values)

    table = Table(
        title=f"{metric.capitalize()} heatmap",
        box=box.MINIMAL,
        show_header=True,
        padding=(0, 0),
    )
    table.add_column("", style="dim", justify="right")
    for col in range(cols):
        table.add_column(str(col), justify="center", width=5)

    for row, values in enumerate(grid):
        cells = []
        for col, value in enumerate(values):
            if metric == "confidence":
                color = confidence_color(value)
            else:
                color = speed_color(value, lo, hi)
            label = f"{round(value):>3}" if (col, row) in measured and metric != "confidence" else ""
            cells.append(Text(f"{label:^5}", style=f"bold black on {color}"))
        table.add_row(str(row), *cells)

    return table
