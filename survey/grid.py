"""Survey grid sizing and cell validation."""
from __future__ import annotations

from typing import Iterator, Tuple

from .constants import DEFAULT_DENSITY, GRID_DENSITIES


def grid_size(density: str = DEFAULT_DENSITY, aspect: float = 1.0) -> Tuple[int, int]:
    """
    Return ``(cols, rows)`` for a density preset.

    *aspect* is floorplan height / width; rows follow it so cells stay square.
    """
    if density not in GRID_DENSITIES:
        raise ValueError(
            f"Unknown grid density {density!r} (expected one of: {', '.join(GRID_DENSITIES)})"
        )
    if aspect <= 0:
        raise ValueError("Aspect ratio must be positive")

    cols = GRID_DENSITIES[density]
    rows = max(1, round(cols * aspect))
    return cols, rows


def validate_cell(col: int, row: int, cols: int, rows: int) -> None:
    """Raise ``ValueError`` unless ``(col, row)`` lies inside the grid."""
    if not 0 <= col < cols:
        raise ValueError(f"Column {col} outside grid (0..{cols - 1})")
    if not 0 <= row < rows:
        raise ValueError(f"Row {row} outside grid (0..{rows - 1})")


def iter_cells(cols: int, rows: int) -> Iterator[Tuple[int, int]]:
    """Yield ``(col, row)`` in row-major order."""
    for row in range(rows):
        for col in range(cols):
            yield col, row
