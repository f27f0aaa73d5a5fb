"""
Data models for survey measurements and speed-test events.

Plain dataclasses with ``to_dict`` / ``from_dict`` so they can travel
through JSON (project files, ``--json`` output) unchanged.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .constants import DEFAULT_DENSITY, GRID_DENSITIES


def generate_id() -> str:
    """Return a new opaque unique identifier."""
    return str(uuid.uuid4())


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Measurements
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Measurement:
    """A speed sample taken at one grid cell."""

    id: str
    grid_x: int
    grid_y: int
    download: float
    upload: float

    @classmethod
    def from_dict(cls, data: dict) -> Measurement:
        return cls(
            id=str(data.get("id", "")),
            grid_x=int(data.get("grid_x", 0)),
            grid_y=int(data.get("grid_y", 0)),
            download=float(data.get("download", 0.0)),
            upload=float(data.get("upload", 0.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "grid_x": self.grid_x,
            "grid_y": self.grid_y,
            "download": round(self.download, 2),
            "upload": round(self.upload, 2),
        }

    def value(self, metric: str) -> float:
        if metric == "download":
            return self.download
        if metric == "upload":
            return self.upload
        raise ValueError(f"Unknown metric: {metric}")


@dataclass
class Project:
    """A survey project: a grid laid over a floorplan plus its measurements."""

    id: str
    name: str
    grid_cols: int = GRID_DENSITIES[DEFAULT_DENSITY]
    grid_rows: int = GRID_DENSITIES[DEFAULT_DENSITY]
    grid_density: str = DEFAULT_DENSITY
    created_at: str = field(default_factory=utc_now)
    updated_at: str = field(default_factory=utc_now)
    measurements: List[Measurement] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> Project:
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            grid_cols=int(data.get("grid_cols", GRID_DENSITIES[DEFAULT_DENSITY])),
            grid_rows=int(data.get("grid_rows", GRID_DENSITIES[DEFAULT_DENSITY])),
            grid_density=data.get("grid_density", DEFAULT_DENSITY),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
            measurements=[Measurement.from_dict(m) for m in data.get("measurements") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "grid_cols": self.grid_cols,
            "grid_rows": self.grid_rows,
            "grid_density": self.grid_density,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "measurements": [m.to_dict() for m in self.measurements],
        }

    def measurement_at(self, col: int, row: int) -> Optional[Measurement]:
        for m in self.measurements:
            if m.grid_x == col and m.grid_y == row:
                return m
        return None


# ---------------------------------------------------------------------------
# Speed-test events
# ---------------------------------------------------------------------------

@dataclass
class SpeedTestProgress:
    """Snapshot pushed to listeners while a phase is running."""

    phase: str
    progress: float = 0.0
    current_speed: float = 0.0
    run: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase,
            "progress": round(self.progress, 4),
            "current_speed": round(self.current_speed, 2),
            "run": self.run,
        }


@dataclass
class SpeedTestResult:
    """
    Outcome of one run, or the aggregated summary of all runs.

    The summary is the result whose ``run`` equals ``total_runs``.
    """

    download_mbps: float = 0.0
    upload_mbps: float = 0.0
    run: int = 0
    total_runs: int = 1

    @property
    def is_summary(self) -> bool:
        return self.run == self.total_runs

    def to_dict(self) -> Dict[str, Any]:
        return {
            "download_mbps": round(self.download_mbps, 2),
            "upload_mbps": round(self.upload_mbps, 2),
            "run": self.run,
            "total_runs": self.total_runs,
        }
