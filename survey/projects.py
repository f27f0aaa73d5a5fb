"""
Project persistence.

All projects live in one JSON file (``~/.wifisurvey/projects.json`` unless
configured otherwise) as a list of project dicts, newest first.  Writes go
to a temp file that is renamed over the original, so a crash never leaves a
half-written store behind.
"""
from __future__ import annotations

import json
import logging
import os
from typing import List, Optional

from .config import CONFIG_DIR
from .constants import DEFAULT_DENSITY
from .grid import grid_size, validate_cell
from .models import Measurement, Project, SpeedTestResult, generate_id, utc_now

logger = logging.getLogger(__name__)

_DEFAULT_FILE = "projects.json"


def projects_path(path: Optional[str] = None) -> str:
    return path or os.path.join(CONFIG_DIR, _DEFAULT_FILE)


# ---------------------------------------------------------------------------
# Read / Write
# ---------------------------------------------------------------------------

def load_projects(path: Optional[str] = None) -> List[Project]:
    """Return every stored project; an unreadable store reads as empty."""
    path = projects_path(path)
    if not os.path.isfile(path):
        return []

    try:
        with open(path, encoding="utf-8") as fh:
            raw = json.load(fh)
    except (json.JSONDecodeError, IOError) as exc:
        logger.warning("ignoring unreadable project store %s: %s", path, exc)
        return []

    if not isinstance(raw, list):
        logger.warning("project store %s is not a list; ignoring", path)
        return []

    try:
        return [Project.from_dict(p) for p in raw if isinstance(p, dict)]
    except (TypeError, ValueError, AttributeError) as exc:
        logger.warning("ignoring malformed project store %s: %s", path, exc)
        return []


def save_projects(projects: List[Project], path: Optional[str] = None) -> str:
    """Atomically write *projects*.  Returns the file path."""
    path = projects_path(path)
    dir_path = os.path.dirname(path) or "."
    os.makedirs(dir_path, exist_ok=True)
    tmp = os.path.join(dir_path, f".tmp_{os.path.basename(path)}")

    try:
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump([p.to_dict() for p in projects], fh, indent=2, ensure_ascii=False)
        os.replace(tmp, path)
    except OSError:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise

    logger.debug("saved %d project(s) to %s", len(projects), path)
    return path


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

def create_project(name: str, density: str = DEFAULT_DENSITY, aspect: float = 1.0) -> Project:
    """New empty project with a grid sized from *density* and *aspect*."""
    name = name.strip()
    if not name:
        raise ValueError("Project name must not be empty")

    cols, rows = grid_size(density, aspect)
    return Project(
        id=generate_id(),
        name=name,
        grid_cols=cols,
        grid_rows=rows,
        grid_density=density,
    )


def find_project(projects: List[Project], key: str) -> Optional[Project]:
    """Look a project up by id, then by case-insensitive name."""
    for p in projects:
        if p.id == key:
            return p
    lowered = key.strip().lower()
    for p in projects:
        if p.name.lower() == lowered:
            return p
    return None


# ---------------------------------------------------------------------------
# Measurements
# ---------------------------------------------------------------------------

def record_measurement(project: Project, col: int, row: int, result: SpeedTestResult) -> Measurement:
    """
    Store *result* at ``(col, row)``, replacing any earlier sample there.
    """
    validate_cell(col, row, project.grid_cols, project.grid_rows)

    measurement = Measurement(
        id=generate_id(),
        grid_x=col,
        grid_y=row,
        download=result.download_mbps,
        upload=result.upload_mbps,
    )
    project.measurements = [
        m for m in project.measurements if not (m.grid_x == col and m.grid_y == row)
    ]
    project.measurements.append(measurement)
    project.updated_at = utc_now()
    return measurement


def delete_measurement(project: Project, measurement_id: str) -> bool:
    """Remove one measurement by id.  Returns ``False`` if it was not found."""
    before = len(project.measurements)
    project.measurements = [m for m in project.measurements if m.id != measurement_id]
    if len(project.measurements) == before:
        return False
    project.updated_at = utc_now()
    return True


def clear_measurements(project: Project) -> int:
    """Drop every measurement.  Returns how many were removed."""
    removed = len(project.measurements)
    project.measurements = []
    project.updated_at = utc_now()
    return removed
