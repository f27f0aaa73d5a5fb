"""
Output formatting -- JSON export and plain text.
"""
from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from survey.models import SpeedTestResult


def create_result_json(
    summary: SpeedTestResult,
    runs: List[SpeedTestResult],
    cell: Optional[Tuple[int, int]] = None,
    project: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build the JSON document for one completed speed test."""
    result: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "download_mbps": round(summary.download_mbps, 2),
        "upload_mbps": round(summary.upload_mbps, 2),
        "total_runs": summary.total_runs,
        "aggregation": "trimmed_mean" if summary.total_runs >= 3 else "mean",
        "runs": [r.to_dict() for r in runs],
    }

    if cell is not None:
        result["cell"] = {"grid_x": cell[0], "grid_y": cell[1]}
    if project:
        result["project"] = project

    return result


def save_json(result: Dict[str, Any], filepath: str) -> None:
    """Write *result* to *filepath* atomically (write-tmp then rename)."""
    dir_path = os.path.dirname(filepath) or "."
    tmp = os.path.join(dir_path, f".tmp_{os.path.basename(filepath)}")

    try:
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(result, fh, indent=2, ensure_ascii=False)
        os.replace(tmp, filepath)
    except (IOError, OSError) as exc:
        # Clean up partial temp file
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise IOError(f"Failed to save JSON to {filepath}: {exc}") from exc


def format_text_result(summary: SpeedTestResult, cell: Optional[Tuple[int, int]] = None) -> str:
    lines = []
    if cell is not None:
        lines.append(f"Cell: {cell[0]},{cell[1]}")
    lines.append(f"Download: {summary.download_mbps:.2f} Mbps")
    lines.append(f"Upload: {summary.upload_mbps:.2f} Mbps")
    lines.append(f"Runs: {summary.total_runs}")
    return "\n".join(lines)
