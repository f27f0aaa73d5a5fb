"""
User configuration file support.

Reads/writes ``~/.wifisurvey/config.json``.  Missing keys fall back to
:data:`DEFAULTS`; a corrupt file is ignored.

Supported keys::

    runs = 1                 # speed-test runs per measurement (1..5)
    duration = 5.0           # seconds per download / upload phase
    download_url = "..."     # GET endpoint, ?bytes=N appended
    upload_url = "..."       # POST endpoint
    request_timeout = 30.0   # seconds per request
    grid_density = "medium"  # coarse / medium / fine
    projects_file = ""       # empty: ~/.wifisurvey/projects.json
    log_level = "WARNING"
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

from .constants import (
    DEFAULT_DENSITY,
    DEFAULT_RUNS,
    DOWNLOAD_URL,
    PHASE_DURATION,
    REQUEST_TIMEOUT,
    UPLOAD_URL,
)

logger = logging.getLogger(__name__)

CONFIG_DIR = os.path.join(Path.home(), ".wifisurvey")
_CONFIG_FILE = "config.json"


def _config_path() -> str:
    return os.path.join(CONFIG_DIR, _CONFIG_FILE)


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULTS: Dict[str, Any] = {
    "runs": DEFAULT_RUNS,
    "duration": PHASE_DURATION,
    "download_url": DOWNLOAD_URL,
    "upload_url": UPLOAD_URL,
    "request_timeout": REQUEST_TIMEOUT,
    "grid_density": DEFAULT_DENSITY,
    "projects_file": "",
    "log_level": "WARNING",
}


# ---------------------------------------------------------------------------
# Read / Write
# ---------------------------------------------------------------------------

def load_config() -> Dict[str, Any]:
    """Load config from disk, returning defaults for missing keys."""
    path = _config_path()
    config = dict(DEFAULTS)

    if not os.path.isfile(path):
        return config

    try:
        with open(path, encoding="utf-8") as fh:
            user = json.load(fh)
        if isinstance(user, dict):
            config.update(user)
    except (json.JSONDecodeError, IOError) as exc:
        logger.warning("ignoring unreadable config %s: %s", path, exc)

    return config


def save_config(config: Dict[str, Any]) -> str:
    """Write *config* to disk.  Returns the file path."""
    path = _config_path()
    os.makedirs(os.path.dirname(path), exist_ok=True)

    with open(path, "w", encoding="utf-8") as fh:
        json.dump(config, fh, indent=2, ensure_ascii=False)

    return path


def get_config_value(key: str) -> Any:
    """Get a single config value."""
    return load_config().get(key, DEFAULTS.get(key))


def set_config_value(key: str, value: Any) -> str:
    """Set a single config value and persist.  Returns file path."""
    config = load_config()
    config[key] = value
    return save_config(config)
