"""
Shared constants used across the survey engine.

Centralises magic numbers, endpoints, and tunables so they live in
exactly one place.
"""

# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

USER_AGENT = "wifisurvey/0.3 (+aiohttp)"

COMMON_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "*/*",
    "Accept-Encoding": "identity",
}

DOWNLOAD_URL = "https://speed.cloudflare.com/__down"
UPLOAD_URL = "https://speed.cloudflare.com/__up"

REQUEST_TIMEOUT = 30.0           # aiohttp total timeout per request

# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------

PHASE_DURATION = 5.0             # seconds per download / upload phase
MIN_DURATION = 1.0
MAX_DURATION = 60.0
SETTLE_SECONDS = 0.3             # current_speed reported as 0 below this

# ---------------------------------------------------------------------------
# Data transfer
# ---------------------------------------------------------------------------

DOWNLOAD_PAYLOAD_SIZE = 10 * 1024 * 1024   # 10 MiB per GET
UPLOAD_PAYLOAD_SIZE = 1024 * 1024          # 1 MiB of zeros per POST

# ---------------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------------

MIN_RUNS = 1
MAX_RUNS = 5
DEFAULT_RUNS = 1

PHASE_DOWNLOAD = "download"
PHASE_UPLOAD = "upload"

# ---------------------------------------------------------------------------
# Grid / interpolation
# ---------------------------------------------------------------------------

IDW_POWER = 2.0
COINCIDENT_DISTANCE = 0.001      # closer than this counts as the same point
CONFIDENCE_RADIUS = 5.0          # cells; confidence falls to 0 at this distance

GRID_DENSITIES = {
    "coarse": 6,
    "medium": 10,
    "fine": 16,
}
DEFAULT_DENSITY = "medium"

METRICS = ("download", "upload", "confidence")
