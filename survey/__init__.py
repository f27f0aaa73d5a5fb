"""WiFi survey engine -- throughput sampling, aggregation, and interpolation."""

from .engine import RunAggregator, SpeedTestEngine, SpeedTestError, run_speed_test
from .interpolate import (
    build_heatmap,
    confidence,
    idw_estimate,
    interpolate_speed,
    min_distance,
    suggest_cell,
)
from .models import (
    Measurement,
    Project,
    SpeedTestProgress,
    SpeedTestResult,
    generate_id,
)
from .sampler import SampleResult, ThroughputSampler
from .stats import calculate_rate_mbps, clamp_runs, format_speed, trimmed_mean

__all__ = [
    "Measurement",
    "Project",
    "RunAggregator",
    "SampleResult",
    "SpeedTestEngine",
    "SpeedTestError",
    "SpeedTestProgress",
    "SpeedTestResult",
    "ThroughputSampler",
    "build_heatmap",
    "calculate_rate_mbps",
    "clamp_runs",
    "confidence",
    "format_speed",
    "generate_id",
    "idw_estimate",
    "interpolate_speed",
    "min_distance",
    "run_speed_test",
    "suggest_cell",
    "trimmed_mean",
]
