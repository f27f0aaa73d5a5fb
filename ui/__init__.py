"""UI layer -- Rich dashboard, heatmap rendering, and output formatters."""

from .dashboard import (
    ProgressDisplay,
    console,
    print_final_results,
    print_header,
    print_measurements,
    print_projects,
    print_run_result,
    print_run_table,
)
from .heatmap import confidence_color, legend, render_heatmap, speed_color
from .output import create_result_json, format_text_result, save_json

__all__ = [
    "ProgressDisplay",
    "confidence_color",
    "console",
    "create_result_json",
    "format_text_result",
    "legend",
    "print_final_results",
    "print_header",
    "print_measurements",
    "print_projects",
    "print_run_result",
    "print_run_table",
    "render_heatmap",
    "save_json",
    "speed_color",
]
