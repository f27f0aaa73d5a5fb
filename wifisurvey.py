#!/usr/bin/env python3
"""
WiFi survey CLI -- throughput measurements on a floorplan grid.

Usage::

    python wifisurvey.py                          # one-off speed test
    python wifisurvey.py --runs 3 --json          # 3 runs, JSON to stdout
    python wifisurvey.py --new "Office" --density fine --aspect 0.6
    python wifisurvey.py --list                   # list projects
    python wifisurvey.py --project Office --measure 3 4 --runs 3
    python wifisurvey.py --project Office --heatmap --metric upload
    python wifisurvey.py --project Office --suggest
    python wifisurvey.py --project Office --delete <measurement-id>
    python wifisurvey.py --set-runs 3             # remember default run count
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional, Tuple

from survey.config import load_config, set_config_value
from survey.constants import GRID_DENSITIES, MAX_DURATION, METRICS, MIN_DURATION
from survey.engine import SpeedTestEngine, SpeedTestError
from survey.grid import validate_cell
from survey.interpolate import suggest_cell
from survey.logging_setup import configure_logging
from survey.models import Project, SpeedTestResult
from survey.projects import (
    clear_measurements,
    create_project,
    delete_measurement,
    find_project,
    load_projects,
    record_measurement,
    save_projects,
)
from survey.stats import clamp_runs
from ui.dashboard import (
    ProgressDisplay,
    console,
    print_final_results,
    print_header,
    print_measurements,
    print_projects,
    print_run_result,
    print_run_table,
)
from ui.heatmap import legend, render_heatmap
from ui.output import create_result_json, format_text_result, save_json

logger = logging.getLogger("wifisurvey")


# ---------------------------------------------------------------------------
# Parameter validation
# ---------------------------------------------------------------------------

def _resolve_runs(runs: int) -> int:
    """Clamp *runs* into the supported range, warning when it had to move."""
    clamped = clamp_runs(runs)
    if clamped != runs:
        logger.warning("runs %d out of range, using %d", runs, clamped)
    return clamped


def _validate(duration: float) -> None:
    """Raise ``ValueError`` if the phase duration is out of range."""
    if not MIN_DURATION <= duration <= MAX_DURATION:
        raise ValueError(f"Duration must be between {MIN_DURATION} and {MAX_DURATION} s")


def _require_project(projects: List[Project], key: Optional[str]) -> Project:
    if not key:
        raise ValueError("--project is required for this action")
    project = find_project(projects, key)
    if project is None:
        raise ValueError(f"Project {key!r} not found")
    return project


# ---------------------------------------------------------------------------
# Core test runner
# ---------------------------------------------------------------------------

async def run_survey_test(
    *,
    runs: int,
    config: dict,
    duration: float,
    json_output: bool = False,
    simple: bool = False,
    cell: Optional[Tuple[int, int]] = None,
) -> Tuple[SpeedTestResult, List[SpeedTestResult]]:
    """Run one speed test, rendering progress unless output is machine-readable."""
    show_ui = not json_output and not simple
    per_run: List[SpeedTestResult] = []

    def _on_run_complete(result: SpeedTestResult) -> None:
        per_run.append(result)
        if show_ui:
            print_run_result(result)
        elif simple:
            print(
                f"Run {result.run + 1}/{result.total_runs}: "
                f"{result.download_mbps:.2f} / {result.upload_mbps:.2f} Mbps"
            )

    progress = ProgressDisplay(total_runs=runs) if show_ui else None

    async with SpeedTestEngine(
        duration_seconds=duration,
        download_url=config["download_url"],
        upload_url=config["upload_url"],
        request_timeout=float(config["request_timeout"]),
    ) as engine:
        if progress:
            progress.start()
        try:
            summary = await engine.run_speed_test(
                runs=runs,
                on_progress=progress.update if progress else None,
                on_run_complete=_on_run_complete,
            )
        finally:
            if progress:
                progress.stop()

    if show_ui:
        if len(per_run) > 1:
            print_run_table(per_run)
        print_final_results(summary, cell)
    elif simple:
        print(format_text_result(summary, cell))

    return summary, per_run


# ---------------------------------------------------------------------------
# Project actions
# ---------------------------------------------------------------------------

def _show_heatmap(project: Project, metric: str) -> None:
    if not project.measurements:
        console.print("[dim]No measurements yet.[/dim]")
        return
    console.print(render_heatmap(project.measurements, project.grid_cols, project.grid_rows, metric))
    console.print(
        "  ".join(f"[{color}]██[/{color}] {label}" for color, label in legend(project.measurements, metric))
    )


def _show_suggestion(project: Project) -> None:
    cell = suggest_cell(project.measurements, project.grid_cols, project.grid_rows)
    if cell is None:
        console.print("[green]Every cell has been measured.[/green]")
    else:
        console.print(f"Suggested next cell: [bold cyan]{cell[0]} {cell[1]}[/bold cyan]")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="WiFi survey -- throughput measurements and heatmaps on a floorplan grid",
    )
    # Output modes
    parser.add_argument("--json", "-j", action="store_true", help="Output results as JSON")
    parser.add_argument("--output", "-o", type=str, metavar="FILE", help="Save results to JSON file")
    parser.add_argument("--simple", "-s", action="store_true", help="Simple output mode (no dashboard)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log engine activity to stderr")

    # Test parameters
    parser.add_argument("--runs", type=int, metavar="N", help="Download/upload runs per test (1-5)")
    parser.add_argument("--duration", type=float, metavar="SECS", help="Seconds per phase (default: 5)")
    parser.add_argument("--set-runs", type=int, metavar="N", help="Remember N as the default run count")

    # Projects
    parser.add_argument("--list", action="store_true", help="List projects and exit")
    parser.add_argument("--new", type=str, metavar="NAME", help="Create a project")
    parser.add_argument("--density", choices=sorted(GRID_DENSITIES), help="Grid density for --new")
    parser.add_argument("--aspect", type=float, default=1.0, metavar="H/W", help="Floorplan height/width for --new")
    parser.add_argument("--project", "-p", type=str, metavar="KEY", help="Project name or id")

    # Measurements
    parser.add_argument("--measure", type=int, nargs=2, metavar=("COL", "ROW"), help="Run a test and store it at a cell")
    parser.add_argument("--show", action="store_true", help="List the project's measurements")
    parser.add_argument("--delete", type=str, metavar="ID", help="Delete a measurement")
    parser.add_argument("--clear", action="store_true", help="Delete all measurements of the project")

    # Heatmap
    parser.add_argument("--heatmap", action="store_true", help="Render the project's heatmap")
    parser.add_argument("--metric", choices=METRICS, default="download", help="Heatmap metric")
    parser.add_argument("--suggest", action="store_true", help="Suggest the next cell to measure")

    return parser


def _dispatch(args: argparse.Namespace, config: dict) -> None:
    projects_file = config.get("projects_file") or None

    if args.set_runs is not None:
        runs = _resolve_runs(args.set_runs)
        path = set_config_value("runs", runs)
        console.print(f"[green]Default runs set to {runs}[/green] [dim]({path})[/dim]")
        return

    projects = load_projects(projects_file)

    if args.list:
        print_projects(projects)
        return

    if args.new:
        project = create_project(args.new, args.density or config["grid_density"], args.aspect)
        projects.insert(0, project)
        save_projects(projects, projects_file)
        console.print(
            f"[green]Created project[/green] {project.name} "
            f"({project.grid_cols}x{project.grid_rows}) [dim]{project.id}[/dim]"
        )
        return

    if args.show or args.heatmap or args.suggest or args.delete or args.clear:
        project = _require_project(projects, args.project)
        if args.delete:
            if not delete_measurement(project, args.delete):
                raise ValueError(f"Measurement {args.delete!r} not found")
            save_projects(projects, projects_file)
            console.print("[green]Measurement deleted[/green]")
        if args.clear:
            removed = clear_measurements(project)
            save_projects(projects, projects_file)
            console.print(f"[green]Cleared {removed} measurement(s)[/green]")
        if args.show:
            print_measurements(project)
        if args.heatmap:
            _show_heatmap(project, args.metric)
        if args.suggest:
            _show_suggestion(project)
        return

    # Speed test (optionally stored at a cell)
    runs = _resolve_runs(args.runs if args.runs is not None else int(config["runs"]))
    duration = args.duration if args.duration is not None else float(config["duration"])
    _validate(duration)

    project = None
    cell = None
    if args.measure:
        project = _require_project(projects, args.project)
        cell = (args.measure[0], args.measure[1])
        # fail before spending a whole test on a bad cell
        validate_cell(cell[0], cell[1], project.grid_cols, project.grid_rows)

    if not args.json and not args.simple:
        print_header()

    summary, per_run = asyncio.run(
        run_survey_test(
            runs=runs,
            config=config,
            duration=duration,
            json_output=args.json,
            simple=args.simple,
            cell=cell,
        )
    )

    if project is not None:
        measurement = record_measurement(project, cell[0], cell[1], summary)
        save_projects(projects, projects_file)
        logger.info("stored measurement %s (%d total)", measurement.id, len(project.measurements))
        if not args.json:
            console.print(f"[green]Saved to {project.name} at cell {cell[0]},{cell[1]}[/green]")

    result_json = create_result_json(
        summary,
        per_run,
        cell=cell,
        project={"id": project.id, "name": project.name} if project else None,
    )
    if args.json:
        print(json.dumps(result_json, indent=2))
    if args.output:
        save_json(result_json, args.output)
        if not args.json:
            console.print(f"\n[green]Results saved to:[/green] {args.output}")


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    config = load_config()
    configure_logging("INFO" if args.verbose else config["log_level"])

    try:
        _dispatch(args, config)
    except KeyboardInterrupt:
        console.print("\n[yellow]Test cancelled by user[/yellow]")
        sys.exit(1)
    except (ValueError, SpeedTestError, IOError) as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
