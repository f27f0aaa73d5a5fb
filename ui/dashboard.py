"""
Rich-based terminal dashboard for survey speed tests.

All formatting helpers live in ``survey.stats`` -- this module only does
presentation via the ``rich`` library.
"""
from __future__ import annotations

from typing import List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from survey.models import Project, SpeedTestProgress, SpeedTestResult
from survey.stats import format_speed

console = Console()

_PHASE_COLORS = {"download": "green", "upload": "blue"}


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------

def print_header() -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]WiFi Survey[/bold cyan]\n"
            "[dim]Floorplan throughput measurements and heatmaps[/dim]",
            border_style="cyan",
        )
    )
    console.print()


def print_run_result(result: SpeedTestResult) -> None:
    console.print(
        f"  Run {result.run + 1}/{result.total_runs}: "
        f"[green]{format_speed(result.download_mbps)}[/green] down  "
        f"[blue]{format_speed(result.upload_mbps)}[/blue] up"
    )


def print_run_table(runs: List[SpeedTestResult]) -> None:
    table = Table(title="Runs", box=box.ROUNDED)
    table.add_column("#", style="dim", width=4)
    table.add_column("Download", justify="right", style="green")
    table.add_column("Upload", justify="right", style="blue")
    for r in runs:
        table.add_row(str(r.run + 1), format_speed(r.download_mbps), format_speed(r.upload_mbps))
    console.print(table)


def print_final_results(result: SpeedTestResult, cell: Optional[tuple] = None) -> None:
    where = f"[bold cyan]Cell:[/bold cyan] {cell[0]}, {cell[1]}\n\n" if cell else ""
    trimmed = " [dim](trimmed mean)[/dim]" if result.total_runs >= 3 else ""
    console.print()
    console.print(
        Panel.fit(
            f"{where}"
            f"[bold white]   Download:[/bold white]  [bold green]{format_speed(result.download_mbps)}[/bold green]\n"
            f"[bold white]   Upload:[/bold white]  [bold blue]{format_speed(result.upload_mbps)}[/bold blue]\n"
            f"[dim]   {result.total_runs} run(s)[/dim]{trimmed}",
            title="[bold]Results[/bold]",
            border_style="cyan",
        )
    )
    console.print()


def print_projects(projects: List[Project]) -> None:
    if not projects:
        console.print("[dim]No projects yet. Create one with --new NAME.[/dim]")
        return

    table = Table(title="Projects", box=box.ROUNDED)
    table.add_column("Name", style="bold")
    table.add_column("Grid", justify="right")
    table.add_column("Measurements", justify="right")
    table.add_column("Updated", style="dim")
    table.add_column("ID", style="dim")
    for p in projects:
        table.add_row(
            p.name,
            f"{p.grid_cols}x{p.grid_rows}",
            str(len(p.measurements)),
            p.updated_at[:16].replace("T", " "),
            p.id[:8],
        )
    console.print(table)


def print_measurements(project: Project) -> None:
    table = Table(title=f"{project.name} -- measurements", box=box.SIMPLE)
    table.add_column("Cell", justify="right")
    table.add_column("Download", justify="right", style="green")
    table.add_column("Upload", justify="right", style="blue")
    table.add_column("ID", style="dim")
    for m in sorted(project.measurements, key=lambda m: (m.grid_y, m.grid_x)):
        table.add_row(
            f"{m.grid_x},{m.grid_y}",
            format_speed(m.download),
            format_speed(m.upload),
            m.id,
        )
    console.print(table)


# ---------------------------------------------------------------------------
# Progress display
# ---------------------------------------------------------------------------

class ProgressDisplay:
    """
    A ``rich`` progress bar fed by speed-test progress events.

    A new bar is started whenever the phase or run changes.
    """

    def __init__(self, total_runs: int = 1) -> None:
        self.total_runs = total_runs
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold]{task.description}"),
            BarColumn(bar_width=40),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TextColumn("[bold cyan]{task.fields[speed]}[/bold cyan]"),
            TimeElapsedColumn(),
            console=console,
        )
        self._task_id = None
        self._key = None
        self._last_speed = 0.0
        self._last_prog = 0.0

    def start(self) -> None:
        self.progress.start()

    def update(self, event: SpeedTestProgress) -> None:
        key = (event.run, event.phase)
        if key != self._key:
            if self._task_id is not None:
                self.progress.update(self._task_id, completed=100)
            color = _PHASE_COLORS.get(event.phase, "white")
            label = f"[{color}]Run {event.run + 1}/{self.total_runs} {event.phase.capitalize()}[/{color}]"
            self._task_id = self.progress.add_task(label, total=100, speed="")
            self._key = key
            self._last_speed = 0.0
            self._last_prog = 0.0

        # Debounce: only update when values change noticeably
        if (
            abs(event.progress - self._last_prog) < 0.01
            and abs(event.current_speed - self._last_speed) < 1.0
        ):
            return
        speed_str = format_speed(event.current_speed) if event.current_speed > 0 else "..."
        self.progress.update(self._task_id, completed=event.progress * 100, speed=speed_str)
        self._last_prog = event.progress
        self._last_speed = event.current_speed

    def stop(self) -> None:
        if self._task_id is not None:
            self.progress.update(self._task_id, completed=100)
        self.progress.stop()
