"""Console rendering and progress helpers for sourcemap uploader CLI."""
from __future__ import annotations

from typing import Any, Dict, Optional
import time

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from .models import SettlementReport, UploadOutcome
from .orchestrator.models import UploadTask


console = Console()


def _human_size(value: int) -> str:
    size = float(max(value, 0))
    units = ["B", "KB", "MB", "GB", "TB"]
    unit_idx = 0
    while size >= 1024.0 and unit_idx < len(units) - 1:
        size /= 1024.0
        unit_idx += 1
    if unit_idx == 0:
        return f"{int(size)} {units[unit_idx]}"
    return f"{size:.2f} {units[unit_idx]}"


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]sourcemap-up[/bold green]",
        subtitle="[dim]sourcemap uploader CLI[/dim]",
        border_style="blue",
    )
    console.print(panel)


def render_report(report: Optional[SettlementReport]) -> None:
    """Render a summary of a settled upload run."""
    if report is None:
        console.print("[yellow]Skipped:[/yellow] build command does not match upload script")
        return

    console.print(
        f"[bold]Sourcemaps:[/bold] {len(report)} total, "
        f"[green]{len(report.succeeded)} uploaded[/green], "
        f"[red]{len(report.failed)} failed[/red]"
    )
    if not report.failed:
        return

    table = Table(title="Failed uploads", show_lines=False)
    table.add_column("File", style="cyan")
    table.add_column("Reason", style="magenta")
    table.add_column("Error", style="red")
    for outcome in report.failed:
        reason = outcome.reason.value if outcome.reason else "-"
        table.add_row(escape(outcome.filename), reason, escape(outcome.error or "-"))
    console.print(table)


class UploadProgressDisplay:
    """Event-based console display for a scheduling run."""

    def __init__(self, total: int):
        self._total = total
        self._completed = 0
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold cyan]{task.fields[label]}", justify="left"),
            BarColumn(bar_width=32),
            TextColumn("{task.completed}/{task.total}"),
            TimeElapsedColumn(),
            expand=False,
            console=console,
        )
        self._task_id: Optional[TaskID] = None

    def attach(self, scheduler) -> None:
        scheduler.on_task_start(self.on_task_start)
        scheduler.on_task_complete(self.on_task_complete)
        scheduler.on_task_fail(self.on_task_fail)
        scheduler.on_finish(self.on_finish)

    def start(self) -> None:
        if self._task_id is not None or self._total == 0:
            return
        self._progress.start()
        self._task_id = self._progress.add_task("upload", label="Uploading sourcemaps", total=self._total)

    def stop(self) -> None:
        if self._task_id is not None:
            self._progress.stop()
            self._task_id = None

    def _emit_timeline(self, status: str, name: str, error: Optional[str] = None) -> None:
        stamp = time.strftime("%H:%M:%S")
        palette = {"DONE": "green", "FAIL": "red", "SEND": "blue"}
        color = palette.get(status, "white")
        error_label = f" cause={escape(error)}" if error else ""
        self._progress.console.print(
            f"[dim]{stamp}[/dim] [{color}]{status:<4}[/{color}] {escape(name)}{error_label}"
        )

    def on_task_start(self, task: UploadTask) -> None:
        self.start()
        self._emit_timeline("SEND", task.name)

    def on_task_complete(self, outcome: UploadOutcome) -> None:
        self._advance()
        self._emit_timeline("DONE", outcome.filename)

    def on_task_fail(self, outcome: UploadOutcome) -> None:
        self._advance()
        self._emit_timeline("FAIL", outcome.filename, outcome.error)

    def on_finish(self, report: SettlementReport) -> None:
        self.stop()

    def _advance(self) -> None:
        self._completed += 1
        if self._task_id is not None:
            self._progress.update(self._task_id, completed=self._completed)
