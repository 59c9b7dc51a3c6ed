"""Console rendering and progress helpers for the batch-upload CLI."""
from __future__ import annotations

import time
from typing import Any, Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)
from rich.table import Table

PLAIN_PERCENT_STEP = 10

console = Console()


def _echo(message: str) -> None:
    console.print(message)


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
        title="[bold green]batch-upload[/bold green]",
        subtitle="[dim]pre-signed uploads[/dim]",
        border_style="blue",
    )
    console.print(panel)


class BatchUploadProgress:
    """
    Aggregate byte progress for a whole batch.

    Feed ``get_callback()`` to the orchestrator as ``on_progress``. On a
    terminal the bar moves backwards when a retry rolls bytes back; without
    one, a percentage line is printed every ``PLAIN_PERCENT_STEP`` percent.
    """

    def __init__(self, total_bytes: int, file_count: int):
        self.total_bytes = total_bytes
        self.file_count = file_count
        self.uploaded = 0
        self._started = False
        self._last_printed_percent = -1
        self._last_print_time = 0.0
        self._task_id: Optional[TaskID] = None
        self._progress: Optional[Progress] = None
        if console.is_terminal:
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("[bold cyan]{task.fields[label]}", justify="left"),
                BarColumn(bar_width=42),
                TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
                DownloadColumn(),
                TransferSpeedColumn(),
                TimeRemainingColumn(),
                expand=False,
                console=console,
            )

    def start(self) -> None:
        if self._started:
            return
        label = f"{self.file_count} file(s)"
        if self._progress is not None:
            self._progress.start()
            self._task_id = self._progress.add_task("upload", label=label, total=self.total_bytes)
        else:
            _echo(f"[cyan]Uploading:[/cyan] {label}, {_human_size(self.total_bytes)}")
        self._started = True

    def update(self, uploaded: int) -> None:
        if not self._started:
            self.start()
        self.uploaded = uploaded

        if self._progress is not None and self._task_id is not None:
            self._progress.update(self._task_id, completed=uploaded)
            return

        if self.total_bytes <= 0:
            return
        percent = int((uploaded / self.total_bytes) * 100)
        now = time.monotonic()
        should_print = (
            percent >= 100
            or abs(percent - self._last_printed_percent) >= PLAIN_PERCENT_STEP
            or now - self._last_print_time >= 2.0
        )
        if should_print and percent != self._last_printed_percent:
            _echo(f"  {percent:3d}% ({_human_size(uploaded)}/{_human_size(self.total_bytes)})")
            self._last_printed_percent = percent
            self._last_print_time = now

    def complete(self, success: bool = True, error: Optional[str] = None) -> None:
        if self._progress is not None:
            self._progress.stop()

        if success:
            _echo(f"[green]Uploaded:[/green] {self.file_count} file(s), {_human_size(self.uploaded)}")
            return

        suffix = f" - {error}" if error else ""
        _echo(f"[red]Failed:[/red] {_human_size(self.uploaded)} uploaded{suffix}")

    def get_callback(self):
        def callback(uploaded: int) -> None:
            self.update(uploaded)

        return callback
