"""Console rendering and progress helpers for the sk-import CLI."""
from __future__ import annotations

import time
from typing import Any, Dict, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .models import ImportResult
from .utils.events import EventEmitter, StageEvent

console = Console()

STATUS_COLORS = {
    "started": "cyan",
    "completed": "green",
    "failed": "red",
}


def _echo(message: str) -> None:
    console.print(message)


def human_size(value: int) -> str:
    size = float(max(value, 0))
    units = ["B", "KB", "MB", "GB", "TB"]
    unit_idx = 0
    while size >= 1024.0 and unit_idx < len(units) - 1:
        size /= 1024.0
        unit_idx += 1
    if unit_idx == 0:
        return f"{int(size)} {units[unit_idx]}"
    return f"{size:.2f} {units[unit_idx]}"


def mask_secret(value: Optional[str]) -> str:
    if not value:
        return "(missing)"
    return "*" * 8


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
        title="[bold green]sk-import[/bold green]",
        subtitle="[dim]data import client[/dim]",
        border_style="blue",
    )
    console.print(panel)


def render_result(result: ImportResult) -> None:
    """Render the final outcome of an import."""
    if result.success:
        body = (result.body or "").strip() or "(empty response)"
        console.print(
            Panel(
                body,
                title=f"[bold green]Imported[/bold green] {result.organization_id}",
                border_style="green",
            )
        )
        return

    console.print(
        Panel(
            result.error or "unknown error",
            title=f"[bold red]Failed[/bold red] at {result.stage or '-'}",
            border_style="red",
        )
    )


class PipelineProgressDisplay:
    """Event-based console display for one import pipeline."""

    def __init__(self, show_timestamps: bool = True):
        self._show_timestamps = show_timestamps
        self._last_line: Optional[str] = None
        self.last_stage: Optional[str] = None

    def attach(self, events: EventEmitter) -> None:
        events.on("stage_start", self.on_stage)
        events.on("stage_complete", self.on_stage)
        events.on("stage_failed", self.on_stage)

    def on_stage(self, event: StageEvent) -> None:
        self.last_stage = event.stage
        self._last_line = event.describe()
        color = STATUS_COLORS.get(event.status, "white")
        stamp = f"[dim]{time.strftime('%H:%M:%S')}[/dim] " if self._show_timestamps else ""
        _echo(f"{stamp}[{color}]{event.status.upper():<9}[/{color}] {escape(self._last_line)}")

    def on_log(self, message: str) -> None:
        # The pipeline repeats each stage event as a log line; on_stage already printed it
        if message == self._last_line:
            return
        _echo(f"[dim]{escape(message)}[/dim]")
