"""
Functions for formatting and displaying data in the console using Rich.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from seedkeeper.models.config import AppConfig
from seedkeeper.models.job import JobSnapshot
from seedkeeper.models.tracking import TrackingPhase, TrackingRecord
from seedkeeper.utils.formatting import (
    create_progress_bar,
    format_duration,
    format_size,
)

PHASE_STYLES = {
    TrackingPhase.DOWNLOADING: "cyan",
    TrackingPhase.COMPLETED_SEEDING: "green",
    TrackingPhase.STOPPED: "dim",
    TrackingPhase.ERRORED: "red",
    TrackingPhase.VANISHED: "yellow",
}


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigurationError": [
            "• Run `seedkeeper init <URL> <USERNAME> <PASSWORD>` to create a config.",
            "• Or set QBITTORRENT_URL, QBITTORRENT_USERNAME and QBITTORRENT_PASSWORD.",
        ],
        "AuthenticationError": [
            "• Verify the WebUI username and password.",
            "• qBittorrent bans an IP after repeated failed logins; check its log.",
        ],
        "RemoteUnavailableError": [
            "• Check that qBittorrent is running and the WebUI is enabled.",
            "• Verify the URL and port in the configuration.",
        ],
        "RemoteRequestError": [
            "• The download client rejected the request.",
            "• Run the command with -v for detailed logs.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -v for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration, hiding sensitive data."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        if key == "password":
            value = "[hidden]"
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            escape(content.strip()),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: AppConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    credentials = "[green]✓ Complete[/green]" if config.credentials.is_complete else (
        "[red]✗ Missing URL, username or password[/red]"
    )
    table.add_row("WebUI URL:", config.url or "[red]not set[/red]")
    table.add_row("Credentials:", credentials)
    table.add_row("Seeding Multiplier:", f"{config.seeding_multiplier}x download time")
    table.add_row("Progress Poll:", f"every {format_duration(config.poll_interval)}")
    table.add_row("Seeding Check:", f"every {format_duration(config.sweep_interval)}")
    table.add_row(
        "Tracking Retention:",
        f"{config.tracking_retention_hours:g}h"
        if config.tracking_retention_hours
        else "✗ Disabled",
    )
    table.add_row("Default Save Path:", f"[dim]{config.save_path_for(None)}[/dim]")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_jobs_table(jobs: Sequence[JobSnapshot], title: str = "Current Torrents"):
    """Displays jobs reported by the download client."""
    console = Console()
    if not jobs:
        console.print("[yellow]No torrents found.[/yellow]")
        return

    table = Table(title=title, box=box.ROUNDED, show_lines=False)
    table.add_column("Hash", style="dim", no_wrap=True)
    table.add_column("Name", overflow="fold")
    table.add_column("State", style="cyan")
    table.add_column("Progress", no_wrap=True)
    table.add_column("Size", justify="right")

    for job in jobs:
        state = job.state.value + (" (paused)" if job.paused else "")
        speed = job.download_rate if not job.is_complete else 0
        table.add_row(
            job.id[:8],
            escape(job.name),
            state,
            escape(create_progress_bar(job.progress, speed, job.seeds, job.leechers)),
            format_size(job.size),
        )
    console.print(table)


def _format_timestamp(value: int | None) -> str:
    if value is None:
        return "-"
    return datetime.fromtimestamp(value).strftime("%Y-%m-%d %H:%M")


def print_tracking_table(records: Sequence[TrackingRecord]):
    """Displays the seed-time tracking state of each job."""
    console = Console()
    if not records:
        console.print("[dim]No torrents are being tracked for seeding time.[/dim]")
        return

    table = Table(title="Seeding Time Tracking", box=box.ROUNDED)
    table.add_column("Hash", style="dim", no_wrap=True)
    table.add_column("Name", overflow="fold")
    table.add_column("Phase")
    table.add_column("Download Time", justify="right")
    table.add_column("Stop Seeding At", justify="right")

    for record in records:
        style = PHASE_STYLES[record.phase]
        duration = (
            format_duration(record.download_duration)
            if record.download_duration is not None
            else "-"
        )
        table.add_row(
            record.id[:8],
            escape(record.name),
            f"[{style}]{record.phase.value}[/{style}]",
            duration,
            _format_timestamp(record.seeding_stop_time),
        )
    console.print(table)
