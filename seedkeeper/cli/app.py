"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from seedkeeper import __version__
from seedkeeper.api.client import TorrentClient
from seedkeeper.core.governor import LifecycleGovernor
from seedkeeper.core.seed_manager import SeedManager
from seedkeeper.exceptions import SeedkeeperError
from seedkeeper.models.config import AppConfig
from seedkeeper.storage.config_manager import ConfigManager
from seedkeeper.utils.magnet import display_name_from_magnet

from .formatters import (
    print_config,
    print_jobs_table,
    print_tracking_table,
    print_validation_table,
)
from .notifier import ConsoleNotifier

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("seedkeeper")

app = typer.Typer(
    name="seedkeeper",
    help=(
        "Manage qBittorrent downloads and stop seeding automatically after a"
        " multiple of each torrent's download time."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "seedkeeper"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _load_config() -> AppConfig:
    try:
        return ConfigManager(CONFIG_FILE).load_config()
    except SeedkeeperError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1) from e


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-v for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """qBittorrent seeding manager"""
    if version:
        console.print(f"[bold]seedkeeper[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    logging.getLogger("seedkeeper").setLevel("DEBUG" if verbose >= 1 else "INFO")

    if show_config:
        config = _load_config()
        print_config(
            CONFIG_FILE,
            config.model_dump(exclude={"config_path"}),
        )
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    url: str = typer.Argument(..., help="qBittorrent WebUI URL, e.g. http://localhost:8080"),
    username: str = typer.Argument(..., help="WebUI username."),
    password: str = typer.Argument(..., help="WebUI password."),
    multiplier: int = typer.Option(
        10, "--multiplier", "-m", help="Seed time as a multiple of download time."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration without asking."
    ),
):
    """Create the configuration file with WebUI credentials."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = {
        "url": url.rstrip("/"),
        "username": username,
        "password": password,
        "seeding_multiplier": multiplier,
    }
    ConfigManager(CONFIG_FILE).save_new_config(settings)
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Check the connection with: [cyan]seedkeeper diagnose[/cyan]")


@app.command(name="list")
def list_command():
    """List all torrents in the download client."""
    config = _load_config()

    async def _list_async():
        async with TorrentClient(config.credentials, config.request_timeout) as client:
            return await client.list_jobs()

    result = asyncio.run(_list_async())
    if not result.ok:
        console.print(f"[red]✗ Error fetching torrents: {escape(result.error)}[/red]")
        raise typer.Exit(code=1)
    print_jobs_table(result.jobs)


@app.command()
def seeding():
    """List torrents that are currently seeding."""
    config = _load_config()

    async def _seeding_async():
        async with TorrentClient(config.credentials, config.request_timeout) as client:
            return await client.list_seeding_jobs()

    result = asyncio.run(_seeding_async())
    if not result.ok:
        console.print(f"[red]✗ Error fetching torrents: {escape(result.error)}[/red]")
        raise typer.Exit(code=1)
    print_jobs_table(result.jobs, title="Seeding Torrents")


@app.command()
def add(
    magnet: str = typer.Argument(..., help="Magnet link to add."),
    category: str = typer.Option(
        "series",
        "--category",
        "-c",
        help="Download category: series, movie, anime or anything else for default.",
    ),
):
    """Add a torrent from a magnet link."""
    config = _load_config()
    save_path = config.save_path_for(category)

    async def _add_async():
        async with TorrentClient(config.credentials, config.request_timeout) as client:
            return await client.add_job(magnet, save_path)

    result = asyncio.run(_add_async())
    if not result.success:
        console.print(f"[red]✗ Failed to add magnet link: {escape(result.error or '')}[/red]")
        raise typer.Exit(code=1)

    name = display_name_from_magnet(magnet) or (result.job.name if result.job else None)
    console.print(
        f"[green]✓ Torrent \"{escape(name or 'Unknown Torrent')}\" added to "
        f"[dim]{escape(save_path)}[/dim].[/green]"
    )


@app.command()
def pause(
    job_ids: list[str] = typer.Argument(..., help="Hashes of the torrents to pause."),  # noqa: B008
):
    """Stop seeding (pause) the given torrents."""
    config = _load_config()

    async def _pause_async():
        async with TorrentClient(config.credentials, config.request_timeout) as client:
            return await client.pause(job_ids)

    if asyncio.run(_pause_async()):
        console.print(f"[green]✓ Paused {len(job_ids)} torrent(s).[/green]")
    else:
        console.print("[red]✗ Failed to pause some or all torrents.[/red]")
        raise typer.Exit(code=1)


@app.command()
def delete(
    job_ids: list[str] = typer.Argument(..., help="Hashes of the torrents to delete."),  # noqa: B008
    purge_files: bool = typer.Option(
        False, "--purge-files", help="Also delete downloaded files from disk."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Bypass the confirmation prompt."
    ),
):
    """Delete torrents from the download client."""
    suffix = " and their files" if purge_files else ""
    if not force and not typer.confirm(
        f"Delete {len(job_ids)} torrent(s){suffix}? This cannot be undone."
    ):
        console.print("[yellow]Deletion cancelled.[/yellow]")
        raise typer.Abort()

    config = _load_config()

    async def _delete_async():
        async with TorrentClient(config.credentials, config.request_timeout) as client:
            return await client.delete(job_ids, purge_files)

    if asyncio.run(_delete_async()):
        console.print(f"[green]✓ Deleted {len(job_ids)} torrent(s){suffix}.[/green]")
    else:
        console.print("[red]✗ Failed to delete some or all torrents.[/red]")
        raise typer.Exit(code=1)


@app.command()
def status():
    """Show which torrents the seeding policy would track right now."""
    config = _load_config()

    async def _status_async():
        async with TorrentClient(config.credentials, config.request_timeout) as client:
            governor = LifecycleGovernor(client, multiplier=config.seeding_multiplier)
            await governor.reconcile()
            return governor.get_status()

    print_tracking_table(asyncio.run(_status_async()))


@app.command()
def run(
    magnets: list[str] | None = typer.Argument(  # noqa: B008
        None, help="Magnet links to add and follow live."
    ),
    category: str = typer.Option(
        "series", "--category", "-c", help="Download category for added magnets."
    ),
):
    """Run the seeding manager until interrupted (Ctrl-C)."""
    config = _load_config()

    async def _run_async():
        notifier = ConsoleNotifier(console)
        async with SeedManager(config) as manager:
            for magnet in magnets or []:
                result = await manager.add_job(magnet, category, notify=notifier)
                if result.success:
                    console.print("[green]✓ Torrent added. Tracking progress...[/green]")
                else:
                    console.print(
                        f"[red]✗ Failed to add magnet link: "
                        f"{escape(result.error or '')}[/red]"
                    )

            seen_runs = 0
            while True:
                await asyncio.sleep(1)
                if manager.sweep_task.completed_runs != seen_runs:
                    seen_runs = manager.sweep_task.completed_runs
                    print_tracking_table(manager.status())

    console.print("[bold cyan]🌱 Starting seeding manager...[/bold cyan]")
    asyncio.run(_run_async())


@app.command()
def validate():
    """Validate the current configuration."""
    config = _load_config()
    print_validation_table(config)
    if not config.credentials.is_complete:
        raise typer.Exit(code=1)


@app.command()
def diagnose():
    """Diagnose common configuration and connectivity issues."""
    console.print("\n[bold cyan]Running diagnostics...[/bold cyan]\n")
    if CONFIG_FILE.is_file():
        console.print(f"[green]✓[/] Config file exists at: [dim]{CONFIG_FILE}[/dim]")
    else:
        console.print(
            "[yellow]⚠ Config file not found.[/] Using environment variables only."
        )

    config = _load_config()
    if not config.credentials.is_complete:
        console.print("[red]✗ URL, username or password is missing.[/red]")
        raise typer.Exit(code=1)
    console.print("[green]✓[/] Credentials are configured.")

    console.print(f"\n[dim]Logging in to {config.url}...[/dim]")

    async def _test_login() -> bool:
        async with TorrentClient(config.credentials, config.request_timeout) as client:
            try:
                return await client.authenticate()
            except SeedkeeperError as e:
                console.print(f"[red]✗ {escape(str(e))}[/red]")
                return False

    if asyncio.run(_test_login()):
        console.print("[bold green]✓ All checks passed! Your setup looks good.[/bold green]\n")
    else:
        console.print(
            "[bold red]✗ Could not log in. Please review the messages above.[/bold red]\n"
        )
        raise typer.Exit(code=1)
