"""
SupplyLink CLI - Main entry point.

A terminal client for the regional vendor/supplier marketplace: vendors
post demand, suppliers bid during the morning and evening windows.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.traceback import install as install_rich_traceback

from supplylink import __app_name__, __version__

from .context import CliState, get_state, load_config

# Load environment variables from .env (if present)
load_dotenv()

# Install rich traceback for better error display
install_rich_traceback(show_locals=False, width=120)

# Force UTF-8 on Windows so the rupee sign prints
if sys.platform == "win32":
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")
    if hasattr(sys.stdout, "reconfigure"):
        try:
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
        except (AttributeError, OSError):
            pass

console = Console()

# Create main app
app = typer.Typer(
    name=__app_name__,
    help="Regional marketplace client for vendors and suppliers",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        envvar="SUPPLYLINK_CONFIG",
        help="Path to app.yaml (default: configs/app.yaml)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Show debug logging on the console",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """SupplyLink - Pool demand, bid twice a day."""
    ctx.obj = CliState(config_path=config)

    if ctx.invoked_subcommand == "init":
        return

    from supplylink.core.logging import setup_logging

    app_config = load_config(ctx)
    setup_logging(
        level="DEBUG" if verbose else app_config.logging.level,
        log_file=app_config.logging.file,
        json_format=app_config.logging.json_format,
        rich_console=app_config.logging.rich_console,
        console_level="DEBUG" if verbose else "WARNING",
    )


# =============================================================================
# Import and register subcommand modules
# =============================================================================

from .commands import bids, db, market, requirements  # noqa: E402

app.add_typer(market.app, name="market", help="View market demand and past deals")
app.add_typer(bids.app, name="bids", help="Place bids (suppliers)")
app.add_typer(requirements.app, name="requirements", help="Manage requirements (vendors)")
app.add_typer(db.app, name="db", help="Local database operations")


# =============================================================================
# Init Command
# =============================================================================


@app.command()
def init(
    ctx: typer.Context,
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing configuration",
    ),
) -> None:
    """Initialize SupplyLink configuration and the local database.

    Creates required directories, a default configuration file and the
    local database schema.
    """
    from rich.progress import Progress, SpinnerColumn, TextColumn

    from supplylink.core.config import write_default_config
    from supplylink.core.config.loader import DEFAULT_CONFIG_PATH
    from supplylink.persistence.db import init_db

    config_path = get_state(ctx).config_path or DEFAULT_CONFIG_PATH

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Creating default configuration...", total=None)

        if force and config_path.exists():
            config_path.unlink()
        if not config_path.exists():
            write_default_config(config_path)

        progress.update(task, description="Creating directories...")

        config = load_config(ctx)
        config.ensure_directories()

        progress.update(task, description="Initializing database...")

        init_db(config.database.url)

        progress.update(task, description="Done!")

    console.print()
    console.print(Panel.fit(
        "[bold green]OK - SupplyLink initialized successfully![/bold green]\n\n"
        "Created:\n"
        f"  - [cyan]{config_path}[/cyan] - Application configuration\n"
        f"  - [cyan]{config.data_dir}/[/cyan] - Local database\n"
        "  - [cyan]logs/[/cyan] - Log files\n\n"
        "Next steps:\n"
        "  1. Set your profile (user_id, role, state, pincode) in the config\n"
        "  2. Check the window: [yellow]supplylink status[/yellow]\n"
        "  3. See the market: [yellow]supplylink market show[/yellow]",
        title="[bold]Initialization Complete[/bold]",
        border_style="green",
    ))


# =============================================================================
# Status Command
# =============================================================================


@app.command()
def status(ctx: typer.Context) -> None:
    """Show the bidding window and your profile."""
    from rich.table import Table

    from supplylink.core.market import format_duration

    config = load_config(ctx)
    policy = config.window.to_policy()
    now = policy.now()

    console.print()
    if policy.is_window_open(now):
        remaining = policy.time_to_window_close(now)
        console.print(
            f"[bold green]Bidding window OPEN[/bold green] - closes in {format_duration(remaining)}"
        )
    else:
        console.print("[bold yellow]Bidding window CLOSED[/bold yellow] - requirements can be posted")
    console.print(f"Next window opens in {format_duration(policy.time_to_next_window(now))}")
    console.print()

    table = Table(title="Profile", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    profile = config.profile
    table.add_row("User", profile.user_id or "[red]not logged in[/red]")
    table.add_row("Role", profile.role.value)
    table.add_row("State", profile.state or "[dim]-[/dim]")
    table.add_row("Pincode", profile.pincode or "[dim]-[/dim]")
    table.add_row("Store", config.store.backend.value)
    table.add_row("Window hours", ", ".join(f"{h:02d}:00" for h in policy.opening_hours))
    table.add_row("Time zone", config.window.timezone)

    console.print(table)


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    run()
