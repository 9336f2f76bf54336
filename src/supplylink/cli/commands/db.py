"""
Database management commands for the local store.
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from supplylink.cli.context import load_config

console = Console()

app = typer.Typer(
    help="Local database operations",
    no_args_is_help=True,
)


@app.command("init")
def init_database(
    ctx: typer.Context,
    drop_existing: bool = typer.Option(
        False,
        "--drop",
        help="Drop existing tables before creating",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation for --drop",
    ),
) -> None:
    """Initialize the local database schema.

    Creates all tables. Use --drop to reset the database.
    """
    from supplylink.persistence.db import drop_db, init_db

    config = load_config(ctx)

    if drop_existing:
        if not yes and not typer.confirm("This will DELETE ALL DATA. Continue?", default=False):
            raise typer.Abort()

        console.print("[yellow]Dropping existing tables...[/yellow]")
        drop_db(config.database.url)

    console.print("Creating database schema...")
    init_db(config.database.url, echo=config.database.echo)

    console.print("[green]OK[/green] Database initialized")


@app.command("stats")
def database_stats(ctx: typer.Context) -> None:
    """Show row counts in the local database."""
    from supplylink.persistence.db import init_db_async, make_session_factory, session_scope
    from supplylink.persistence.repo import BidRepository, DealRepository, RequirementRepository

    config = load_config(ctx)

    async def _count() -> tuple[dict[str, int], int, int]:
        engine = await init_db_async(config.database.url)
        try:
            async with session_scope(make_session_factory(engine)) as session:
                return (
                    await RequirementRepository(session).count_by_status(),
                    await BidRepository(session).count(),
                    await DealRepository(session).count(),
                )
        finally:
            await engine.dispose()

    requirement_counts, bid_count, deal_count = asyncio.run(_count())

    table = Table(title="Local Database", show_header=True, header_style="bold magenta")
    table.add_column("Table", style="cyan")
    table.add_column("Rows", justify="right")

    for status, count in sorted(requirement_counts.items()):
        table.add_row(f"requirements ({status})", str(count))
    table.add_row("bids", str(bid_count))
    table.add_row("deals", str(deal_count))

    console.print(table)
