"""
Shared wiring for CLI commands.

Loads configuration, builds the configured data store and runs market
coroutines, turning market errors into a red message and exit code 1.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, TypeVar

import typer
from rich.console import Console

from supplylink.core.config import AppConfig, ConfigError, StoreBackend, load_app_config
from supplylink.core.market import MarketError, MarketSession, TimeWindowPolicy
from supplylink.core.store import DataStore, HttpDataStore, RetryConfig

err_console = Console(stderr=True)

T = TypeVar("T")


@dataclass
class CliState:
    """Options given to the root command."""

    config_path: Path | None = None


def get_state(ctx: typer.Context) -> CliState:
    root = ctx.find_root()
    if not isinstance(root.obj, CliState):
        root.obj = CliState()
    return root.obj


def load_config(ctx: typer.Context) -> AppConfig:
    """Load app config, exiting with a readable message if it is invalid."""
    try:
        return load_app_config(get_state(ctx).config_path)
    except ConfigError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        if e.details:
            err_console.print(f"[dim]{e.details}[/dim]")
        raise typer.Exit(1)


async def build_store(config: AppConfig, policy: TimeWindowPolicy) -> DataStore:
    """Create the data store selected by ``store.backend``."""
    if config.store.backend == StoreBackend.LOCAL:
        from supplylink.persistence import SqlDataStore, init_db_async, make_session_factory

        engine = await init_db_async(config.database.url, echo=config.database.echo)
        return SqlDataStore(make_session_factory(engine), policy, engine=engine)

    return HttpDataStore(
        base_url=config.store.base_url,
        timeout=config.store.timeout_seconds,
        api_token=config.store.api_token or None,
        retry=RetryConfig(
            max_attempts=config.store.max_retries,
            multiplier=config.store.retry_backoff_factor,
        ),
    )


def run_session(
    ctx: typer.Context,
    action: Callable[[MarketSession], Awaitable[T]],
    refresh: bool = True,
) -> T:
    """Open a market session for the configured profile and run ``action``.

    Args:
        ctx: Typer context
        action: Coroutine function receiving the session
        refresh: Load market data before running the action

    Returns:
        Whatever ``action`` returns
    """
    config = load_config(ctx)
    policy = config.window.to_policy()
    identity = config.profile.to_identity()

    async def _run() -> T:
        store = await build_store(config, policy)
        async with store:
            session = MarketSession(store, identity, policy)
            if refresh:
                await session.refresh()
            return await action(session)

    return run_market(_run())


def run_market(coro: Awaitable[T]) -> T:
    """Run a coroutine, reporting market errors and exiting with status 1."""
    try:
        return asyncio.run(coro)  # type: ignore[arg-type]
    except MarketError as e:
        report_error(e)
        raise typer.Exit(1)


def report_error(error: MarketError) -> None:
    err_console.print(f"[red]{error.message}[/red]")
    if error.details:
        err_console.print(f"[dim]{error.details}[/dim]")


def money(value: Any) -> str:
    """Format a price for display."""
    if value is None:
        return "-"
    return f"₹{value}"
