"""
Bid commands for suppliers.
"""

from __future__ import annotations

import typer
from rich.console import Console

from supplylink.cli.context import money, run_session
from supplylink.core.market import Bid, MarketSession

console = Console()

app = typer.Typer(
    help="Place bids on aggregated demand",
    no_args_is_help=True,
)


@app.command("place")
def place_bid(
    ctx: typer.Context,
    item: str = typer.Argument(..., help="Item name as shown in the market view"),
    price: str = typer.Argument(..., help="Offered price per unit"),
) -> None:
    """Place or lower your bid on an item.

    Only allowed during a bidding window, and only strictly below the
    current lowest bid.

    Examples:
        supplylink bids place Tomato 17
    """
    async def _place(session: MarketSession) -> tuple[Bid, object]:
        entry = session.aggregated().get(item)
        previous = entry.lowest_bid if entry else None
        bid = await session.place_bid(item, price)
        return bid, previous

    bid, previous = run_session(ctx, _place)

    console.print(f"[green]OK[/green] Bid placed on [cyan]{bid.item}[/cyan] at {money(bid.price)}")
    if previous is not None:
        console.print(f"[dim]Previous lowest bid was {money(previous)}[/dim]")
