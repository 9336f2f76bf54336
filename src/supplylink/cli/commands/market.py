"""
Market viewing commands.
"""

from __future__ import annotations

from typing import Any

import orjson
import typer
from rich.console import Console
from rich.table import Table

from supplylink.cli.context import money, run_session
from supplylink.core.market import (
    AggregatedDemandEntry,
    MarketSession,
    SupplierView,
    VendorView,
    format_duration,
)

console = Console()

app = typer.Typer(
    help="View market demand and past deals",
    no_args_is_help=True,
)


def _unit_label(entry: AggregatedDemandEntry) -> str:
    if entry.has_unit_mismatch:
        return "mixed (" + ", ".join(u.value for u in entry.units) + ")"
    return entry.unit.value


def _entry_payload(entry: AggregatedDemandEntry) -> dict[str, Any]:
    return {
        "item": entry.item,
        "total_quantity": entry.total_quantity,
        "units": [u.value for u in entry.units],
        "vendor_count": entry.vendor_count,
        "highest_price": entry.highest_price,
        "lowest_bid": entry.lowest_bid,
    }


def view_payload(view: VendorView | SupplierView) -> dict[str, Any]:
    """Plain data for ``market show --json``."""
    data: dict[str, Any] = {
        "role": view.role.value,
        "state": view.identity.state,
        "time_to_next_window": format_duration(view.time_to_next_window),
        "demand": [_entry_payload(e) for e in view.demand.values()],
    }

    if isinstance(view, VendorView):
        data["window_open"] = view.window_open
        data["own_requirements"] = [
            {
                "id": own.requirement.id,
                "item": own.requirement.item,
                "quantity": own.requirement.quantity,
                "unit": own.requirement.unit.value,
                "price": own.requirement.price,
                "status": own.requirement.status.value,
                "editable": own.editable,
                "reason": own.reason,
            }
            for own in view.own_requirements
        ]
    else:
        data["window_open"] = view.bidding_open
        data["time_to_close"] = format_duration(view.time_to_close) if view.time_to_close else None
        data["offers"] = [
            {
                "item": offer.entry.item,
                "my_bid": offer.my_bid.price if offer.my_bid else None,
                "lowest_bid": offer.entry.lowest_bid,
                "is_lowest": offer.is_lowest,
                "suggested_price": offer.suggested_price,
            }
            for offer in view.offers
        ]
    return data


def _print_vendor_view(view: VendorView) -> None:
    if view.window_open:
        console.print(
            "[yellow]Bidding window is open.[/yellow] Requirements cannot be changed until it closes."
        )
    else:
        console.print(
            f"[green]Posting is open.[/green] Next bidding window in "
            f"{format_duration(view.time_to_next_window)}."
        )
    console.print()

    if view.demand:
        table = Table(title=f"Market Demand - {view.identity.state}", show_header=True, header_style="bold magenta")
        table.add_column("Item", style="cyan")
        table.add_column("Quantity", justify="right")
        table.add_column("Unit")
        table.add_column("Vendors", justify="right")
        table.add_column("Best Price", justify="right")
        table.add_column("Lowest Bid", justify="right")

        for entry in view.demand.values():
            unit = _unit_label(entry)
            if entry.has_unit_mismatch:
                unit = f"[red]{unit}[/red]"
            table.add_row(
                entry.item,
                str(entry.total_quantity),
                unit,
                str(entry.vendor_count),
                money(entry.highest_price),
                money(entry.lowest_bid) if entry.has_bids else "[dim]no bids[/dim]",
            )
        console.print(table)
    else:
        console.print("[dim]No open demand in your state yet.[/dim]")

    console.print()

    if not view.own_requirements:
        console.print("[dim]You have not posted any requirements.[/dim]")
        return

    table = Table(title="Your Requirements", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Item", style="cyan")
    table.add_column("Quantity", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Status", justify="center")
    table.add_column("Editable")

    for own in view.own_requirements:
        req = own.requirement
        status_style = "green" if req.is_open else "dim"
        table.add_row(
            req.id,
            req.item,
            f"{req.quantity} {req.unit.value}",
            money(req.price),
            f"[{status_style}]{req.status.value}[/{status_style}]",
            "yes" if own.editable else f"[dim]{own.reason}[/dim]",
        )
    console.print(table)


def _print_supplier_view(view: SupplierView) -> None:
    if view.bidding_open and view.time_to_close is not None:
        console.print(
            f"[green]Bidding is open.[/green] Window closes in {format_duration(view.time_to_close)}."
        )
    else:
        console.print(
            f"[yellow]Bidding is closed.[/yellow] Next window in "
            f"{format_duration(view.time_to_next_window)}."
        )
    console.print()

    if not view.offers:
        console.print("[dim]You have not bid on any items in your state.[/dim]")
        return

    table = Table(title=f"Your Bids - {view.identity.state}", show_header=True, header_style="bold magenta")
    table.add_column("Item", style="cyan")
    table.add_column("Quantity", justify="right")
    table.add_column("Your Bid", justify="right")
    table.add_column("Lowest", justify="right")
    table.add_column("Position", justify="center")
    table.add_column("Suggested", justify="right")

    for offer in view.offers:
        entry = offer.entry
        position = "[green]lowest[/green]" if offer.is_lowest else "[red]outbid[/red]"
        table.add_row(
            entry.item,
            f"{entry.total_quantity} {_unit_label(entry)}",
            money(offer.my_bid.price if offer.my_bid else None),
            money(entry.lowest_bid),
            position,
            money(offer.suggested_price),
        )
    console.print(table)


@app.command("show")
def show_market(
    ctx: typer.Context,
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the view as JSON",
    ),
) -> None:
    """Show the market view for your role.

    Vendors see all open demand in their state and their own postings;
    suppliers see the items they have bid on.
    """
    async def _view(session: MarketSession) -> VendorView | SupplierView:
        return session.view()

    view = run_session(ctx, _view)

    if as_json:
        console.print_json(orjson.dumps(view_payload(view), default=str).decode())
        return

    if isinstance(view, VendorView):
        _print_vendor_view(view)
    else:
        _print_supplier_view(view)


@app.command("deals")
def past_deals(
    ctx: typer.Context,
    limit: int = typer.Option(
        20,
        "--limit",
        "-n",
        help="Maximum deals to show",
    ),
) -> None:
    """Show recently closed deals."""
    async def _deals(session: MarketSession) -> list:
        return session.deals

    deals = run_session(ctx, _deals)[:limit]

    if not deals:
        console.print("[dim]No deals have closed yet.[/dim]")
        return

    table = Table(title=f"Past Deals ({len(deals)} shown)", show_header=True, header_style="bold magenta")
    table.add_column("Item", style="cyan")
    table.add_column("State")
    table.add_column("Price", justify="right")
    table.add_column("Supplier")
    table.add_column("Vendors", max_width=40)
    table.add_column("Closed", justify="right")

    for deal in deals:
        price = money(deal.winning_price)
        if deal.unit:
            price = f"{price}/{deal.unit}"
        table.add_row(
            deal.item,
            deal.state,
            price,
            deal.winning_supplier_name,
            ", ".join(deal.vendor_names) or "-",
            deal.closed_at.strftime("%Y-%m-%d %H:%M") if deal.closed_at else "-",
        )
    console.print(table)
