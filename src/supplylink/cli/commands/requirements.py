"""
Requirement commands for vendors.
"""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from supplylink.cli.context import money, run_session
from supplylink.core.market import MarketSession, Requirement, Role

console = Console()

app = typer.Typer(
    help="Post and manage your requirements",
    no_args_is_help=True,
)


@app.command("list")
def list_requirements(ctx: typer.Context) -> None:
    """List the requirements you have posted."""
    async def _list(session: MarketSession) -> list[Requirement]:
        session.require_role(Role.VENDOR, "list requirements")
        return session.own_requirements

    requirements = run_session(ctx, _list)

    if not requirements:
        console.print("[dim]You have not posted any requirements.[/dim]")
        return

    table = Table(title=f"Your Requirements ({len(requirements)})", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Item", style="cyan")
    table.add_column("Quantity", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Status", justify="center")

    for req in requirements:
        status_style = "green" if req.is_open else "dim"
        table.add_row(
            req.id,
            req.item,
            f"{req.quantity} {req.unit.value}",
            money(req.price),
            f"[{status_style}]{req.status.value}[/{status_style}]",
        )
    console.print(table)


@app.command("add")
def add_requirement(
    ctx: typer.Context,
    item: str = typer.Argument(..., help="Item name"),
    quantity: str = typer.Argument(..., help="Quantity needed"),
    unit: str = typer.Argument(..., help="kg, grams, liters, pieces, bags or meters"),
    price: str = typer.Argument(..., help="Highest price you will pay per unit"),
) -> None:
    """Post a requirement at your registered address.

    Not allowed during a bidding window.

    Examples:
        supplylink requirements add Tomato 50 kg 20
    """
    async def _add(session: MarketSession) -> Requirement:
        return await session.post_requirement(item, quantity, unit, price)

    created = run_session(ctx, _add)

    console.print(
        f"[green]OK[/green] Posted {created.quantity} {created.unit.value} of "
        f"[cyan]{created.item}[/cyan] at up to {money(created.price)}"
    )
    console.print(f"[dim]ID: {created.id}[/dim]")


@app.command("edit")
def edit_requirement(
    ctx: typer.Context,
    requirement_id: str = typer.Argument(..., help="Requirement ID"),
    item: Optional[str] = typer.Option(None, "--item", help="New item name"),
    quantity: Optional[str] = typer.Option(None, "--quantity", "-q", help="New quantity"),
    unit: Optional[str] = typer.Option(None, "--unit", "-u", help="New unit"),
    price: Optional[str] = typer.Option(None, "--price", "-p", help="New price"),
) -> None:
    """Edit one of your open requirements.

    Examples:
        supplylink requirements edit <id> --quantity 40 --price 21
    """
    changes = {"item": item, "quantity": quantity, "unit": unit, "price": price}

    async def _edit(session: MarketSession) -> Requirement:
        return await session.edit_requirement(requirement_id, changes)

    updated = run_session(ctx, _edit)

    console.print(
        f"[green]OK[/green] Updated [cyan]{updated.item}[/cyan]: "
        f"{updated.quantity} {updated.unit.value} at up to {money(updated.price)}"
    )


@app.command("remove")
def remove_requirement(
    ctx: typer.Context,
    requirement_id: str = typer.Argument(..., help="Requirement ID"),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation",
    ),
) -> None:
    """Delete one of your open requirements."""
    if not yes and not typer.confirm(f"Delete requirement {requirement_id}?", default=False):
        raise typer.Abort()

    async def _remove(session: MarketSession) -> None:
        await session.delete_requirement(requirement_id)

    run_session(ctx, _remove)

    console.print(f"[green]OK[/green] Requirement {requirement_id} deleted")
