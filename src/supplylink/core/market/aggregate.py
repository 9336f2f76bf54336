"""
Demand aggregation.

Folds open requirements into one entry per item and attaches the live bids
for the same state. The result is always recomputed from the full inputs,
never patched, so it cannot drift from them.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Mapping

from .errors import UnitMismatchError
from .models import AggregatedDemandEntry, Bid, Requirement, Unit


def aggregate(
    requirements: Iterable[Requirement],
    bids: Iterable[Bid],
    state: str,
    *,
    strict_units: bool = False,
) -> dict[str, AggregatedDemandEntry]:
    """Aggregate open demand per item for one state.

    Closed requirements never contribute. Every item with at least one open
    requirement is present, with ``lowest_bid`` None when it has no bids.
    The output does not depend on input order.

    Args:
        requirements: Requirements fetched for the state
        bids: Bids fetched for the state
        state: State to aggregate for; bids from other states are ignored
        strict_units: Raise instead of flagging when an item mixes units

    Returns:
        Mapping of item name to its aggregated entry, sorted by item

    Raises:
        UnitMismatchError: If strict_units is set and an item mixes units
    """
    quantities: dict[str, Decimal] = defaultdict(Decimal)
    counts: dict[str, int] = defaultdict(int)
    highest: dict[str, Decimal] = {}
    units: dict[str, set[Unit]] = defaultdict(set)

    for req in requirements:
        if not req.is_open:
            continue
        quantities[req.item] += req.quantity
        counts[req.item] += 1
        units[req.item].add(req.unit)
        if req.item not in highest or req.price > highest[req.item]:
            highest[req.item] = req.price

    bids_by_item: dict[str, list[Bid]] = defaultdict(list)
    for bid in bids:
        if bid.state == state and bid.item in counts:
            bids_by_item[bid.item].append(bid)

    result: dict[str, AggregatedDemandEntry] = {}
    for item in sorted(counts):
        item_units = tuple(sorted(units[item], key=lambda u: u.value))
        if strict_units and len(item_units) > 1:
            raise UnitMismatchError(
                f"Requirements for {item!r} use different units: "
                + ", ".join(u.value for u in item_units),
                item=item,
                units=tuple(u.value for u in item_units),
            )

        item_bids = tuple(sorted(bids_by_item.get(item, ()), key=lambda b: (b.price, b.id)))
        result[item] = AggregatedDemandEntry(
            item=item,
            total_quantity=quantities[item],
            vendor_count=counts[item],
            highest_price=highest[item],
            units=item_units,
            lowest_bid=item_bids[0].price if item_bids else None,
            bids=item_bids,
        )

    return result


def personalize(
    aggregated: Mapping[str, AggregatedDemandEntry],
    supplier_id: str,
    bids: Iterable[Bid],
) -> dict[str, AggregatedDemandEntry]:
    """Keep only the items the supplier has bid on."""
    my_items = {bid.item for bid in bids if bid.supplier_id == supplier_id}
    return {item: entry for item, entry in aggregated.items() if item in my_items}
