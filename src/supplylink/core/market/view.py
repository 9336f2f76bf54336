"""
Role-specific market views.

The caller's role is dispatched once, here. Vendors get the full state
demand plus their own postings; suppliers get only the items they bid on.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterable, Mapping, Union

from .aggregate import aggregate, personalize
from .errors import InvalidInputError
from .models import AggregatedDemandEntry, Bid, Identity, Requirement, Role
from .window import TimeWindowPolicy

# Suggested undercut below the current lowest bid
UNDERCUT_STEP = Decimal("0.5")
# Suggested discount below the best vendor price when nobody has bid yet
OPENING_DISCOUNT = Decimal("1")


def suggest_bid_price(entry: AggregatedDemandEntry) -> Decimal | None:
    """Suggest a starting price for the next bid, or None if none fits."""
    if entry.lowest_bid is not None:
        suggestion = entry.lowest_bid - UNDERCUT_STEP
    else:
        suggestion = entry.highest_price - OPENING_DISCOUNT
    return suggestion if suggestion > 0 else None


# =============================================================================
# View Models
# =============================================================================


@dataclass(frozen=True)
class OwnRequirement:
    """A vendor's own requirement and whether it can be changed right now."""

    requirement: Requirement
    editable: bool
    reason: str | None = None


@dataclass(frozen=True)
class VendorView:
    """Full market demand for the vendor's state plus their own postings."""

    identity: Identity
    demand: Mapping[str, AggregatedDemandEntry]
    own_requirements: tuple[OwnRequirement, ...]
    window_open: bool
    time_to_next_window: timedelta

    role = Role.VENDOR

    @property
    def can_post(self) -> bool:
        return not self.window_open


@dataclass(frozen=True)
class SupplierOffer:
    """One item the supplier is competing on."""

    entry: AggregatedDemandEntry
    my_bid: Bid | None
    suggested_price: Decimal | None

    @property
    def is_lowest(self) -> bool:
        return self.my_bid is not None and self.my_bid.price == self.entry.lowest_bid


@dataclass(frozen=True)
class SupplierView:
    """Items the supplier has bid on, with bidding affordances."""

    identity: Identity
    demand: Mapping[str, AggregatedDemandEntry]
    offers: tuple[SupplierOffer, ...]
    bidding_open: bool
    time_to_next_window: timedelta
    time_to_close: timedelta | None

    role = Role.SUPPLIER


MarketView = Union[VendorView, SupplierView]


# =============================================================================
# Builders
# =============================================================================


def _vendor_view(
    identity: Identity,
    demand: dict[str, AggregatedDemandEntry],
    bids: list[Bid],
    own_requirements: Iterable[Requirement],
    now: datetime,
    policy: TimeWindowPolicy,
) -> VendorView:
    if not identity.state or not identity.pincode:
        raise InvalidInputError(
            "Please update your profile with your full address to post requirements."
        )

    window_open = policy.is_window_open(now)
    own = []
    for req in own_requirements:
        if window_open:
            own.append(OwnRequirement(req, False, "Editing is disabled during bidding hours."))
        elif not req.is_open:
            own.append(OwnRequirement(req, False, "Cannot edit a closed requirement."))
        else:
            own.append(OwnRequirement(req, True))

    return VendorView(
        identity=identity,
        demand=demand,
        own_requirements=tuple(own),
        window_open=window_open,
        time_to_next_window=policy.time_to_next_window(now),
    )


def _supplier_view(
    identity: Identity,
    demand: dict[str, AggregatedDemandEntry],
    bids: list[Bid],
    own_requirements: Iterable[Requirement],
    now: datetime,
    policy: TimeWindowPolicy,
) -> SupplierView:
    supplier_id = identity.require_authenticated()
    mine = personalize(demand, supplier_id, bids)

    offers = tuple(
        SupplierOffer(
            entry=entry,
            my_bid=entry.bid_of(supplier_id),
            suggested_price=suggest_bid_price(entry),
        )
        for entry in mine.values()
    )

    return SupplierView(
        identity=identity,
        demand=mine,
        offers=offers,
        bidding_open=policy.is_window_open(now),
        time_to_next_window=policy.time_to_next_window(now),
        time_to_close=policy.time_to_window_close(now),
    )


_BUILDERS: dict[Role, Callable[..., MarketView]] = {
    Role.VENDOR: _vendor_view,
    Role.SUPPLIER: _supplier_view,
}


def build_market_view(
    identity: Identity,
    requirements: Iterable[Requirement],
    bids: Iterable[Bid],
    own_requirements: Iterable[Requirement],
    now: datetime,
    policy: TimeWindowPolicy,
) -> MarketView:
    """Build the view for the caller's role.

    Args:
        identity: Resolved caller identity
        requirements: Requirements for the caller's state
        bids: Bids for the caller's state
        own_requirements: The caller's own requirements (vendors)
        now: Current time
        policy: Window policy

    Returns:
        VendorView or SupplierView
    """
    identity.require_authenticated()
    bids = list(bids)
    demand = aggregate(requirements, bids, identity.state or "")
    return _BUILDERS[identity.role](identity, demand, bids, own_requirements, now, policy)
