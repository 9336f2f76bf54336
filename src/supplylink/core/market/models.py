"""
Domain models for the marketplace.

Requirements and bids are the persisted inputs; aggregated demand entries are
derived from them on demand and never stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum

from .errors import NotAuthenticatedError, UnitMismatchError


# =============================================================================
# Enums
# =============================================================================


class Unit(str, Enum):
    """Units a demand line can be posted in."""

    KG = "kg"
    GRAMS = "grams"
    LITERS = "liters"
    PIECES = "pieces"
    BAGS = "bags"
    METERS = "meters"


class RequirementStatus(str, Enum):
    """Requirement lifecycle status. CLOSED is terminal."""

    OPEN = "open"
    CLOSED = "closed"


class Role(str, Enum):
    """Marketplace role of a resolved identity."""

    VENDOR = "vendor"
    SUPPLIER = "supplier"


# =============================================================================
# Identity
# =============================================================================


@dataclass(frozen=True)
class Identity:
    """Caller identity as resolved by the identity provider."""

    user_id: str | None
    role: Role = Role.VENDOR
    state: str | None = None
    pincode: str | None = None
    display_name: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    def require_authenticated(self) -> str:
        """Return the user ID or raise NotAuthenticatedError."""
        if not self.user_id:
            raise NotAuthenticatedError("You must be logged in to use the market")
        return self.user_id


# =============================================================================
# Requirements
# =============================================================================


@dataclass(frozen=True)
class Requirement:
    """A vendor's demand line."""

    id: str
    owner_id: str
    item: str
    quantity: Decimal
    unit: Unit
    price: Decimal
    pincode: str
    state: str
    status: RequirementStatus = RequirementStatus.OPEN
    created_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status == RequirementStatus.OPEN

    def apply(self, patch: "RequirementPatch") -> "Requirement":
        """Return a copy with the patch fields applied."""
        return replace(self, **patch.changes())


@dataclass(frozen=True)
class RequirementDraft:
    """A validated requirement that has not been stored yet."""

    owner_id: str
    item: str
    quantity: Decimal
    unit: Unit
    price: Decimal
    pincode: str
    state: str


@dataclass(frozen=True)
class RequirementPatch:
    """Editable requirement fields. None means unchanged."""

    item: str | None = None
    quantity: Decimal | None = None
    unit: Unit | None = None
    price: Decimal | None = None

    def changes(self) -> dict[str, object]:
        return {k: v for k, v in self.__dict__.items() if v is not None}

    @property
    def is_empty(self) -> bool:
        return not self.changes()


# =============================================================================
# Bids
# =============================================================================


@dataclass(frozen=True)
class Bid:
    """A supplier's standing price for one item in one state.

    There is at most one bid per (supplier_id, item, state); resubmitting
    replaces it.
    """

    id: str
    item: str
    state: str
    supplier_id: str
    supplier_name: str
    price: Decimal

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.supplier_id, self.item, self.state)


@dataclass(frozen=True)
class BidDraft:
    """A validated bid ready to be upserted by the store."""

    item: str
    state: str
    supplier_id: str
    supplier_name: str
    price: Decimal


# =============================================================================
# Deals
# =============================================================================


@dataclass(frozen=True)
class Deal:
    """A closed deal produced by the external settlement process."""

    id: str
    item: str
    state: str
    unit: str | None
    winning_price: Decimal
    winning_supplier_name: str
    vendor_names: tuple[str, ...] = ()
    closed_at: datetime | None = None


# =============================================================================
# Aggregated Demand
# =============================================================================


@dataclass(frozen=True)
class AggregatedDemandEntry:
    """Per-item market demand within one state.

    ``lowest_bid`` is None when nobody has bid yet; a bid of 0 is never
    implied.
    """

    item: str
    total_quantity: Decimal
    vendor_count: int
    highest_price: Decimal
    units: tuple[Unit, ...]
    lowest_bid: Decimal | None = None
    bids: tuple[Bid, ...] = field(default_factory=tuple)

    @property
    def has_bids(self) -> bool:
        return self.lowest_bid is not None

    @property
    def has_unit_mismatch(self) -> bool:
        return len(self.units) > 1

    @property
    def unit(self) -> Unit:
        """The unit all contributing requirements share.

        Raises:
            UnitMismatchError: If contributors used different units
        """
        if self.has_unit_mismatch:
            raise UnitMismatchError(
                f"Requirements for {self.item!r} use different units: "
                + ", ".join(u.value for u in self.units),
                item=self.item,
                units=tuple(u.value for u in self.units),
            )
        return self.units[0]

    def bid_of(self, supplier_id: str) -> Bid | None:
        """Return the supplier's bid on this item, if any."""
        for bid in self.bids:
            if bid.supplier_id == supplier_id:
                return bid
        return None
