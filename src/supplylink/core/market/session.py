"""
Client-side market session.

Holds the lists fetched from the store for one caller and keeps them in step
with the caller's own mutations, so the aggregated view is recomputed
without a full reload. Changes made by other clients show up on the next
refresh.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from supplylink.core.store.base import DataStore, StoreError

from . import merge
from .aggregate import aggregate
from .bids import BidCoordinator
from .errors import InvalidInputError, NetworkFailureError
from .models import AggregatedDemandEntry, Bid, Deal, Identity, Requirement, Role
from .parsing import normalize_whitespace
from .requirements import RequirementCoordinator
from .view import MarketView, build_market_view
from .window import Clock, TimeWindowPolicy

logger = logging.getLogger(__name__)


class MarketSession:
    """One caller's working copy of the market."""

    def __init__(
        self,
        store: DataStore,
        identity: Identity,
        policy: TimeWindowPolicy | None = None,
        clock: Clock | None = None,
    ):
        self.store = store
        self.identity = identity
        self.policy = policy or TimeWindowPolicy()
        self.clock = clock or self.policy.now

        self.bid_coordinator = BidCoordinator(store, self.policy)
        self.requirement_coordinator = RequirementCoordinator(store, self.policy)

        self.requirements: list[Requirement] = []
        self.own_requirements: list[Requirement] = []
        self.bids: list[Bid] = []
        self.deals: list[Deal] = []

    @property
    def state(self) -> str:
        return self.identity.state or ""

    def now(self) -> datetime:
        return self.clock()

    # -------------------------------------------------------------------------
    # Loading and views
    # -------------------------------------------------------------------------

    async def refresh(self) -> None:
        """Replace all held lists with fresh data from the store."""
        user_id = self.identity.require_authenticated()

        try:
            requirements = await self.store.get_requirements_by_state(self.state)
            bids = await self.store.get_bids_by_state(self.state)
            own: list[Requirement] = []
            if self.identity.role == Role.VENDOR:
                own = await self.store.get_requirements_by_owner(user_id)
            deals = await self.store.get_past_deals()
        except StoreError as e:
            logger.error("Could not load market data: %s", e)
            raise NetworkFailureError("Could not load market data.", details=str(e)) from e

        self.requirements = requirements
        self.bids = bids
        self.own_requirements = own
        self.deals = deals
        logger.debug(
            "Loaded %d requirements, %d bids, %d deals for %s",
            len(requirements),
            len(bids),
            len(deals),
            self.state or "<no state>",
        )

    def aggregated(self, *, strict_units: bool = False) -> dict[str, AggregatedDemandEntry]:
        """Aggregated demand for the caller's state, from the held lists."""
        return aggregate(self.requirements, self.bids, self.state, strict_units=strict_units)

    def view(self, now: datetime | None = None) -> MarketView:
        """Role-specific view of the held lists."""
        return build_market_view(
            self.identity,
            self.requirements,
            self.bids,
            self.own_requirements,
            now or self.now(),
            self.policy,
        )

    # -------------------------------------------------------------------------
    # Supplier actions
    # -------------------------------------------------------------------------

    async def place_bid(self, item: str, price: Any, now: datetime | None = None) -> Bid:
        """Bid on an item against the currently known lowest bid."""
        self.require_role(Role.SUPPLIER, "place bids")
        item = normalize_whitespace(item)
        entry = self.aggregated().get(item)
        current_lowest = entry.lowest_bid if entry else None

        bid = await self.bid_coordinator.submit_bid(
            self.identity,
            item,
            self.state,
            price,
            current_lowest,
            now or self.now(),
        )
        self.bids = merge.upsert_by_id(self.bids, bid)
        return bid

    # -------------------------------------------------------------------------
    # Vendor actions
    # -------------------------------------------------------------------------

    async def post_requirement(
        self,
        item: Any,
        quantity: Any,
        unit: Any,
        price: Any,
        now: datetime | None = None,
    ) -> Requirement:
        """Post a requirement at the vendor's registered location."""
        user_id = self.require_role(Role.VENDOR, "post requirements")
        created = await self.requirement_coordinator.create(
            user_id,
            item,
            quantity,
            unit,
            price,
            self.identity.pincode,
            self.identity.state,
            now or self.now(),
        )
        self._merge_requirement(created)
        return created

    async def edit_requirement(
        self,
        requirement_id: str,
        changes: dict[str, Any],
        now: datetime | None = None,
    ) -> Requirement:
        user_id = self.require_role(Role.VENDOR, "edit requirements")
        updated = await self.requirement_coordinator.update(
            requirement_id,
            user_id,
            changes,
            now or self.now(),
            current=self.find_requirement(requirement_id),
        )
        self._merge_requirement(updated)
        return updated

    async def delete_requirement(self, requirement_id: str, now: datetime | None = None) -> None:
        user_id = self.require_role(Role.VENDOR, "delete requirements")
        await self.requirement_coordinator.remove(
            requirement_id,
            user_id,
            now or self.now(),
            current=self.find_requirement(requirement_id),
        )
        self.requirements = merge.remove_by_id(self.requirements, requirement_id)
        self.own_requirements = merge.remove_by_id(self.own_requirements, requirement_id)

    def find_requirement(self, requirement_id: str) -> Requirement | None:
        """Look up a requirement in the held lists."""
        return merge.find_by_id(self.own_requirements, requirement_id) or merge.find_by_id(
            self.requirements, requirement_id
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _merge_requirement(self, requirement: Requirement) -> None:
        if requirement.owner_id == self.identity.user_id:
            self.own_requirements = merge.upsert_by_id(self.own_requirements, requirement)
        if requirement.state == self.state:
            self.requirements = merge.upsert_by_id(self.requirements, requirement)
        else:
            self.requirements = merge.remove_by_id(self.requirements, requirement.id)

    def require_role(self, role: Role, action: str) -> str:
        user_id = self.identity.require_authenticated()
        if self.identity.role != role:
            raise InvalidInputError(f"Only {role.value}s can {action}")
        return user_id
