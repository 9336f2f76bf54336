"""
Local data store backed by SQLAlchemy.

Acts as the authoritative side of the request/response contract: every
mutation is validated again here against the store's own clock and current
data, whatever the client checked before sending it.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from supplylink.core.market import rules
from supplylink.core.market.errors import InvalidInputError
from supplylink.core.market.models import (
    Bid,
    BidDraft,
    Deal,
    Requirement,
    RequirementDraft,
    RequirementPatch,
)
from supplylink.core.market.parsing import PRICE_PLACES, QUANTITY_PLACES, ensure_places
from supplylink.core.market.window import Clock, TimeWindowPolicy
from supplylink.core.store.base import DataStore, StoreError

from .db import session_scope
from .repo import BidRepository, DealRepository, RequirementRepository

logger = logging.getLogger(__name__)


class SqlDataStore(DataStore):
    """Data store over a local SQL database."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        policy: TimeWindowPolicy | None = None,
        clock: Clock | None = None,
        engine: AsyncEngine | None = None,
    ):
        """Initialize the store.

        Args:
            session_factory: Factory from persistence.db.make_session_factory
            policy: Window policy used to re-validate mutations
            clock: Source of the store's current time (default: policy.now)
            engine: Engine owned by this store, disposed on close
        """
        self._factory = session_factory
        self.policy = policy or TimeWindowPolicy()
        self._clock = clock or self.policy.now
        self._engine = engine

    @property
    def name(self) -> str:
        return "local"

    def _now(self) -> datetime:
        return self._clock()

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None

    # -------------------------------------------------------------------------
    # Requirements
    # -------------------------------------------------------------------------

    async def get_requirements_by_state(self, state: str) -> list[Requirement]:
        if not state:
            return []
        async with session_scope(self._factory) as session:
            return await RequirementRepository(session).list_by_state(state)

    async def get_requirements_by_owner(self, owner_id: str) -> list[Requirement]:
        if not owner_id:
            return []
        async with session_scope(self._factory) as session:
            return await RequirementRepository(session).list_by_owner(owner_id)

    async def get_requirement(self, requirement_id: str) -> Requirement:
        async with session_scope(self._factory) as session:
            found = await RequirementRepository(session).get_by_id(requirement_id)
        if found is None:
            raise StoreError(f"Requirement not found: {requirement_id}", status_code=404)
        return found

    async def create_requirement(self, draft: RequirementDraft) -> Requirement:
        rules.ensure_posting_open(self.policy, self._now())
        _ensure_storable(draft.quantity, QUANTITY_PLACES, "Quantity")
        _ensure_storable(draft.price, PRICE_PLACES, "Price")

        async with session_scope(self._factory) as session:
            created = await RequirementRepository(session).create(draft)

        logger.info("Stored requirement %s (%s, %s)", created.id, created.item, created.state)
        return created

    async def update_requirement(
        self,
        requirement_id: str,
        patch: RequirementPatch,
        owner_id: str,
    ) -> Requirement:
        rules.ensure_posting_open(self.policy, self._now())
        if patch.quantity is not None:
            _ensure_storable(patch.quantity, QUANTITY_PLACES, "Quantity")
        if patch.price is not None:
            _ensure_storable(patch.price, PRICE_PLACES, "Price")

        async with session_scope(self._factory) as session:
            repo = RequirementRepository(session)
            row = await repo.get_row(requirement_id)
            if row is None:
                raise StoreError(f"Requirement not found: {requirement_id}", status_code=404)
            rules.ensure_requirement_mutable(repo.to_domain(row), owner_id)
            return await repo.update(row, patch)

    async def delete_requirement(self, requirement_id: str, owner_id: str) -> None:
        rules.ensure_posting_open(self.policy, self._now())

        async with session_scope(self._factory) as session:
            repo = RequirementRepository(session)
            row = await repo.get_row(requirement_id)
            if row is None:
                raise StoreError(f"Requirement not found: {requirement_id}", status_code=404)
            rules.ensure_requirement_mutable(repo.to_domain(row), owner_id)
            await repo.delete(row)

    # -------------------------------------------------------------------------
    # Bids and deals
    # -------------------------------------------------------------------------

    async def get_bids_by_state(self, state: str) -> list[Bid]:
        if not state:
            return []
        async with session_scope(self._factory) as session:
            return await BidRepository(session).list_by_state(state)

    async def submit_bid(self, draft: BidDraft) -> Bid:
        rules.ensure_bidding_open(self.policy, self._now())
        ensure_places(draft.price, PRICE_PLACES, "Price")
        rules.ensure_positive_price(draft.price)

        async with session_scope(self._factory) as session:
            repo = BidRepository(session)
            rules.ensure_competitive(draft.price, await repo.lowest_price(draft.item, draft.state))
            bid, created = await repo.upsert(draft)

        logger.info(
            "%s bid %s for %s in %s at %s",
            "Created" if created else "Replaced",
            bid.id,
            bid.item,
            bid.state,
            bid.price,
        )
        return bid

    async def get_past_deals(self) -> list[Deal]:
        async with session_scope(self._factory) as session:
            return await DealRepository(session).list_recent()


def _ensure_storable(value, places: int, field_name: str) -> None:
    # Columns have a fixed scale; anything finer would be rounded on write
    ensure_places(value, places, field_name)
    if value <= 0:
        raise InvalidInputError(f"{field_name} must be greater than zero, got {value}")
