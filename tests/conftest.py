from __future__ import annotations

import itertools
from datetime import datetime
from decimal import Decimal

import pytest

from supplylink.core.market import (
    Bid,
    BidDraft,
    Deal,
    Identity,
    Requirement,
    RequirementDraft,
    RequirementPatch,
    RequirementStatus,
    Role,
    TimeWindowPolicy,
    Unit,
)
from supplylink.core.store.base import DataStore, StoreError


@pytest.fixture
def anyio_backend():
    # asyncio only, no trio needed
    return "asyncio"


def at_hour(hour: int, minute: int = 0, second: int = 0) -> datetime:
    return datetime(2024, 5, 1, hour, minute, second)


class FixedClock:
    """Settable clock for the local store and sessions."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set_hour(self, hour: int, minute: int = 0) -> None:
        self.now = at_hour(hour, minute)


def make_requirement(**overrides) -> Requirement:
    data = dict(
        id="req-1",
        owner_id="vendor-a",
        item="Tomato",
        quantity=Decimal("10"),
        unit=Unit.KG,
        price=Decimal("20"),
        pincode="411001",
        state="Maharashtra",
        status=RequirementStatus.OPEN,
    )
    data.update(overrides)
    return Requirement(**data)


def make_bid(**overrides) -> Bid:
    data = dict(
        id="bid-1",
        item="Tomato",
        state="Maharashtra",
        supplier_id="supplier-x",
        supplier_name="Fresh Farms",
        price=Decimal("18"),
    )
    data.update(overrides)
    return Bid(**data)


# Documents as the remote store sends them


def requirement_doc(req: Requirement) -> dict:
    return {
        "_id": req.id,
        "clerkUserId": req.owner_id,
        "item": req.item,
        "quantity": float(req.quantity),
        "unit": req.unit.value,
        "price": float(req.price),
        "pincode": req.pincode,
        "state": req.state,
        "status": req.status.value,
        "createdAt": req.created_at.isoformat() if req.created_at else None,
    }


def bid_doc(bid: Bid) -> dict:
    return {
        "_id": bid.id,
        "item": bid.item,
        "state": bid.state,
        "clerkUserId": bid.supplier_id,
        "supplierName": bid.supplier_name,
        "price": float(bid.price),
    }


def deal_doc(deal: Deal) -> dict:
    return {
        "_id": deal.id,
        "item": deal.item,
        "state": deal.state,
        "unit": deal.unit,
        "winningPrice": float(deal.winning_price),
        "winningSupplierName": deal.winning_supplier_name,
        "vendorNames": list(deal.vendor_names),
        "closedAt": deal.closed_at.isoformat() if deal.closed_at else None,
    }


class FakeStore(DataStore):
    """In-memory store that accepts everything and records each call.

    Set ``fail_with`` to make the next call raise.
    """

    def __init__(
        self,
        requirements: list[Requirement] | None = None,
        bids: list[Bid] | None = None,
        deals: list[Deal] | None = None,
    ):
        self.requirements = list(requirements or [])
        self.bids = list(bids or [])
        self.deals = list(deals or [])
        self.calls: list[str] = []
        self.fail_with: Exception | None = None
        self._ids = itertools.count(1)

    @property
    def name(self) -> str:
        return "fake"

    def _record(self, call: str) -> None:
        self.calls.append(call)
        if self.fail_with is not None:
            error, self.fail_with = self.fail_with, None
            raise error

    async def get_requirements_by_state(self, state: str) -> list[Requirement]:
        self._record("get_requirements_by_state")
        return [r for r in self.requirements if r.state == state]

    async def get_requirements_by_owner(self, owner_id: str) -> list[Requirement]:
        self._record("get_requirements_by_owner")
        return [r for r in self.requirements if r.owner_id == owner_id]

    async def get_requirement(self, requirement_id: str) -> Requirement:
        self._record("get_requirement")
        for req in self.requirements:
            if req.id == requirement_id:
                return req
        raise StoreError(f"Requirement not found: {requirement_id}", status_code=404)

    async def create_requirement(self, draft: RequirementDraft) -> Requirement:
        self._record("create_requirement")
        created = Requirement(id=f"new-{next(self._ids)}", **draft.__dict__)
        self.requirements.append(created)
        return created

    async def update_requirement(
        self, requirement_id: str, patch: RequirementPatch, owner_id: str
    ) -> Requirement:
        self._record("update_requirement")
        current = await self.get_requirement(requirement_id)
        updated = current.apply(patch)
        self.requirements = [updated if r.id == requirement_id else r for r in self.requirements]
        return updated

    async def delete_requirement(self, requirement_id: str, owner_id: str) -> None:
        self._record("delete_requirement")
        self.requirements = [r for r in self.requirements if r.id != requirement_id]

    async def get_bids_by_state(self, state: str) -> list[Bid]:
        self._record("get_bids_by_state")
        return [b for b in self.bids if b.state == state]

    async def submit_bid(self, draft: BidDraft) -> Bid:
        self._record("submit_bid")
        for existing in self.bids:
            if (existing.supplier_id, existing.item, existing.state) == (
                draft.supplier_id,
                draft.item,
                draft.state,
            ):
                bid = Bid(id=existing.id, **draft.__dict__)
                self.bids = [bid if b.id == existing.id else b for b in self.bids]
                return bid
        bid = Bid(id=f"bid-new-{next(self._ids)}", **draft.__dict__)
        self.bids.append(bid)
        return bid

    async def get_past_deals(self) -> list[Deal]:
        self._record("get_past_deals")
        return list(self.deals)


@pytest.fixture
def policy() -> TimeWindowPolicy:
    return TimeWindowPolicy()


@pytest.fixture
def vendor() -> Identity:
    return Identity(
        user_id="vendor-a",
        role=Role.VENDOR,
        state="Maharashtra",
        pincode="411001",
        display_name="Asha Stores",
    )


@pytest.fixture
def supplier() -> Identity:
    return Identity(
        user_id="supplier-x",
        role=Role.SUPPLIER,
        state="Maharashtra",
        pincode="411002",
        display_name="Fresh Farms",
    )


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(at_hour(14))


@pytest.fixture
async def sql_store(anyio_backend, clock: FixedClock, policy: TimeWindowPolicy):
    from supplylink.persistence import SqlDataStore, init_db_async, make_session_factory

    engine = await init_db_async("sqlite://")
    store = SqlDataStore(make_session_factory(engine), policy, clock=clock, engine=engine)
    yield store
    await store.close()
