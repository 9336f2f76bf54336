from decimal import Decimal

import pytest

from supplylink.core.market import (
    Identity,
    InvalidInputError,
    MarketSession,
    NetworkFailureError,
    NotAuthenticatedError,
    PriceNotCompetitiveError,
    Role,
    SupplierView,
)
from supplylink.core.store import StoreUnavailableError

from conftest import FakeStore, FixedClock, at_hour, make_bid, make_requirement


@pytest.fixture
def store():
    return FakeStore(
        requirements=[
            make_requirement(id="r1", owner_id="vendor-a", quantity=Decimal("10"), price=Decimal("20")),
            make_requirement(id="r2", owner_id="vendor-b", quantity=Decimal("5"), price=Decimal("22")),
            make_requirement(id="r9", owner_id="vendor-c", state="Karnataka"),
        ],
        bids=[
            make_bid(id="b1", supplier_id="supplier-y", price=Decimal("19")),
            make_bid(id="b2", supplier_id="supplier-z", price=Decimal("18")),
        ],
    )


@pytest.mark.anyio
async def test_refresh_loads_state_data(store, vendor, policy):
    session = MarketSession(store, vendor, policy, clock=FixedClock(at_hour(14)))

    await session.refresh()

    assert [r.id for r in session.requirements] == ["r1", "r2"]
    assert [r.id for r in session.own_requirements] == ["r1"]
    assert len(session.bids) == 2
    assert session.aggregated()["Tomato"].total_quantity == Decimal("15")


@pytest.mark.anyio
async def test_refresh_skips_own_requirements_for_suppliers(store, supplier, policy):
    session = MarketSession(store, supplier, policy)

    await session.refresh()

    assert "get_requirements_by_owner" not in store.calls
    assert session.own_requirements == []


@pytest.mark.anyio
async def test_refresh_requires_login(store, policy):
    session = MarketSession(store, Identity(user_id=None), policy)

    with pytest.raises(NotAuthenticatedError):
        await session.refresh()

    assert store.calls == []


@pytest.mark.anyio
async def test_refresh_failure_keeps_previous_data(store, vendor, policy):
    session = MarketSession(store, vendor, policy)
    await session.refresh()
    store.fail_with = StoreUnavailableError("timed out")

    with pytest.raises(NetworkFailureError):
        await session.refresh()

    assert len(session.requirements) == 2


@pytest.mark.anyio
async def test_place_bid_uses_known_lowest_and_merges_result(store, supplier, policy):
    session = MarketSession(store, supplier, policy, clock=FixedClock(at_hour(8)))
    await session.refresh()

    bid = await session.place_bid("Tomato", "17")

    assert bid.price == Decimal("17")
    assert session.aggregated()["Tomato"].lowest_bid == Decimal("17")
    view = session.view()
    assert isinstance(view, SupplierView)
    assert view.offers[0].is_lowest


@pytest.mark.anyio
async def test_lowering_own_bid_replaces_it(store, supplier, policy):
    session = MarketSession(store, supplier, policy, clock=FixedClock(at_hour(8)))
    await session.refresh()

    first = await session.place_bid("Tomato", "17")
    second = await session.place_bid("Tomato", "16.5")

    assert second.id == first.id
    mine = [b for b in session.bids if b.supplier_id == "supplier-x"]
    assert [b.price for b in mine] == [Decimal("16.5")]


@pytest.mark.anyio
async def test_place_bid_at_lowest_is_rejected(store, supplier, policy):
    session = MarketSession(store, supplier, policy, clock=FixedClock(at_hour(8)))
    await session.refresh()

    with pytest.raises(PriceNotCompetitiveError):
        await session.place_bid("Tomato", "18")

    assert "submit_bid" not in store.calls


@pytest.mark.anyio
async def test_padded_item_name_still_checks_lowest_bid(store, supplier, policy):
    session = MarketSession(store, supplier, policy, clock=FixedClock(at_hour(8)))
    await session.refresh()

    with pytest.raises(PriceNotCompetitiveError):
        await session.place_bid("  Tomato ", "18")

    assert "submit_bid" not in store.calls


@pytest.mark.anyio
async def test_vendor_cannot_place_bids(store, vendor, policy):
    session = MarketSession(store, vendor, policy, clock=FixedClock(at_hour(8)))

    with pytest.raises(InvalidInputError, match="Only suppliers"):
        await session.place_bid("Tomato", "10")


@pytest.mark.anyio
async def test_post_requirement_merges_into_both_lists(store, vendor, policy):
    session = MarketSession(store, vendor, policy, clock=FixedClock(at_hour(14)))
    await session.refresh()

    created = await session.post_requirement("Onion", "8", "kg", "30")

    assert created.state == "Maharashtra"
    assert created.pincode == "411001"
    assert session.find_requirement(created.id) == created
    assert created in session.own_requirements
    assert "Onion" in session.aggregated()


@pytest.mark.anyio
async def test_edit_and_delete_requirement(store, vendor, policy):
    session = MarketSession(store, vendor, policy, clock=FixedClock(at_hour(14)))
    await session.refresh()

    updated = await session.edit_requirement("r1", {"quantity": "40"})
    assert session.aggregated()["Tomato"].total_quantity == Decimal("45")
    assert session.own_requirements == [updated]

    await session.delete_requirement("r1")
    assert session.find_requirement("r1") is None
    assert session.aggregated()["Tomato"].total_quantity == Decimal("5")


@pytest.mark.anyio
async def test_supplier_cannot_post_requirements(store, supplier, policy):
    session = MarketSession(store, supplier, policy, clock=FixedClock(at_hour(14)))

    with pytest.raises(InvalidInputError, match="Only vendors"):
        await session.post_requirement("Onion", "8", "kg", "30")


@pytest.mark.anyio
async def test_post_requirement_needs_registered_address(store, policy):
    session = MarketSession(
        store, Identity(user_id="vendor-a", role=Role.VENDOR), policy, clock=FixedClock(at_hour(14))
    )

    with pytest.raises(InvalidInputError):
        await session.post_requirement("Onion", "8", "kg", "30")
