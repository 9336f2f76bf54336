from datetime import datetime, timezone
from decimal import Decimal

import pytest

from supplylink.core.market import (
    BidDraft,
    Deal,
    InvalidInputError,
    NotOwnerError,
    PriceNotCompetitiveError,
    RequirementClosedError,
    RequirementDraft,
    RequirementPatch,
    RequirementStatus,
    Unit,
    WindowClosedError,
    WindowOpenError,
)
from supplylink.core.store import StoreError
from supplylink.persistence import DealRepository, RequirementRepository, session_scope


def draft(**overrides) -> RequirementDraft:
    data = dict(
        owner_id="vendor-a",
        item="Tomato",
        quantity=Decimal("10"),
        unit=Unit.KG,
        price=Decimal("20"),
        pincode="411001",
        state="Maharashtra",
    )
    data.update(overrides)
    return RequirementDraft(**data)


def bid_draft(supplier_id: str, price: str, item: str = "Tomato") -> BidDraft:
    return BidDraft(
        item=item,
        state="Maharashtra",
        supplier_id=supplier_id,
        supplier_name=f"Supplier {supplier_id}",
        price=Decimal(price),
    )


@pytest.mark.anyio
async def test_create_and_list_requirements(sql_store):
    created = await sql_store.create_requirement(draft(quantity=Decimal("12.5")))
    await sql_store.create_requirement(draft(owner_id="vendor-b", state="Karnataka"))

    assert created.quantity == Decimal("12.5")
    assert created.status == RequirementStatus.OPEN
    assert [r.id for r in await sql_store.get_requirements_by_state("Maharashtra")] == [created.id]
    assert [r.id for r in await sql_store.get_requirements_by_owner("vendor-a")] == [created.id]
    assert await sql_store.get_requirement(created.id) == created


@pytest.mark.anyio
async def test_missing_requirement_is_404(sql_store):
    with pytest.raises(StoreError) as exc_info:
        await sql_store.get_requirement("nope")

    assert exc_info.value.status_code == 404


@pytest.mark.anyio
async def test_store_rejects_requirements_during_window(sql_store, clock):
    clock.set_hour(8)

    with pytest.raises(WindowOpenError):
        await sql_store.create_requirement(draft())


@pytest.mark.anyio
async def test_store_rejects_non_positive_quantity(sql_store):
    with pytest.raises(InvalidInputError):
        await sql_store.create_requirement(draft(quantity=Decimal("0")))


@pytest.mark.anyio
async def test_update_checks_owner_and_status(sql_store, clock):
    created = await sql_store.create_requirement(draft())

    with pytest.raises(NotOwnerError):
        await sql_store.update_requirement(created.id, RequirementPatch(price=Decimal("25")), "vendor-b")

    updated = await sql_store.update_requirement(created.id, RequirementPatch(price=Decimal("25")), "vendor-a")
    assert updated.price == Decimal("25")
    assert updated.quantity == Decimal("10")

    async with session_scope(sql_store._factory) as session:
        await RequirementRepository(session).set_status(created.id, RequirementStatus.CLOSED)

    with pytest.raises(RequirementClosedError):
        await sql_store.update_requirement(created.id, RequirementPatch(price=Decimal("26")), "vendor-a")
    with pytest.raises(RequirementClosedError):
        await sql_store.delete_requirement(created.id, "vendor-b")


@pytest.mark.anyio
async def test_delete_requirement(sql_store):
    created = await sql_store.create_requirement(draft())

    await sql_store.delete_requirement(created.id, "vendor-a")

    assert await sql_store.get_requirements_by_owner("vendor-a") == []
    with pytest.raises(StoreError):
        await sql_store.delete_requirement(created.id, "vendor-a")


@pytest.mark.anyio
async def test_bids_upsert_per_supplier_item_and_state(sql_store, clock):
    clock.set_hour(8)

    first = await sql_store.submit_bid(bid_draft("s1", "19"))
    await sql_store.submit_bid(bid_draft("s2", "18"))
    lowered = await sql_store.submit_bid(bid_draft("s1", "17"))

    assert lowered.id == first.id
    bids = await sql_store.get_bids_by_state("Maharashtra")
    assert sorted((b.supplier_id, b.price) for b in bids) == [("s1", Decimal("17")), ("s2", Decimal("18"))]


@pytest.mark.anyio
async def test_store_rechecks_price_against_its_own_data(sql_store, clock):
    clock.set_hour(20)
    await sql_store.submit_bid(bid_draft("s1", "15"))

    # A client with a stale view thinks the lowest is still 18
    with pytest.raises(PriceNotCompetitiveError) as exc_info:
        await sql_store.submit_bid(bid_draft("s2", "16"))

    assert exc_info.value.current_lowest == Decimal("15")


@pytest.mark.anyio
async def test_store_rejects_bids_outside_window(sql_store):
    with pytest.raises(WindowClosedError):
        await sql_store.submit_bid(bid_draft("s1", "15"))


@pytest.mark.anyio
async def test_past_deals_newest_first(sql_store):
    async with session_scope(sql_store._factory) as session:
        repo = DealRepository(session)
        await repo.record(
            Deal(
                id="d1",
                item="Tomato",
                state="Maharashtra",
                unit="kg",
                winning_price=Decimal("16.50"),
                winning_supplier_name="Fresh Farms",
                vendor_names=("Asha Stores", "Ravi Mart"),
                closed_at=datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc),
            )
        )
        await repo.record(
            Deal(
                id="d2",
                item="Onion",
                state="Maharashtra",
                unit="kg",
                winning_price=Decimal("30"),
                winning_supplier_name="Green Valley",
                closed_at=datetime(2024, 5, 1, 21, 0, tzinfo=timezone.utc),
            )
        )

    deals = await sql_store.get_past_deals()

    assert [d.id for d in deals] == ["d2", "d1"]
    assert deals[1].vendor_names == ("Asha Stores", "Ravi Mart")
    assert deals[1].winning_price == Decimal("16.5")


@pytest.mark.anyio
async def test_bid_finer_than_a_paisa_is_rejected(sql_store, clock):
    clock.set_hour(8)
    await sql_store.submit_bid(bid_draft("s1", "17.50"))

    # 17.499 would be written as 17.50 and tie the current lowest
    with pytest.raises(InvalidInputError, match="decimal places"):
        await sql_store.submit_bid(bid_draft("s2", "17.499"))

    bids = await sql_store.get_bids_by_state("Maharashtra")
    assert [(b.supplier_id, b.price) for b in bids] == [("s1", Decimal("17.5"))]


@pytest.mark.anyio
async def test_stored_bid_matches_returned_bid(sql_store, clock):
    clock.set_hour(8)

    placed = await sql_store.submit_bid(bid_draft("s1", "17.25"))

    (stored,) = await sql_store.get_bids_by_state("Maharashtra")
    assert stored == placed


@pytest.mark.anyio
async def test_quantity_that_would_round_to_zero_is_rejected(sql_store):
    with pytest.raises(InvalidInputError, match="decimal places"):
        await sql_store.create_requirement(draft(quantity=Decimal("0.0004")))

    assert await sql_store.get_requirements_by_owner("vendor-a") == []


@pytest.mark.anyio
async def test_patch_finer_than_column_scale_is_rejected(sql_store):
    created = await sql_store.create_requirement(draft())

    with pytest.raises(InvalidInputError):
        await sql_store.update_requirement(created.id, RequirementPatch(price=Decimal("19.999")), "vendor-a")

    assert (await sql_store.get_requirement(created.id)).price == Decimal("20")


@pytest.mark.anyio
async def test_store_uses_async_driver(sql_store):
    assert sql_store._engine.dialect.driver == "aiosqlite"

    assert await sql_store.get_past_deals() == []
