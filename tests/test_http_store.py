from decimal import Decimal

import httpx
import orjson
import pytest

from supplylink.core.market import (
    Bid,
    BidDraft,
    Deal,
    NotAuthenticatedError,
    PriceNotCompetitiveError,
    Requirement,
    RequirementDraft,
    RequirementPatch,
    RequirementStatus,
    Unit,
)
from supplylink.core.store import (
    HttpDataStore,
    MalformedResponseError,
    RetryConfig,
    StoreError,
    StoreUnavailableError,
)

from conftest import bid_doc, deal_doc, requirement_doc

BASE_URL = "https://market.test/api"

REQUIREMENT_DOC = {
    "_id": "64f0c1",
    "clerkUserId": "vendor-a",
    "item": "Tomato",
    "quantity": 10,
    "unit": "kg",
    "price": 20.5,
    "pincode": "600001",
    "state": "Tamil Nadu",
    "status": "open",
    "createdAt": "2024-05-01T09:30:00Z",
}


def make_store(handler, **kwargs) -> HttpDataStore:
    return HttpDataStore(
        base_url=BASE_URL,
        api_token="token-123",
        retry=RetryConfig(max_attempts=3, min_wait=0, max_wait=0),
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


@pytest.mark.anyio
async def test_get_requirements_by_state():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[REQUIREMENT_DOC])

    async with make_store(handler) as store:
        requirements = await store.get_requirements_by_state("Tamil Nadu")

    (req,) = requirements
    assert req.id == "64f0c1"
    assert req.owner_id == "vendor-a"
    assert req.quantity == Decimal("10")
    assert req.price == Decimal("20.5")
    assert req.unit == Unit.KG
    assert req.status == RequirementStatus.OPEN
    assert req.created_at.hour == 9

    assert seen[0].method == "GET"
    assert seen[0].url.path == "/api/requirements/state/Tamil Nadu"
    assert seen[0].headers["Authorization"] == "Bearer token-123"


@pytest.mark.anyio
async def test_empty_state_makes_no_request():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    async with make_store(handler) as store:
        assert await store.get_requirements_by_state("") == []
        assert await store.get_bids_by_state("") == []
        assert await store.get_requirements_by_owner("") == []


@pytest.mark.anyio
async def test_get_is_retried_on_transport_error():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) < 3:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json=[])

    async with make_store(handler) as store:
        assert await store.get_bids_by_state("Tamil Nadu") == []

    assert len(attempts) == 3


@pytest.mark.anyio
async def test_get_gives_up_after_max_attempts():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    async with make_store(handler) as store:
        with pytest.raises(StoreUnavailableError):
            await store.get_past_deals()

    assert len(attempts) == 3


@pytest.mark.anyio
async def test_mutations_are_not_retried():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    draft = BidDraft(
        item="Tomato", state="Tamil Nadu", supplier_id="s1", supplier_name="Fresh Farms", price=Decimal("17")
    )
    async with make_store(handler) as store:
        with pytest.raises(StoreUnavailableError):
            await store.submit_bid(draft)

    assert len(attempts) == 1


@pytest.mark.anyio
async def test_submit_bid_sends_wire_fields():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = orjson.loads(request.content)
        bodies.append(body)
        return httpx.Response(201, json={"_id": "b1", **body})

    draft = BidDraft(
        item="Tomato", state="Tamil Nadu", supplier_id="s1", supplier_name="Fresh Farms", price=Decimal("17.5")
    )
    async with make_store(handler) as store:
        bid = await store.submit_bid(draft)

    assert bodies == [
        {
            "item": "Tomato",
            "state": "Tamil Nadu",
            "clerkUserId": "s1",
            "supplierName": "Fresh Farms",
            "price": 17.5,
        }
    ]
    assert bid.id == "b1"
    assert bid.price == Decimal("17.5")


@pytest.mark.anyio
async def test_rejection_code_becomes_market_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={"code": "PRICE_NOT_COMPETITIVE", "message": "Your bid must be lower than 16"},
        )

    draft = BidDraft(item="Tomato", state="Goa", supplier_id="s1", supplier_name="x", price=Decimal("17"))
    async with make_store(handler) as store:
        with pytest.raises(PriceNotCompetitiveError, match="lower than 16"):
            await store.submit_bid(draft)


@pytest.mark.parametrize("status", [401, 403])
@pytest.mark.anyio
async def test_auth_failures(status):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"message": "Unauthorized"})

    async with make_store(handler) as store:
        with pytest.raises(NotAuthenticatedError):
            await store.get_requirements_by_owner("vendor-a")


@pytest.mark.anyio
async def test_server_error_is_store_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    async with make_store(handler) as store:
        with pytest.raises(StoreError) as exc_info:
            await store.get_requirement("64f0c1")

    assert exc_info.value.status_code == 500


@pytest.mark.anyio
async def test_malformed_payload():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[{"_id": "x", "item": "Tomato", "quantity": "lots"}])

    async with make_store(handler) as store:
        with pytest.raises(MalformedResponseError):
            await store.get_requirements_by_state("Goa")


@pytest.mark.anyio
async def test_update_and_delete_carry_owner():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.method == "PUT":
            body = orjson.loads(request.content)
            return httpx.Response(200, json={**REQUIREMENT_DOC, "quantity": body["quantity"]})
        return httpx.Response(200, json={"message": "Requirement deleted"})

    async with make_store(handler) as store:
        updated = await store.update_requirement("64f0c1", RequirementPatch(quantity=Decimal("12")), "vendor-a")
        await store.delete_requirement("64f0c1", "vendor-a")

    put, delete = seen
    assert orjson.loads(put.content) == {"clerkUserId": "vendor-a", "quantity": 12.0}
    assert updated.quantity == Decimal("12")
    assert delete.method == "DELETE"
    assert delete.url.params["clerkUserId"] == "vendor-a"


@pytest.mark.anyio
async def test_get_bids_by_state():
    bids = [
        Bid(id="b1", item="Tomato", state="Goa", supplier_id="s1", supplier_name="Fresh Farms", price=Decimal("17")),
        Bid(id="b2", item="Onion", state="Goa", supplier_id="s2", supplier_name="Green Valley", price=Decimal("29.5")),
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/bids/state/Goa"
        return httpx.Response(200, json=[bid_doc(b) for b in bids])

    async with make_store(handler) as store:
        assert await store.get_bids_by_state("Goa") == bids


@pytest.mark.anyio
async def test_get_past_deals():
    deal = Deal(
        id="d1",
        item="Tomato",
        state="Goa",
        unit="kg",
        winning_price=Decimal("16.5"),
        winning_supplier_name="Fresh Farms",
        vendor_names=("Asha Stores", "Ravi Mart"),
    )

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[deal_doc(deal)])

    async with make_store(handler) as store:
        (parsed,) = await store.get_past_deals()

    assert parsed.vendor_names == ("Asha Stores", "Ravi Mart")
    assert parsed.winning_price == Decimal("16.5")
    assert parsed.closed_at is None


@pytest.mark.anyio
async def test_create_requirement_returns_stored_document():
    stored = Requirement(
        id="r9",
        owner_id="vendor-a",
        item="Onion",
        quantity=Decimal("4"),
        unit=Unit.BAGS,
        price=Decimal("300"),
        pincode="403001",
        state="Goa",
    )

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        return httpx.Response(201, json=requirement_doc(stored))

    draft = RequirementDraft(
        owner_id="vendor-a",
        item="Onion",
        quantity=Decimal("4"),
        unit=Unit.BAGS,
        price=Decimal("300"),
        pincode="403001",
        state="Goa",
    )
    async with make_store(handler) as store:
        created = await store.create_requirement(draft)

    assert created == stored
