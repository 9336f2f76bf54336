from decimal import Decimal

from supplylink.core.market import merge

from conftest import make_bid, make_requirement


def test_upsert_replaces_in_place():
    items = [make_bid(id="a"), make_bid(id="b", price=Decimal("17")), make_bid(id="c")]

    merged = merge.upsert_by_id(items, make_bid(id="b", price=Decimal("15")))

    assert [b.id for b in merged] == ["a", "b", "c"]
    assert merged[1].price == Decimal("15")
    assert items[1].price == Decimal("17")


def test_upsert_appends_unknown_id():
    merged = merge.upsert_by_id([make_bid(id="a")], make_bid(id="z"))

    assert [b.id for b in merged] == ["a", "z"]


def test_remove_and_find():
    items = [make_requirement(id="r1"), make_requirement(id="r2")]

    assert merge.find_by_id(items, "r2") is items[1]
    assert merge.find_by_id(items, "missing") is None
    assert [r.id for r in merge.remove_by_id(items, "r1")] == ["r2"]
    assert merge.remove_by_id(items, "missing") == items
