"""
Wire format for the remote data store.

Field names follow the existing backend API (``_id``, ``clerkUserId``,
``supplierName`` and so on).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from supplylink.core.market.models import (
    Bid,
    BidDraft,
    Deal,
    Requirement,
    RequirementDraft,
    RequirementPatch,
    RequirementStatus,
)
from supplylink.core.market.parsing import parse_number, parse_timestamp, parse_unit


def _number(value: Decimal | None) -> float | None:
    # JSON has no decimal type
    return float(value) if value is not None else None


def _required_number(data: dict[str, Any], key: str) -> Decimal:
    value = parse_number(data.get(key))
    if value is None:
        raise ValueError(f"Missing or non-numeric field: {key}")
    return value


def _id_of(data: dict[str, Any]) -> str:
    value = data.get("_id", data.get("id"))
    if value is None:
        raise ValueError("Missing field: _id")
    return str(value)


# =============================================================================
# Requirements
# =============================================================================


def requirement_from_payload(data: dict[str, Any]) -> Requirement:
    """Parse a requirement document.

    Raises:
        ValueError: If required fields are missing or malformed
    """
    return Requirement(
        id=_id_of(data),
        owner_id=str(data.get("clerkUserId") or data.get("owner_id") or ""),
        item=str(data.get("item") or ""),
        quantity=_required_number(data, "quantity"),
        unit=parse_unit(data.get("unit")),
        price=_required_number(data, "price"),
        pincode=str(data.get("pincode") or ""),
        state=str(data.get("state") or ""),
        status=RequirementStatus(str(data.get("status") or "open").lower()),
        created_at=parse_timestamp(data.get("createdAt")),
    )


def draft_to_payload(draft: RequirementDraft) -> dict[str, Any]:
    return {
        "clerkUserId": draft.owner_id,
        "item": draft.item,
        "quantity": _number(draft.quantity),
        "unit": draft.unit.value,
        "price": _number(draft.price),
        "pincode": draft.pincode,
        "state": draft.state,
    }


def patch_to_payload(patch: RequirementPatch, owner_id: str) -> dict[str, Any]:
    payload: dict[str, Any] = {"clerkUserId": owner_id}
    if patch.item is not None:
        payload["item"] = patch.item
    if patch.quantity is not None:
        payload["quantity"] = _number(patch.quantity)
    if patch.unit is not None:
        payload["unit"] = patch.unit.value
    if patch.price is not None:
        payload["price"] = _number(patch.price)
    return payload


# =============================================================================
# Bids
# =============================================================================


def bid_from_payload(data: dict[str, Any]) -> Bid:
    return Bid(
        id=_id_of(data),
        item=str(data.get("item") or ""),
        state=str(data.get("state") or ""),
        supplier_id=str(data.get("clerkUserId") or data.get("supplier_id") or ""),
        supplier_name=str(data.get("supplierName") or "Anonymous Supplier"),
        price=_required_number(data, "price"),
    )


def bid_draft_to_payload(draft: BidDraft) -> dict[str, Any]:
    return {
        "item": draft.item,
        "state": draft.state,
        "clerkUserId": draft.supplier_id,
        "supplierName": draft.supplier_name,
        "price": _number(draft.price),
    }


# =============================================================================
# Deals
# =============================================================================


def deal_from_payload(data: dict[str, Any]) -> Deal:
    return Deal(
        id=_id_of(data),
        item=str(data.get("item") or ""),
        state=str(data.get("state") or ""),
        unit=data.get("unit"),
        winning_price=_required_number(data, "winningPrice"),
        winning_supplier_name=str(data.get("winningSupplierName") or ""),
        vendor_names=tuple(str(name) for name in data.get("vendorNames") or ()),
        closed_at=parse_timestamp(data.get("closedAt")),
    )
