"""
Requirement coordination.

Create, edit and delete demand lines. All three are only allowed while no
bidding window is open; edits and deletes additionally need an open
requirement owned by the caller.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from supplylink.core.logging import get_contextual_logger
from supplylink.core.store.base import DataStore, StoreError

from . import rules
from .errors import InvalidInputError, MarketError, NetworkFailureError
from .models import Requirement, RequirementDraft, RequirementPatch
from .parsing import PRICE_PLACES, QUANTITY_PLACES, parse_positive, parse_text, parse_unit
from .window import TimeWindowPolicy


def build_draft(
    owner_id: str,
    item: Any,
    quantity: Any,
    unit: Any,
    price: Any,
    pincode: Any,
    state: Any,
) -> RequirementDraft:
    """Parse raw form values into a requirement draft.

    Raises:
        InvalidInputError: On the first invalid field
    """
    return RequirementDraft(
        owner_id=owner_id,
        item=parse_text(item, "Item"),
        quantity=parse_positive(quantity, "Quantity", QUANTITY_PLACES),
        unit=parse_unit(unit),
        price=parse_positive(price, "Price", PRICE_PLACES),
        pincode=parse_text(pincode, "Pincode"),
        state=parse_text(state, "State"),
    )


def build_patch(changes: dict[str, Any]) -> RequirementPatch:
    """Parse raw edit values into a patch.

    Only ``item``, ``quantity``, ``unit`` and ``price`` may change; keys
    with a None value are left as they are.
    """
    allowed = {"item", "quantity", "unit", "price"}
    unknown = set(changes) - allowed
    if unknown:
        raise InvalidInputError(f"Cannot edit field(s): {', '.join(sorted(unknown))}")

    def parsed(key: str, parse: Any) -> Any:
        return parse(changes[key]) if changes.get(key) is not None else None

    patch = RequirementPatch(
        item=parsed("item", lambda v: parse_text(v, "Item")),
        quantity=parsed("quantity", lambda v: parse_positive(v, "Quantity", QUANTITY_PLACES)),
        unit=parsed("unit", parse_unit),
        price=parsed("price", lambda v: parse_positive(v, "Price", PRICE_PLACES)),
    )
    if patch.is_empty:
        raise InvalidInputError("Nothing to update")
    return patch


class RequirementCoordinator:
    """Validates and submits requirement mutations for vendors."""

    def __init__(self, store: DataStore, policy: TimeWindowPolicy):
        self.store = store
        self.policy = policy

    async def create(
        self,
        owner_id: str,
        item: Any,
        quantity: Any,
        unit: Any,
        price: Any,
        pincode: Any,
        state: Any,
        now: datetime,
    ) -> Requirement:
        """Post a new requirement.

        Raises:
            WindowOpenError: During a bidding window
            InvalidInputError: On malformed fields
            NetworkFailureError: Store unreachable or failed
        """
        log = get_contextual_logger(__name__, user_id=owner_id, role="vendor", state=str(state or ""))
        try:
            rules.ensure_posting_open(self.policy, now)
            draft = build_draft(owner_id, item, quantity, unit, price, pincode, state)
        except MarketError as e:
            log.info("Requirement rejected: %s", e.message, extra={"error_code": e.code})
            raise

        created = await self._call(self.store.create_requirement(draft), log, "create requirement")
        log.info(
            "Posted requirement %s: %s %s %s at %s",
            created.id,
            created.quantity,
            created.unit.value,
            created.item,
            created.price,
            extra={"requirement_id": created.id, "item": created.item},
        )
        return created

    async def update(
        self,
        requirement_id: str,
        owner_id: str,
        patch: RequirementPatch | dict[str, Any],
        now: datetime,
        current: Requirement | None = None,
    ) -> Requirement:
        """Edit an open requirement.

        Args:
            requirement_id: Requirement to change
            owner_id: Caller's user ID
            patch: RequirementPatch or raw field values
            now: Current time
            current: Locally held copy; fetched from the store if omitted

        Raises:
            WindowOpenError: During a bidding window
            RequirementClosedError: Requirement no longer open
            NotOwnerError: Caller does not own it
            InvalidInputError: On malformed fields
            NetworkFailureError: Store unreachable or failed
        """
        log = get_contextual_logger(__name__, user_id=owner_id, role="vendor")
        extra = {"requirement_id": requirement_id}

        try:
            rules.ensure_posting_open(self.policy, now)
        except MarketError as e:
            log.info("Edit of %s rejected: %s", requirement_id, e.message, extra={**extra, "error_code": e.code})
            raise

        if current is None:
            current = await self._call(self.store.get_requirement(requirement_id), log, "load requirement")

        try:
            rules.ensure_requirement_mutable(current, owner_id)
            if not isinstance(patch, RequirementPatch):
                patch = build_patch(patch)
            elif patch.is_empty:
                raise InvalidInputError("Nothing to update")
        except MarketError as e:
            log.info("Edit of %s rejected: %s", requirement_id, e.message, extra={**extra, "error_code": e.code})
            raise

        updated = await self._call(
            self.store.update_requirement(requirement_id, patch, owner_id), log, "update requirement"
        )
        log.info("Updated requirement %s", requirement_id, extra=extra)
        return updated

    async def remove(
        self,
        requirement_id: str,
        owner_id: str,
        now: datetime,
        current: Requirement | None = None,
    ) -> None:
        """Delete an open requirement.

        Raises:
            WindowOpenError: During a bidding window
            RequirementClosedError: Requirement no longer open
            NotOwnerError: Caller does not own it
            NetworkFailureError: Store unreachable or failed
        """
        log = get_contextual_logger(__name__, user_id=owner_id, role="vendor")
        extra = {"requirement_id": requirement_id}

        try:
            rules.ensure_posting_open(self.policy, now)
        except MarketError as e:
            log.info("Delete of %s rejected: %s", requirement_id, e.message, extra={**extra, "error_code": e.code})
            raise

        if current is None:
            current = await self._call(self.store.get_requirement(requirement_id), log, "load requirement")

        try:
            rules.ensure_requirement_mutable(current, owner_id)
        except MarketError as e:
            log.info("Delete of %s rejected: %s", requirement_id, e.message, extra={**extra, "error_code": e.code})
            raise

        await self._call(self.store.delete_requirement(requirement_id, owner_id), log, "delete requirement")
        log.info("Deleted requirement %s", requirement_id, extra=extra)

    @staticmethod
    async def _call(awaitable: Any, log: Any, action: str) -> Any:
        """Await a store call, translating store failures."""
        try:
            return await awaitable
        except MarketError as e:
            log.warning("Store rejected %s: %s", action, e.message, extra={"error_code": e.code})
            raise
        except StoreError as e:
            if e.status_code == 404:
                raise InvalidInputError(f"Could not {action}: requirement not found") from e
            log.error("Could not %s: %s", action, e)
            raise NetworkFailureError(
                f"Could not {action}. Please try again.",
                details=str(e),
            ) from e
