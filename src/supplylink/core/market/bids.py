"""
Bid coordination.

Validates a bid against the window and the current lowest price before
sending it, then hands the store's answer back for local merging.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from supplylink.core.logging import get_contextual_logger
from supplylink.core.store.base import DataStore, StoreError

from . import rules
from .errors import InvalidInputError, MarketError, NetworkFailureError
from .models import Bid, BidDraft, Identity, Role
from .parsing import PRICE_PLACES, ensure_places, normalize_whitespace, parse_number
from .window import TimeWindowPolicy

DEFAULT_SUPPLIER_NAME = "Anonymous Supplier"


class BidCoordinator:
    """Submits bid updates for suppliers.

    The checks here run before any network call and only guard the user
    experience; the store repeats them authoritatively.
    """

    def __init__(self, store: DataStore, policy: TimeWindowPolicy):
        self.store = store
        self.policy = policy

    def validate(
        self,
        supplier: Identity,
        item: str,
        state: str,
        price: Any,
        current_lowest: Decimal | None,
        now: datetime,
    ) -> BidDraft:
        """Build a bid draft or raise the first failing rule.

        Order: authentication, window, numeric price with at most two
        decimal places, strictly below the current lowest bid, positive
        price.
        """
        supplier_id = supplier.require_authenticated()
        if supplier.role != Role.SUPPLIER:
            raise InvalidInputError("Only suppliers can place bids")

        rules.ensure_bidding_open(self.policy, now)

        parsed = parse_number(price)
        if parsed is None:
            raise InvalidInputError(f"Price must be a number, got {price!r}")
        ensure_places(parsed, PRICE_PLACES, "Price")

        rules.ensure_competitive(parsed, current_lowest)
        rules.ensure_positive_price(parsed)

        item = normalize_whitespace(item)
        state = normalize_whitespace(state)
        if not item:
            raise InvalidInputError("Item is required")
        if not state:
            raise InvalidInputError("State is required; complete your profile first")

        return BidDraft(
            item=item,
            state=state,
            supplier_id=supplier_id,
            supplier_name=supplier.display_name or DEFAULT_SUPPLIER_NAME,
            price=parsed,
        )

    async def submit_bid(
        self,
        supplier: Identity,
        item: str,
        state: str,
        price: Any,
        current_lowest: Decimal | None,
        now: datetime,
    ) -> Bid:
        """Validate and submit a bid.

        The returned bid replaces any earlier bid by the same supplier for
        the same item and state; merge it into local state by id.

        Args:
            supplier: Resolved supplier identity
            item: Item name as shown in the aggregated view
            state: State the bid applies to
            price: Offered price (number or text)
            current_lowest: Lowest bid currently known for item+state
            now: Current time

        Returns:
            The stored bid

        Raises:
            WindowClosedError: Outside a bidding window
            PriceNotCompetitiveError: price >= current_lowest
            InvalidInputError: Non-numeric or non-positive price
            NetworkFailureError: Store unreachable or failed
        """
        log = get_contextual_logger(
            __name__, user_id=supplier.user_id, role=supplier.role.value, state=state
        )

        try:
            draft = self.validate(supplier, item, state, price, current_lowest, now)
        except MarketError as e:
            log.info("Bid on %s rejected: %s", item, e.message, extra={"item": item, "error_code": e.code})
            raise

        try:
            bid = await self.store.submit_bid(draft)
        except MarketError as e:
            log.warning("Store rejected bid on %s: %s", draft.item, e.message, extra={"item": draft.item, "error_code": e.code})
            raise
        except StoreError as e:
            log.error("Bid on %s failed: %s", draft.item, e, extra={"item": draft.item})
            raise NetworkFailureError(
                "Could not update your bid. Please try again.",
                details=str(e),
            ) from e

        log.info("Bid on %s placed at %s", bid.item, bid.price, extra={"item": bid.item})
        return bid
