"""
Market rules shared by the client-side coordinators and the local store.

The coordinators check them before any network call; the store checks them
again on receipt because the client view may be stale.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from .errors import (
    InvalidInputError,
    NotOwnerError,
    PriceNotCompetitiveError,
    RequirementClosedError,
    WindowClosedError,
    WindowOpenError,
)
from .models import Requirement
from .window import TimeWindowPolicy, format_duration


def ensure_bidding_open(policy: TimeWindowPolicy, now: datetime) -> None:
    """Bids are only accepted inside a window."""
    if not policy.is_window_open(now):
        wait = format_duration(policy.time_to_next_window(now))
        raise WindowClosedError(
            "Bidding is currently closed. Bids can only be placed during the bidding windows.",
            details=f"Next window opens in {wait}",
        )


def ensure_posting_open(policy: TimeWindowPolicy, now: datetime) -> None:
    """Requirements can only change while no window is open."""
    if policy.is_window_open(now):
        raise WindowOpenError(
            "Requirements cannot be posted, edited or deleted during a bidding session."
        )


def ensure_competitive(price: Decimal, current_lowest: Decimal | None) -> None:
    """A bid must be strictly below the current lowest bid."""
    if current_lowest is not None and price >= current_lowest:
        raise PriceNotCompetitiveError(
            f"Your bid must be lower than the current lowest bid of {current_lowest}.",
            current_lowest=current_lowest,
        )


def ensure_positive_price(price: Decimal) -> None:
    if price <= 0:
        raise InvalidInputError(f"Price must be greater than zero, got {price}")


def ensure_requirement_mutable(requirement: Requirement, owner_id: str) -> None:
    """Closed requirements are frozen; open ones only change for their owner.

    Status is checked first so that a closed requirement is reported as
    closed to everyone.
    """
    if not requirement.is_open:
        raise RequirementClosedError(f"Requirement {requirement.id} is closed and cannot be changed.")
    if requirement.owner_id != owner_id:
        raise NotOwnerError(f"Requirement {requirement.id} belongs to another vendor.")
