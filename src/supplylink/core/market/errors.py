"""
Market error taxonomy.

Every error is recoverable: the user adjusts input or retries. Each class
carries a stable ``code`` that is also used on the wire so that a store
rejection can be rebuilt into the same exception type on the client.
"""

from __future__ import annotations


class MarketError(Exception):
    """Base exception for market coordination errors."""

    code = "MARKET_ERROR"

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class WindowClosedError(MarketError):
    """Bid attempted outside a bidding window."""

    code = "WINDOW_CLOSED"


class WindowOpenError(MarketError):
    """Requirement mutation attempted during a bidding window."""

    code = "WINDOW_OPEN"


class PriceNotCompetitiveError(MarketError):
    """Bid price is not strictly below the current lowest bid."""

    code = "PRICE_NOT_COMPETITIVE"

    def __init__(self, message: str, current_lowest: object = None):
        super().__init__(message)
        self.current_lowest = current_lowest


class InvalidInputError(MarketError):
    """Malformed or out-of-range user input."""

    code = "INVALID_INPUT"


class NotOwnerError(MarketError):
    """Caller does not own the requirement."""

    code = "NOT_OWNER"


class RequirementClosedError(MarketError):
    """Requirement is closed and can no longer change."""

    code = "REQUIREMENT_CLOSED"


class NetworkFailureError(MarketError):
    """Data store unreachable or answered with an unexpected status."""

    code = "NETWORK_FAILURE"


class NotAuthenticatedError(MarketError):
    """No resolved identity for the caller."""

    code = "NOT_AUTHENTICATED"


class UnitMismatchError(MarketError):
    """Requirements for one item were posted in different units."""

    code = "UNIT_MISMATCH"

    def __init__(self, message: str, item: str | None = None, units: tuple[str, ...] = ()):
        super().__init__(message)
        self.item = item
        self.units = units


_ERRORS_BY_CODE: dict[str, type[MarketError]] = {
    cls.code: cls
    for cls in (
        WindowClosedError,
        WindowOpenError,
        PriceNotCompetitiveError,
        InvalidInputError,
        NotOwnerError,
        RequirementClosedError,
        NetworkFailureError,
        NotAuthenticatedError,
        UnitMismatchError,
    )
}


def error_from_code(code: str | None, message: str) -> MarketError | None:
    """Rebuild a market error from its wire code.

    Returns:
        The matching error instance, or None for unknown codes
    """
    if not code:
        return None
    cls = _ERRORS_BY_CODE.get(code.upper())
    if cls is None:
        return None
    return cls(message)
