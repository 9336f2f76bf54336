"""Demand aggregation and time-gated bidding coordination."""

from .errors import (
    InvalidInputError,
    MarketError,
    NetworkFailureError,
    NotAuthenticatedError,
    NotOwnerError,
    PriceNotCompetitiveError,
    RequirementClosedError,
    UnitMismatchError,
    WindowClosedError,
    WindowOpenError,
    error_from_code,
)
from .models import (
    AggregatedDemandEntry,
    Bid,
    BidDraft,
    Deal,
    Identity,
    Requirement,
    RequirementDraft,
    RequirementPatch,
    RequirementStatus,
    Role,
    Unit,
)
from .parsing import parse_number, parse_positive, parse_unit
from .window import TimeWindowPolicy, format_duration
from .aggregate import aggregate, personalize
from .merge import remove_by_id, upsert_by_id
from .bids import BidCoordinator
from .requirements import RequirementCoordinator
from .view import MarketView, SupplierView, VendorView, build_market_view, suggest_bid_price
from .session import MarketSession

__all__ = [
    # Errors
    "MarketError",
    "WindowClosedError",
    "WindowOpenError",
    "PriceNotCompetitiveError",
    "InvalidInputError",
    "NotOwnerError",
    "RequirementClosedError",
    "NetworkFailureError",
    "NotAuthenticatedError",
    "UnitMismatchError",
    "error_from_code",
    # Models
    "Unit",
    "RequirementStatus",
    "Role",
    "Identity",
    "Requirement",
    "RequirementDraft",
    "RequirementPatch",
    "Bid",
    "BidDraft",
    "Deal",
    "AggregatedDemandEntry",
    # Parsing
    "parse_number",
    "parse_positive",
    "parse_unit",
    # Policy and aggregation
    "TimeWindowPolicy",
    "format_duration",
    "aggregate",
    "personalize",
    "upsert_by_id",
    "remove_by_id",
    # Coordinators and views
    "BidCoordinator",
    "RequirementCoordinator",
    "MarketView",
    "VendorView",
    "SupplierView",
    "build_market_view",
    "suggest_bid_price",
    "MarketSession",
]
