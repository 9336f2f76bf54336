"""CLI command modules."""

from . import bids, db, market, requirements

__all__ = [
    "bids",
    "db",
    "market",
    "requirements",
]
