"""Local database persistence layer."""

from .db import (
    create_async_db_engine,
    create_db_engine,
    drop_db,
    init_db,
    init_db_async,
    make_session_factory,
    session_scope,
)
from .models import Base, BidRow, DealRow, RequirementRow
from .repo import BidRepository, DealRepository, RequirementRepository
from .store import SqlDataStore

__all__ = [
    "create_async_db_engine",
    "create_db_engine",
    "drop_db",
    "init_db",
    "init_db_async",
    "make_session_factory",
    "session_scope",
    "Base",
    "RequirementRow",
    "BidRow",
    "DealRow",
    "RequirementRepository",
    "BidRepository",
    "DealRepository",
    "SqlDataStore",
]
