"""
Data store base classes.

Defines the request/response contract the market core uses to reach its
external data store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from supplylink.core.market.models import (
        Bid,
        BidDraft,
        Deal,
        Requirement,
        RequirementDraft,
        RequirementPatch,
    )


class DataStore(ABC):
    """Abstract base class for data stores.

    Implementations must upsert bids by (supplier_id, item, state) and are
    expected to re-validate every mutation; client-side checks are advisory.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Store identifier."""
        pass

    # Requirements

    @abstractmethod
    async def get_requirements_by_state(self, state: str) -> list[Requirement]:
        pass

    @abstractmethod
    async def get_requirements_by_owner(self, owner_id: str) -> list[Requirement]:
        pass

    @abstractmethod
    async def get_requirement(self, requirement_id: str) -> Requirement:
        """Fetch a single requirement.

        Raises:
            StoreError: If it does not exist (status_code 404)
        """
        pass

    @abstractmethod
    async def create_requirement(self, draft: RequirementDraft) -> Requirement:
        pass

    @abstractmethod
    async def update_requirement(
        self,
        requirement_id: str,
        patch: RequirementPatch,
        owner_id: str,
    ) -> Requirement:
        pass

    @abstractmethod
    async def delete_requirement(self, requirement_id: str, owner_id: str) -> None:
        pass

    # Bids

    @abstractmethod
    async def get_bids_by_state(self, state: str) -> list[Bid]:
        pass

    @abstractmethod
    async def submit_bid(self, draft: BidDraft) -> Bid:
        """Create or replace the supplier's bid for the item and state."""
        pass

    # Deals

    @abstractmethod
    async def get_past_deals(self) -> list[Deal]:
        pass

    async def close(self) -> None:
        """Release store resources."""
        pass

    async def __aenter__(self) -> "DataStore":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class StoreError(Exception):
    """Base exception for data store failures."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.cause = cause


class StoreUnavailableError(StoreError):
    """Store could not be reached (transport failure or timeout)."""
    pass


class MalformedResponseError(StoreError):
    """Store answered with a payload that could not be parsed."""
    pass
