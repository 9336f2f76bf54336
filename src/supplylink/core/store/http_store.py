"""
HTTP data store implementation using httpx.

Talks to the marketplace backend API:
- GET requests retried with exponential backoff on transport errors
- Mutations sent exactly once
- Rejections carrying a market error code re-raised as that error
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from supplylink.core.market.errors import (
    MarketError,
    NotAuthenticatedError,
    error_from_code,
)
from supplylink.core.market.models import (
    Bid,
    BidDraft,
    Deal,
    Requirement,
    RequirementDraft,
    RequirementPatch,
)

from .base import DataStore, MalformedResponseError, StoreError, StoreUnavailableError
from .payloads import (
    bid_draft_to_payload,
    bid_from_payload,
    deal_from_payload,
    draft_to_payload,
    patch_to_payload,
    requirement_from_payload,
)
from .retries import RetryConfig, retry_async

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://supply-link-backend.vercel.app/api"

# Status codes that mean the identity was not accepted
AUTH_STATUS_CODES = {401, 403}


class HttpDataStore(DataStore):
    """Data store backed by the remote REST API.

    Features:
    - Persistent connection pooling
    - Bearer token pass-through from the identity provider
    - Retry with exponential backoff for reads
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 15.0,
        api_token: str | None = None,
        retry: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize HTTP store.

        Args:
            base_url: API root, e.g. https://host/api
            timeout: Request timeout in seconds
            api_token: Bearer token issued by the identity provider
            retry: Retry policy for GET requests
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry = retry or RetryConfig()
        self._transport = transport

        self.default_headers = {"Accept": "application/json"}
        if api_token:
            self.default_headers["Authorization"] = f"Bearer {api_token}"

        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "http"

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers=self.default_headers,
                transport=self._transport,
            )
        return self._client

    # -------------------------------------------------------------------------
    # Request plumbing
    # -------------------------------------------------------------------------

    async def _send(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        client = await self._ensure_client()
        response = await client.request(method, path, json=json, params=params)
        self._check_response(response)
        return response

    async def _get(self, path: str) -> Any:
        """GET a path and decode its JSON body, retrying transport errors."""
        try:
            response = await retry_async(self._send, "GET", path, config=self.retry)
        except httpx.TransportError as e:
            raise StoreUnavailableError(
                f"Store unreachable after {self.retry.max_attempts} attempts: {e}",
                url=f"{self.base_url}{path}",
                cause=e,
            ) from e
        return self._decode(response)

    async def _mutate(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            return await self._send(method, path, json=json, params=params)
        except httpx.TransportError as e:
            raise StoreUnavailableError(
                f"Store unreachable: {e}",
                url=f"{self.base_url}{path}",
                cause=e,
            ) from e

    def _check_response(self, response: httpx.Response) -> None:
        """Raise for any non-2xx response."""
        if response.is_success:
            return

        code, message = self._error_body(response)

        if response.status_code in AUTH_STATUS_CODES:
            raise NotAuthenticatedError(message or "The store rejected your credentials")

        market_error = error_from_code(code, message or f"Request rejected ({code})")
        if market_error is not None:
            raise market_error

        raise StoreError(
            message or f"Store answered with status {response.status_code}",
            url=str(response.request.url),
            status_code=response.status_code,
        )

    @staticmethod
    def _error_body(response: httpx.Response) -> tuple[str | None, str | None]:
        try:
            body = response.json()
        except ValueError:
            return None, None
        if not isinstance(body, dict):
            return None, None
        return body.get("code"), body.get("message")

    def _decode(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(
                "Store returned invalid JSON",
                url=str(response.request.url),
                status_code=response.status_code,
                cause=e,
            ) from e

    def _parse(self, parser: Any, data: Any, path: str) -> Any:
        try:
            return parser(data)
        except (ValueError, TypeError, KeyError, AttributeError, MarketError) as e:
            raise MalformedResponseError(
                f"Unexpected store payload from {path}: {e}",
                url=f"{self.base_url}{path}",
                cause=e,
            ) from e

    def _parse_list(self, parser: Any, data: Any, path: str) -> list[Any]:
        if not isinstance(data, list):
            raise MalformedResponseError(
                f"Expected a list from {path}",
                url=f"{self.base_url}{path}",
            )
        return [self._parse(parser, item, path) for item in data]

    # -------------------------------------------------------------------------
    # Requirements
    # -------------------------------------------------------------------------

    async def get_requirements_by_state(self, state: str) -> list[Requirement]:
        if not state:
            return []
        path = f"/requirements/state/{quote(state, safe='')}"
        return self._parse_list(requirement_from_payload, await self._get(path), path)

    async def get_requirements_by_owner(self, owner_id: str) -> list[Requirement]:
        if not owner_id:
            return []
        path = f"/requirements/vendor/{quote(owner_id, safe='')}"
        return self._parse_list(requirement_from_payload, await self._get(path), path)

    async def get_requirement(self, requirement_id: str) -> Requirement:
        path = f"/requirements/{quote(requirement_id, safe='')}"
        return self._parse(requirement_from_payload, await self._get(path), path)

    async def create_requirement(self, draft: RequirementDraft) -> Requirement:
        path = "/requirements"
        response = await self._mutate("POST", path, json=draft_to_payload(draft))
        return self._parse(requirement_from_payload, self._decode(response), path)

    async def update_requirement(
        self,
        requirement_id: str,
        patch: RequirementPatch,
        owner_id: str,
    ) -> Requirement:
        path = f"/requirements/{quote(requirement_id, safe='')}"
        response = await self._mutate("PUT", path, json=patch_to_payload(patch, owner_id))
        return self._parse(requirement_from_payload, self._decode(response), path)

    async def delete_requirement(self, requirement_id: str, owner_id: str) -> None:
        path = f"/requirements/{quote(requirement_id, safe='')}"
        await self._mutate("DELETE", path, params={"clerkUserId": owner_id})

    # -------------------------------------------------------------------------
    # Bids and deals
    # -------------------------------------------------------------------------

    async def get_bids_by_state(self, state: str) -> list[Bid]:
        if not state:
            return []
        path = f"/bids/state/{quote(state, safe='')}"
        return self._parse_list(bid_from_payload, await self._get(path), path)

    async def submit_bid(self, draft: BidDraft) -> Bid:
        path = "/bids"
        response = await self._mutate("POST", path, json=bid_draft_to_payload(draft))
        return self._parse(bid_from_payload, self._decode(response), path)

    async def get_past_deals(self) -> list[Deal]:
        path = "/deals"
        return self._parse_list(deal_from_payload, await self._get(path), path)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
