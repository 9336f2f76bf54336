"""Data store contract and the remote HTTP implementation."""

from .base import DataStore, MalformedResponseError, StoreError, StoreUnavailableError
from .http_store import HttpDataStore
from .retries import RetryConfig, retry_async

__all__ = [
    "DataStore",
    "StoreError",
    "StoreUnavailableError",
    "MalformedResponseError",
    "HttpDataStore",
    "RetryConfig",
    "retry_async",
]
