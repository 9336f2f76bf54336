"""
Id-keyed merging of local collections.

After a successful mutation the client folds the store's answer into its
held lists instead of reloading everything.
"""

from __future__ import annotations

from typing import Iterable, Protocol, Sequence, TypeVar


class HasId(Protocol):
    id: str


T = TypeVar("T", bound=HasId)


def upsert_by_id(items: Sequence[T], incoming: T) -> list[T]:
    """Replace the element with the same id in place, or append.

    Order of the other elements is preserved. Returns a new list.
    """
    merged = list(items)
    for index, existing in enumerate(merged):
        if existing.id == incoming.id:
            merged[index] = incoming
            return merged
    merged.append(incoming)
    return merged


def remove_by_id(items: Sequence[T], item_id: str) -> list[T]:
    """Drop the element with the given id, if present."""
    return [element for element in items if element.id != item_id]


def find_by_id(items: Iterable[T], item_id: str) -> T | None:
    """Return the element with the given id, or None."""
    for element in items:
        if element.id == item_id:
            return element
    return None
