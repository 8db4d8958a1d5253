"""Read-only object store interface and its error taxonomy.

Not-found is an expected answer ("relation absent") and is kept distinct from
every other failure so callers can log the two at different levels.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Protocol, TypeVar

from latticegw.models.resources import KubeObject, NamespacedName

T = TypeVar("T", bound=KubeObject)


class StoreError(Exception):
    """A store query failed for a reason other than the object being absent."""


class NotFoundError(StoreError):
    """The requested object does not exist."""

    def __init__(self, kind: str, key: NamespacedName) -> None:
        super().__init__(f"{kind} {key} not found")
        self.kind = kind
        self.key = key


class ObjectStore(Protocol):
    """Fresh reads against current cluster state. No caching."""

    async def get(self, cls: type[T], key: NamespacedName) -> T:
        """Return the object or raise NotFoundError / StoreError."""
        ...

    async def list(self, cls: type[T], namespace: str | None = None) -> list[T]:
        """List objects of a kind, cluster wide when ``namespace`` is None."""
        ...


@dataclass(frozen=True)
class WatchEvent:
    type: str  # ADDED | MODIFIED | DELETED
    obj: KubeObject


class WatchableStore(ObjectStore, Protocol):
    async def list_snapshot(self, cls: type[T], namespace: str | None = None) -> tuple[list[T], str]:
        """List plus the collection resourceVersion to start a watch from."""
        ...

    def watch(
        self,
        cls: type[T],
        namespace: str | None,
        resource_version: str,
        timeout_seconds: int,
    ) -> AsyncIterator[WatchEvent]: ...


async def get_or_none(store: ObjectStore, cls: type[T], key: NamespacedName) -> T | None:
    """Get, mapping not-found to None. Other store errors propagate."""
    try:
        return await store.get(cls, key)
    except NotFoundError:
        return None
