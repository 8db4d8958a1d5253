"""Reconcile request queues.

``RequestQueue`` follows the client-go workqueue contract:

* a key is queued at most once at any time (``add`` deduplicates),
* a key being processed is never handed out twice concurrently,
* a key re-added while processing is queued again once ``done`` is called.
"""

from __future__ import annotations

import asyncio
from collections import deque

from latticegw.models.resources import NamespacedName


class RequestQueue:
    def __init__(self, name: str = "") -> None:
        self.name = name
        self._items: deque[NamespacedName] = deque()
        self._dirty: set[NamespacedName] = set()
        self._processing: set[NamespacedName] = set()
        self._waiters: deque[asyncio.Future[None]] = deque()
        self._shutting_down = False

    def __len__(self) -> int:
        return len(self._items)

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    def add(self, key: NamespacedName) -> None:
        if self._shutting_down or key in self._dirty:
            return
        self._dirty.add(key)
        if key in self._processing:
            return
        self._items.append(key)
        self._wake_one()

    async def get(self) -> NamespacedName | None:
        """Next key to process, or None once the queue is shut down and drained."""
        while not self._items and not self._shutting_down:
            waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            try:
                await waiter
            finally:
                if waiter in self._waiters:
                    self._waiters.remove(waiter)
        if not self._items:
            return None
        key = self._items.popleft()
        self._processing.add(key)
        self._dirty.discard(key)
        return key

    def done(self, key: NamespacedName) -> None:
        self._processing.discard(key)
        if key in self._dirty:
            self._items.append(key)
            self._wake_one()

    def shut_down(self) -> None:
        self._shutting_down = True
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)

    def _wake_one(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return


class RequestCollector:
    """Records every request in order. Used for dry runs and tests."""

    def __init__(self) -> None:
        self.requests: list[NamespacedName] = []

    def add(self, key: NamespacedName) -> None:
        self.requests.append(key)

    def keys(self) -> set[NamespacedName]:
        return set(self.requests)

    def __len__(self) -> int:
        return len(self.requests)

    def __contains__(self, key: object) -> bool:
        return key in self.requests
