"""Event handler contract and the two generic handler shapes.

A handler receives watch notifications and writes reconcile requests
(``NamespacedName`` keys) into a ``RequestSink``. Emitting the same key more
than once is always safe: sinks deduplicate.
"""

from __future__ import annotations

from abc import ABC
from collections.abc import Awaitable, Callable, Iterable
from typing import Protocol

from latticegw.models.resources import KubeObject, NamespacedName
from latticegw.observability.logging import get_logger
from latticegw.observability.metrics import reconcile_requests_total

_log = get_logger("handlers")

MapFunc = Callable[[KubeObject], Awaitable[Iterable[NamespacedName]]]


class RequestSink(Protocol):
    def add(self, key: NamespacedName) -> None: ...


class EventHandler(ABC):
    """Create/Update/Delete/Generic callbacks. Every default is a no-op."""

    name: str = "handler"

    async def create(self, obj: KubeObject, sink: RequestSink) -> None:
        return None

    async def update(self, old: KubeObject, new: KubeObject, sink: RequestSink) -> None:
        return None

    async def delete(self, obj: KubeObject, sink: RequestSink) -> None:
        return None

    async def generic(self, obj: KubeObject, sink: RequestSink) -> None:
        return None

    def enqueue(self, sink: RequestSink, key: NamespacedName) -> None:
        sink.add(key)
        reconcile_requests_total.labels(handler=self.name).inc()


class ObjectEventHandler(EventHandler):
    """Enqueue the object's own key on every event."""

    def __init__(self, name: str = "object") -> None:
        self.name = name

    async def create(self, obj: KubeObject, sink: RequestSink) -> None:
        self.enqueue(sink, obj.key)

    async def update(self, old: KubeObject, new: KubeObject, sink: RequestSink) -> None:
        self.enqueue(sink, new.key)

    async def delete(self, obj: KubeObject, sink: RequestSink) -> None:
        self.enqueue(sink, obj.key)

    async def generic(self, obj: KubeObject, sink: RequestSink) -> None:
        self.enqueue(sink, obj.key)


class MapFuncHandler(EventHandler):
    """Enqueue whatever an async map function returns for the event object.

    On update both the old and the new object are mapped, so a reference
    that moved away from a target still re-triggers the old target. Pass
    ``on_update=False`` to ignore updates entirely.
    """

    def __init__(self, name: str, map_fn: MapFunc, on_update: bool = True) -> None:
        self.name = name
        self._map_fn = map_fn
        self._on_update = on_update

    async def _map_and_enqueue(self, obj: KubeObject, sink: RequestSink) -> None:
        for key in await self._map_fn(obj):
            _log.debug("map_func_request", handler=self.name, source=str(obj.identity), request=str(key))
            self.enqueue(sink, key)

    async def create(self, obj: KubeObject, sink: RequestSink) -> None:
        await self._map_and_enqueue(obj, sink)

    async def update(self, old: KubeObject, new: KubeObject, sink: RequestSink) -> None:
        if not self._on_update:
            return
        await self._map_and_enqueue(old, sink)
        await self._map_and_enqueue(new, sink)

    async def delete(self, obj: KubeObject, sink: RequestSink) -> None:
        await self._map_and_enqueue(obj, sink)

    async def generic(self, obj: KubeObject, sink: RequestSink) -> None:
        await self._map_and_enqueue(obj, sink)
