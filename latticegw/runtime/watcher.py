"""List-then-watch loop for one model class, fanned out to many handlers.

The watcher keeps the last seen object per key so that a MODIFIED event can
be delivered as ``update(old, new)`` and a relist after a broken watch can be
reconciled into synthetic create/update/delete notifications.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass

from latticegw.handlers.base import EventHandler, RequestSink
from latticegw.models.resources import KubeObject, NamespacedName
from latticegw.observability.logging import get_logger
from latticegw.observability.metrics import watch_restarts_total
from latticegw.store.base import StoreError, WatchableStore

_log = get_logger("runtime.watcher")

_MAX_BACKOFF_SECONDS = 30


@dataclass(frozen=True)
class Subscription:
    handler: EventHandler
    sink: RequestSink
    controller: str = ""


class ResourceWatcher:
    def __init__(
        self,
        store: WatchableStore,
        cls: type[KubeObject],
        namespace: str | None = None,
        timeout_seconds: int = 300,
    ) -> None:
        self._store = store
        self.cls = cls
        self._namespace = namespace if cls.NAMESPACED else None
        self._timeout_seconds = timeout_seconds
        self._subscriptions: list[Subscription] = []
        self._last_seen: dict[NamespacedName, KubeObject] = {}

    def subscribe(self, handler: EventHandler, sink: RequestSink, controller: str = "") -> None:
        self._subscriptions.append(Subscription(handler, sink, controller))

    @property
    def subscriptions(self) -> list[Subscription]:
        return list(self._subscriptions)

    async def run(self) -> None:
        """Watch until cancelled. Store errors trigger a relist after back-off."""
        kind = self.cls.KIND
        backoff_seconds = 1
        while True:
            try:
                resource_version = await self.resync()
                _log.info("watch_started", kind=kind, resource_version=resource_version)
                backoff_seconds = 1
                while True:
                    async for event in self._store.watch(
                        self.cls, self._namespace, resource_version, self._timeout_seconds
                    ):
                        resource_version = event.obj.resource_version or resource_version
                        await self.dispatch(event.type, event.obj)
                    # server-side timeout: resume from the last seen version
                    watch_restarts_total.labels(kind=kind).inc()
            except StoreError as exc:
                watch_restarts_total.labels(kind=kind).inc()
                jittered = backoff_seconds * (0.5 + random.random())  # noqa: S311
                _log.warning("watch_failed", kind=kind, error=str(exc), retry_in=round(jittered, 2))
                await asyncio.sleep(jittered)
                backoff_seconds = min(backoff_seconds * 2, _MAX_BACKOFF_SECONDS)

    async def resync(self) -> str:
        """Relist and deliver the difference to the last seen state."""
        items, resource_version = await self._store.list_snapshot(self.cls, self._namespace)
        current = {obj.key: obj for obj in items}
        for key, obj in current.items():
            old = self._last_seen.get(key)
            if old is None:
                await self._fan_out("create", obj)
            elif old.resource_version != obj.resource_version:
                await self._fan_out("update", obj, old)
        for key in set(self._last_seen) - set(current):
            await self._fan_out("delete", self._last_seen[key])
        self._last_seen = current
        return resource_version

    async def dispatch(self, event_type: str, obj: KubeObject) -> None:
        if event_type == "DELETED":
            self._last_seen.pop(obj.key, None)
            await self._fan_out("delete", obj)
            return
        old = self._last_seen.get(obj.key)
        self._last_seen[obj.key] = obj
        if old is None:
            await self._fan_out("create", obj)
        else:
            await self._fan_out("update", obj, old)

    async def _fan_out(self, action: str, obj: KubeObject, old: KubeObject | None = None) -> None:
        for sub in self._subscriptions:
            try:
                if action == "create":
                    await sub.handler.create(obj, sub.sink)
                elif action == "update":
                    assert old is not None
                    await sub.handler.update(old, obj, sub.sink)
                else:
                    await sub.handler.delete(obj, sub.sink)
            except asyncio.CancelledError:
                raise
            except Exception:
                _log.exception(
                    "event_handler_failed",
                    handler=sub.handler.name,
                    controller=sub.controller,
                    action=action,
                    object=str(obj.identity),
                )
