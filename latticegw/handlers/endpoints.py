"""Endpoints -> owning Service."""

from __future__ import annotations

from latticegw.handlers.base import EventHandler, RequestSink
from latticegw.models.resources import Endpoints, KubeObject
from latticegw.observability.logging import get_logger
from latticegw.resolve.mapper import ResourceMapper

_log = get_logger("handlers.endpoints")


class EndpointsEventHandler(EventHandler):
    """Re-triggers the Service whose membership changed.

    Delete is a no-op: the Service delete path covers cleanup.
    """

    name = "endpoints"

    def __init__(self, mapper: ResourceMapper) -> None:
        self._mapper = mapper

    async def create(self, obj: KubeObject, sink: RequestSink) -> None:
        assert isinstance(obj, Endpoints)
        await self._enqueue_impacted_service(obj, sink)

    async def update(self, old: KubeObject, new: KubeObject, sink: RequestSink) -> None:
        assert isinstance(old, Endpoints) and isinstance(new, Endpoints)
        if old.subsets != new.subsets:
            await self._enqueue_impacted_service(new, sink)

    async def _enqueue_impacted_service(self, endpoints: Endpoints, sink: RequestSink) -> None:
        service = await self._mapper.endpoints_to_service(endpoints)
        if service is None:
            _log.debug("endpoints_without_service", endpoints=str(endpoints.key))
            return
        self.enqueue(sink, service.key)
