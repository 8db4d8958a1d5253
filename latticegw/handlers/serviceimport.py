"""ServiceImport -> routes of one type that reference it."""

from __future__ import annotations

from latticegw.handlers.base import EventHandler, RequestSink
from latticegw.models.resources import KubeObject, ServiceImport
from latticegw.models.routes import RouteType
from latticegw.observability.logging import get_logger
from latticegw.resolve.mapper import ResourceMapper

_log = get_logger("handlers.serviceimport")


class ServiceImportEventHandler(EventHandler):
    """Create, delete and any changing update re-trigger the referencing routes."""

    def __init__(self, mapper: ResourceMapper, route_type: RouteType) -> None:
        self._mapper = mapper
        self._route_type = route_type
        self.name = f"serviceimport_to_{route_type}route"

    async def create(self, obj: KubeObject, sink: RequestSink) -> None:
        await self._enqueue_impacted_routes(obj, sink)

    async def update(self, old: KubeObject, new: KubeObject, sink: RequestSink) -> None:
        if old != new:
            await self._enqueue_impacted_routes(new, sink)

    async def delete(self, obj: KubeObject, sink: RequestSink) -> None:
        await self._enqueue_impacted_routes(obj, sink)

    async def _enqueue_impacted_routes(self, obj: KubeObject, sink: RequestSink) -> None:
        assert isinstance(obj, ServiceImport)
        for route in await self._mapper.service_import_to_routes(obj, self._route_type):
            _log.info("route_triggered_by_service_import", service_import=str(obj.key), route=str(route.key))
            self.enqueue(sink, route.key)
