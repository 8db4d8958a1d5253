"""Service-shaped inputs -> routes and ServiceExports.

``ServiceEventHandler`` builds map handlers whose input may be a Service or
anything that resolves to one (Endpoints, EndpointSlice, TargetGroupPolicy).
"""

from __future__ import annotations

from latticegw.handlers.base import MapFuncHandler
from latticegw.models.policies import TargetGroupPolicy
from latticegw.models.resources import Endpoints, EndpointSlice, KubeObject, NamespacedName, Service
from latticegw.models.routes import RouteType
from latticegw.observability.logging import get_logger
from latticegw.resolve.mapper import ResourceMapper

_log = get_logger("handlers.service")


class ServiceEventHandler:
    def __init__(self, mapper: ResourceMapper) -> None:
        self._mapper = mapper

    def map_to_route(self, route_type: RouteType, on_update: bool = False) -> MapFuncHandler:
        """Handler enqueueing routes of ``route_type`` that reference the Service."""

        async def _map(obj: KubeObject) -> list[NamespacedName]:
            return await self._map_to_routes(obj, route_type)

        return MapFuncHandler(f"service_to_{route_type}route", _map, on_update=on_update)

    def map_to_service_export(self, on_update: bool = False) -> MapFuncHandler:
        """Handler enqueueing the Service's ServiceExport when one exists."""
        return MapFuncHandler("service_to_serviceexport", self._map_to_service_export, on_update=on_update)

    async def map_to_service(self, obj: KubeObject) -> Service | None:
        if isinstance(obj, Service):
            return obj
        if isinstance(obj, TargetGroupPolicy):
            return await self._mapper.target_group_policy_to_service(obj)
        if isinstance(obj, Endpoints):
            return await self._mapper.endpoints_to_service(obj)
        if isinstance(obj, EndpointSlice):
            return await self._mapper.endpoint_slice_to_service(obj)
        return None

    async def _map_to_routes(self, obj: KubeObject, route_type: RouteType) -> list[NamespacedName]:
        service = await self.map_to_service(obj)
        if service is None:
            return []
        keys = []
        for route in await self._mapper.service_to_routes(service, route_type):
            _log.info(
                "route_triggered_by_service",
                service=str(service.key),
                route=str(route.key),
                route_type=str(route_type),
            )
            keys.append(route.key)
        return keys

    async def _map_to_service_export(self, obj: KubeObject) -> list[NamespacedName]:
        service = await self.map_to_service(obj)
        export = await self._mapper.service_to_service_export(service)
        if export is None:
            return []
        _log.info("service_export_triggered_by_service", service=str(export.key))
        return [export.key]
