"""TargetGroupPolicy -> routes and ServiceExport of the targeted Service."""

from __future__ import annotations

from latticegw.handlers.base import MapFuncHandler
from latticegw.models.policies import TargetGroupPolicy
from latticegw.models.resources import KubeObject, NamespacedName, Service
from latticegw.models.routes import RouteType
from latticegw.observability.logging import get_logger
from latticegw.resolve.mapper import ResourceMapper
from latticegw.resolve.matching import is_service_used_by_route

_log = get_logger("handlers.targetgrouppolicy")


class TargetGroupPolicyEventHandler:
    """Map handlers for TargetGroupPolicy changes.

    Route matching here treats a BackendRef without a Kind as a Service
    reference, unlike the Service to route mapping.
    """

    def __init__(self, mapper: ResourceMapper) -> None:
        self._mapper = mapper

    def map_to_route(self, route_type: RouteType) -> MapFuncHandler:
        if route_type not in (RouteType.HTTP, RouteType.GRPC):
            raise ValueError(f"target group policies do not apply to {route_type} routes")

        async def _map(obj: KubeObject) -> list[NamespacedName]:
            return await self._map_to_routes(obj, route_type)

        return MapFuncHandler(f"targetgrouppolicy_to_{route_type}route", _map)

    def map_to_service_export(self) -> MapFuncHandler:
        return MapFuncHandler("targetgrouppolicy_to_serviceexport", self._map_to_service_export)

    async def _target_service(self, obj: KubeObject) -> Service | None:
        assert isinstance(obj, TargetGroupPolicy)
        return await self._mapper.target_group_policy_to_service(obj)

    async def _map_to_routes(self, obj: KubeObject, route_type: RouteType) -> list[NamespacedName]:
        service = await self._target_service(obj)
        if service is None:
            return []
        keys = []
        for route in await self._mapper.list_routes(route_type):
            if is_service_used_by_route(route, service):
                _log.info(
                    "route_triggered_by_target_group_policy",
                    policy=str(obj.key),
                    service=str(service.key),
                    route=str(route.key),
                )
                keys.append(route.key)
        return keys

    async def _map_to_service_export(self, obj: KubeObject) -> list[NamespacedName]:
        service = await self._target_service(obj)
        export = await self._mapper.service_to_service_export(service)
        if export is None:
            return []
        return [export.key]
