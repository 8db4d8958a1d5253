"""Gateway -> routes attached to it."""

from __future__ import annotations

from datetime import datetime

from latticegw.handlers.base import EventHandler, MapFuncHandler, RequestSink
from latticegw.models.policies import VpcAssociationPolicy
from latticegw.models.resources import Gateway, KubeObject, NamespacedName
from latticegw.models.routes import RouteType
from latticegw.observability.logging import get_logger
from latticegw.resolve.mapper import ResourceMapper
from latticegw.resolve.parents import is_controlled_by_gateway_controller
from latticegw.store.base import ObjectStore

_log = get_logger("handlers.gateway")


class GatewayEventHandler(EventHandler):
    """On create or spec change, re-trigger every route whose first parent is this gateway.

    The gateway's first status condition gets ``zero_transition_time`` so the
    route reconcilers recompute status. Nothing is emitted when the gateway's
    class belongs to another controller. Delete is not handled.
    """

    name = "gateway"

    def __init__(
        self,
        store: ObjectStore,
        mapper: ResourceMapper,
        controller_name: str,
        zero_transition_time: datetime,
        route_types: tuple[RouteType, ...] = tuple(RouteType),
    ) -> None:
        self._store = store
        self._mapper = mapper
        self._controller_name = controller_name
        self._zero_transition_time = zero_transition_time
        self._route_types = route_types

    async def create(self, obj: KubeObject, sink: RequestSink) -> None:
        assert isinstance(obj, Gateway)
        _log.debug("gateway_created", gateway=str(obj.key))
        self._reset_transition_time(obj)
        await self._enqueue_impacted_routes(obj, sink)

    async def update(self, old: KubeObject, new: KubeObject, sink: RequestSink) -> None:
        assert isinstance(old, Gateway) and isinstance(new, Gateway)
        if old.spec == new.spec:
            return
        _log.info("gateway_spec_changed", gateway=str(new.key))
        self._reset_transition_time(new)
        await self._enqueue_impacted_routes(new, sink)

    def _reset_transition_time(self, gateway: Gateway) -> None:
        if gateway.status.conditions:
            gateway.status.conditions[0].last_transition_time = self._zero_transition_time

    async def _enqueue_impacted_routes(self, gateway: Gateway, sink: RequestSink) -> None:
        if not await is_controlled_by_gateway_controller(self._store, gateway, self._controller_name):
            _log.debug("gateway_not_controlled", gateway=str(gateway.key))
            return

        for route_type in self._route_types:
            for route in await self._mapper.list_routes(route_type):
                if not route.spec.parent_refs:
                    continue
                if route.spec.parent_refs[0].gateway_key(route.namespace) != gateway.key:
                    continue
                _log.info("route_triggered_by_gateway", route=str(route.key), gateway=str(gateway.key))
                self.enqueue(sink, route.key)


def vpc_association_policy_to_gateway(mapper: ResourceMapper) -> MapFuncHandler:
    """Map handler enqueueing the Gateway a VpcAssociationPolicy targets."""

    async def _map(obj: KubeObject) -> list[NamespacedName]:
        assert isinstance(obj, VpcAssociationPolicy)
        gateway = await mapper.vpc_association_policy_to_gateway(obj)
        return [gateway.key] if gateway is not None else []

    return MapFuncHandler("vpcassociationpolicy_to_gateway", _map)
