"""GatewayClass -> gateways of that class."""

from __future__ import annotations

from latticegw.handlers.base import EventHandler, RequestSink
from latticegw.models.resources import Gateway, GatewayClass, KubeObject
from latticegw.observability.logging import get_logger
from latticegw.observability.metrics import store_errors_total
from latticegw.store.base import ObjectStore, StoreError

_log = get_logger("handlers.gatewayclass")


class GatewayClassEventHandler(EventHandler):
    name = "gatewayclass"

    def __init__(self, store: ObjectStore, controller_name: str) -> None:
        self._store = store
        self._controller_name = controller_name

    async def create(self, obj: KubeObject, sink: RequestSink) -> None:
        assert isinstance(obj, GatewayClass)
        if obj.controller_name != self._controller_name:
            return
        try:
            gateways = await self._store.list(Gateway)
        except StoreError as exc:
            _log.error("gateway_list_failed", gateway_class=obj.name, error=str(exc))
            store_errors_total.labels(operation="list_gateways").inc()
            return
        for gateway in gateways:
            if gateway.spec.gateway_class_name == obj.name:
                self.enqueue(sink, gateway.key)

    async def update(self, old: KubeObject, new: KubeObject, sink: RequestSink) -> None:
        _log.debug("gateway_class_update_ignored", gateway_class=new.name)

    async def delete(self, obj: KubeObject, sink: RequestSink) -> None:
        _log.debug("gateway_class_delete_ignored", gateway_class=obj.name)
