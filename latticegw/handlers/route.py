"""Route -> backend Services (generic over route kinds)."""

from __future__ import annotations

from datetime import datetime

from latticegw.handlers.base import EventHandler, RequestSink
from latticegw.models.resources import CORE_GROUP, KubeObject, NamespacedName, Service
from latticegw.models.routes import Route
from latticegw.observability.logging import get_logger
from latticegw.observability.metrics import store_errors_total
from latticegw.resolve.matching import effective_namespace
from latticegw.store.base import NotFoundError, ObjectStore, StoreError

_log = get_logger("handlers.route")


class RouteEventHandler(EventHandler):
    """Re-triggers every existing Service a route sends traffic to.

    Updates only count when the spec changed. On such an update the first
    parent status condition is reset to ``zero_transition_time`` unless it
    already holds it.
    """

    name = "route"

    def __init__(self, store: ObjectStore, zero_transition_time: datetime) -> None:
        self._store = store
        self._zero_transition_time = zero_transition_time

    async def create(self, obj: KubeObject, sink: RequestSink) -> None:
        assert isinstance(obj, Route)
        await self._enqueue_impacted_services(obj, sink)

    async def update(self, old: KubeObject, new: KubeObject, sink: RequestSink) -> None:
        assert isinstance(old, Route) and isinstance(new, Route)
        if old.spec_equals(new):
            return
        _log.debug("route_spec_changed", route=str(new.key), route_type=str(new.route_type))
        parents = new.status.parents
        if parents and parents[0].conditions:
            condition = parents[0].conditions[0]
            if condition.last_transition_time != self._zero_transition_time:
                _log.info("route_transition_time_reset", route=str(new.key))
                condition.last_transition_time = self._zero_transition_time
        await self._enqueue_impacted_services(new, sink)

    async def _enqueue_impacted_services(self, route: Route, sink: RequestSink) -> None:
        seen: set[NamespacedName] = set()
        for ref in route.backend_refs():
            if ref.kind not in (None, "Service") or ref.group not in (None, CORE_GROUP):
                continue
            key = NamespacedName(namespace=effective_namespace(ref.namespace, route.namespace), name=ref.name)
            if key in seen:
                continue
            seen.add(key)
            try:
                await self._store.get(Service, key)
            except NotFoundError:
                _log.info("route_backend_service_unknown", route=str(route.key), service=str(key))
                continue
            except StoreError as exc:
                _log.error("route_backend_lookup_failed", route=str(route.key), service=str(key), error=str(exc))
                store_errors_total.labels(operation="get_service").inc()
                continue
            self.enqueue(sink, key)
