"""Pod readiness gate decision.

A pod needs the gate when a Service in its namespace selects it and either
some HTTPRoute/GRPCRoute sends traffic to that Service through a Gateway we
own, or the Service is exported. TLSRoutes are not consulted here.

The decision backs an admission mutation, so it never raises. A failed
route listing skips that route kind and the export check still runs; any
other store failure is logged and the answer is ``False``.
"""

from __future__ import annotations

from datetime import datetime

from latticegw.models.resources import (
    Condition,
    Pod,
    Service,
    ServiceExport,
    find_condition,
    set_condition,
)
from latticegw.models.routes import ROUTE_CLASSES, RouteType
from latticegw.observability.logging import get_logger
from latticegw.observability.metrics import readiness_gate_decisions_total, store_errors_total
from latticegw.resolve.matching import is_service_used_by_route, selector_matches
from latticegw.resolve.parents import find_controlled_parents
from latticegw.store.base import NotFoundError, ObjectStore, StoreError

_log = get_logger("webhook.readiness")

READINESS_GATE_CONDITION_TYPE = "application-networking.k8s.aws/pod-readiness-gate"

_SCANNED_ROUTE_TYPES = (RouteType.HTTP, RouteType.GRPC)


def pod_has_readiness_gate(pod: Pod, condition_type: str = READINESS_GATE_CONDITION_TYPE) -> bool:
    return condition_type in pod.readiness_gates


def find_pod_condition(pod: Pod, condition_type: str = READINESS_GATE_CONDITION_TYPE) -> Condition | None:
    return find_condition(pod.conditions, condition_type)


def set_pod_condition(pod: Pod, condition: Condition, now: datetime | None = None) -> None:
    """Add or update a pod condition; transition time moves only on status change."""
    set_condition(pod.conditions, condition, now)


class PodReadinessGateDecider:
    def __init__(self, store: ObjectStore, controller_name: str) -> None:
        self._store = store
        self._controller_name = controller_name

    async def requires_readiness_gate(self, pod: Pod) -> bool:
        if pod_has_readiness_gate(pod):
            readiness_gate_decisions_total.labels(result="present").inc()
            return False
        try:
            required = await self._decide(pod)
        except StoreError as exc:
            _log.error("readiness_gate_decision_failed", pod=str(pod.key), error=str(exc))
            readiness_gate_decisions_total.labels(result="error").inc()
            return False
        readiness_gate_decisions_total.labels(result="required" if required else "not_required").inc()
        return required

    async def _decide(self, pod: Pod) -> bool:
        services = [
            svc
            for svc in await self._store.list(Service, pod.namespace)
            if selector_matches(svc.selector, pod.labels)
        ]
        if not services:
            _log.debug("pod_not_selected_by_service", pod=str(pod.key))
            return False

        for route_type in _SCANNED_ROUTE_TYPES:
            try:
                routes = await self._store.list(ROUTE_CLASSES[route_type])
            except StoreError as exc:
                _log.error("route_list_failed", pod=str(pod.key), route_type=str(route_type), error=str(exc))
                store_errors_total.labels(operation="list_routes").inc()
                continue
            for route in routes:
                if not any(is_service_used_by_route(route, svc) for svc in services):
                    continue
                gateways, _ = await find_controlled_parents(self._store, route, self._controller_name)
                if gateways:
                    _log.debug("pod_reachable_through_route", pod=str(pod.key), route=str(route.key))
                    return True

        for svc in services:
            try:
                await self._store.get(ServiceExport, svc.key)
            except NotFoundError:
                continue
            _log.debug("pod_reachable_through_export", pod=str(pod.key), service=str(svc.key))
            return True
        return False
