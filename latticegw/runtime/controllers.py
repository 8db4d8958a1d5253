"""Controller wiring: which watched kinds feed which reconcile queue.

Each ``ControllerSpec`` mirrors one reconciler: the kind it owns (enqueued
by key on every event) plus the secondary kinds whose changes are mapped
onto it. Reconcilers themselves live outside this package; a ``Controller``
drains its queue into whatever ``reconcile_fn`` it is given.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime

from latticegw.handlers import (
    EndpointsEventHandler,
    EventHandler,
    GatewayClassEventHandler,
    GatewayEventHandler,
    ObjectEventHandler,
    PolicyEventHandler,
    RouteEventHandler,
    ServiceEventHandler,
    ServiceExportEventHandler,
    ServiceImportEventHandler,
    TargetGroupPolicyEventHandler,
    route_to_access_log_policy,
    route_to_iam_auth_policy,
    vpc_association_policy_to_gateway,
)
from latticegw.models.config import LatticeGWConfig
from latticegw.models.policies import AccessLogPolicy, IAMAuthPolicy, TargetGroupPolicy, VpcAssociationPolicy
from latticegw.models.resources import (
    ZERO_TIME,
    Endpoints,
    EndpointSlice,
    Gateway,
    GatewayClass,
    KubeObject,
    NamespacedName,
    Service,
    ServiceExport,
    ServiceImport,
)
from latticegw.models.routes import ROUTE_CLASSES, GRPCRoute, HTTPRoute, RouteType, TLSRoute
from latticegw.observability.logging import get_logger
from latticegw.resolve.mapper import ResourceMapper
from latticegw.runtime.queue import RequestQueue
from latticegw.runtime.watcher import ResourceWatcher
from latticegw.store.base import ObjectStore, WatchableStore

_log = get_logger("runtime.controllers")

ReconcileFn = Callable[[str, NamespacedName], Awaitable[None]]


@dataclass
class ControllerSpec:
    name: str
    owns: type[KubeObject]
    queue: RequestQueue
    watches: list[tuple[type[KubeObject], EventHandler]] = field(default_factory=list)

    def watch(self, cls: type[KubeObject], handler: EventHandler) -> ControllerSpec:
        self.watches.append((cls, handler))
        return self


def _spec(name: str, owns: type[KubeObject]) -> ControllerSpec:
    spec = ControllerSpec(name=name, owns=owns, queue=RequestQueue(name))
    return spec.watch(owns, ObjectEventHandler(name))


def build_controllers(
    store: ObjectStore,
    config: LatticeGWConfig,
    zero_transition_time: datetime = ZERO_TIME,
) -> list[ControllerSpec]:
    """Every reconciler with its queue and watch handlers."""
    controller_name = config.controller.controller_name
    mapper = ResourceMapper(store)
    services = ServiceEventHandler(mapper)
    tgp = TargetGroupPolicyEventHandler(mapper)

    controllers: list[ControllerSpec] = []

    for route_type in RouteType:
        spec = _spec(f"{route_type}route", ROUTE_CLASSES[route_type])
        spec.watch(
            Gateway,
            GatewayEventHandler(store, mapper, controller_name, zero_transition_time, route_types=(route_type,)),
        )
        spec.watch(Service, services.map_to_route(route_type))
        spec.watch(EndpointSlice, services.map_to_route(route_type, on_update=True))
        spec.watch(ServiceImport, ServiceImportEventHandler(mapper, route_type))
        if route_type in (RouteType.HTTP, RouteType.GRPC):
            spec.watch(TargetGroupPolicy, tgp.map_to_route(route_type))
        controllers.append(spec)

    gateway = _spec("gateway", Gateway)
    gateway.watch(GatewayClass, GatewayClassEventHandler(store, controller_name))
    gateway.watch(VpcAssociationPolicy, vpc_association_policy_to_gateway(mapper))
    controllers.append(gateway)

    service = _spec("service", Service)
    service.watch(Endpoints, EndpointsEventHandler(mapper))
    service.watch(ServiceExport, ServiceExportEventHandler(store))
    route_handler = RouteEventHandler(store, zero_transition_time)
    for route_cls in (HTTPRoute, GRPCRoute, TLSRoute):
        service.watch(route_cls, route_handler)
    controllers.append(service)

    export = _spec("serviceexport", ServiceExport)
    export.watch(Service, services.map_to_service_export())
    export.watch(EndpointSlice, services.map_to_service_export(on_update=True))
    export.watch(TargetGroupPolicy, tgp.map_to_service_export())
    controllers.append(export)

    tgp_spec = _spec("targetgrouppolicy", TargetGroupPolicy)
    tgp_spec.watch(Service, PolicyEventHandler(store, TargetGroupPolicy).map_object_to_policy())
    controllers.append(tgp_spec)

    for policy_cls, route_map in (
        (IAMAuthPolicy, route_to_iam_auth_policy),
        (AccessLogPolicy, route_to_access_log_policy),
    ):
        spec = _spec(policy_cls.KIND.lower(), policy_cls)
        handler = route_map(store)
        for target_cls in (Gateway, HTTPRoute, GRPCRoute, TLSRoute):
            spec.watch(target_cls, handler)
        controllers.append(spec)

    vap = _spec("vpcassociationpolicy", VpcAssociationPolicy)
    vap.watch(Gateway, PolicyEventHandler(store, VpcAssociationPolicy).map_object_to_policy())
    controllers.append(vap)

    return controllers


def build_watchers(
    store: WatchableStore,
    controllers: list[ControllerSpec],
    namespace: str | None = None,
    timeout_seconds: int = 300,
) -> list[ResourceWatcher]:
    """One watcher per watched kind, shared by every controller interested in it."""
    watchers: dict[type[KubeObject], ResourceWatcher] = {}
    for spec in controllers:
        for cls, handler in spec.watches:
            watcher = watchers.get(cls)
            if watcher is None:
                watcher = ResourceWatcher(store, cls, namespace=namespace, timeout_seconds=timeout_seconds)
                watchers[cls] = watcher
            watcher.subscribe(handler, spec.queue, controller=spec.name)
    return list(watchers.values())


async def log_reconcile(controller: str, key: NamespacedName) -> None:
    """Default reconcile function: record the request and do nothing else."""
    _log.info("reconcile_request", controller=controller, request=str(key))


class Controller:
    """Worker draining one controller queue into ``reconcile_fn``."""

    def __init__(self, spec: ControllerSpec, reconcile_fn: ReconcileFn = log_reconcile) -> None:
        self.spec = spec
        self._reconcile_fn = reconcile_fn

    async def run(self) -> None:
        queue = self.spec.queue
        while True:
            key = await queue.get()
            if key is None:
                return
            try:
                await self._reconcile_fn(self.spec.name, key)
            except asyncio.CancelledError:
                raise
            except Exception:
                _log.exception("reconcile_failed", controller=self.spec.name, request=str(key))
            finally:
                queue.done(key)

    def stop(self) -> None:
        self.spec.queue.shut_down()
