"""Resource graph resolver: one object in, the related objects out.

Every query is a fresh store read. Not-found means "no relation"; any other
store failure is logged, counted and also treated as "no relation", so a
resolver call never raises into the event handler that issued it.
"""

from __future__ import annotations

from typing import TypeVar

from latticegw.models.policies import Policy, TargetGroupPolicy, VpcAssociationPolicy
from latticegw.models.resources import (
    APPLICATION_NETWORKING_GROUP,
    CORE_GROUP,
    Endpoints,
    EndpointSlice,
    Gateway,
    KubeObject,
    NamespacedName,
    Service,
    ServiceExport,
    ServiceImport,
)
from latticegw.models.routes import ROUTE_CLASSES, Route, RouteType
from latticegw.observability.logging import get_logger
from latticegw.observability.metrics import store_errors_total
from latticegw.resolve.matching import is_backend_ref_used_by_route
from latticegw.store.base import NotFoundError, ObjectStore, StoreError

_log = get_logger("resolve.mapper")

T = TypeVar("T", bound=KubeObject)


class ResourceMapper:
    """Stateless relationship queries over an ObjectStore."""

    def __init__(self, store: ObjectStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Service / ServiceImport -> routes
    # ------------------------------------------------------------------

    async def service_to_routes(self, service: Service | None, route_type: RouteType) -> list[Route]:
        if service is None:
            return []
        return await self._backend_ref_to_routes(service, CORE_GROUP, "Service", route_type)

    async def service_import_to_routes(
        self, service_import: ServiceImport | None, route_type: RouteType
    ) -> list[Route]:
        if service_import is None:
            return []
        return await self._backend_ref_to_routes(
            service_import, APPLICATION_NETWORKING_GROUP, "ServiceImport", route_type
        )

    async def _backend_ref_to_routes(
        self, obj: KubeObject, group: str, kind: str, route_type: RouteType
    ) -> list[Route]:
        routes = await self.list_routes(route_type)
        return [route for route in routes if is_backend_ref_used_by_route(route, obj, group, kind)]

    async def list_routes(self, route_type: RouteType, namespace: str | None = None) -> list[Route]:
        """All routes of one type; a failed list yields no routes."""
        cls = ROUTE_CLASSES[route_type]
        try:
            return list(await self._store.list(cls, namespace))
        except StoreError as exc:
            _log.error("route_list_failed", route_type=str(route_type), error=str(exc))
            store_errors_total.labels(operation="list_routes").inc()
            return []

    # ------------------------------------------------------------------
    # Same-identity lookups
    # ------------------------------------------------------------------

    async def service_to_service_export(self, service: Service | None) -> ServiceExport | None:
        if service is None:
            return None
        return await self._get_quietly(ServiceExport, service.key)

    async def endpoints_to_service(self, endpoints: Endpoints | None) -> Service | None:
        if endpoints is None:
            return None
        return await self._get_quietly(Service, endpoints.key)

    async def endpoint_slice_to_service(self, endpoint_slice: EndpointSlice | None) -> Service | None:
        """Owning Service is named by the slice's service-name label."""
        if endpoint_slice is None or not endpoint_slice.service_name:
            return None
        key = NamespacedName(namespace=endpoint_slice.namespace, name=endpoint_slice.service_name)
        return await self._get_quietly(Service, key)

    async def _get_quietly(self, cls: type[T], key: NamespacedName) -> T | None:
        try:
            return await self._store.get(cls, key)
        except NotFoundError:
            return None
        except StoreError as exc:
            _log.error("object_get_failed", kind=cls.KIND, key=str(key), error=str(exc))
            store_errors_total.labels(operation=f"get_{cls.KIND.lower()}").inc()
            return None

    # ------------------------------------------------------------------
    # Policy -> target
    # ------------------------------------------------------------------

    async def target_group_policy_to_service(self, policy: TargetGroupPolicy | None) -> Service | None:
        return await self._policy_to_target(policy, Service)

    async def vpc_association_policy_to_gateway(self, policy: VpcAssociationPolicy | None) -> Gateway | None:
        return await self._policy_to_target(policy, Gateway)

    async def _policy_to_target(self, policy: Policy | None, cls: type[T]) -> T | None:
        """Resolve a policy's targetRef to an existing object of ``cls``.

        Rejects references to another group/kind and explicit cross-namespace
        references. Every rejection is logged and returns None.
        """
        if policy is None:
            return None
        policy_name = str(policy.key)
        target_ref = policy.target_ref
        if target_ref is None:
            _log.info("policy_without_target_ref", policy=policy_name)
            return None

        if target_ref.group != cls.GROUP or target_ref.kind != cls.KIND:
            _log.info(
                "policy_target_kind_mismatch",
                policy=policy_name,
                target_group=target_ref.group,
                target_kind=target_ref.kind,
                expected_group=cls.GROUP,
                expected_kind=cls.KIND,
            )
            return None

        if target_ref.namespace is not None and target_ref.namespace != policy.namespace:
            _log.info(
                "policy_cross_namespace_target",
                policy=policy_name,
                target_namespace=target_ref.namespace,
            )
            return None

        key = NamespacedName(namespace=policy.namespace, name=target_ref.name)
        try:
            target = await self._store.get(cls, key)
        except NotFoundError:
            _log.debug("policy_target_not_found", policy=policy_name, target=str(key))
            return None
        except StoreError as exc:
            _log.error("policy_target_lookup_failed", policy=policy_name, target=str(key), error=str(exc))
            store_errors_total.labels(operation="policy_target").inc()
            return None

        _log.debug("policy_target_resolved", policy=policy_name, target=str(key), kind=cls.KIND)
        return target
