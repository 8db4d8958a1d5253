"""Reference matching primitives shared by the resolvers and handlers.

Two BackendRef matching flavours exist and are kept deliberately apart:

* ``backend_ref_matches``: Kind must be present and equal. Used when mapping
  Services and ServiceImports to the routes that reference them.
* ``backend_ref_matches_service``: an absent Kind counts as "Service". Used by
  the TargetGroupPolicy route mapping and the pod readiness decision.
"""

from __future__ import annotations

from latticegw.models.resources import APPLICATION_NETWORKING_GROUP, CORE_GROUP, KubeObject, Service
from latticegw.models.routes import BackendRef, Route


def effective_namespace(namespace: str | None, default: str) -> str:
    """An unset namespace on a reference means the referrer's namespace."""
    return namespace if namespace is not None else default


def _group_matches(ref_group: str | None, group: str, kind: str) -> bool:
    if group == CORE_GROUP or (group == APPLICATION_NETWORKING_GROUP and kind == "ServiceImport"):
        # ServiceImport refs have never been required to carry a group
        return ref_group is None or ref_group == group
    return ref_group is not None and ref_group == group


def backend_ref_matches(ref: BackendRef, route_namespace: str, obj: KubeObject, group: str, kind: str) -> bool:
    """Strict match of one BackendRef against ``obj`` of the given group/kind."""
    return (
        _group_matches(ref.group, group, kind)
        and ref.kind is not None
        and ref.kind == kind
        and ref.name == obj.name
        and effective_namespace(ref.namespace, route_namespace) == obj.namespace
    )


def backend_ref_matches_service(ref: BackendRef, route_namespace: str, service: Service) -> bool:
    """Lenient match: Kind defaults to Service and Group to the core group."""
    return (
        (ref.kind is None or ref.kind == "Service")
        and (ref.group is None or ref.group == CORE_GROUP)
        and ref.name == service.name
        and effective_namespace(ref.namespace, route_namespace) == service.namespace
    )


def is_backend_ref_used_by_route(route: Route, obj: KubeObject, group: str, kind: str) -> bool:
    return any(backend_ref_matches(ref, route.namespace, obj, group, kind) for ref in route.backend_refs())


def is_service_used_by_route(route: Route, service: Service) -> bool:
    return any(backend_ref_matches_service(ref, route.namespace, service) for ref in route.backend_refs())


def selector_matches(selector: dict[str, str], labels: dict[str, str]) -> bool:
    """Equality-based label selection. An empty selector selects nothing."""
    if not selector:
        return False
    return all(labels.get(k) == v for k, v in selector.items())
