"""Gateway ownership checks for routes and gateways."""

from __future__ import annotations

from latticegw.models.resources import Gateway, GatewayClass, NamespacedName
from latticegw.models.routes import Route
from latticegw.observability.logging import get_logger
from latticegw.store.base import NotFoundError, ObjectStore, StoreError

_log = get_logger("resolve.parents")


async def is_controlled_by_gateway_controller(store: ObjectStore, gateway: Gateway, controller_name: str) -> bool:
    """True when the gateway's class names ``controller_name``.

    GatewayClass is cluster scoped. A missing class or any lookup failure
    counts as "not ours".
    """
    key = NamespacedName(namespace="", name=gateway.spec.gateway_class_name)
    try:
        gateway_class = await store.get(GatewayClass, key)
    except NotFoundError:
        _log.debug("gateway_class_not_found", gateway=str(gateway.key), gateway_class=key.name)
        return False
    except StoreError as exc:
        _log.error("gateway_class_lookup_failed", gateway=str(gateway.key), gateway_class=key.name, error=str(exc))
        return False
    return gateway_class.controller_name == controller_name


async def find_controlled_parents(
    store: ObjectStore, route: Route, controller_name: str
) -> tuple[list[Gateway], list[NamespacedName]]:
    """Parent gateways of ``route`` owned by ``controller_name``.

    Returns ``(gateways, misses)`` where misses are parent keys whose Gateway
    could not be read.
    """
    gateways: list[Gateway] = []
    misses: list[NamespacedName] = []
    for parent_ref in route.spec.parent_refs:
        key = parent_ref.gateway_key(route.namespace)
        try:
            gateway = await store.get(Gateway, key)
        except StoreError as exc:
            if not isinstance(exc, NotFoundError):
                _log.error("parent_gateway_lookup_failed", route=str(route.key), gateway=str(key), error=str(exc))
            misses.append(key)
            continue
        if await is_controlled_by_gateway_controller(store, gateway, controller_name):
            gateways.append(gateway)
    return gateways, misses
