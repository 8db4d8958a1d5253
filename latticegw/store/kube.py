"""ObjectStore backed by the Kubernetes API through kubernetes_asyncio.

Every call is a fresh API round trip. Typed core/discovery responses are
converted back to camelCase dicts with ``sanitize_for_serialization`` so a
single decoder handles both typed and custom resources.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any, TypeVar

from kubernetes_asyncio import client as k8s_client  # type: ignore[import-untyped]
from kubernetes_asyncio import watch  # type: ignore[import-untyped]
from kubernetes_asyncio.client.exceptions import ApiException  # type: ignore[import-untyped]

from latticegw.models import (
    AccessLogPolicy,
    Endpoints,
    EndpointSlice,
    Gateway,
    GatewayClass,
    GRPCRoute,
    HTTPRoute,
    IAMAuthPolicy,
    KubeObject,
    NamespacedName,
    Pod,
    Service,
    ServiceExport,
    ServiceImport,
    TargetGroupPolicy,
    TLSRoute,
    VpcAssociationPolicy,
)
from latticegw.observability.logging import get_logger
from latticegw.store.base import NotFoundError, StoreError, WatchEvent
from latticegw.store.decode import decode

_log = get_logger("store.kube")

T = TypeVar("T", bound=KubeObject)


@dataclass(frozen=True)
class _Resource:
    """How to reach one kind through the API client."""

    api: str  # core | discovery | custom
    name: str  # snake_case resource for typed APIs, plural for custom
    version: str = ""


_RESOURCES: dict[type[KubeObject], _Resource] = {
    Service: _Resource("core", "service"),
    Endpoints: _Resource("core", "endpoints"),
    Pod: _Resource("core", "pod"),
    EndpointSlice: _Resource("discovery", "endpoint_slice"),
    Gateway: _Resource("custom", "gateways", "v1"),
    GatewayClass: _Resource("custom", "gatewayclasses", "v1"),
    HTTPRoute: _Resource("custom", "httproutes", "v1"),
    GRPCRoute: _Resource("custom", "grpcroutes", "v1"),
    TLSRoute: _Resource("custom", "tlsroutes", "v1alpha2"),
    ServiceExport: _Resource("custom", "serviceexports", "v1alpha1"),
    ServiceImport: _Resource("custom", "serviceimports", "v1alpha1"),
    TargetGroupPolicy: _Resource("custom", "targetgrouppolicies", "v1alpha1"),
    VpcAssociationPolicy: _Resource("custom", "vpcassociationpolicies", "v1alpha1"),
    IAMAuthPolicy: _Resource("custom", "iamauthpolicies", "v1alpha1"),
    AccessLogPolicy: _Resource("custom", "accesslogpolicies", "v1alpha1"),
}


class KubeObjectStore:
    """Read-only access to cluster state.

    Expects the kubernetes_asyncio configuration to be loaded already
    (in-cluster or kubeconfig), as done by the application bootstrap.
    """

    def __init__(self, api_client: Any = None) -> None:
        self._api_client = api_client or k8s_client.ApiClient()
        self._core = k8s_client.CoreV1Api(self._api_client)
        self._discovery = k8s_client.DiscoveryV1Api(self._api_client)
        self._custom = k8s_client.CustomObjectsApi(self._api_client)

    async def close(self) -> None:
        await self._api_client.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, cls: type[T], key: NamespacedName) -> T:
        res = _resource(cls)
        try:
            if res.api == "custom":
                if cls.NAMESPACED:
                    raw = await self._custom.get_namespaced_custom_object(
                        cls.GROUP, res.version, key.namespace, res.name, key.name
                    )
                else:
                    raw = await self._custom.get_cluster_custom_object(cls.GROUP, res.version, res.name, key.name)
            else:
                read = getattr(self._typed_api(res), f"read_namespaced_{res.name}")
                raw = self._serialize(await read(key.name, key.namespace))
        except ApiException as exc:
            if exc.status == 404:
                raise NotFoundError(cls.KIND, key) from exc
            raise StoreError(f"get {cls.KIND} {key} failed: {exc.status} {exc.reason}") from exc
        return decode(cls, raw)

    async def list(self, cls: type[T], namespace: str | None = None) -> list[T]:
        items, _ = await self.list_snapshot(cls, namespace)
        return items

    async def list_snapshot(self, cls: type[T], namespace: str | None = None) -> tuple[list[T], str]:
        """List plus the collection resourceVersion for a subsequent watch."""
        res = _resource(cls)
        try:
            raw_list = await self._list_raw(cls, res, namespace)
        except ApiException as exc:
            if exc.status == 404:
                # CRD not installed: nothing of this kind can exist
                _log.debug("list_kind_not_served", kind=cls.KIND)
                return [], ""
            raise StoreError(f"list {cls.KIND} failed: {exc.status} {exc.reason}") from exc

        items = [decode(cls, raw) for raw in raw_list.get("items") or []]
        resource_version = str((raw_list.get("metadata") or {}).get("resourceVersion") or "")
        return items, resource_version

    # ------------------------------------------------------------------
    # Watch
    # ------------------------------------------------------------------

    async def watch(
        self,
        cls: type[T],
        namespace: str | None,
        resource_version: str,
        timeout_seconds: int,
    ) -> AsyncIterator[WatchEvent]:
        """Stream changes of one kind until the server closes the watch."""
        res = _resource(cls)
        func, args = self._list_call(cls, res, namespace)
        kwargs: dict[str, Any] = {"timeout_seconds": timeout_seconds}
        if resource_version:
            kwargs["resource_version"] = resource_version

        w = watch.Watch()
        try:
            async for event in w.stream(func, *args, **kwargs):
                event_type = event["type"]
                raw = event["raw_object"]
                if event_type == "ERROR":
                    raise StoreError(f"watch {cls.KIND} error: {raw.get('message', raw)}")
                yield WatchEvent(type=event_type, obj=decode(cls, raw))
        except ApiException as exc:
            raise StoreError(f"watch {cls.KIND} failed: {exc.status} {exc.reason}") from exc
        finally:
            w.stop()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _typed_api(self, res: _Resource) -> Any:
        return self._core if res.api == "core" else self._discovery

    def _list_call(self, cls: type[KubeObject], res: _Resource, namespace: str | None) -> tuple[Any, list[Any]]:
        if res.api == "custom":
            if cls.NAMESPACED and namespace:
                return self._custom.list_namespaced_custom_object, [cls.GROUP, res.version, namespace, res.name]
            return self._custom.list_cluster_custom_object, [cls.GROUP, res.version, res.name]
        api = self._typed_api(res)
        if namespace:
            return getattr(api, f"list_namespaced_{res.name}"), [namespace]
        return getattr(api, f"list_{res.name}_for_all_namespaces"), []

    async def _list_raw(self, cls: type[KubeObject], res: _Resource, namespace: str | None) -> dict[str, Any]:
        func, args = self._list_call(cls, res, namespace)
        result = await func(*args)
        if res.api == "custom":
            return result  # type: ignore[no-any-return]
        return self._serialize(result)

    def _serialize(self, model: Any) -> dict[str, Any]:
        return self._api_client.sanitize_for_serialization(model)  # type: ignore[no-any-return]


def _resource(cls: type[KubeObject]) -> _Resource:
    try:
        return _RESOURCES[cls]
    except KeyError:
        raise StoreError(f"kind {cls.__name__} is not served by this store") from None
