"""In-memory object store and raw manifest builders shared by the test suites.

The store decodes raw camelCase manifests through ``latticegw.store.decode``
so every test exercises the same decoding path as the Kubernetes store.
"""

from __future__ import annotations

import asyncio
import copy
from collections.abc import AsyncIterator
from typing import Any, TypeVar

from latticegw.models import KIND_REGISTRY, GroupKind, KubeObject, NamespacedName
from latticegw.models.config import DEFAULT_CONTROLLER_NAME
from latticegw.store.base import NotFoundError, StoreError, WatchEvent
from latticegw.store.decode import decode

T = TypeVar("T", bound=KubeObject)

CONTROLLER_NAME = DEFAULT_CONTROLLER_NAME
OTHER_CONTROLLER_NAME = "example.net/other-controller"

_API_VERSIONS = {
    "Service": "v1",
    "Endpoints": "v1",
    "Pod": "v1",
    "EndpointSlice": "discovery.k8s.io/v1",
    "Gateway": "gateway.networking.k8s.io/v1",
    "GatewayClass": "gateway.networking.k8s.io/v1",
    "HTTPRoute": "gateway.networking.k8s.io/v1",
    "GRPCRoute": "gateway.networking.k8s.io/v1",
    "TLSRoute": "gateway.networking.k8s.io/v1alpha2",
    "ServiceExport": "application-networking.k8s.aws/v1alpha1",
    "ServiceImport": "application-networking.k8s.aws/v1alpha1",
    "TargetGroupPolicy": "application-networking.k8s.aws/v1alpha1",
    "VpcAssociationPolicy": "application-networking.k8s.aws/v1alpha1",
    "IAMAuthPolicy": "application-networking.k8s.aws/v1alpha1",
    "AccessLogPolicy": "application-networking.k8s.aws/v1alpha1",
}

_TARGET_GROUPS = {
    "Service": "",
    "ServiceExport": "application-networking.k8s.aws",
}


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class InMemoryStore:
    """WatchableStore over a dict. Every read returns a deep copy.

    ``fail_on`` maps a model class to the StoreError its reads raise.
    ``watch_streams`` holds, per class, the successive watch streams to
    replay: a list of events, or an exception raised when the watch opens.
    Once the scripted streams are used up, ``watch`` blocks until cancelled.
    """

    def __init__(self) -> None:
        self._objects: dict[type[KubeObject], dict[NamespacedName, KubeObject]] = {}
        self._version = 0
        self.fail_on: dict[type[KubeObject], StoreError] = {}
        self.watch_streams: dict[type[KubeObject], list[list[WatchEvent] | StoreError]] = {}
        self.watch_calls: list[tuple[type[KubeObject], str | None, str]] = []
        self.list_calls = 0

    # -- population ---------------------------------------------------------

    def add(self, raw: dict[str, Any]) -> KubeObject:
        obj = to_object(raw)
        if not obj.resource_version:
            self._version += 1
            obj.resource_version = str(self._version)
        self._objects.setdefault(type(obj), {})[obj.key] = obj
        return copy.deepcopy(obj)

    def remove(self, cls: type[KubeObject], key: NamespacedName) -> None:
        self._objects.get(cls, {}).pop(key, None)

    # -- ObjectStore --------------------------------------------------------

    async def get(self, cls: type[T], key: NamespacedName) -> T:
        if cls in self.fail_on:
            raise self.fail_on[cls]
        obj = self._objects.get(cls, {}).get(key)
        if obj is None:
            raise NotFoundError(cls.KIND, key)
        return copy.deepcopy(obj)  # type: ignore[return-value]

    async def list(self, cls: type[T], namespace: str | None = None) -> list[T]:
        self.list_calls += 1
        if cls in self.fail_on:
            raise self.fail_on[cls]
        return [
            copy.deepcopy(obj)  # type: ignore[misc]
            for obj in self._objects.get(cls, {}).values()
            if namespace is None or obj.namespace == namespace
        ]

    async def list_snapshot(self, cls: type[T], namespace: str | None = None) -> tuple[list[T], str]:
        return await self.list(cls, namespace), str(self._version)

    async def watch(
        self,
        cls: type[T],
        namespace: str | None,
        resource_version: str,
        timeout_seconds: int,
    ) -> AsyncIterator[WatchEvent]:
        self.watch_calls.append((cls, namespace, resource_version))
        streams = self.watch_streams.get(cls) or []
        if not streams:
            await asyncio.get_running_loop().create_future()
            return
        stream = streams.pop(0)
        if isinstance(stream, StoreError):
            raise stream
        for event in stream:
            yield event


# ---------------------------------------------------------------------------
# Raw manifest builders
# ---------------------------------------------------------------------------


def to_object(raw: dict[str, Any]) -> KubeObject:
    """Decode a raw manifest into the model class named by apiVersion/kind."""
    group = raw["apiVersion"].rpartition("/")[0]
    cls = KIND_REGISTRY[GroupKind(group, raw["kind"])]
    return decode(cls, raw)


def _metadata(name: str, namespace: str | None, **extra: Any) -> dict[str, Any]:
    metadata: dict[str, Any] = {"name": name}
    if namespace is not None:
        metadata["namespace"] = namespace
    metadata.update({k: v for k, v in extra.items() if v is not None})
    return metadata


def _manifest(kind: str, metadata: dict[str, Any], **body: Any) -> dict[str, Any]:
    return {"apiVersion": _API_VERSIONS[kind], "kind": kind, "metadata": metadata, **body}


def raw_service(
    name: str,
    namespace: str = "default",
    selector: dict[str, str] | None = None,
    ports: tuple[int, ...] = (80,),
) -> dict[str, Any]:
    spec: dict[str, Any] = {"ports": [{"port": p} for p in ports]}
    if selector is not None:
        spec["selector"] = selector
    return _manifest("Service", _metadata(name, namespace), spec=spec)


def raw_endpoints(name: str, namespace: str = "default", ips: tuple[str, ...] = ("10.0.0.1",)) -> dict[str, Any]:
    subsets = [{"addresses": [{"ip": ip} for ip in ips], "ports": [{"port": 8080}]}] if ips else []
    return _manifest("Endpoints", _metadata(name, namespace), subsets=subsets)


def raw_endpoint_slice(
    name: str,
    namespace: str = "default",
    service_name: str | None = None,
    ips: tuple[str, ...] = ("10.0.0.1",),
) -> dict[str, Any]:
    labels = {"kubernetes.io/service-name": service_name} if service_name else None
    return _manifest(
        "EndpointSlice",
        _metadata(name, namespace, labels=labels),
        addressType="IPv4",
        endpoints=[{"addresses": [ip]} for ip in ips],
    )


def raw_pod(
    name: str,
    namespace: str = "default",
    labels: dict[str, str] | None = None,
    readiness_gates: tuple[str, ...] = (),
) -> dict[str, Any]:
    spec: dict[str, Any] = {"containers": [{"name": "app", "image": "nginx"}]}
    if readiness_gates:
        spec["readinessGates"] = [{"conditionType": g} for g in readiness_gates]
    return _manifest("Pod", _metadata(name, namespace, labels=labels), spec=spec)


def raw_gateway_class(name: str = "amazon-vpc-lattice", controller_name: str = CONTROLLER_NAME) -> dict[str, Any]:
    return _manifest("GatewayClass", _metadata(name, None), spec={"controllerName": controller_name})


def raw_gateway(
    name: str,
    namespace: str = "default",
    class_name: str = "amazon-vpc-lattice",
    port: int = 80,
    conditions: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    body: dict[str, Any] = {
        "spec": {
            "gatewayClassName": class_name,
            "listeners": [{"name": "http", "port": port, "protocol": "HTTP"}],
        }
    }
    if conditions is not None:
        body["status"] = {"conditions": conditions}
    return _manifest("Gateway", _metadata(name, namespace), **body)


def backend(
    name: str,
    kind: str | None = "Service",
    namespace: str | None = None,
    group: str | None = None,
    port: int | None = 80,
) -> dict[str, Any]:
    ref: dict[str, Any] = {"name": name}
    for key, value in (("kind", kind), ("namespace", namespace), ("group", group), ("port", port)):
        if value is not None:
            ref[key] = value
    return ref


def parent(name: str, namespace: str | None = None) -> dict[str, Any]:
    ref: dict[str, Any] = {"name": name}
    if namespace is not None:
        ref["namespace"] = namespace
    return ref


def raw_route(
    name: str,
    namespace: str = "default",
    kind: str = "HTTPRoute",
    parents: list[dict[str, Any]] | None = None,
    backends: list[dict[str, Any]] | None = None,
    status_conditions: list[dict[str, Any]] | None = None,
    hostnames: list[str] | None = None,
) -> dict[str, Any]:
    parent_refs = parents if parents is not None else [parent("gw")]
    spec: dict[str, Any] = {
        "parentRefs": parent_refs,
        "rules": [{"backendRefs": backends or []}],
    }
    if hostnames:
        spec["hostnames"] = hostnames
    body: dict[str, Any] = {"spec": spec}
    if status_conditions is not None:
        body["status"] = {
            "parents": [
                {
                    "parentRef": parent_refs[0] if parent_refs else {},
                    "controllerName": CONTROLLER_NAME,
                    "conditions": status_conditions,
                }
            ]
        }
    return _manifest(kind, _metadata(name, namespace), **body)


def raw_service_export(name: str, namespace: str = "default") -> dict[str, Any]:
    return _manifest("ServiceExport", _metadata(name, namespace))


def raw_service_import(name: str, namespace: str = "default") -> dict[str, Any]:
    return _manifest("ServiceImport", _metadata(name, namespace), spec={"ports": [{"port": 80}]})


def target(
    kind: str,
    name: str,
    group: str | None = None,
    namespace: str | None = None,
) -> dict[str, Any]:
    ref: dict[str, Any] = {
        "group": group if group is not None else _TARGET_GROUPS.get(kind, "gateway.networking.k8s.io"),
        "kind": kind,
        "name": name,
    }
    if namespace is not None:
        ref["namespace"] = namespace
    return ref


def raw_policy(
    kind: str,
    name: str,
    namespace: str = "default",
    target_ref: dict[str, Any] | None = None,
    created: str | None = None,
    **spec: Any,
) -> dict[str, Any]:
    body_spec = dict(spec)
    if target_ref is not None:
        body_spec["targetRef"] = target_ref
    return _manifest(kind, _metadata(name, namespace, creationTimestamp=created), spec=body_spec)


def add_owned_gateway(
    store: InMemoryStore,
    name: str = "gw",
    namespace: str = "default",
    controller_name: str = CONTROLLER_NAME,
) -> KubeObject:
    """Add a Gateway plus its GatewayClass, owned by ``controller_name``."""
    class_name = "amazon-vpc-lattice" if controller_name == CONTROLLER_NAME else "other-class"
    store.add(raw_gateway_class(class_name, controller_name))
    return store.add(raw_gateway(name, namespace, class_name=class_name))
