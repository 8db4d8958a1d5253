"""Gateway API route models.

``Route`` is the single interface every resolver works through; the concrete
kinds only differ in their identity and route type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import ClassVar

from latticegw.models.resources import GATEWAY_API_GROUP, Condition, KubeObject, NamespacedName


class RouteType(StrEnum):
    """Route kinds handled by the controller."""

    HTTP = "http"
    GRPC = "grpc"
    TLS = "tls"


@dataclass(frozen=True)
class BackendRef:
    """Reference from a routing rule to a traffic target.

    ``group``, ``kind`` and ``namespace`` are ``None`` when omitted in the
    manifest; the defaults are applied by the matching functions, not here.
    """

    name: str
    group: str | None = None
    kind: str | None = None
    namespace: str | None = None
    port: int | None = None
    weight: int | None = None


@dataclass(frozen=True)
class ParentRef:
    name: str
    namespace: str | None = None
    section_name: str | None = None
    group: str | None = None
    kind: str | None = None
    port: int | None = None

    def gateway_key(self, route_namespace: str) -> NamespacedName:
        """Key of the referenced Gateway; namespace defaults to the route's."""
        return NamespacedName(namespace=self.namespace or route_namespace, name=self.name)


@dataclass(frozen=True)
class RouteRule:
    backend_refs: tuple[BackendRef, ...] = ()
    fingerprint: str = ""  # canonical JSON of the whole rule; any change is a spec change


@dataclass
class RouteSpec:
    parent_refs: list[ParentRef] = field(default_factory=list)
    hostnames: list[str] = field(default_factory=list)
    rules: list[RouteRule] = field(default_factory=list)


@dataclass
class RouteParentStatus:
    parent_ref: ParentRef
    controller_name: str = ""
    conditions: list[Condition] = field(default_factory=list)


@dataclass
class RouteStatus:
    parents: list[RouteParentStatus] = field(default_factory=list)


@dataclass(kw_only=True)
class Route(KubeObject):
    """Common shape of every route kind."""

    GROUP: ClassVar[str] = GATEWAY_API_GROUP
    ROUTE_TYPE: ClassVar[RouteType]

    spec: RouteSpec = field(default_factory=RouteSpec)
    status: RouteStatus = field(default_factory=RouteStatus)

    @property
    def route_type(self) -> RouteType:
        return self.ROUTE_TYPE

    def backend_refs(self) -> list[BackendRef]:
        """All backend references across every rule, in declaration order."""
        return [ref for rule in self.spec.rules for ref in rule.backend_refs]

    def spec_equals(self, other: Route) -> bool:
        return type(self) is type(other) and self.spec == other.spec


@dataclass(kw_only=True)
class HTTPRoute(Route):
    KIND: ClassVar[str] = "HTTPRoute"
    ROUTE_TYPE: ClassVar[RouteType] = RouteType.HTTP


@dataclass(kw_only=True)
class GRPCRoute(Route):
    KIND: ClassVar[str] = "GRPCRoute"
    ROUTE_TYPE: ClassVar[RouteType] = RouteType.GRPC


@dataclass(kw_only=True)
class TLSRoute(Route):
    KIND: ClassVar[str] = "TLSRoute"
    ROUTE_TYPE: ClassVar[RouteType] = RouteType.TLS


ROUTE_CLASSES: dict[RouteType, type[Route]] = {
    RouteType.HTTP: HTTPRoute,
    RouteType.GRPC: GRPCRoute,
    RouteType.TLS: TLSRoute,
}
