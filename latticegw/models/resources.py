"""Core Kubernetes object models used by the resolvers and event handlers.

Only the fields that take part in relationship resolution are modelled.
Every object carries its identity as ``(GROUP, KIND)`` class attributes plus
``namespace``/``name`` instance fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import ClassVar

CORE_GROUP = ""
GATEWAY_API_GROUP = "gateway.networking.k8s.io"
APPLICATION_NETWORKING_GROUP = "application-networking.k8s.aws"
DISCOVERY_GROUP = "discovery.k8s.io"

# Label set by the endpoint slice controller on every slice it owns.
SERVICE_NAME_LABEL = "kubernetes.io/service-name"

# metav1.Time{} as seen by the API server: the zero time.
ZERO_TIME = datetime(1, 1, 1, tzinfo=UTC)


@dataclass(frozen=True, order=True)
class NamespacedName:
    """Namespace/name pair. Used as object key and as reconcile request."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"

    @classmethod
    def parse(cls, value: str, default_namespace: str = "default") -> NamespacedName:
        """Parse ``ns/name`` (or a bare ``name``) into a NamespacedName."""
        if "/" in value:
            namespace, _, name = value.partition("/")
            return cls(namespace=namespace, name=name)
        return cls(namespace=default_namespace, name=value)


@dataclass(frozen=True, order=True)
class GroupKind:
    group: str
    kind: str

    def __str__(self) -> str:
        return f"{self.kind}.{self.group}" if self.group else self.kind


@dataclass(frozen=True)
class ObjectIdentity:
    """(Group, Kind, Namespace, Name): the universal relationship key."""

    group_kind: GroupKind
    key: NamespacedName

    def __str__(self) -> str:
        return f"{self.group_kind}:{self.key}"


@dataclass
class Condition:
    """metav1.Condition subset. Mutable: handlers reset transition times."""

    type: str
    status: str = "Unknown"
    reason: str = ""
    message: str = ""
    observed_generation: int = 0
    last_transition_time: datetime = ZERO_TIME


@dataclass(kw_only=True)
class KubeObject:
    """Base for every modelled object."""

    GROUP: ClassVar[str] = CORE_GROUP
    KIND: ClassVar[str] = ""
    NAMESPACED: ClassVar[bool] = True

    name: str
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    creation_timestamp: datetime | None = None
    generation: int = 0
    resource_version: str = ""

    @classmethod
    def group_kind(cls) -> GroupKind:
        return GroupKind(cls.GROUP, cls.KIND)

    @property
    def key(self) -> NamespacedName:
        return NamespacedName(namespace=self.namespace, name=self.name)

    @property
    def identity(self) -> ObjectIdentity:
        return ObjectIdentity(group_kind=self.group_kind(), key=self.key)


# ---------------------------------------------------------------------------
# Core / discovery
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class Service(KubeObject):
    KIND: ClassVar[str] = "Service"

    selector: dict[str, str] = field(default_factory=dict)
    ports: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class EndpointSubset:
    addresses: tuple[str, ...] = ()
    not_ready_addresses: tuple[str, ...] = ()
    ports: tuple[int, ...] = ()


@dataclass(kw_only=True)
class Endpoints(KubeObject):
    """Shares its identity with the Service it belongs to."""

    KIND: ClassVar[str] = "Endpoints"

    subsets: list[EndpointSubset] = field(default_factory=list)


@dataclass(kw_only=True)
class EndpointSlice(KubeObject):
    GROUP: ClassVar[str] = DISCOVERY_GROUP
    KIND: ClassVar[str] = "EndpointSlice"

    addresses: list[str] = field(default_factory=list)

    @property
    def service_name(self) -> str | None:
        return self.labels.get(SERVICE_NAME_LABEL)


@dataclass(kw_only=True)
class Pod(KubeObject):
    KIND: ClassVar[str] = "Pod"

    readiness_gates: list[str] = field(default_factory=list)
    conditions: list[Condition] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Gateway API
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Listener:
    name: str
    port: int
    protocol: str
    hostname: str | None = None


@dataclass
class GatewaySpec:
    gateway_class_name: str
    listeners: list[Listener] = field(default_factory=list)
    fingerprint: str = ""  # canonical JSON of the whole spec; any change is a spec change


@dataclass
class GatewayStatus:
    conditions: list[Condition] = field(default_factory=list)


@dataclass(kw_only=True)
class Gateway(KubeObject):
    GROUP: ClassVar[str] = GATEWAY_API_GROUP
    KIND: ClassVar[str] = "Gateway"

    spec: GatewaySpec
    status: GatewayStatus = field(default_factory=GatewayStatus)


@dataclass(kw_only=True)
class GatewayClass(KubeObject):
    GROUP: ClassVar[str] = GATEWAY_API_GROUP
    KIND: ClassVar[str] = "GatewayClass"
    NAMESPACED: ClassVar[bool] = False

    controller_name: str


# ---------------------------------------------------------------------------
# Multi-cluster
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class ServiceExport(KubeObject):
    """Marks the co-named Service as exported to other clusters."""

    GROUP: ClassVar[str] = APPLICATION_NETWORKING_GROUP
    KIND: ClassVar[str] = "ServiceExport"


@dataclass(kw_only=True)
class ServiceImport(KubeObject):
    GROUP: ClassVar[str] = APPLICATION_NETWORKING_GROUP
    KIND: ClassVar[str] = "ServiceImport"

    ports: list[int] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Condition helpers
# ---------------------------------------------------------------------------


def find_condition(conditions: list[Condition], condition_type: str) -> Condition | None:
    for condition in conditions:
        if condition.type == condition_type:
            return condition
    return None


def set_condition(conditions: list[Condition], new: Condition, now: datetime | None = None) -> None:
    """Insert or update ``new`` in place.

    The transition time only moves when the status changes. A zero
    transition time on ``new`` is replaced by ``now``.
    """
    now = now or datetime.now(UTC)
    existing = find_condition(conditions, new.type)
    if existing is None:
        if new.last_transition_time == ZERO_TIME:
            new.last_transition_time = now
        conditions.append(new)
        return

    if existing.status != new.status:
        existing.status = new.status
        existing.last_transition_time = new.last_transition_time if new.last_transition_time != ZERO_TIME else now
    existing.reason = new.reason
    existing.message = new.message
    existing.observed_generation = new.observed_generation
