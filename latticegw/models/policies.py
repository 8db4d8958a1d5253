"""Policy attachment models.

Every policy attaches to exactly one target through ``target_ref``. The
effective target namespace is the policy's own namespace unless the
reference names one explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import ClassVar

from latticegw.models.resources import (
    APPLICATION_NETWORKING_GROUP,
    CORE_GROUP,
    GATEWAY_API_GROUP,
    Condition,
    GroupKind,
    KubeObject,
    NamespacedName,
    ObjectIdentity,
)

SERVICE_GK = GroupKind(CORE_GROUP, "Service")
GATEWAY_GK = GroupKind(GATEWAY_API_GROUP, "Gateway")
HTTPROUTE_GK = GroupKind(GATEWAY_API_GROUP, "HTTPRoute")
GRPCROUTE_GK = GroupKind(GATEWAY_API_GROUP, "GRPCRoute")
TLSROUTE_GK = GroupKind(GATEWAY_API_GROUP, "TLSRoute")
SERVICE_EXPORT_GK = GroupKind(APPLICATION_NETWORKING_GROUP, "ServiceExport")

ACCEPTED_CONDITION = "Accepted"


class PolicyConditionReason(StrEnum):
    """Reasons carried by a policy's Accepted condition."""

    ACCEPTED = "Accepted"
    INVALID = "Invalid"
    TARGET_NOT_FOUND = "TargetNotFound"
    CONFLICTED = "Conflicted"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class TargetRef:
    group: str
    kind: str
    name: str
    namespace: str | None = None

    @property
    def group_kind(self) -> GroupKind:
        return GroupKind(self.group, self.kind)


@dataclass(kw_only=True)
class Policy(KubeObject):
    """Base class of every policy kind."""

    GROUP: ClassVar[str] = APPLICATION_NETWORKING_GROUP
    TARGET_KINDS: ClassVar[frozenset[GroupKind]] = frozenset()

    target_ref: TargetRef | None = None
    conditions: list[Condition] = field(default_factory=list)

    def target_namespace(self) -> str:
        if self.target_ref is not None and self.target_ref.namespace is not None:
            return self.target_ref.namespace
        return self.namespace

    def target_identity(self) -> ObjectIdentity | None:
        """Identity the target reference resolves to, or None without a reference."""
        if self.target_ref is None:
            return None
        return ObjectIdentity(
            group_kind=self.target_ref.group_kind,
            key=NamespacedName(namespace=self.target_namespace(), name=self.target_ref.name),
        )

    def conflict_key(self) -> tuple[object, ...]:
        """Policies sharing a conflict key compete for the same target slot."""
        return (self.target_identity(),)


@dataclass(kw_only=True)
class TargetGroupPolicy(Policy):
    KIND: ClassVar[str] = "TargetGroupPolicy"
    TARGET_KINDS: ClassVar[frozenset[GroupKind]] = frozenset({SERVICE_GK})

    protocol: str | None = None
    protocol_version: str | None = None
    health_check: dict[str, object] | None = None


@dataclass(kw_only=True)
class VpcAssociationPolicy(Policy):
    KIND: ClassVar[str] = "VpcAssociationPolicy"
    TARGET_KINDS: ClassVar[frozenset[GroupKind]] = frozenset({GATEWAY_GK})

    security_group_ids: list[str] = field(default_factory=list)
    associate_with_vpc: bool | None = None


@dataclass(kw_only=True)
class IAMAuthPolicy(Policy):
    KIND: ClassVar[str] = "IAMAuthPolicy"
    TARGET_KINDS: ClassVar[frozenset[GroupKind]] = frozenset(
        {GATEWAY_GK, HTTPROUTE_GK, GRPCROUTE_GK, TLSROUTE_GK}
    )

    policy: str = ""


@dataclass(kw_only=True)
class AccessLogPolicy(Policy):
    KIND: ClassVar[str] = "AccessLogPolicy"
    TARGET_KINDS: ClassVar[frozenset[GroupKind]] = frozenset(
        {GATEWAY_GK, HTTPROUTE_GK, GRPCROUTE_GK, TLSROUTE_GK}
    )

    destination_arn: str | None = None

    @property
    def destination_type(self) -> str:
        """Service segment of the destination ARN: ``s3``, ``logs`` or ``firehose``."""
        if not self.destination_arn:
            return ""
        parts = self.destination_arn.split(":")
        return parts[2] if len(parts) > 2 else ""

    def conflict_key(self) -> tuple[object, ...]:
        return (self.target_identity(), self.destination_type)


POLICY_CLASSES: tuple[type[Policy], ...] = (
    TargetGroupPolicy,
    VpcAssociationPolicy,
    IAMAuthPolicy,
    AccessLogPolicy,
)
