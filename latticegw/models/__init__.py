"""Core data structures for latticegw."""

from latticegw.models.config import LatticeGWConfig
from latticegw.models.policies import (
    AccessLogPolicy,
    IAMAuthPolicy,
    Policy,
    PolicyConditionReason,
    TargetGroupPolicy,
    TargetRef,
    VpcAssociationPolicy,
)
from latticegw.models.resources import (
    Condition,
    Endpoints,
    EndpointSlice,
    Gateway,
    GatewayClass,
    GroupKind,
    KubeObject,
    NamespacedName,
    ObjectIdentity,
    Pod,
    Service,
    ServiceExport,
    ServiceImport,
)
from latticegw.models.routes import (
    BackendRef,
    GRPCRoute,
    HTTPRoute,
    ParentRef,
    Route,
    RouteType,
    TLSRoute,
)

MODEL_CLASSES: tuple[type[KubeObject], ...] = (
    Service,
    Endpoints,
    EndpointSlice,
    Pod,
    Gateway,
    GatewayClass,
    ServiceExport,
    ServiceImport,
    HTTPRoute,
    GRPCRoute,
    TLSRoute,
    TargetGroupPolicy,
    VpcAssociationPolicy,
    IAMAuthPolicy,
    AccessLogPolicy,
)

KIND_REGISTRY: dict[GroupKind, type[KubeObject]] = {cls.group_kind(): cls for cls in MODEL_CLASSES}

__all__ = [
    "KIND_REGISTRY",
    "MODEL_CLASSES",
    "AccessLogPolicy",
    "BackendRef",
    "Condition",
    "EndpointSlice",
    "Endpoints",
    "GRPCRoute",
    "Gateway",
    "GatewayClass",
    "GroupKind",
    "HTTPRoute",
    "IAMAuthPolicy",
    "KubeObject",
    "LatticeGWConfig",
    "NamespacedName",
    "ObjectIdentity",
    "ParentRef",
    "Pod",
    "Policy",
    "PolicyConditionReason",
    "Route",
    "RouteType",
    "Service",
    "ServiceExport",
    "ServiceImport",
    "TLSRoute",
    "TargetGroupPolicy",
    "TargetRef",
    "VpcAssociationPolicy",
]
