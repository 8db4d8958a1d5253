"""Decode raw Kubernetes JSON (camelCase dicts) into latticegw models.

Decoders are lenient: unknown fields are ignored and missing optional fields
become None or empty collections. Anything the resolvers treat as
"malformed" (no parentRefs, no targetRef) is passed through as absent rather
than rejected here.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

from latticegw.models.policies import (
    AccessLogPolicy,
    IAMAuthPolicy,
    Policy,
    TargetGroupPolicy,
    TargetRef,
    VpcAssociationPolicy,
)
from latticegw.models.resources import (
    ZERO_TIME,
    Condition,
    Endpoints,
    EndpointSlice,
    EndpointSubset,
    Gateway,
    GatewayClass,
    GatewaySpec,
    GatewayStatus,
    KubeObject,
    Listener,
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
    RouteParentStatus,
    RouteRule,
    RouteSpec,
    RouteStatus,
    TLSRoute,
)

T = TypeVar("T", bound=KubeObject)

Raw = dict[str, Any]


class DecodeError(ValueError):
    """Raised when a raw object lacks the fields every object must have."""


def parse_time(value: object) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _meta(raw: Raw) -> dict[str, Any]:
    metadata = raw.get("metadata") or {}
    name = metadata.get("name")
    if not name:
        raise DecodeError(f"object without metadata.name: kind={raw.get('kind', '?')}")
    return {
        "name": name,
        "namespace": metadata.get("namespace") or "",
        "labels": dict(metadata.get("labels") or {}),
        "annotations": dict(metadata.get("annotations") or {}),
        "creation_timestamp": parse_time(metadata.get("creationTimestamp")),
        "generation": int(metadata.get("generation") or 0),
        "resource_version": str(metadata.get("resourceVersion") or ""),
    }


def _spec(raw: Raw) -> Raw:
    return raw.get("spec") or {}


def _status(raw: Raw) -> Raw:
    return raw.get("status") or {}


def _conditions(items: list[Raw] | None) -> list[Condition]:
    return [
        Condition(
            type=item.get("type", ""),
            status=item.get("status", "Unknown"),
            reason=item.get("reason") or "",
            message=item.get("message") or "",
            observed_generation=int(item.get("observedGeneration") or 0),
            last_transition_time=parse_time(item.get("lastTransitionTime")) or ZERO_TIME,
        )
        for item in items or []
    ]


def _ports(items: list[Raw] | None) -> list[int]:
    return [int(p["port"]) for p in items or [] if p.get("port") is not None]


def _optional_int(value: object) -> int | None:
    return None if value is None else int(value)  # type: ignore[call-overload]


# ---------------------------------------------------------------------------
# Core / discovery
# ---------------------------------------------------------------------------


def _decode_service(raw: Raw) -> Service:
    spec = _spec(raw)
    return Service(**_meta(raw), selector=dict(spec.get("selector") or {}), ports=_ports(spec.get("ports")))


def _decode_endpoints(raw: Raw) -> Endpoints:
    subsets = [
        EndpointSubset(
            addresses=tuple(a.get("ip", "") for a in s.get("addresses") or []),
            not_ready_addresses=tuple(a.get("ip", "") for a in s.get("notReadyAddresses") or []),
            ports=tuple(_ports(s.get("ports"))),
        )
        for s in raw.get("subsets") or []
    ]
    return Endpoints(**_meta(raw), subsets=subsets)


def _decode_endpoint_slice(raw: Raw) -> EndpointSlice:
    addresses = [addr for ep in raw.get("endpoints") or [] for addr in ep.get("addresses") or []]
    return EndpointSlice(**_meta(raw), addresses=addresses)


def _decode_pod(raw: Raw) -> Pod:
    gates = [g.get("conditionType", "") for g in _spec(raw).get("readinessGates") or []]
    return Pod(**_meta(raw), readiness_gates=gates, conditions=_conditions(_status(raw).get("conditions")))


# ---------------------------------------------------------------------------
# Gateway API
# ---------------------------------------------------------------------------


def _decode_gateway(raw: Raw) -> Gateway:
    spec = _spec(raw)
    listeners = [
        Listener(
            name=item.get("name", ""),
            port=int(item.get("port") or 0),
            protocol=item.get("protocol", ""),
            hostname=item.get("hostname"),
        )
        for item in spec.get("listeners") or []
    ]
    return Gateway(
        **_meta(raw),
        spec=GatewaySpec(
            gateway_class_name=spec.get("gatewayClassName", ""),
            listeners=listeners,
            fingerprint=json.dumps(spec, sort_keys=True, default=str),
        ),
        status=GatewayStatus(conditions=_conditions(_status(raw).get("conditions"))),
    )


def _decode_gateway_class(raw: Raw) -> GatewayClass:
    return GatewayClass(**_meta(raw), controller_name=_spec(raw).get("controllerName", ""))


def _parent_ref(item: Raw) -> ParentRef:
    return ParentRef(
        name=item.get("name", ""),
        namespace=item.get("namespace"),
        section_name=item.get("sectionName"),
        group=item.get("group"),
        kind=item.get("kind"),
        port=_optional_int(item.get("port")),
    )


def _backend_ref(item: Raw) -> BackendRef:
    return BackendRef(
        name=item.get("name", ""),
        group=item.get("group"),
        kind=item.get("kind"),
        namespace=item.get("namespace"),
        port=_optional_int(item.get("port")),
        weight=_optional_int(item.get("weight")),
    )


def _route_parts(raw: Raw) -> dict[str, Any]:
    spec = _spec(raw)
    rules = [
        RouteRule(
            backend_refs=tuple(_backend_ref(ref) for ref in rule.get("backendRefs") or []),
            fingerprint=json.dumps(rule, sort_keys=True, default=str),
        )
        for rule in spec.get("rules") or []
    ]
    parents = [
        RouteParentStatus(
            parent_ref=_parent_ref(item.get("parentRef") or {}),
            controller_name=item.get("controllerName", ""),
            conditions=_conditions(item.get("conditions")),
        )
        for item in _status(raw).get("parents") or []
    ]
    return {
        "spec": RouteSpec(
            parent_refs=[_parent_ref(p) for p in spec.get("parentRefs") or []],
            hostnames=list(spec.get("hostnames") or []),
            rules=rules,
        ),
        "status": RouteStatus(parents=parents),
    }


def _route_decoder(cls: type[Route]) -> Callable[[Raw], Route]:
    def _decode(raw: Raw) -> Route:
        return cls(**_meta(raw), **_route_parts(raw))

    return _decode


# ---------------------------------------------------------------------------
# Multi-cluster and policies
# ---------------------------------------------------------------------------


def _decode_service_export(raw: Raw) -> ServiceExport:
    return ServiceExport(**_meta(raw))


def _decode_service_import(raw: Raw) -> ServiceImport:
    return ServiceImport(**_meta(raw), ports=_ports(_spec(raw).get("ports")))


def _policy_common(raw: Raw) -> dict[str, Any]:
    ref = _spec(raw).get("targetRef")
    target_ref = None
    if ref:
        target_ref = TargetRef(
            group=ref.get("group") or "",
            kind=ref.get("kind") or "",
            name=ref.get("name") or "",
            namespace=ref.get("namespace"),
        )
    return {
        **_meta(raw),
        "target_ref": target_ref,
        "conditions": _conditions(_status(raw).get("conditions")),
    }


def _decode_target_group_policy(raw: Raw) -> Policy:
    spec = _spec(raw)
    return TargetGroupPolicy(
        **_policy_common(raw),
        protocol=spec.get("protocol"),
        protocol_version=spec.get("protocolVersion"),
        health_check=spec.get("healthCheck"),
    )


def _decode_vpc_association_policy(raw: Raw) -> Policy:
    spec = _spec(raw)
    return VpcAssociationPolicy(
        **_policy_common(raw),
        security_group_ids=list(spec.get("securityGroupIds") or []),
        associate_with_vpc=spec.get("associateWithVpc"),
    )


def _decode_iam_auth_policy(raw: Raw) -> Policy:
    return IAMAuthPolicy(**_policy_common(raw), policy=_spec(raw).get("policy") or "")


def _decode_access_log_policy(raw: Raw) -> Policy:
    return AccessLogPolicy(**_policy_common(raw), destination_arn=_spec(raw).get("destinationArn"))


_DECODERS: dict[type[KubeObject], Callable[[Raw], KubeObject]] = {
    Service: _decode_service,
    Endpoints: _decode_endpoints,
    EndpointSlice: _decode_endpoint_slice,
    Pod: _decode_pod,
    Gateway: _decode_gateway,
    GatewayClass: _decode_gateway_class,
    HTTPRoute: _route_decoder(HTTPRoute),
    GRPCRoute: _route_decoder(GRPCRoute),
    TLSRoute: _route_decoder(TLSRoute),
    ServiceExport: _decode_service_export,
    ServiceImport: _decode_service_import,
    TargetGroupPolicy: _decode_target_group_policy,
    VpcAssociationPolicy: _decode_vpc_association_policy,
    IAMAuthPolicy: _decode_iam_auth_policy,
    AccessLogPolicy: _decode_access_log_policy,
}


def decode(cls: type[T], raw: Raw) -> T:
    """Decode one raw object into an instance of ``cls``."""
    try:
        decoder = _DECODERS[cls]
    except KeyError:
        raise DecodeError(f"no decoder registered for {cls.__name__}") from None
    return decoder(raw)  # type: ignore[return-value]
