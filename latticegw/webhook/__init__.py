"""Pod readiness gate admission webhook."""

from latticegw.webhook.injector import PodReadinessGateInjector
from latticegw.webhook.readiness import (
    READINESS_GATE_CONDITION_TYPE,
    PodReadinessGateDecider,
    find_pod_condition,
    pod_has_readiness_gate,
    set_pod_condition,
)

__all__ = [
    "READINESS_GATE_CONDITION_TYPE",
    "PodReadinessGateDecider",
    "PodReadinessGateInjector",
    "find_pod_condition",
    "pod_has_readiness_gate",
    "set_pod_condition",
]
