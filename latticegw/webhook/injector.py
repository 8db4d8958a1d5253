"""Pod mutation: append the readiness gate when the decider asks for it."""

from __future__ import annotations

from latticegw.models.resources import Pod
from latticegw.observability.logging import get_logger
from latticegw.webhook.readiness import (
    READINESS_GATE_CONDITION_TYPE,
    PodReadinessGateDecider,
    pod_has_readiness_gate,
)

_log = get_logger("webhook.injector")


class PodReadinessGateInjector:
    def __init__(self, decider: PodReadinessGateDecider) -> None:
        self._decider = decider

    async def mutate(self, pod: Pod) -> bool:
        """Append the gate in place. Returns True when the pod was changed.

        Existing gates are left untouched and the gate is never duplicated.
        """
        if pod_has_readiness_gate(pod):
            return False
        if not await self._decider.requires_readiness_gate(pod):
            return False
        pod.readiness_gates.append(READINESS_GATE_CONDITION_TYPE)
        _log.info("readiness_gate_injected", pod=str(pod.key))
        return True
