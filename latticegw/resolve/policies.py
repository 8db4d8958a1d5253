"""Policy attachment resolution and acceptance.

``get_attached_policies`` answers "which policies of this kind reference
this object" and is used to decide what to re-trigger. Acceptance (exactly
one policy per target slot, oldest wins) is decided by ``PolicyHandler`` and
``resolve_acceptance``.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Generic, TypeVar

from latticegw.models import KIND_REGISTRY
from latticegw.models.policies import ACCEPTED_CONDITION, Policy, PolicyConditionReason
from latticegw.models.resources import (
    ZERO_TIME,
    Condition,
    GroupKind,
    KubeObject,
    NamespacedName,
    ObjectIdentity,
    set_condition,
)
from latticegw.observability.logging import get_logger
from latticegw.store.base import NotFoundError, ObjectStore, StoreError

_log = get_logger("resolve.policies")

P = TypeVar("P", bound=Policy)


async def get_attached_policies(store: ObjectStore, target: ObjectIdentity, policy_cls: type[P]) -> list[P]:
    """Policies of ``policy_cls`` whose effective targetRef is ``target``.

    Only the target's namespace is listed. No ordering is guaranteed.
    Raises StoreError when the list fails.
    """
    policies = await store.list(policy_cls, target.key.namespace)
    return [p for p in policies if p.target_identity() == target]


def _precedence_key(policy: Policy) -> tuple[datetime, str, str]:
    return (policy.creation_timestamp or ZERO_TIME, policy.namespace, policy.name)


def sort_by_precedence(policies: Iterable[P]) -> list[P]:
    """Oldest first; equal timestamps fall back to namespace then name."""
    return sorted(policies, key=_precedence_key)


async def get_valid_policy(store: ObjectStore, target: ObjectIdentity, policy_cls: type[P]) -> P | None:
    """The precedence winner among the policies attached to ``target``."""
    policies = sort_by_precedence(await get_attached_policies(store, target, policy_cls))
    return policies[0] if policies else None


def _static_reason(policy: Policy, target_kinds: frozenset[GroupKind]) -> PolicyConditionReason | None:
    """Reason decidable from the policy alone, or None when it looks valid."""
    ref = policy.target_ref
    if ref is None or ref.group_kind not in target_kinds:
        return PolicyConditionReason.INVALID
    if ref.namespace is not None and ref.namespace != policy.namespace:
        return PolicyConditionReason.INVALID
    return None


def resolve_acceptance(
    policies: Iterable[P], target_kinds: frozenset[GroupKind] | None = None
) -> dict[NamespacedName, PolicyConditionReason]:
    """Acceptance of every policy in a set, assuming all targets exist.

    Within each conflict key the oldest policy is Accepted and the rest are
    Conflicted. Removing the winner from the set promotes the next oldest.
    """
    result: dict[NamespacedName, PolicyConditionReason] = {}
    groups: dict[tuple[object, ...], list[P]] = {}
    for policy in policies:
        kinds = target_kinds if target_kinds is not None else policy.TARGET_KINDS
        reason = _static_reason(policy, kinds)
        if reason is not None:
            result[policy.key] = reason
            continue
        groups.setdefault(policy.conflict_key(), []).append(policy)

    for members in groups.values():
        winner, *rest = sort_by_precedence(members)
        result[winner.key] = PolicyConditionReason.ACCEPTED
        for policy in rest:
            result[policy.key] = PolicyConditionReason.CONFLICTED
    return result


class PolicyHandler(Generic[P]):
    """Common operations for one policy kind.

    Args:
        store:        Object store to resolve targets and list policies.
        policy_cls:   Concrete policy class this handler works on.
        target_kinds: Supported target GroupKinds; defaults to the class's.
    """

    def __init__(
        self,
        store: ObjectStore,
        policy_cls: type[P],
        target_kinds: frozenset[GroupKind] | None = None,
    ) -> None:
        self._store = store
        self.policy_cls = policy_cls
        self.target_kinds = target_kinds if target_kinds is not None else policy_cls.TARGET_KINDS

    async def obj_policies(self, target: KubeObject) -> list[P]:
        """All policies attached to ``target``, including conflicting ones."""
        return await get_attached_policies(self._store, target.identity, self.policy_cls)

    async def obj_resolved_policy(self, target: KubeObject) -> P | None:
        """At most one policy for ``target``: the precedence winner."""
        policies = sort_by_precedence(await self.obj_policies(target))
        return policies[0] if policies else None

    async def validate_target_ref(self, policy: P) -> PolicyConditionReason:
        """Decide the Accepted reason of ``policy`` against current state."""
        policy_name = str(policy.key)
        reason = _static_reason(policy, self.target_kinds)
        if reason is not None:
            _log.info("policy_target_ref_invalid", policy=policy_name, kind=policy.KIND)
            return reason

        identity = policy.target_identity()
        assert identity is not None
        target_cls = KIND_REGISTRY.get(identity.group_kind)
        if target_cls is None:
            return PolicyConditionReason.INVALID

        try:
            target = await self._store.get(target_cls, identity.key)
        except NotFoundError:
            _log.info("policy_target_not_found", policy=policy_name, target=str(identity))
            return PolicyConditionReason.TARGET_NOT_FOUND
        except StoreError as exc:
            _log.error("policy_target_lookup_failed", policy=policy_name, target=str(identity), error=str(exc))
            return PolicyConditionReason.UNKNOWN

        try:
            attached = await self.obj_policies(target)
        except StoreError as exc:
            _log.error("policy_list_failed", policy=policy_name, error=str(exc))
            return PolicyConditionReason.UNKNOWN

        peers = sort_by_precedence(p for p in attached if p.conflict_key() == policy.conflict_key())
        if peers and peers[0].key != policy.key:
            _log.info("policy_conflicted", policy=policy_name, winner=str(peers[0].key))
            return PolicyConditionReason.CONFLICTED
        return PolicyConditionReason.ACCEPTED

    def accepted_condition(self, policy: P, reason: PolicyConditionReason, message: str = "") -> Condition:
        return Condition(
            type=ACCEPTED_CONDITION,
            status="True" if reason == PolicyConditionReason.ACCEPTED else "False",
            reason=str(reason),
            message=message,
            observed_generation=policy.generation,
        )

    async def validate_and_update_condition(self, policy: P, now: datetime | None = None) -> PolicyConditionReason:
        """Validate and record the result in ``policy.conditions`` (in memory)."""
        reason = await self.validate_target_ref(policy)
        set_condition(policy.conditions, self.accepted_condition(policy, reason), now)
        return reason
