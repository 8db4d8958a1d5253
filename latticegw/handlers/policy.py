"""Any object -> the policies of one kind attached to it.

Policies re-validate when their target changes, so a target event enqueues
the attached policies' own keys.
"""

from __future__ import annotations

from typing import Generic, TypeVar

from latticegw.handlers.base import MapFuncHandler
from latticegw.models.policies import AccessLogPolicy, IAMAuthPolicy, Policy
from latticegw.models.resources import KubeObject, NamespacedName
from latticegw.observability.logging import get_logger
from latticegw.observability.metrics import store_errors_total
from latticegw.resolve.policies import get_attached_policies
from latticegw.store.base import ObjectStore, StoreError

_log = get_logger("handlers.policy")

P = TypeVar("P", bound=Policy)


class PolicyEventHandler(Generic[P]):
    def __init__(self, store: ObjectStore, policy_cls: type[P]) -> None:
        self._store = store
        self._policy_cls = policy_cls

    def map_object_to_policy(self) -> MapFuncHandler:
        return MapFuncHandler(f"object_to_{self._policy_cls.KIND.lower()}", self.policies_for)

    async def policies_for(self, obj: KubeObject) -> list[NamespacedName]:
        try:
            policies = await get_attached_policies(self._store, obj.identity, self._policy_cls)
        except StoreError as exc:
            _log.error(
                "attached_policy_list_failed",
                kind=self._policy_cls.KIND,
                target=str(obj.identity),
                error=str(exc),
            )
            store_errors_total.labels(operation="list_policies").inc()
            return []
        return [p.key for p in policies]


def route_to_iam_auth_policy(store: ObjectStore) -> MapFuncHandler:
    return PolicyEventHandler(store, IAMAuthPolicy).map_object_to_policy()


def route_to_access_log_policy(store: ObjectStore) -> MapFuncHandler:
    return PolicyEventHandler(store, AccessLogPolicy).map_object_to_policy()
