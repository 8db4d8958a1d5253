"""Tests for policy attachment, precedence and acceptance."""

from __future__ import annotations

import random
from datetime import UTC, datetime, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from latticegw.models import (
    AccessLogPolicy,
    Gateway,
    HTTPRoute,
    IAMAuthPolicy,
    NamespacedName,
    PolicyConditionReason,
    TargetGroupPolicy,
    TargetRef,
)
from latticegw.models.policies import ACCEPTED_CONDITION, GATEWAY_GK, SERVICE_GK
from latticegw.models.resources import ZERO_TIME, Condition, find_condition
from latticegw.resolve.policies import (
    PolicyHandler,
    get_attached_policies,
    get_valid_policy,
    resolve_acceptance,
    sort_by_precedence,
)
from latticegw.store.base import StoreError
from tests.fakes import InMemoryStore, raw_gateway, raw_policy, raw_route, raw_service, target

_T1 = "2026-03-01T10:00:00Z"
_T2 = "2026-03-01T11:00:00Z"
_T3 = "2026-03-01T12:00:00Z"

_S3_BUCKET = "arn:aws:s3:::access-logs"
_S3_OTHER_BUCKET = "arn:aws:s3:::other-logs"
_LOG_GROUP = "arn:aws:logs:us-west-2:123456789012:log-group:access"

_BASE = datetime(2026, 1, 1, tzinfo=UTC)


def _make_policy(name: str, offset_minutes: int | None, namespace: str = "default") -> TargetGroupPolicy:
    created = _BASE + timedelta(minutes=offset_minutes) if offset_minutes is not None else None
    return TargetGroupPolicy(
        name=name,
        namespace=namespace,
        creation_timestamp=created,
        target_ref=TargetRef(group="", kind="Service", name="svc"),
    )


def _make_access_log(name: str, destination_arn: str, offset_hours: int) -> AccessLogPolicy:
    return AccessLogPolicy(
        name=name,
        namespace="default",
        creation_timestamp=_BASE + timedelta(hours=offset_hours),
        target_ref=TargetRef(group="gateway.networking.k8s.io", kind="Gateway", name="gw"),
        destination_arn=destination_arn,
    )


# ---------------------------------------------------------------------------
# Precedence
# ---------------------------------------------------------------------------


class TestSortByPrecedence:
    def test_oldest_first(self) -> None:
        newer, older = _make_policy("b", 10), _make_policy("a", 5)
        assert [p.name for p in sort_by_precedence([newer, older])] == ["a", "b"]

    def test_ties_break_on_namespace_then_name(self) -> None:
        policies = [_make_policy("b", 0, "ns2"), _make_policy("z", 0, "ns1"), _make_policy("a", 0, "ns2")]
        assert [str(p.key) for p in sort_by_precedence(policies)] == ["ns1/z", "ns2/a", "ns2/b"]

    def test_missing_timestamp_sorts_first(self) -> None:
        policies = [_make_policy("dated", 0), _make_policy("undated", None)]
        assert sort_by_precedence(policies)[0].name == "undated"

    @given(
        offsets=st.lists(st.integers(min_value=0, max_value=10_000), min_size=1, max_size=12),
        seed=st.randoms(use_true_random=False),
    )
    def test_order_independent_of_input_order(self, offsets: list[int], seed: random.Random) -> None:
        policies = [_make_policy(f"p{i}", off) for i, off in enumerate(offsets)]
        shuffled = list(policies)
        seed.shuffle(shuffled)
        assert [p.key for p in sort_by_precedence(policies)] == [p.key for p in sort_by_precedence(shuffled)]


# ---------------------------------------------------------------------------
# Attachment lookups
# ---------------------------------------------------------------------------


class TestGetAttachedPolicies:
    async def test_implicit_namespace_attaches_in_own_namespace(self, store: InMemoryStore) -> None:
        service = store.add(raw_service("svc", "default"))
        store.add(raw_policy("TargetGroupPolicy", "tgp", "default", target_ref=target("Service", "svc")))

        attached = await get_attached_policies(store, service.identity, TargetGroupPolicy)

        assert [p.name for p in attached] == ["tgp"]

    async def test_explicit_other_namespace_does_not_attach(self, store: InMemoryStore) -> None:
        service = store.add(raw_service("svc", "default"))
        store.add(
            raw_policy("TargetGroupPolicy", "tgp", "default", target_ref=target("Service", "svc", namespace="other"))
        )

        assert await get_attached_policies(store, service.identity, TargetGroupPolicy) == []

    async def test_explicit_namespace_equal_to_target(self, store: InMemoryStore) -> None:
        service = store.add(raw_service("svc", "default"))
        store.add(
            raw_policy(
                "TargetGroupPolicy", "tgp", "default", target_ref=target("Service", "svc", namespace="default")
            )
        )

        assert len(await get_attached_policies(store, service.identity, TargetGroupPolicy)) == 1

    async def test_policy_elsewhere_does_not_attach(self, store: InMemoryStore) -> None:
        service = store.add(raw_service("svc", "default"))
        store.add(raw_policy("TargetGroupPolicy", "tgp", "other", target_ref=target("Service", "svc")))

        assert await get_attached_policies(store, service.identity, TargetGroupPolicy) == []

    async def test_kind_must_match(self, store: InMemoryStore) -> None:
        gateway = store.add(raw_gateway("svc", "default"))
        store.add(raw_policy("IAMAuthPolicy", "iam", "default", target_ref=target("HTTPRoute", "svc")))

        assert await get_attached_policies(store, gateway.identity, IAMAuthPolicy) == []

    async def test_list_failure_propagates(self, store: InMemoryStore) -> None:
        service = store.add(raw_service("svc", "default"))
        store.fail_on[TargetGroupPolicy] = StoreError("forbidden")

        with pytest.raises(StoreError):
            await get_attached_policies(store, service.identity, TargetGroupPolicy)

    async def test_get_valid_policy_returns_oldest(self, store: InMemoryStore) -> None:
        service = store.add(raw_service("svc", "default"))
        store.add(raw_policy("TargetGroupPolicy", "new", target_ref=target("Service", "svc"), created=_T2))
        store.add(raw_policy("TargetGroupPolicy", "old", target_ref=target("Service", "svc"), created=_T1))

        winner = await get_valid_policy(store, service.identity, TargetGroupPolicy)

        assert winner is not None
        assert winner.name == "old"


# ---------------------------------------------------------------------------
# Acceptance
# ---------------------------------------------------------------------------


class TestResolveAcceptance:
    def test_single_winner_per_target(self) -> None:
        policies = [_make_policy("a", 0), _make_policy("b", 1), _make_policy("c", 2)]
        result = resolve_acceptance(policies)
        assert result[NamespacedName("default", "a")] == PolicyConditionReason.ACCEPTED
        assert result[NamespacedName("default", "b")] == PolicyConditionReason.CONFLICTED
        assert result[NamespacedName("default", "c")] == PolicyConditionReason.CONFLICTED

    def test_missing_ref_and_unsupported_kind_are_invalid(self) -> None:
        no_ref = TargetGroupPolicy(name="no-ref", namespace="default")
        bad_kind = TargetGroupPolicy(
            name="bad-kind", namespace="default", target_ref=TargetRef(group="", kind="Pod", name="p")
        )
        result = resolve_acceptance([no_ref, bad_kind])
        assert set(result.values()) == {PolicyConditionReason.INVALID}

    def test_explicit_cross_namespace_is_invalid(self) -> None:
        policy = TargetGroupPolicy(
            name="x",
            namespace="default",
            target_ref=TargetRef(group="", kind="Service", name="svc", namespace="other"),
        )
        assert resolve_acceptance([policy])[policy.key] == PolicyConditionReason.INVALID

    def test_target_kinds_override(self) -> None:
        policy = _make_policy("a", 0)
        assert resolve_acceptance([policy], frozenset({GATEWAY_GK}))[policy.key] == PolicyConditionReason.INVALID
        assert resolve_acceptance([policy], frozenset({SERVICE_GK}))[policy.key] == PolicyConditionReason.ACCEPTED

    def test_access_log_destinations_conflict_by_type(self) -> None:
        s3_old = _make_access_log("s3-old", _S3_BUCKET, 0)
        s3_new = _make_access_log("s3-new", _S3_OTHER_BUCKET, 1)
        logs = _make_access_log("logs", _LOG_GROUP, 2)

        result = resolve_acceptance([s3_new, logs, s3_old])

        assert result[s3_old.key] == PolicyConditionReason.ACCEPTED
        assert result[s3_new.key] == PolicyConditionReason.CONFLICTED
        assert result[logs.key] == PolicyConditionReason.ACCEPTED

    @given(offsets=st.lists(st.integers(min_value=0, max_value=1_000), min_size=1, max_size=10, unique=True))
    def test_exactly_one_accepted_per_target(self, offsets: list[int]) -> None:
        policies = [_make_policy(f"p{i}", off) for i, off in enumerate(offsets)]
        result = resolve_acceptance(policies)
        accepted = [k for k, v in result.items() if v == PolicyConditionReason.ACCEPTED]
        assert len(accepted) == 1
        oldest = min(policies, key=lambda p: p.creation_timestamp or ZERO_TIME)
        assert accepted == [oldest.key]


def _add_access_log(store: InMemoryStore, name: str, created: str, destination_arn: str) -> AccessLogPolicy:
    policy = store.add(
        raw_policy(
            "AccessLogPolicy",
            name,
            target_ref=target("Gateway", "gw"),
            created=created,
            destinationArn=destination_arn,
        )
    )
    assert isinstance(policy, AccessLogPolicy)
    return policy


class TestPolicyHandler:
    async def test_access_log_conflict_then_promotion(self, store: InMemoryStore) -> None:
        store.add(raw_gateway("gw", "default"))
        first = _add_access_log(store, "first", _T1, _S3_BUCKET)
        second = _add_access_log(store, "second", _T2, _S3_OTHER_BUCKET)
        handler = PolicyHandler(store, AccessLogPolicy)

        assert await handler.validate_target_ref(first) == PolicyConditionReason.ACCEPTED
        assert await handler.validate_target_ref(second) == PolicyConditionReason.CONFLICTED

        store.remove(AccessLogPolicy, first.key)

        assert await handler.validate_target_ref(second) == PolicyConditionReason.ACCEPTED

    async def test_different_destination_types_both_accepted(self, store: InMemoryStore) -> None:
        store.add(raw_gateway("gw", "default"))
        s3 = _add_access_log(store, "s3", _T1, _S3_BUCKET)
        logs = _add_access_log(store, "logs", _T2, _LOG_GROUP)
        handler = PolicyHandler(store, AccessLogPolicy)

        assert await handler.validate_target_ref(s3) == PolicyConditionReason.ACCEPTED
        assert await handler.validate_target_ref(logs) == PolicyConditionReason.ACCEPTED

    async def test_target_not_found(self, store: InMemoryStore) -> None:
        policy = store.add(raw_policy("IAMAuthPolicy", "iam", target_ref=target("HTTPRoute", "missing")))
        handler = PolicyHandler(store, IAMAuthPolicy)
        reason = await handler.validate_target_ref(policy)  # type: ignore[arg-type]
        assert reason == PolicyConditionReason.TARGET_NOT_FOUND

    async def test_unsupported_target_kind(self, store: InMemoryStore) -> None:
        store.add(raw_service("svc", "default"))
        policy = store.add(raw_policy("IAMAuthPolicy", "iam", target_ref=target("Service", "svc")))
        handler = PolicyHandler(store, IAMAuthPolicy)
        assert await handler.validate_target_ref(policy) == PolicyConditionReason.INVALID  # type: ignore[arg-type]

    async def test_store_failure_is_unknown(self, store: InMemoryStore) -> None:
        policy = store.add(raw_policy("IAMAuthPolicy", "iam", target_ref=target("HTTPRoute", "route")))
        store.fail_on[HTTPRoute] = StoreError("etcd timeout")
        handler = PolicyHandler(store, IAMAuthPolicy)
        assert await handler.validate_target_ref(policy) == PolicyConditionReason.UNKNOWN  # type: ignore[arg-type]

    async def test_obj_resolved_policy(self, store: InMemoryStore) -> None:
        route = store.add(raw_route("route", "default"))
        store.add(raw_policy("IAMAuthPolicy", "b", target_ref=target("HTTPRoute", "route"), created=_T3))
        store.add(raw_policy("IAMAuthPolicy", "a", target_ref=target("HTTPRoute", "route"), created=_T2))
        handler = PolicyHandler(store, IAMAuthPolicy)

        assert len(await handler.obj_policies(route)) == 2
        resolved = await handler.obj_resolved_policy(route)
        assert resolved is not None
        assert resolved.name == "a"

    async def test_validate_and_update_condition(self, store: InMemoryStore) -> None:
        store.add(raw_gateway("gw", "default"))
        policy = store.add(raw_policy("IAMAuthPolicy", "iam", target_ref=target("Gateway", "gw")))
        handler = PolicyHandler(store, IAMAuthPolicy)
        now = datetime(2026, 5, 1, tzinfo=UTC)

        reason = await handler.validate_and_update_condition(policy, now=now)  # type: ignore[arg-type]

        condition = find_condition(policy.conditions, ACCEPTED_CONDITION)  # type: ignore[attr-defined]
        assert reason == PolicyConditionReason.ACCEPTED
        assert condition is not None
        assert condition.status == "True"
        assert condition.last_transition_time == now

    async def test_condition_time_moves_only_on_status_change(self, store: InMemoryStore) -> None:
        store.add(raw_gateway("gw", "default"))
        policy = store.add(raw_policy("IAMAuthPolicy", "iam", target_ref=target("Gateway", "gw")))
        handler = PolicyHandler(store, IAMAuthPolicy)
        t1 = datetime(2026, 5, 1, tzinfo=UTC)
        t2 = t1 + timedelta(hours=1)
        t3 = t2 + timedelta(hours=1)

        await handler.validate_and_update_condition(policy, now=t1)  # type: ignore[arg-type]
        await handler.validate_and_update_condition(policy, now=t2)  # type: ignore[arg-type]
        condition = find_condition(policy.conditions, ACCEPTED_CONDITION)  # type: ignore[attr-defined]
        assert condition is not None
        assert condition.last_transition_time == t1

        store.remove(Gateway, NamespacedName("default", "gw"))
        await handler.validate_and_update_condition(policy, now=t3)  # type: ignore[arg-type]
        assert condition.status == "False"
        assert condition.reason == PolicyConditionReason.TARGET_NOT_FOUND
        assert condition.last_transition_time == t3

    def test_accepted_condition_shape(self) -> None:
        handler = PolicyHandler(InMemoryStore(), TargetGroupPolicy)
        policy = _make_policy("a", 0)
        policy.generation = 4
        condition = handler.accepted_condition(policy, PolicyConditionReason.CONFLICTED, "older policy wins")
        assert condition == Condition(
            type=ACCEPTED_CONDITION,
            status="False",
            reason="Conflicted",
            message="older policy wins",
            observed_generation=4,
        )
