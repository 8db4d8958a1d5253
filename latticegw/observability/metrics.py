"""Prometheus metrics exposed on the webhook server's /metrics endpoint."""

from __future__ import annotations

from prometheus_client import Counter

reconcile_requests_total = Counter(
    "latticegw_reconcile_requests_total",
    "Reconcile requests emitted by event handlers",
    ["handler"],
)

store_errors_total = Counter(
    "latticegw_store_errors_total",
    "Object store failures other than not-found, treated as no relation",
    ["operation"],
)

readiness_gate_decisions_total = Counter(
    "latticegw_readiness_gate_decisions_total",
    "Pod readiness gate decisions",
    ["result"],
)

watch_restarts_total = Counter(
    "latticegw_watch_restarts_total",
    "Watch streams re-established after an error or timeout",
    ["kind"],
)
