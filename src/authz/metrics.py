"""Authorization decision metrics for Prometheus.

3 counters:
1. hubguard_privileged_decisions_total{action,outcome}  - gateway decisions
2. hubguard_grant_decisions_total{role,outcome}         - role-grant decisions
3. hubguard_idempotency_lookups_total{result}           - miss | replay | conflict
"""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter


def _counter(
    name: str,
    documentation: str,
    labelnames: list[str],
    registry: CollectorRegistry | None,
) -> Counter:
    """Create a Counter with optional registry."""
    if registry is not None:
        return Counter(name, documentation, labelnames, registry=registry)
    return Counter(name, documentation, labelnames)


class AuthzMetrics:
    """Counters shared by the gateway, grant service and executor.

    Pass a custom CollectorRegistry for testing isolation.
    In production, use the default global registry (registry=None).
    """

    def __init__(self, *, registry: CollectorRegistry | None = None) -> None:
        self.privileged_decisions = _counter(
            "hubguard_privileged_decisions_total",
            "Privileged action decisions by action and outcome",
            ["action", "outcome"],
            registry,
        )
        self.grant_decisions = _counter(
            "hubguard_grant_decisions_total",
            "Role grant decisions by requested role and outcome",
            ["role", "outcome"],
            registry,
        )
        self.idempotency_lookups = _counter(
            "hubguard_idempotency_lookups_total",
            "Idempotency key lookups by result",
            ["result"],
            registry,
        )

    def record_privileged(self, action: str, outcome: str) -> None:
        self.privileged_decisions.labels(action=action, outcome=outcome).inc()

    def record_grant(self, role: str, outcome: str) -> None:
        self.grant_decisions.labels(role=role, outcome=outcome).inc()

    def record_idempotency(self, result: str) -> None:
        self.idempotency_lookups.labels(result=result).inc()
