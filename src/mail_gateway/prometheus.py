# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Prometheus metrics for the mail gateway.

All metrics use the ``mgw_`` prefix and are labelled by route.

Metrics exposed:
    - ``mgw_sent_total``: Messages accepted by the relay.
    - ``mgw_errors_total``: Delivery failures.
    - ``mgw_rate_limited_total``: Requests rejected by the rate limiter.
    - ``mgw_auth_failures_total``: Requests rejected for a missing or wrong key.

Example::

    GET /metrics
"""

from prometheus_client import CollectorRegistry, Counter, generate_latest


class GatewayMetrics:
    """Counters for one gateway application.

    Each instance owns its registry so several apps (tests, for instance)
    never collide on metric names.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or CollectorRegistry()
        self.sent = Counter("mgw_sent_total", "Messages delivered", ["route"], registry=self.registry)
        self.errors = Counter("mgw_errors_total", "Delivery failures", ["route"], registry=self.registry)
        self.rate_limited = Counter(
            "mgw_rate_limited_total",
            "Requests rejected by the rate limiter",
            ["route"],
            registry=self.registry,
        )
        self.auth_failures = Counter(
            "mgw_auth_failures_total",
            "Requests rejected by API key authentication",
            ["route"],
            registry=self.registry,
        )

    def inc_sent(self, route: str) -> None:
        self.sent.labels(route=route or "unknown").inc()

    def inc_error(self, route: str) -> None:
        self.errors.labels(route=route or "unknown").inc()

    def inc_rate_limited(self, route: str) -> None:
        self.rate_limited.labels(route=route or "unknown").inc()

    def inc_auth_failure(self, route: str) -> None:
        self.auth_failures.labels(route=route or "unknown").inc()

    def generate_latest(self) -> bytes:
        """Export all metrics in Prometheus text exposition format."""
        return generate_latest(self.registry)
