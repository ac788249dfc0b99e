"""
Prometheus metrics for gateway observability.

Organized into: requests, reconciliation, execution.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest


class GatewayMetrics:
    """Request, reconciliation and trade metrics on a private registry."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        reg = registry or CollectorRegistry()
        self._registry = reg

        # === Request Metrics ===
        self.requests = Counter(
            'gateway_requests_total',
            'Gateway operations by outcome',
            labelnames=['operation', 'outcome'],
            registry=reg
        )
        self.errors = Counter(
            'gateway_errors_total',
            'Classified gateway errors',
            labelnames=['operation', 'kind'],
            registry=reg
        )
        self.latency_ms = Histogram(
            'gateway_latency_ms',
            'Operation latency (milliseconds)',
            labelnames=['operation'],
            buckets=[10, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000],
            registry=reg
        )

        # === Reconciliation Metrics ===
        self.reconciliations = Counter(
            'account_reconciliations_total',
            'Account reads by reconciliation outcome',
            labelnames=['outcome'],
            registry=reg
        )

        # === Execution Metrics ===
        self.trades_submitted = Counter(
            'trades_submitted_total',
            'Trades broadcast to the pool contract',
            labelnames=['side'],
            registry=reg
        )

    def get_registry(self) -> CollectorRegistry:
        return self._registry

    def render(self) -> bytes:
        return generate_latest(self._registry)
