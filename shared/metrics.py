"""
Shared metrics configuration for the Platform Access layer.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest


class ExecutorMetrics:
    """Prometheus metrics for credential handling and upstream dispatch.

    Each instance owns its registry unless one is passed in, so several
    executors (or test cases) can coexist in one process.
    """

    def __init__(self, service_name: str = "platform", registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up executor metrics."""
        self.logins_total = Counter(
            "platform_logins_total",
            "Total login exchanges sent upstream",
            ["outcome"],
            registry=self.registry
        )

        self.login_joins_total = Counter(
            "platform_login_joins_total",
            "Credential requests that joined a login already in flight",
            registry=self.registry
        )

        self.dispatch_total = Counter(
            "platform_dispatch_total",
            "Total upstream call attempts",
            ["outcome"],
            registry=self.registry
        )

        self.dispatch_duration_seconds = Histogram(
            "platform_dispatch_duration_seconds",
            "Upstream call duration in seconds",
            registry=self.registry
        )

        self.reauth_total = Counter(
            "platform_reauth_total",
            "Re-authentications triggered by authorization failures",
            ["outcome"],
            registry=self.registry
        )

    def record_login(self, outcome: str):
        """Record a login exchange outcome."""
        self.logins_total.labels(outcome=outcome).inc()

    def record_login_join(self):
        """Record a caller that waited on someone else's login."""
        self.login_joins_total.inc()

    def record_dispatch(self, outcome: str, duration: float):
        """Record an upstream call attempt."""
        self.dispatch_total.labels(outcome=outcome).inc()
        self.dispatch_duration_seconds.observe(duration)

    def record_reauth(self, outcome: str):
        """Record how a re-authenticated retry ended."""
        self.reauth_total.labels(outcome=outcome).inc()

    def get_value(self, name: str, **labels) -> float:
        """Read a sample value, 0.0 when it has not been recorded yet."""
        value = self.registry.get_sample_value(name, labels or None)
        return value if value is not None else 0.0

    def export(self) -> bytes:
        """Render the registry in the Prometheus text format."""
        return generate_latest(self.registry)
