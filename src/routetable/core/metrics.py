"""Metrics module for routetable.

Provides Prometheus metrics for table builds and route resolution.
"""

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from routetable.core.config import MetricsConfig


class RouterMetrics:
    """Router metrics collector using Prometheus."""

    def __init__(self, config: MetricsConfig, registry: CollectorRegistry = REGISTRY):
        """Initialize the metrics collector.

        Args:
            config: Metrics configuration
            registry: Prometheus registry to register collectors with
        """
        self.config = config
        self.registry = registry

        # Resolution metrics
        self.resolutions_total = Counter(
            "routetable_resolutions_total",
            "Total number of route resolutions",
            ["outcome"],
            registry=registry,
        )

        self.resolution_duration = Histogram(
            "routetable_resolution_duration_seconds",
            "Route resolution latency in seconds",
            buckets=(0.00001, 0.00005, 0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05),
            registry=registry,
        )

        # Table metrics
        self.table_routes = Gauge(
            "routetable_table_routes",
            "Number of compiled routes in the table",
            ["kind"],
            registry=registry,
        )

        self.table_builds = Counter(
            "routetable_table_builds_total",
            "Total number of table builds and imports",
            ["result"],
            registry=registry,
        )

    def record_resolution(self, outcome: str, duration_seconds: float) -> None:
        """Record a route resolution.

        Args:
            outcome: ``static``, ``dynamic`` or ``default``
            duration_seconds: Resolution duration in seconds
        """
        self.resolutions_total.labels(outcome=outcome).inc()
        self.resolution_duration.observe(duration_seconds)

    def record_build(self, success: bool, counts: dict[str, int] | None = None) -> None:
        """Record a table build or import.

        Args:
            success: Whether the build succeeded
            counts: Routes per kind in the resulting table
        """
        self.table_builds.labels(result="success" if success else "failure").inc()
        for kind, count in (counts or {}).items():
            self.table_routes.labels(kind=kind).set(count)

    def export_metrics(self) -> bytes:
        """Export metrics in Prometheus format."""
        return generate_latest(self.registry)
