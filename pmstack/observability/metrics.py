from prometheus_client import Counter, Histogram

# Build metrics
topology_builds_total = Counter(
    "pmstack_topology_builds_total",
    "Total number of topology builds",
    ["status"],
)

resources_registered_total = Counter(
    "pmstack_resources_registered_total",
    "Resources registered during topology builds",
    ["kind"],
)

build_duration_seconds = Histogram(
    "pmstack_build_duration_seconds",
    "Duration of topology builds in seconds",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5],
)

# Provisioning hand-off metrics
provisioning_results_total = Counter(
    "pmstack_provisioning_results_total",
    "Provisioning outcomes per resource",
    ["kind", "status"],
)

provisioning_duration_seconds = Histogram(
    "pmstack_provisioning_duration_seconds",
    "Duration of provisioning a single resource in seconds",
    ["kind"],
    buckets=[0.1, 1, 5, 30, 60, 300],
)

teardown_total = Counter(
    "pmstack_teardown_total",
    "Total number of resource teardowns",
    ["status"],
)


class _Metrics:
    """Convenience wrapper for all metrics."""

    topology_builds_total = topology_builds_total
    resources_registered_total = resources_registered_total
    build_duration_seconds = build_duration_seconds
    provisioning_results_total = provisioning_results_total
    provisioning_duration_seconds = provisioning_duration_seconds
    teardown_total = teardown_total

    def record_build(self, status: str, duration: float):
        self.topology_builds_total.labels(status=status).inc()
        self.build_duration_seconds.observe(duration)

    def record_resource_registered(self, kind: str):
        self.resources_registered_total.labels(kind=kind).inc()

    def record_provisioning(self, kind: str, status: str, duration: float | None = None):
        self.provisioning_results_total.labels(kind=kind, status=status).inc()
        if duration is not None:
            self.provisioning_duration_seconds.labels(kind=kind).observe(duration)

    def record_teardown(self, status: str):
        self.teardown_total.labels(status=status).inc()


METRICS = _Metrics()
