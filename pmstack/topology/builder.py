import logging
import time
import uuid
from collections.abc import Callable

from pydantic import ValidationError

from pmstack.config import StackSettings
from pmstack.constructs import (
    attach_health_probe,
    create_compute_cluster,
    create_database,
    create_edge_gateway,
    create_network,
    create_service_unit,
    create_streaming_cluster,
    probe_id,
)
from pmstack.credentials import CredentialStore, InMemoryCredentialStore
from pmstack.errors import ConfigurationError, DanglingReferenceError, DuplicateIdError
from pmstack.models import (
    BuildPhase,
    ComputeCluster,
    EdgeKind,
    ManagedDatabase,
    Network,
    ResourceKind,
    ServiceSpec,
    StreamingCluster,
    Topology,
    TopologySpec,
)
from pmstack.observability.metrics import METRICS

from .graph import DependencyGraph
from .registry import ResourceRegistry

logger = logging.getLogger(__name__)


def _from_validation_error(e: ValidationError) -> ConfigurationError:
    """A descriptor rejected its fields; report it like any other bad input."""
    first = e.errors()[0]
    field = ".".join(str(part) for part in first["loc"])
    return ConfigurationError(f"Invalid {e.title} {field}: {first['msg']}")


class TopologyBuilder:
    """Builds one topology from a static specification.

    Phases run strictly in order:
    network -> databases -> probes -> streaming -> compute cluster ->
    service units -> gateway -> finalize. The first ConfigurationError
    moves the builder to FAILED and is re-raised with the failing phase;
    no partial topology is ever returned. An instance builds exactly once.
    """

    def __init__(
        self,
        settings: StackSettings | None = None,
        credentials: CredentialStore | None = None,
    ):
        self.settings = settings or StackSettings()
        self.credentials = credentials or InMemoryCredentialStore()
        self.registry = ResourceRegistry()
        self.graph = DependencyGraph()
        self.phase = BuildPhase.INIT
        self._network: Network | None = None
        self._streaming: StreamingCluster | None = None
        self._cluster: ComputeCluster | None = None
        self._order: list[str] = []

    def build(self, spec: TopologySpec) -> Topology:
        if self.phase != BuildPhase.INIT:
            raise RuntimeError(f"TopologyBuilder already used (phase={self.phase.value})")

        steps: list[tuple[BuildPhase, Callable[[TopologySpec], None]]] = [
            (BuildPhase.NETWORK_BUILT, self._build_network),
            (BuildPhase.DATABASES_BUILT, self._build_databases),
            (BuildPhase.PROBES_BUILT, self._build_probes),
            (BuildPhase.STREAMING_BUILT, self._build_streaming),
            (BuildPhase.COMPUTE_CLUSTER_BUILT, self._build_compute_cluster),
            (BuildPhase.SERVICE_UNITS_BUILT, self._build_service_units),
            (BuildPhase.GATEWAY_BUILT, self._build_gateway),
            (BuildPhase.FINALIZED, self._finalize),
        ]

        start = time.perf_counter()
        for next_phase, step in steps:
            try:
                step(spec)
            except (ConfigurationError, ValidationError) as e:
                error = e if isinstance(e, ConfigurationError) else _from_validation_error(e)
                if error.phase is None:
                    error.phase = next_phase.value
                self.phase = BuildPhase.FAILED
                METRICS.record_build("failed", time.perf_counter() - start)
                logger.error("Topology %s failed: %s", spec.name, error)
                if error is e:
                    raise
                raise error from e
            self.phase = next_phase
            logger.debug("Topology %s: %s", spec.name, next_phase.value)

        topology = Topology(
            topology_id=str(uuid.uuid4())[:8],
            name=spec.name,
            phase=self.phase,
            resources=self.registry.all(),
            edges=self.graph.edges,
            order=self._order,
        )
        METRICS.record_build("success", time.perf_counter() - start)
        logger.info(
            "Built topology %s (%s): %d resources, %d edges",
            topology.name,
            topology.topology_id,
            len(topology.resources),
            len(topology.edges),
        )
        return topology

    # ── phases ───────────────────────────────────────

    def _build_network(self, spec: TopologySpec) -> None:
        zone_count = spec.network.zone_count
        if zone_count is None:
            zone_count = self.settings.availability_zones
        self._network = create_network(
            spec.network.logical_id,
            spec.network.name,
            zone_count=zone_count,
            cidr=self.settings.network_cidr,
            region=self.settings.region,
        )
        self.registry.register(self._network)

    def _build_databases(self, spec: TopologySpec) -> None:
        for db_spec in spec.databases:
            # Checked before generating a credential for an id that will be rejected
            if db_spec.logical_id in self.registry:
                raise DuplicateIdError(
                    "Resource id already registered", logical_id=db_spec.logical_id
                )
            database = create_database(
                db_spec.logical_id,
                db_spec.database_name,
                self._network,
                self.credentials,
                username=self.settings.database_username,
                removal_policy=db_spec.removal_policy,
            )
            self.registry.register(database)
            self.graph.add_edge(database.logical_id, self._network.logical_id)

    def _build_probes(self, spec: TopologySpec) -> None:
        for database in self.registry.of_kind(ResourceKind.DATABASE):
            probe = attach_health_probe(database)
            self.registry.register(probe)
            self.graph.add_edge(probe.logical_id, database.logical_id)

    def _build_streaming(self, spec: TopologySpec) -> None:
        if spec.streaming is None:
            return
        self._streaming = create_streaming_cluster(
            spec.streaming.logical_id,
            spec.streaming.cluster_name,
            spec.streaming.broker_count,
            spec.streaming.instance_class,
            self._network,
            kafka_version=spec.streaming.kafka_version,
        )
        self.registry.register(self._streaming)
        self.graph.add_edge(self._streaming.logical_id, self._network.logical_id)

    def _build_compute_cluster(self, spec: TopologySpec) -> None:
        self._cluster = create_compute_cluster(
            spec.compute_cluster.logical_id,
            self._network,
            spec.compute_cluster.namespace or self.settings.discovery_namespace,
            cluster_name=spec.compute_cluster.cluster_name,
        )
        self.registry.register(self._cluster)
        self.graph.add_edge(self._cluster.logical_id, self._network.logical_id)

    def _build_service_units(self, spec: TopologySpec) -> None:
        for svc in spec.services:
            self._build_service_unit(svc)

    def _build_service_unit(self, svc: ServiceSpec) -> None:
        # Resolve every reference before constructing anything
        database = None
        if svc.database is not None:
            database = self.registry.get(svc.database)
            if not isinstance(database, ManagedDatabase):
                raise DanglingReferenceError(
                    f"Unknown bound database {svc.database!r}", logical_id=svc.logical_id
                )

        for dep in svc.depends_on:
            target = self.registry.get(dep)
            if target is None or target.kind != ResourceKind.SERVICE_UNIT:
                raise DanglingReferenceError(
                    f"Unknown service dependency {dep!r} (must be declared earlier)",
                    logical_id=svc.logical_id,
                )

        if svc.stream_client and self._streaming is None:
            raise DanglingReferenceError(
                "Declared as a stream client but the topology has no streaming cluster",
                logical_id=svc.logical_id,
            )

        unit = create_service_unit(
            svc.logical_id,
            svc.image_ref,
            svc.ports,
            self._cluster,
            self.settings,
            bound_database=database,
            extra_env=svc.env,
            stream_client=svc.stream_client,
        )
        self.registry.register(unit)

        self.graph.add_edge(unit.logical_id, self._cluster.logical_id)
        if database is not None:
            self.graph.add_edge(unit.logical_id, database.logical_id)
            self.graph.add_edge(unit.logical_id, probe_id(database.logical_id))
        for dep in svc.depends_on:
            self.graph.add_edge(unit.logical_id, dep)
        if svc.stream_client:
            self.graph.add_edge(unit.logical_id, self._streaming.logical_id)

    def _build_gateway(self, spec: TopologySpec) -> None:
        if spec.gateway is None:
            return
        gateway = create_edge_gateway(
            spec.gateway.logical_id,
            spec.gateway.image_ref,
            spec.gateway.port,
            self._cluster,
            self.settings,
            routed_env=spec.gateway.env,
        )
        self.registry.register(gateway)
        self.graph.add_edge(gateway.logical_id, self._cluster.logical_id)
        # Routes to every unit by convention; no readiness requirement
        for unit in self.registry.of_kind(ResourceKind.SERVICE_UNIT):
            self.graph.add_edge(gateway.logical_id, unit.logical_id, EdgeKind.SOFT_ORDERING)

    def _finalize(self, spec: TopologySpec) -> None:
        ids = [r.logical_id for r in self.registry.all()]
        self.graph.check_references(ids)
        self._order = self.graph.topological_order(ids)


def build_topology(
    spec: TopologySpec,
    settings: StackSettings | None = None,
    credentials: CredentialStore | None = None,
) -> Topology:
    """Build a topology with a fresh, single-use builder."""
    return TopologyBuilder(settings, credentials).build(spec)
