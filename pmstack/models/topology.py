from enum import Enum
from typing import Annotated, Union

from pydantic import BaseModel, ConfigDict, Field

from .resources import (
    ComputeCluster,
    EdgeGateway,
    HealthProbe,
    ManagedDatabase,
    Network,
    Resource,
    ResourceKind,
    ServiceUnit,
    StreamingCluster,
)

AnyResource = Annotated[
    Union[
        Network,
        ManagedDatabase,
        HealthProbe,
        StreamingCluster,
        ComputeCluster,
        ServiceUnit,
        EdgeGateway,
    ],
    Field(discriminator="kind"),
]


class EdgeKind(str, Enum):
    HARD_BLOCK = "hard_block"  # target must be ready
    SOFT_ORDERING = "soft_ordering"  # declaration order only


class BuildPhase(str, Enum):
    INIT = "init"
    NETWORK_BUILT = "network_built"
    DATABASES_BUILT = "databases_built"
    PROBES_BUILT = "probes_built"
    STREAMING_BUILT = "streaming_built"
    COMPUTE_CLUSTER_BUILT = "compute_cluster_built"
    SERVICE_UNITS_BUILT = "service_units_built"
    GATEWAY_BUILT = "gateway_built"
    FINALIZED = "finalized"
    FAILED = "failed"


class DependencyEdge(BaseModel):
    """`source` must not be provisioned before `target`."""

    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    kind: EdgeKind = EdgeKind.HARD_BLOCK


class Topology(BaseModel):
    """A finalized resource graph, ready to hand to a provisioning engine."""

    topology_id: str
    name: str
    phase: BuildPhase = BuildPhase.FINALIZED
    resources: list[AnyResource] = Field(default_factory=list)
    edges: list[DependencyEdge] = Field(default_factory=list)
    order: list[str] = Field(default_factory=list)

    def get(self, logical_id: str) -> Resource | None:
        for resource in self.resources:
            if resource.logical_id == logical_id:
                return resource
        return None

    def of_kind(self, kind: ResourceKind) -> list[Resource]:
        return [r for r in self.resources if r.kind == kind]

    def dependencies_of(self, logical_id: str, kind: EdgeKind | None = None) -> list[str]:
        """Direct dependency targets of a resource, optionally filtered by edge kind."""
        return [
            e.target
            for e in self.edges
            if e.source == logical_id and (kind is None or e.kind == kind)
        ]

    def dependents_of(self, logical_id: str, kind: EdgeKind | None = None) -> list[str]:
        return [
            e.source
            for e in self.edges
            if e.target == logical_id and (kind is None or e.kind == kind)
        ]

    @property
    def service_units(self) -> list[ServiceUnit]:
        return [r for r in self.resources if r.kind == ResourceKind.SERVICE_UNIT]

    @property
    def gateway(self) -> EdgeGateway | None:
        gateways = self.of_kind(ResourceKind.EDGE_GATEWAY)
        return gateways[0] if gateways else None
