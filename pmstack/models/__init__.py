from .resources import (
    TOKEN_PATTERN,
    ComputeCluster,
    Deferred,
    EdgeGateway,
    FrozenEnv,
    HealthProbe,
    LogSink,
    ManagedDatabase,
    Network,
    PortMapping,
    RemovalPolicy,
    Resource,
    ResourceKind,
    ServiceUnit,
    StreamingCluster,
    Subnet,
    SubnetKind,
    TransportProtocol,
)
from .spec import (
    ComputeClusterSpec,
    DatabaseSpec,
    GatewaySpec,
    NetworkSpec,
    ServiceSpec,
    StreamingSpec,
    TopologySpec,
)
from .topology import AnyResource, BuildPhase, DependencyEdge, EdgeKind, Topology

__all__ = [
    "TOKEN_PATTERN",
    "ResourceKind",
    "RemovalPolicy",
    "SubnetKind",
    "TransportProtocol",
    "FrozenEnv",
    "Deferred",
    "Resource",
    "Subnet",
    "Network",
    "ManagedDatabase",
    "HealthProbe",
    "StreamingCluster",
    "ComputeCluster",
    "PortMapping",
    "LogSink",
    "ServiceUnit",
    "EdgeGateway",
    "AnyResource",
    "EdgeKind",
    "BuildPhase",
    "DependencyEdge",
    "Topology",
    "NetworkSpec",
    "DatabaseSpec",
    "StreamingSpec",
    "ComputeClusterSpec",
    "ServiceSpec",
    "GatewaySpec",
    "TopologySpec",
]
