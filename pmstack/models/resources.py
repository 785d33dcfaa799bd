"""Resource descriptors.

Descriptors are pure data: they describe the desired state of one piece of
infrastructure and are never mutated after construction.
"""

import re
from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic_core import core_schema


class ResourceKind(str, Enum):
    NETWORK = "Network"
    DATABASE = "Database"
    HEALTH_PROBE = "HealthProbe"
    STREAMING_CLUSTER = "StreamingCluster"
    COMPUTE_CLUSTER = "ComputeCluster"
    SERVICE_UNIT = "ServiceUnit"
    EDGE_GATEWAY = "EdgeGateway"


class RemovalPolicy(str, Enum):
    DESTROY = "destroy"
    RETAIN = "retain"


class SubnetKind(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class TransportProtocol(str, Enum):
    TCP = "tcp"


class FrozenEnv(dict):
    """Read-only str -> str mapping used for container environments."""

    def _readonly(self, *args, **kwargs):
        raise TypeError(f"{type(self).__name__} is read-only")

    __setitem__ = _readonly
    __delitem__ = _readonly
    __ior__ = _readonly
    clear = _readonly
    pop = _readonly
    popitem = _readonly
    setdefault = _readonly
    update = _readonly

    def __reduce__(self):
        return (type(self), (dict(self),))

    def __repr__(self) -> str:
        return f"FrozenEnv({dict.__repr__(self)})"

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler) -> core_schema.CoreSchema:
        return core_schema.no_info_after_validator_function(cls, handler(dict[str, str]))


# ${resource-id.attribute}
TOKEN_PATTERN = re.compile(r"\$\{([^.}]+)\.([^}]+)\}")


class Deferred(BaseModel):
    """A value that only exists once the owning resource is provisioned."""

    model_config = ConfigDict(frozen=True)

    resource_id: str
    attribute: str

    def __str__(self) -> str:
        return f"${{{self.resource_id}.{self.attribute}}}"


class Resource(BaseModel):
    """Base class for all topology resources."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    logical_id: str = Field(..., min_length=1)
    kind: ResourceKind
    removal_policy: RemovalPolicy = RemovalPolicy.DESTROY

    @property
    def attributes(self) -> Mapping[str, Any]:
        """Read-only view of everything except the identity fields."""
        return MappingProxyType(self.model_dump(mode="json", exclude={"logical_id", "kind"}))


class Subnet(BaseModel):
    model_config = ConfigDict(frozen=True)

    subnet_id: str
    zone: str
    cidr: str
    kind: SubnetKind


class Network(Resource):
    kind: Literal[ResourceKind.NETWORK] = ResourceKind.NETWORK
    name: str
    cidr: str
    region: str
    zone_count: int = Field(..., ge=1)
    subnets: tuple[Subnet, ...] = ()

    @property
    def public_subnets(self) -> list[Subnet]:
        return [s for s in self.subnets if s.kind == SubnetKind.PUBLIC]

    @property
    def private_subnets(self) -> list[Subnet]:
        return [s for s in self.subnets if s.kind == SubnetKind.PRIVATE]


class ManagedDatabase(Resource):
    kind: Literal[ResourceKind.DATABASE] = ResourceKind.DATABASE
    network_id: str
    database_name: str
    engine: Literal["postgres"] = "postgres"
    engine_version: str = "17.2"
    instance_class: str = "db.t2.micro"
    allocated_storage_gb: int = 20
    username: str
    credential_ref: str
    endpoint_address: Deferred
    endpoint_port: Deferred

    @property
    def password_expression(self) -> str:
        """Lookup expression the provisioning engine resolves at deploy time."""
        return f"{{{{resolve:secretsmanager:{self.credential_ref}:SecretString:password::}}}}"


class HealthProbe(Resource):
    kind: Literal[ResourceKind.HEALTH_PROBE] = ResourceKind.HEALTH_PROBE
    target_id: str
    protocol: TransportProtocol = TransportProtocol.TCP
    ip_address: Deferred
    port: Deferred
    interval_seconds: int = 30
    failure_threshold: int = 3


class StreamingCluster(Resource):
    kind: Literal[ResourceKind.STREAMING_CLUSTER] = ResourceKind.STREAMING_CLUSTER
    network_id: str
    cluster_name: str
    kafka_version: str = "2.8.0"
    broker_count: int = Field(..., ge=1)
    instance_class: str
    client_subnets: tuple[str, ...]
    # MSK "DEFAULT" spreads brokers evenly across the client subnets' zones
    broker_az_distribution: Literal["DEFAULT"] = "DEFAULT"


class ComputeCluster(Resource):
    kind: Literal[ResourceKind.COMPUTE_CLUSTER] = ResourceKind.COMPUTE_CLUSTER
    network_id: str
    cluster_name: str
    namespace: str


class PortMapping(BaseModel):
    model_config = ConfigDict(frozen=True)

    container_port: int
    host_port: int
    protocol: TransportProtocol = TransportProtocol.TCP


class LogSink(BaseModel):
    model_config = ConfigDict(frozen=True)

    log_group_name: str
    stream_prefix: str
    retention_days: int = 1
    removal_policy: RemovalPolicy = RemovalPolicy.DESTROY


class ServiceUnit(Resource):
    kind: Literal[ResourceKind.SERVICE_UNIT] = ResourceKind.SERVICE_UNIT
    service_name: str
    image_ref: str
    cluster_id: str
    discovery_name: str
    listeners: tuple[PortMapping, ...]
    environment: FrozenEnv = Field(default_factory=FrozenEnv)
    log_sink: LogSink
    bound_database: str | None = None
    stream_client: bool = False
    cpu: int = 256
    memory_mib: int = 512
    desired_count: int = 1
    assign_public_ip: bool = False

    @property
    def ports(self) -> list[int]:
        return [listener.container_port for listener in self.listeners]

    @property
    def derived_env(self) -> FrozenEnv:
        return self.environment


class EdgeGateway(ServiceUnit):
    kind: Literal[ResourceKind.EDGE_GATEWAY] = ResourceKind.EDGE_GATEWAY
    load_balanced: Literal[True] = True
    public: Literal[True] = True
    desired_count: Literal[1] = 1
    health_check_grace_period_seconds: int = 60
