"""Static topology specification: the input to TopologyBuilder.build()."""

from pydantic import BaseModel, Field

from .resources import RemovalPolicy


class NetworkSpec(BaseModel):
    logical_id: str = Field(default="patient-manager-vpc", min_length=1)
    name: str = Field(default="PatientManagerVPC", min_length=1)
    zone_count: int | None = Field(
        default=None, description="Availability zones; falls back to settings when unset"
    )


class DatabaseSpec(BaseModel):
    logical_id: str = Field(..., min_length=1)
    database_name: str = Field(..., min_length=1)
    removal_policy: RemovalPolicy = RemovalPolicy.DESTROY


class StreamingSpec(BaseModel):
    logical_id: str = Field(default="kafka-cluster", min_length=1)
    cluster_name: str = "kafka-cluster"
    broker_count: int = 2
    instance_class: str = "kafka.m5.xlarge"
    kafka_version: str = "2.8.0"


class ComputeClusterSpec(BaseModel):
    logical_id: str = Field(default="patient-management-cluster", min_length=1)
    cluster_name: str = "PatientManagementCluster"
    namespace: str | None = Field(
        default=None, description="Service discovery namespace; falls back to settings"
    )


class ServiceSpec(BaseModel):
    logical_id: str = Field(..., min_length=1)
    image_ref: str = Field(..., min_length=1)
    ports: list[int] = Field(default_factory=list)
    database: str | None = Field(default=None, description="Logical id of a bound database")
    env: dict[str, str] = Field(default_factory=dict)
    depends_on: list[str] = Field(default_factory=list)
    stream_client: bool = Field(
        default=False, description="Gate provisioning on the streaming cluster"
    )


class GatewaySpec(BaseModel):
    logical_id: str = Field(default="api-gateway", min_length=1)
    image_ref: str = Field(default="api-gateway", min_length=1)
    port: int = 4004
    env: dict[str, str] = Field(default_factory=dict)


class TopologySpec(BaseModel):
    name: str = Field(default="localstack", min_length=1)
    network: NetworkSpec = Field(default_factory=NetworkSpec)
    databases: list[DatabaseSpec] = Field(default_factory=list)
    streaming: StreamingSpec | None = None
    compute_cluster: ComputeClusterSpec = Field(default_factory=ComputeClusterSpec)
    services: list[ServiceSpec] = Field(default_factory=list)
    gateway: GatewaySpec | None = None
