from pmstack.errors import ConfigurationError
from pmstack.models import Network, StreamingCluster


def create_streaming_cluster(
    logical_id: str,
    cluster_name: str,
    broker_count: int,
    instance_class: str,
    network: Network,
    kafka_version: str = "2.8.0",
) -> StreamingCluster:
    """Kafka cluster on the network's private subnets."""
    if broker_count < 1:
        raise ConfigurationError(
            f"broker count must be >= 1, got {broker_count}", logical_id=logical_id
        )
    private = network.private_subnets
    if not private:
        raise ConfigurationError(
            f"Network {network.logical_id} has no private subnets", logical_id=logical_id
        )

    return StreamingCluster(
        logical_id=logical_id,
        network_id=network.logical_id,
        cluster_name=cluster_name,
        kafka_version=kafka_version,
        broker_count=broker_count,
        instance_class=instance_class,
        client_subnets=tuple(s.subnet_id for s in private),
    )
