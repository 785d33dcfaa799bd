from pmstack.errors import ConfigurationError
from pmstack.models import ComputeCluster, Network


def create_compute_cluster(
    logical_id: str,
    network: Network,
    namespace: str,
    cluster_name: str | None = None,
) -> ComputeCluster:
    if not namespace:
        raise ConfigurationError("service discovery namespace is required", logical_id=logical_id)
    return ComputeCluster(
        logical_id=logical_id,
        network_id=network.logical_id,
        cluster_name=cluster_name or logical_id,
        namespace=namespace,
    )


def discovery_name(service_name: str, cluster: ComputeCluster) -> str:
    """auth-service -> auth-service.patient-management.local"""
    return f"{service_name}.{cluster.namespace}"
