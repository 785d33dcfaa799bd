from .compute import create_compute_cluster, discovery_name
from .database import attach_health_probe, create_database, probe_id
from .network import create_network, zone_names
from .service import create_edge_gateway, create_service_unit, derive_environment, validate_ports
from .streaming import create_streaming_cluster

__all__ = [
    "create_network",
    "zone_names",
    "create_database",
    "attach_health_probe",
    "probe_id",
    "create_streaming_cluster",
    "create_compute_cluster",
    "discovery_name",
    "create_service_unit",
    "create_edge_gateway",
    "derive_environment",
    "validate_ports",
]
