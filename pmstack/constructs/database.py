from pmstack.credentials import CredentialStore
from pmstack.models import (
    Deferred,
    HealthProbe,
    ManagedDatabase,
    Network,
    RemovalPolicy,
    TransportProtocol,
)

PROBE_SUFFIX = "-health-probe"


def create_database(
    logical_id: str,
    database_name: str,
    network: Network,
    credentials: CredentialStore,
    username: str = "admin_user",
    removal_policy: RemovalPolicy = RemovalPolicy.DESTROY,
) -> ManagedDatabase:
    """Describe a burstable PostgreSQL instance with a generated credential.

    The endpoint is deferred: it only exists once the instance is provisioned.
    """
    credential_ref = credentials.generate(logical_id, username)
    return ManagedDatabase(
        logical_id=logical_id,
        network_id=network.logical_id,
        database_name=database_name,
        username=username,
        credential_ref=credential_ref,
        removal_policy=removal_policy,
        endpoint_address=Deferred(resource_id=logical_id, attribute="endpoint_address"),
        endpoint_port=Deferred(resource_id=logical_id, attribute="endpoint_port"),
    )


def probe_id(database_id: str) -> str:
    return f"{database_id}{PROBE_SUFFIX}"


def attach_health_probe(
    database: ManagedDatabase,
    interval_seconds: int = 30,
    failure_threshold: int = 3,
) -> HealthProbe:
    """TCP reachability check against the database endpoint."""
    return HealthProbe(
        logical_id=probe_id(database.logical_id),
        target_id=database.logical_id,
        protocol=TransportProtocol.TCP,
        ip_address=database.endpoint_address,
        port=database.endpoint_port,
        interval_seconds=interval_seconds,
        failure_threshold=failure_threshold,
    )
