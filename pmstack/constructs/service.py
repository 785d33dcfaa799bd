"""Service units: task definition, container, log sink and listeners for one microservice."""

from collections.abc import Mapping, Sequence

from pmstack.config import StackSettings
from pmstack.errors import ConfigurationError, InvalidPortError
from pmstack.models import (
    ComputeCluster,
    EdgeGateway,
    FrozenEnv,
    LogSink,
    ManagedDatabase,
    PortMapping,
    RemovalPolicy,
    ServiceUnit,
    TransportProtocol,
)

from .compute import discovery_name

MIN_PORT = 1
MAX_PORT = 65535


def validate_ports(logical_id: str, ports: Sequence[int]) -> list[int]:
    seen: set[int] = set()
    for port in ports:
        if isinstance(port, bool) or not isinstance(port, int):
            raise InvalidPortError(f"Port {port!r} is not an integer", logical_id=logical_id)
        if not MIN_PORT <= port <= MAX_PORT:
            raise InvalidPortError(
                f"Port {port} outside {MIN_PORT}-{MAX_PORT}", logical_id=logical_id
            )
        if port in seen:
            raise InvalidPortError(f"Duplicate port {port}", logical_id=logical_id)
        seen.add(port)
    return list(ports)


def port_mappings(ports: Sequence[int]) -> tuple[PortMapping, ...]:
    # No port translation: container port == host port
    return tuple(
        PortMapping(container_port=port, host_port=port, protocol=TransportProtocol.TCP)
        for port in ports
    )


def log_sink(image_ref: str, settings: StackSettings) -> LogSink:
    return LogSink(
        log_group_name=f"/ecs/{image_ref}",
        stream_prefix=image_ref,
        retention_days=settings.log_retention_days,
        removal_policy=RemovalPolicy.DESTROY,
    )


def derive_environment(
    image_ref: str,
    settings: StackSettings,
    bound_database: ManagedDatabase | None = None,
    extra_env: Mapping[str, str] | None = None,
) -> FrozenEnv:
    """Compute a unit's container environment.

    Baseline Kafka bootstrap servers, then caller overrides, then the
    datasource settings of the bound database. The password is a lookup
    expression, never the secret itself.
    """
    env: dict[str, str] = {
        "SPRING_KAFKA_BOOTSTRAP_SERVERS": ", ".join(settings.bootstrap_servers),
    }

    if extra_env:
        env.update(extra_env)

    if bound_database is not None:
        env["SPRING_DATASOURCE_URL"] = "jdbc:postgresql://{}:{}/{}-db".format(
            bound_database.endpoint_address,
            bound_database.endpoint_port,
            image_ref,
        )
        env["SPRING_DATASOURCE_USERNAME"] = settings.database_username
        env["SPRING_DATASOURCE_PASSWORD"] = bound_database.password_expression
        env["SPRING_JPA_HIBERNATE_DDL_AUTO"] = "update"
        env["SPRING_SQL_INIT_MODE"] = "always"
        env["SPRING_DATASOURCE_HIKARI_INITIALIZATION_FAIL_TIMEOUT"] = str(
            settings.hikari_init_fail_timeout_ms
        )

    return FrozenEnv(env)


def create_service_unit(
    logical_id: str,
    image_ref: str,
    ports: Sequence[int],
    cluster: ComputeCluster,
    settings: StackSettings,
    bound_database: ManagedDatabase | None = None,
    extra_env: Mapping[str, str] | None = None,
    stream_client: bool = False,
) -> ServiceUnit:
    """Describe one deployable microservice.

    Validation happens before anything is built, so a bad unit never
    reaches the registry.
    """
    if not image_ref:
        raise ConfigurationError("image reference is required", logical_id=logical_id)
    validate_ports(logical_id, ports)
    if bound_database is not None and not isinstance(bound_database, ManagedDatabase):
        raise ConfigurationError(
            f"bound database {bound_database!r} is not a managed database",
            logical_id=logical_id,
        )

    return ServiceUnit(
        logical_id=logical_id,
        service_name=image_ref,
        image_ref=image_ref,
        cluster_id=cluster.logical_id,
        discovery_name=discovery_name(image_ref, cluster),
        listeners=port_mappings(ports),
        environment=derive_environment(image_ref, settings, bound_database, extra_env),
        log_sink=log_sink(image_ref, settings),
        bound_database=bound_database.logical_id if bound_database else None,
        stream_client=stream_client,
        cpu=settings.task.cpu,
        memory_mib=settings.task.memory_mib,
    )


def create_edge_gateway(
    logical_id: str,
    image_ref: str,
    port: int,
    cluster: ComputeCluster,
    settings: StackSettings,
    routed_env: Mapping[str, str] | None = None,
) -> EdgeGateway:
    """Load-balanced, externally reachable unit. Its environment is exactly `routed_env`."""
    if not image_ref:
        raise ConfigurationError("image reference is required", logical_id=logical_id)
    validate_ports(logical_id, [port])

    return EdgeGateway(
        logical_id=logical_id,
        service_name=image_ref,
        image_ref=image_ref,
        cluster_id=cluster.logical_id,
        discovery_name=discovery_name(image_ref, cluster),
        listeners=port_mappings([port]),
        environment=FrozenEnv(routed_env or {}),
        log_sink=log_sink(image_ref, settings),
        cpu=settings.task.cpu,
        memory_mib=settings.task.memory_mib,
    )
