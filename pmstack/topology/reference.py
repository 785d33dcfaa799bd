"""The patient-management platform as deployed on LocalStack."""

from pmstack.config import StackSettings
from pmstack.errors import ConfigurationError
from pmstack.models import (
    ComputeClusterSpec,
    DatabaseSpec,
    GatewaySpec,
    NetworkSpec,
    ServiceSpec,
    StreamingSpec,
    TopologySpec,
)

AUTH_SERVICE_PORT = 4005
BILLING_GRPC_PORT = 9001


def patient_management_topology(settings: StackSettings) -> TopologySpec:
    """Reference topology: four services, two databases, Kafka and the API gateway.

    Only analytics-service and patient-service are gated on the Kafka
    cluster, although every unit receives the bootstrap servers.
    """
    if not settings.jwt_secret:
        raise ConfigurationError("JWT secret is not configured", logical_id="auth-service")

    docker_host = settings.docker_host_address
    return TopologySpec(
        name="localstack",
        network=NetworkSpec(logical_id="patient-manager-vpc", name="PatientManagerVPC"),
        databases=[
            DatabaseSpec(logical_id="auth-service-db", database_name="auth-service-db"),
            DatabaseSpec(logical_id="patient-service-db", database_name="patient-service-db"),
        ],
        streaming=StreamingSpec(),
        compute_cluster=ComputeClusterSpec(),
        services=[
            ServiceSpec(
                logical_id="auth-service",
                image_ref="auth-service",
                ports=[AUTH_SERVICE_PORT],
                database="auth-service-db",
                env={"JWT_SECRET": settings.jwt_secret},
            ),
            ServiceSpec(
                logical_id="billing-service",
                image_ref="billing-service",
                ports=[4001, BILLING_GRPC_PORT],
            ),
            ServiceSpec(
                logical_id="analytics-service",
                image_ref="analytics-service",
                ports=[4002],
                stream_client=True,
            ),
            ServiceSpec(
                logical_id="patient-service",
                image_ref="patient-service",
                ports=[4000],
                database="patient-service-db",
                env={
                    "BILLING_SERVICE_ADDRESS": docker_host,
                    "BILLING_SERVICE_GRPC_PORT": str(BILLING_GRPC_PORT),
                },
                depends_on=["billing-service"],
                stream_client=True,
            ),
        ],
        gateway=GatewaySpec(
            logical_id="api-gateway",
            image_ref="api-gateway",
            port=4004,
            env={
                "SPRING_PROFILES_ACTIVE": "prod",
                "AUTH_SERVICE_URL": f"http://{docker_host}:{AUTH_SERVICE_PORT}",
            },
        ),
    )
