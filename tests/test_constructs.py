import pytest

from pmstack.config import StackSettings
from pmstack.constructs import (
    attach_health_probe,
    create_compute_cluster,
    create_database,
    create_edge_gateway,
    create_network,
    create_service_unit,
    create_streaming_cluster,
    derive_environment,
    discovery_name,
    validate_ports,
    zone_names,
)
from pmstack.errors import ConfigurationError, InvalidPortError
from pmstack.models import RemovalPolicy, SubnetKind, TransportProtocol


@pytest.fixture()
def network():
    return create_network("vpc", "PatientManagerVPC")


@pytest.fixture()
def cluster(network):
    return create_compute_cluster("cluster", network, "patient-management.local")


@pytest.fixture()
def database(network, credentials):
    return create_database("patient-service-db", "patient-service-db", network, credentials)


class TestNetwork:
    def test_two_zones_split_into_quarters(self, network):
        assert network.zone_count == 2
        assert [s.cidr for s in network.public_subnets] == ["10.0.0.0/18", "10.0.64.0/18"]
        assert [s.cidr for s in network.private_subnets] == ["10.0.128.0/18", "10.0.192.0/18"]
        assert [s.zone for s in network.public_subnets] == ["us-east-1a", "us-east-1b"]

    def test_subnet_ids(self, network):
        assert [s.subnet_id for s in network.subnets] == [
            "vpc-public-1",
            "vpc-public-2",
            "vpc-private-1",
            "vpc-private-2",
        ]

    def test_single_zone(self):
        net = create_network("vpc", "VPC", zone_count=1)
        assert len(net.subnets) == 2
        assert {s.kind for s in net.subnets} == {SubnetKind.PUBLIC, SubnetKind.PRIVATE}

    def test_zero_zones_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            create_network("vpc", "VPC", zone_count=0)
        assert exc_info.value.logical_id == "vpc"

    def test_invalid_cidr_rejected(self):
        with pytest.raises(ConfigurationError):
            create_network("vpc", "VPC", cidr="not-a-cidr")

    def test_zone_names(self):
        assert zone_names("eu-west-1", 3) == ["eu-west-1a", "eu-west-1b", "eu-west-1c"]


class TestDatabase:
    def test_defaults(self, database, credentials):
        assert database.engine == "postgres"
        assert database.instance_class == "db.t2.micro"
        assert database.allocated_storage_gb == 20
        assert database.username == "admin_user"
        assert database.removal_policy == RemovalPolicy.DESTROY
        assert database.credential_ref.startswith("patient-service-db-credentials-")
        # only reserved; the secret is created at provisioning time
        assert len(credentials) == 0

    def test_endpoint_is_deferred(self, database):
        assert str(database.endpoint_address) == "${patient-service-db.endpoint_address}"
        assert str(database.endpoint_port) == "${patient-service-db.endpoint_port}"

    def test_password_is_a_lookup_expression(self, database):
        expr = database.password_expression
        assert expr.startswith("{{resolve:secretsmanager:")
        assert database.credential_ref in expr

    def test_credentials_unique_per_database(self, network, credentials):
        a = create_database("a-db", "a-db", network, credentials)
        b = create_database("b-db", "b-db", network, credentials)
        assert a.credential_ref != b.credential_ref
        assert len(credentials) == 0

    def test_health_probe(self, database):
        probe = attach_health_probe(database)
        assert probe.logical_id == "patient-service-db-health-probe"
        assert probe.target_id == database.logical_id
        assert probe.protocol == TransportProtocol.TCP
        assert probe.interval_seconds == 30
        assert probe.failure_threshold == 3
        assert probe.ip_address == database.endpoint_address
        assert probe.port == database.endpoint_port


class TestStreamingAndCompute:
    def test_streaming_cluster_in_private_subnets(self, network):
        kafka = create_streaming_cluster(
            "kafka-cluster", "kafka-cluster", 2, "kafka.m5.xlarge", network
        )
        assert kafka.broker_count == 2
        assert kafka.kafka_version == "2.8.0"
        assert kafka.client_subnets == ("vpc-private-1", "vpc-private-2")
        assert kafka.broker_az_distribution == "DEFAULT"

    def test_zero_brokers_rejected(self, network):
        with pytest.raises(ConfigurationError):
            create_streaming_cluster("kafka", "kafka", 0, "kafka.m5.xlarge", network)

    def test_compute_cluster(self, cluster):
        assert cluster.network_id == "vpc"
        assert cluster.namespace == "patient-management.local"
        assert discovery_name("billing-service", cluster) == (
            "billing-service.patient-management.local"
        )


class TestServiceUnit:
    def test_two_ports_become_two_tcp_listeners(self, cluster):
        unit = create_service_unit(
            "billing-service", "billing-service", [4001, 9001], cluster, StackSettings()
        )
        assert unit.ports == [4001, 9001]
        assert len(unit.listeners) == 2
        for listener in unit.listeners:
            assert listener.container_port == listener.host_port
            assert listener.protocol == TransportProtocol.TCP

    @pytest.mark.parametrize("ports", [[0], [65536], [-1], [4000, 4000]])
    def test_invalid_ports_rejected(self, ports):
        with pytest.raises(InvalidPortError) as exc_info:
            validate_ports("svc", ports)
        assert exc_info.value.logical_id == "svc"

    def test_boundary_ports_accepted(self):
        assert validate_ports("svc", [1, 65535]) == [1, 65535]

    def test_empty_image_rejected(self, cluster):
        with pytest.raises(ConfigurationError):
            create_service_unit("svc", "", [4000], cluster, StackSettings())

    def test_log_sink(self, cluster):
        unit = create_service_unit("svc", "billing-service", [4001], cluster, StackSettings())
        assert unit.log_sink.log_group_name == "/ecs/billing-service"
        assert unit.log_sink.stream_prefix == "billing-service"
        assert unit.log_sink.retention_days == 1
        assert unit.log_sink.removal_policy == RemovalPolicy.DESTROY

    def test_task_sizing(self, cluster):
        unit = create_service_unit("svc", "billing-service", [4001], cluster, StackSettings())
        assert unit.cpu == 256
        assert unit.memory_mib == 512
        assert unit.desired_count == 1
        assert unit.assign_public_ip is False


class TestEnvironment:
    def test_baseline_only(self):
        env = derive_environment("billing-service", StackSettings())
        assert env == {
            "SPRING_KAFKA_BOOTSTRAP_SERVERS": (
                "localhost.localstack.cloud:4510, "
                "localhost.localstack.cloud:4511, "
                "localhost.localstack.cloud:4512"
            )
        }

    def test_extra_env_overrides_baseline(self):
        env = derive_environment(
            "svc", StackSettings(), extra_env={"SPRING_KAFKA_BOOTSTRAP_SERVERS": "kafka:9092"}
        )
        assert env["SPRING_KAFKA_BOOTSTRAP_SERVERS"] == "kafka:9092"

    def test_bound_database_keys(self, database):
        env = derive_environment("patient-service", StackSettings(), database)
        assert env["SPRING_DATASOURCE_URL"] == (
            "jdbc:postgresql://${patient-service-db.endpoint_address}:"
            "${patient-service-db.endpoint_port}/patient-service-db"
        )
        assert env["SPRING_DATASOURCE_USERNAME"] == "admin_user"
        assert env["SPRING_DATASOURCE_PASSWORD"] == database.password_expression
        assert env["SPRING_JPA_HIBERNATE_DDL_AUTO"] == "update"
        assert env["SPRING_SQL_INIT_MODE"] == "always"
        assert env["SPRING_DATASOURCE_HIKARI_INITIALIZATION_FAIL_TIMEOUT"] == "60000"

    def test_database_keys_win_over_extra_env(self, database):
        env = derive_environment(
            "patient-service",
            StackSettings(),
            database,
            extra_env={"SPRING_DATASOURCE_USERNAME": "someone-else"},
        )
        assert env["SPRING_DATASOURCE_USERNAME"] == "admin_user"

    def test_settings_flow_into_environment(self, database):
        settings = StackSettings(bootstrap_servers=("kafka:9092",), database_username="pm")
        env = derive_environment("patient-service", settings, database)
        assert env["SPRING_KAFKA_BOOTSTRAP_SERVERS"] == "kafka:9092"
        assert env["SPRING_DATASOURCE_USERNAME"] == "pm"


class TestEdgeGateway:
    def test_gateway_shape(self, cluster):
        gateway = create_edge_gateway(
            "api-gateway",
            "api-gateway",
            4004,
            cluster,
            StackSettings(),
            routed_env={"SPRING_PROFILES_ACTIVE": "prod"},
        )
        assert gateway.load_balanced is True
        assert gateway.public is True
        assert gateway.desired_count == 1
        assert gateway.health_check_grace_period_seconds == 60
        assert gateway.ports == [4004]

    def test_environment_is_exactly_routed_env(self, cluster):
        gateway = create_edge_gateway(
            "api-gateway", "api-gateway", 4004, cluster, StackSettings(), routed_env={"A": "1"}
        )
        assert gateway.environment == {"A": "1"}

    def test_invalid_port_rejected(self, cluster):
        with pytest.raises(InvalidPortError):
            create_edge_gateway("api-gateway", "api-gateway", 70000, cluster, StackSettings())
