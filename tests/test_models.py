import pytest
from pydantic import ValidationError

from pmstack.models import (
    BuildPhase,
    Deferred,
    DependencyEdge,
    EdgeKind,
    FrozenEnv,
    RemovalPolicy,
    ResourceKind,
    ServiceUnit,
    SubnetKind,
    Topology,
    TransportProtocol,
)


class TestEnums:
    def test_resource_kind_values(self):
        assert ResourceKind.NETWORK == "Network"
        assert ResourceKind.DATABASE == "Database"
        assert ResourceKind.HEALTH_PROBE == "HealthProbe"
        assert ResourceKind.STREAMING_CLUSTER == "StreamingCluster"
        assert ResourceKind.COMPUTE_CLUSTER == "ComputeCluster"
        assert ResourceKind.SERVICE_UNIT == "ServiceUnit"
        assert ResourceKind.EDGE_GATEWAY == "EdgeGateway"

    def test_edge_kind_values(self):
        assert EdgeKind.HARD_BLOCK == "hard_block"
        assert EdgeKind.SOFT_ORDERING == "soft_ordering"

    def test_misc_values(self):
        assert RemovalPolicy.DESTROY == "destroy"
        assert SubnetKind.PRIVATE == "private"
        assert TransportProtocol.TCP == "tcp"
        assert BuildPhase.FINALIZED == "finalized"


class TestFrozenEnv:
    def test_reads_like_a_dict(self):
        env = FrozenEnv({"A": "1"})
        assert env["A"] == "1"
        assert dict(env) == {"A": "1"}

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda e: e.__setitem__("B", "2"),
            lambda e: e.__delitem__("A"),
            lambda e: e.update({"B": "2"}),
            lambda e: e.pop("A"),
            lambda e: e.setdefault("B", "2"),
            lambda e: e.clear(),
        ],
    )
    def test_mutation_rejected(self, mutate):
        env = FrozenEnv({"A": "1"})
        with pytest.raises(TypeError):
            mutate(env)
        assert env == {"A": "1"}


class TestDeferred:
    def test_renders_as_token(self):
        ref = Deferred(resource_id="db", attribute="endpoint_address")
        assert str(ref) == "${db.endpoint_address}"
        assert f"host={ref}" == "host=${db.endpoint_address}"

    def test_frozen(self):
        ref = Deferred(resource_id="db", attribute="endpoint_port")
        with pytest.raises(ValidationError):
            ref.attribute = "other"


class TestDependencyEdge:
    def test_defaults_to_hard_block(self):
        edge = DependencyEdge(source="a", target="b")
        assert edge.kind == EdgeKind.HARD_BLOCK


class TestResourceImmutability:
    def test_fields_cannot_be_reassigned(self, reference_topology):
        unit = reference_topology.get("billing-service")
        with pytest.raises(ValidationError):
            unit.image_ref = "other"

    def test_environment_cannot_be_mutated(self, reference_topology):
        unit = reference_topology.get("billing-service")
        with pytest.raises(TypeError):
            unit.derived_env["EXTRA"] = "x"
        assert "EXTRA" not in unit.environment

    def test_attributes_are_read_only(self, reference_topology):
        unit = reference_topology.get("billing-service")
        attrs = unit.attributes
        assert "logical_id" not in attrs
        assert "kind" not in attrs
        assert attrs["image_ref"] == "billing-service"
        with pytest.raises(TypeError):
            attrs["image_ref"] = "other"


class TestTopologyModel:
    def test_empty(self):
        topo = Topology(topology_id="t1", name="empty")
        assert topo.resources == []
        assert topo.edges == []
        assert topo.order == []
        assert topo.gateway is None

    def test_json_keeps_resource_types(self, reference_topology):
        restored = Topology.model_validate_json(reference_topology.model_dump_json())
        assert [type(r) for r in restored.resources] == [
            type(r) for r in reference_topology.resources
        ]
        unit = restored.get("patient-service")
        assert isinstance(unit, ServiceUnit)
        assert isinstance(unit.environment, FrozenEnv)
        assert restored.gateway.kind == ResourceKind.EDGE_GATEWAY

    def test_dependency_helpers(self, reference_topology):
        hard = reference_topology.dependencies_of("patient-service", EdgeKind.HARD_BLOCK)
        assert "billing-service" in hard
        dependents = reference_topology.dependents_of("billing-service")
        assert "patient-service" in dependents
        assert "api-gateway" in dependents
