import pytest
from httpx import ASGITransport, AsyncClient

from pmstack.config import StackSettings
from pmstack.credentials import InMemoryCredentialStore
from pmstack.engines import DryRunEngine
from pmstack.models import DatabaseSpec, ServiceSpec, TopologySpec
from pmstack.safety import RollbackManager
from pmstack.topology import build_topology, patient_management_topology


@pytest.fixture()
def settings():
    """Settings with a JWT secret so the reference topology builds."""
    return StackSettings(jwt_secret="test-jwt-secret")


@pytest.fixture()
def credentials():
    """Fresh in-memory credential store per test."""
    return InMemoryCredentialStore()


@pytest.fixture()
def reference_spec(settings):
    return patient_management_topology(settings)


@pytest.fixture()
def reference_topology(reference_spec, settings, credentials):
    return build_topology(reference_spec, settings, credentials)


@pytest.fixture()
def patient_spec():
    """One database and one service bound to it."""
    return TopologySpec(
        name="patient-only",
        databases=[
            DatabaseSpec(logical_id="patient-service-db", database_name="patient-service-db")
        ],
        services=[
            ServiceSpec(
                logical_id="patient-service",
                image_ref="patient-service",
                ports=[4000],
                database="patient-service-db",
            )
        ],
    )


@pytest.fixture()
def dry_run_engine():
    return DryRunEngine()


@pytest.fixture()
async def client(monkeypatch):
    """Async HTTP test client for the FastAPI app."""
    from pmstack.main import app

    monkeypatch.setenv("PMSTACK_JWT_SECRET", "test-jwt-secret")
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def rollback_mgr():
    """Fresh RollbackManager instance per test."""
    return RollbackManager()
