from fastapi import APIRouter, HTTPException

from pmstack.config import StackSettings
from pmstack.credentials import CredentialStore, credential_store
from pmstack.engines import DeploymentResult, DryRunEngine, ProvisioningRunner
from pmstack.errors import ConfigurationError, ProvisioningError
from pmstack.models import Topology, TopologySpec
from pmstack.topology import build_topology, patient_management_topology

router = APIRouter()


def _unprocessable(e: ConfigurationError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={"error": e.message, "logical_id": e.logical_id, "phase": e.phase},
    )


def _settings() -> tuple[StackSettings, CredentialStore]:
    try:
        settings = StackSettings.from_env()
        return settings, credential_store(settings)
    except ConfigurationError as e:
        raise _unprocessable(e)


def _build(spec: TopologySpec, settings: StackSettings, store: CredentialStore) -> Topology:
    try:
        return build_topology(spec, settings, store)
    except ConfigurationError as e:
        raise _unprocessable(e)


@router.get("/reference", response_model=Topology)
async def get_reference_topology():
    """Build the patient-management reference topology from environment settings."""
    settings, store = _settings()
    try:
        spec = patient_management_topology(settings)
    except ConfigurationError as e:
        raise _unprocessable(e)
    return _build(spec, settings, store)


@router.post("/plan", response_model=Topology)
async def plan_topology(spec: TopologySpec):
    """Build a topology from a submitted specification."""
    return _build(spec, *_settings())


@router.post("/dry-run", response_model=DeploymentResult)
async def dry_run(spec: TopologySpec, teardown: bool = False):
    """Build a topology and walk it through the dry-run engine.

    With `teardown=true` the deployment is unwound before returning.
    """
    settings, store = _settings()
    topology = _build(spec, settings, store)
    runner = ProvisioningRunner(DryRunEngine(), credentials=store)
    try:
        result = await runner.deploy(topology)
    except ProvisioningError as e:
        raise HTTPException(status_code=502, detail={"error": str(e), "logical_id": e.logical_id})
    if teardown:
        await runner.teardown(result)
    return result
