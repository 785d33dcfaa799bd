"""Hands a finalized topology to a provisioning engine.

Resources start only once every HardBlock target is ready; SoftOrdering
edges only shape the start order. A failed resource blocks all of its
dependents and the failure is raised to the caller. Nothing is retried.
"""

import asyncio
import logging
import time
import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from pmstack.credentials import CredentialStore
from pmstack.errors import ProvisioningError
from pmstack.models import (
    TOKEN_PATTERN,
    EdgeKind,
    ManagedDatabase,
    RemovalPolicy,
    Resource,
    Topology,
)
from pmstack.observability.metrics import METRICS
from pmstack.safety.rollback import RollbackManager

from .base import ProvisioningEngine

logger = logging.getLogger(__name__)


class ResourceStatus(str, Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"
    BLOCKED = "blocked"  # a HardBlock dependency failed


class DeploymentResult(BaseModel):
    deployment_id: str
    topology_id: str
    engine: str
    statuses: dict[str, ResourceStatus] = Field(default_factory=dict)
    outputs: dict[str, dict[str, Any]] = Field(default_factory=dict)
    errors: dict[str, str] = Field(default_factory=dict)
    teardown: list[dict[str, Any]] = Field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def succeeded(self) -> bool:
        return all(s == ResourceStatus.READY for s in self.statuses.values())

    def with_status(self, status: ResourceStatus) -> list[str]:
        return [lid for lid, s in self.statuses.items() if s == status]


def resolve_tokens(value: Any, outputs: dict[str, dict[str, Any]], owner_id: str) -> Any:
    """Replace deferred values with the outputs of provisioned resources.

    Tokens that point at `owner_id` itself are left alone; they only
    exist once the owner has been created.
    """
    if isinstance(value, dict):
        if set(value) == {"resource_id", "attribute"}:
            if value["resource_id"] == owner_id:
                return value
            return _lookup(outputs, value["resource_id"], value["attribute"], owner_id)
        return {k: resolve_tokens(v, outputs, owner_id) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_tokens(v, outputs, owner_id) for v in value]
    if isinstance(value, str):

        def _sub(match) -> str:
            resource_id, attribute = match.group(1), match.group(2)
            if resource_id == owner_id:
                return match.group(0)
            return str(_lookup(outputs, resource_id, attribute, owner_id))

        return TOKEN_PATTERN.sub(_sub, value)
    return value


def _lookup(outputs: dict[str, dict[str, Any]], resource_id: str, attribute: str, owner_id: str):
    try:
        return outputs[resource_id][attribute]
    except KeyError:
        raise ProvisioningError(
            f"{resource_id}.{attribute} is not available; "
            f"{resource_id} must be provisioned before {owner_id}",
            logical_id=owner_id,
        ) from None


class ProvisioningRunner:
    """Provision a topology with bounded parallelism.

    With a credential store, each database's secret is created right
    before the database itself and deleted after it is torn down.
    """

    def __init__(
        self,
        engine: ProvisioningEngine,
        max_parallel: int = 4,
        rollback: RollbackManager | None = None,
        credentials: CredentialStore | None = None,
    ):
        if max_parallel < 1:
            raise ValueError("max_parallel must be >= 1")
        self.engine = engine
        self.max_parallel = max_parallel
        self.rollback = rollback or RollbackManager()
        self.credentials = credentials

    async def deploy(self, topology: Topology) -> DeploymentResult:
        """Provision every resource, honoring HardBlock edges.

        Raises ProvisioningError (chained to the engine's exception) if any
        resource fails; the partial result is attached to the error.
        """
        result = DeploymentResult(
            deployment_id=str(uuid.uuid4())[:8],
            topology_id=topology.topology_id,
            engine=self.engine.name,
            statuses={lid: ResourceStatus.PENDING for lid in topology.order},
            started_at=datetime.now(UTC),
        )
        hard = {
            lid: topology.dependencies_of(lid, EdgeKind.HARD_BLOCK) for lid in topology.order
        }
        semaphore = asyncio.Semaphore(self.max_parallel)
        running: dict[asyncio.Task, str] = {}
        first_failure: tuple[str, BaseException] | None = None

        logger.info(
            "Deployment %s: provisioning %d resources of topology %s via %s",
            result.deployment_id,
            len(topology.order),
            topology.topology_id,
            self.engine.name,
        )

        try:
            while True:
                # order is topological, so one pass propagates blocking transitively
                for lid in topology.order:
                    if result.statuses[lid] == ResourceStatus.PENDING and any(
                        result.statuses[dep] in (ResourceStatus.FAILED, ResourceStatus.BLOCKED)
                        for dep in hard[lid]
                    ):
                        result.statuses[lid] = ResourceStatus.BLOCKED
                        logger.warning("Deployment %s: %s blocked", result.deployment_id, lid)

                in_flight = set(running.values())
                for lid in topology.order:
                    if (
                        result.statuses[lid] == ResourceStatus.PENDING
                        and lid not in in_flight
                        and all(result.statuses[dep] == ResourceStatus.READY for dep in hard[lid])
                    ):
                        task = asyncio.create_task(
                            self._provision_one(
                                result.deployment_id, topology.get(lid), result.outputs, semaphore
                            )
                        )
                        running[task] = lid

                if not running:
                    break

                done, _ = await asyncio.wait(running, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    lid = running.pop(task)
                    exc = task.exception()
                    if exc is not None:
                        result.statuses[lid] = ResourceStatus.FAILED
                        result.errors[lid] = str(exc)
                        if first_failure is None:
                            first_failure = (lid, exc)
                    else:
                        result.statuses[lid] = ResourceStatus.READY
                        result.outputs[lid] = task.result()
        finally:
            for task in running:
                task.cancel()
            result.completed_at = datetime.now(UTC)

        if first_failure is not None:
            lid, exc = first_failure
            logger.error(
                "Deployment %s failed at %s: %s (%d blocked)",
                result.deployment_id,
                lid,
                exc,
                len(result.with_status(ResourceStatus.BLOCKED)),
            )
            raise ProvisioningError(
                f"Provisioning {lid} failed: {exc}", logical_id=lid, result=result
            ) from exc

        logger.info(
            "Deployment %s complete, %d resources registered for teardown",
            result.deployment_id,
            len(self.rollback.pending(result.deployment_id)),
        )
        return result

    async def _provision_one(
        self,
        deployment_id: str,
        resource: Resource,
        outputs: dict[str, dict[str, Any]],
        semaphore: asyncio.Semaphore,
    ) -> dict[str, Any]:
        async with semaphore:
            properties = resolve_tokens(dict(resource.attributes), outputs, resource.logical_id)
            start = time.perf_counter()
            try:
                if self.credentials is not None and isinstance(resource, ManagedDatabase):
                    self.credentials.materialize(resource.credential_ref, resource.username)
                resource_outputs = await self.engine.provision(resource, properties)
            except Exception as e:
                METRICS.record_provisioning(resource.kind.value, "failed")
                logger.error("Provisioning %s failed: %s", resource.logical_id, e)
                raise
            METRICS.record_provisioning(
                resource.kind.value, "ready", time.perf_counter() - start
            )
            logger.info("Provisioned %s %s", resource.kind.value, resource.logical_id)

        if resource.removal_policy == RemovalPolicy.DESTROY:

            async def teardown():
                output = await self.engine.teardown(resource)
                if self.credentials is not None and isinstance(resource, ManagedDatabase):
                    self.credentials.discard(resource.credential_ref)
                return output

            self.rollback.push(deployment_id, resource.logical_id, teardown)
        return resource_outputs or {}

    async def teardown(self, result: DeploymentResult) -> list[dict[str, Any]]:
        """Destroy a deployment's Destroy-policy resources in reverse order."""
        result.teardown = await self.rollback.rollback(result.deployment_id)
        return result.teardown
