import logging
from typing import Any

from pmstack.models import Resource, ResourceKind

from .base import ProvisioningEngine

logger = logging.getLogger(__name__)


class DryRunEngine(ProvisioningEngine):
    """Records provisioning calls and synthesizes plausible outputs.

    Nothing leaves the process; used for plans, the HTTP dry-run endpoint
    and tests.
    """

    name = "dry-run"

    def __init__(self, host: str = "localhost.localstack.cloud", database_port: int = 5432):
        self.host = host
        self.database_port = database_port
        self.provisioned: list[str] = []
        self.torn_down: list[str] = []
        self.properties: dict[str, dict[str, Any]] = {}

    async def provision(self, resource: Resource, properties: dict[str, Any]) -> dict[str, Any]:
        self.provisioned.append(resource.logical_id)
        self.properties[resource.logical_id] = properties
        logger.info("[dry-run] provision %s %s", resource.kind.value, resource.logical_id)

        if resource.kind == ResourceKind.DATABASE:
            return {
                "endpoint_address": f"{resource.logical_id}.{self.host}",
                "endpoint_port": str(self.database_port),
            }
        if resource.kind == ResourceKind.EDGE_GATEWAY:
            return {"load_balancer_dns": f"{resource.logical_id}.elb.{self.host}"}
        if resource.kind == ResourceKind.SERVICE_UNIT:
            return {"service_name": properties.get("service_name", resource.logical_id)}
        return {"id": resource.logical_id}

    async def teardown(self, resource: Resource) -> dict[str, Any]:
        self.torn_down.append(resource.logical_id)
        logger.info("[dry-run] teardown %s %s", resource.kind.value, resource.logical_id)
        return {"destroyed": resource.logical_id, "dry_run": True}
