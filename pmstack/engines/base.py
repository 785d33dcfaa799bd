from abc import ABC, abstractmethod
from typing import Any

from pmstack.models import Resource


class ProvisioningEngine(ABC):
    """External system that materializes resources.

    Engines receive one resource at a time, after all of its HardBlock
    dependencies are ready, with deferred values already resolved.
    """

    name: str = "engine"

    @abstractmethod
    async def provision(self, resource: Resource, properties: dict[str, Any]) -> dict[str, Any]:
        """Create the resource and return its outputs (e.g. endpoint_address)."""

    @abstractmethod
    async def teardown(self, resource: Resource) -> dict[str, Any]:
        """Destroy a previously provisioned resource."""
