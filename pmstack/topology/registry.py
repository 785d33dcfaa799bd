import logging

from pmstack.errors import DuplicateIdError
from pmstack.models import Resource, ResourceKind
from pmstack.observability.metrics import METRICS

logger = logging.getLogger(__name__)


class ResourceRegistry:
    """Resource descriptors keyed by logical id, in registration order.

    Registration order is the default provisioning order when no edges
    constrain it. Resources are never removed during a build.
    """

    def __init__(self):
        self._resources: dict[str, Resource] = {}

    def register(self, resource: Resource) -> Resource:
        """Add a resource. Raises DuplicateIdError and leaves the registry unchanged on a clash."""
        if resource.logical_id in self._resources:
            raise DuplicateIdError(
                f"Resource id already registered as {self._resources[resource.logical_id].kind.value}",
                logical_id=resource.logical_id,
            )
        self._resources[resource.logical_id] = resource
        METRICS.record_resource_registered(resource.kind.value)
        logger.debug("Registered %s %s", resource.kind.value, resource.logical_id)
        return resource

    def get(self, logical_id: str) -> Resource | None:
        return self._resources.get(logical_id)

    def all(self) -> list[Resource]:
        return list(self._resources.values())

    def of_kind(self, kind: ResourceKind) -> list[Resource]:
        return [r for r in self._resources.values() if r.kind == kind]

    def index_of(self, logical_id: str) -> int:
        return list(self._resources).index(logical_id)

    def __contains__(self, logical_id: object) -> bool:
        return logical_id in self._resources

    def __len__(self) -> int:
        return len(self._resources)
