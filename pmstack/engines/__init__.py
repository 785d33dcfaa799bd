from .base import ProvisioningEngine
from .dry_run import DryRunEngine
from .runner import DeploymentResult, ProvisioningRunner, ResourceStatus, resolve_tokens

__all__ = [
    "ProvisioningEngine",
    "DryRunEngine",
    "ProvisioningRunner",
    "DeploymentResult",
    "ResourceStatus",
    "resolve_tokens",
]
