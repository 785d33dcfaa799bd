"""Stack settings.

Every literal the deployment depends on (secrets, emulator endpoints,
usernames) comes from here and is handed to the TopologyBuilder.
"""

import logging
import os
from typing import Literal

from pydantic import BaseModel, Field, ValidationError

from pmstack.errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "PMSTACK_"

DEFAULT_BOOTSTRAP_SERVERS = (
    "localhost.localstack.cloud:4510",
    "localhost.localstack.cloud:4511",
    "localhost.localstack.cloud:4512",
)


class TaskSizing(BaseModel):
    cpu: int = Field(default=256, ge=256)
    memory_mib: int = Field(default=512, ge=512)


class StackSettings(BaseModel):
    region: str = "us-east-1"
    network_cidr: str = "10.0.0.0/16"
    availability_zones: int = Field(default=2, ge=1)
    jwt_secret: str | None = Field(default=None, repr=False)
    bootstrap_servers: tuple[str, ...] = DEFAULT_BOOTSTRAP_SERVERS
    database_username: str = "admin_user"
    discovery_namespace: str = "patient-management.local"
    docker_host_address: str = "host.docker.internal"
    localstack_endpoint: str = "http://localhost:4566"
    credential_backend: Literal["memory", "secretsmanager"] = "memory"
    log_retention_days: int = Field(default=1, ge=1)
    hikari_init_fail_timeout_ms: int = Field(default=60000, ge=0)
    task: TaskSizing = Field(default_factory=TaskSizing)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "StackSettings":
        """Build settings from PMSTACK_* environment variables.

        Unset variables fall back to the model defaults. Malformed values
        raise ConfigurationError.
        """
        data: dict = {}

        def _get(name: str) -> str | None:
            key = f"{ENV_PREFIX}{name}"
            value = os.getenv(key) if environ is None else environ.get(key)
            return value if value else None

        simple = {
            "REGION": "region",
            "NETWORK_CIDR": "network_cidr",
            "AVAILABILITY_ZONES": "availability_zones",
            "JWT_SECRET": "jwt_secret",
            "DATABASE_USERNAME": "database_username",
            "DISCOVERY_NAMESPACE": "discovery_namespace",
            "DOCKER_HOST_ADDRESS": "docker_host_address",
            "LOCALSTACK_ENDPOINT": "localstack_endpoint",
            "CREDENTIAL_BACKEND": "credential_backend",
            "LOG_RETENTION_DAYS": "log_retention_days",
        }
        for var, field in simple.items():
            value = _get(var)
            if value is not None:
                data[field] = value

        servers = _get("BOOTSTRAP_SERVERS")
        if servers:
            data["bootstrap_servers"] = tuple(s.strip() for s in servers.split(",") if s.strip())

        try:
            settings = cls.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            raise ConfigurationError(
                f"Invalid {ENV_PREFIX}{_env_name(first['loc'])}: {first['msg']}"
            ) from e
        if settings.jwt_secret is None:
            logger.warning("%sJWT_SECRET is not set", ENV_PREFIX)
        return settings


def _env_name(loc: tuple) -> str:
    """("availability_zones",) -> AVAILABILITY_ZONES"""
    return str(loc[0]).upper() if loc else "SETTINGS"
