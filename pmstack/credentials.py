"""Credential stores.

Building a topology only reserves a credential reference; the secret
itself is created when the owning database is provisioned and deleted
when it is torn down. The topology never sees the plaintext secret.
"""

import json
import logging
import secrets
import uuid
from abc import ABC, abstractmethod

from pmstack.config import StackSettings
from pmstack.errors import ConfigurationError

logger = logging.getLogger(__name__)

CREDENTIAL_BACKENDS = ("memory", "secretsmanager")


def _short_id() -> str:
    return str(uuid.uuid4())[:8]


class CredentialStore(ABC):
    """Reserves, creates and deletes database credentials."""

    def generate(self, owner_id: str, username: str) -> str:
        """Reserve a reference for `owner_id`'s credential. No side effects."""
        return f"{owner_id}-credentials-{_short_id()}"

    @abstractmethod
    def materialize(self, ref: str, username: str) -> str:
        """Create the secret behind `ref` and return its provider identifier."""

    @abstractmethod
    def discard(self, ref: str) -> None:
        """Delete the secret behind `ref`."""


class InMemoryCredentialStore(CredentialStore):
    """Keeps created secrets in process memory. Used for planning and tests."""

    def __init__(self, password_length: int = 30):
        self.password_length = password_length
        self._secrets: dict[str, dict[str, str]] = {}

    def materialize(self, ref: str, username: str) -> str:
        self._secrets[ref] = {
            "username": username,
            "password": secrets.token_urlsafe(self.password_length),
        }
        logger.debug("Created in-memory credential %s", ref)
        return ref

    def discard(self, ref: str) -> None:
        self._secrets.pop(ref, None)

    def __contains__(self, ref: object) -> bool:
        return ref in self._secrets

    def __len__(self) -> int:
        return len(self._secrets)


class SecretsManagerCredentialStore(CredentialStore):
    """AWS Secrets Manager backed store, pointed at the LocalStack endpoint.

    The reference is the secret name, which the password lookup
    expression resolves at deploy time.
    """

    def __init__(self, region: str = "us-east-1", endpoint_url: str | None = None):
        self._region = region
        self._endpoint_url = endpoint_url
        self._client = None

    def _get_client(self):
        if self._client is None:
            import boto3

            self._client = boto3.client(
                "secretsmanager",
                region_name=self._region,
                endpoint_url=self._endpoint_url,
            )
        return self._client

    def materialize(self, ref: str, username: str) -> str:
        client = self._get_client()
        password = client.get_random_password(
            PasswordLength=30,
            ExcludePunctuation=True,
        )["RandomPassword"]
        response = client.create_secret(
            Name=ref,
            SecretString=json.dumps({"username": username, "password": password}),
        )
        logger.info("Created secret %s", response["Name"])
        return response["ARN"]

    def discard(self, ref: str) -> None:
        self._get_client().delete_secret(SecretId=ref, ForceDeleteWithoutRecovery=True)
        logger.info("Deleted secret %s", ref)


def credential_store(settings: StackSettings, backend: str | None = None) -> CredentialStore:
    """Store for `backend`, defaulting to the configured one."""
    backend = backend or settings.credential_backend
    if backend == "memory":
        return InMemoryCredentialStore()
    if backend == "secretsmanager":
        return SecretsManagerCredentialStore(
            region=settings.region, endpoint_url=settings.localstack_endpoint
        )
    raise ConfigurationError(
        f"Unknown credential backend {backend!r}; expected one of {', '.join(CREDENTIAL_BACKENDS)}"
    )
