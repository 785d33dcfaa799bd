from typing import Any


class ConfigurationError(ValueError):
    """Invalid topology configuration. Always fatal to a build, never retried."""

    def __init__(self, message: str, logical_id: str | None = None, phase: str | None = None):
        super().__init__(message)
        self.message = message
        self.logical_id = logical_id
        self.phase = phase

    def __str__(self) -> str:
        parts = []
        if self.phase:
            parts.append(f"[{self.phase}]")
        if self.logical_id:
            parts.append(f"{self.logical_id}:")
        parts.append(self.message)
        return " ".join(parts)


class DuplicateIdError(ConfigurationError):
    """A logical id was registered twice."""


class InvalidPortError(ConfigurationError):
    """A declared port is out of range or repeated within one unit."""


class DanglingReferenceError(ConfigurationError):
    """A resource or edge references a logical id that does not exist."""


class CyclicDependencyError(ConfigurationError):
    """The dependency edges do not form a DAG."""

    def __init__(self, cycle: list[str], phase: str | None = None):
        super().__init__(
            f"Dependency cycle: {' -> '.join(cycle)}",
            logical_id=cycle[0] if cycle else None,
            phase=phase,
        )
        self.cycle = cycle


class ProvisioningError(RuntimeError):
    """An external provisioning engine failed on a resource.

    Carries the partial deployment result so callers can see which
    resources became ready and which were blocked.
    """

    def __init__(self, message: str, logical_id: str, result: Any = None):
        super().__init__(message)
        self.logical_id = logical_id
        self.result = result
