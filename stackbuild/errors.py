"""Error types shared across stackbuild.

Every error carries a stable ``code`` string so that callers (the CLI or an
external build driver) can react programmatically without parsing messages.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass


class StackbuildError(Exception):
    """Base error for stackbuild operations."""

    def __init__(self, message: str, code: str = "stackbuild_error") -> None:
        super().__init__(message)
        self.code = code


class ConfigurationError(StackbuildError):
    """Raised when the build graph or a component definition is unusable.

    No valid build order or cache key can be derived, so the build must abort.
    """

    def __init__(self, message: str, code: str = "configuration_error") -> None:
        super().__init__(message, code=code)


class DependencyCycleError(ConfigurationError):
    """Raised when component dependencies form a cycle."""

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(
            f"Dependency cycle detected: {' -> '.join(self.cycle)}",
            code="dependency_cycle",
        )


class UnresolvedDependencyError(ConfigurationError):
    """Raised in strict mode when a dependency name is not registered."""

    def __init__(self, component: str, dependency: str) -> None:
        self.component = component
        self.dependency = dependency
        super().__init__(
            f"Component '{component}' depends on unknown component '{dependency}'",
            code="unresolved_dependency",
        )


class DuplicateComponentError(ConfigurationError):
    """Raised when two different components are registered under one name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"A different component named '{name}' is already registered",
            code="duplicate_component",
        )


class InsufficientSpecification(ConfigurationError):
    """Raised when a component lacks a field needed to build a cache key."""

    def __init__(self, field_name: str, component: object) -> None:
        self.field_name = field_name
        super().__init__(
            f"Cannot compute a remote cache key: '{field_name}' is missing "
            f"for {component!r}",
            code="insufficient_specification",
        )


class ComponentNotFoundError(StackbuildError, LookupError):
    """Raised when a component name is not registered in a library."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Component not found: {name}", code="component_not_found")


class StoreError(StackbuildError):
    """Raised when a local object store command fails.

    Attributes:
        operation: Logical operation (init, snapshot, restore, ...).
        command: The command line that failed, if any.
        exit_code: Process exit code, if the process ran.
        stderr: Captured standard error output.
    """

    def __init__(
        self,
        message: str,
        operation: str,
        command: str | None = None,
        exit_code: int | None = None,
        stderr: str | None = None,
        code: str = "store_error",
    ) -> None:
        super().__init__(message, code=code)
        self.operation = operation
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr


@dataclass
class TransferFailure:
    """A single failed remote cache transfer."""

    key: str
    error: Exception

    def __str__(self) -> str:
        return f"{self.key}: {self.error}"


class PartialFetchFailure(StackbuildError):
    """Raised after a batch of independent transfers when some of them failed.

    Attributes:
        failures: One entry per failed transfer.
        succeeded: Keys that were transferred successfully.
    """

    def __init__(
        self,
        failures: Sequence[TransferFailure],
        succeeded: Sequence[str] = (),
    ) -> None:
        self.failures = list(failures)
        self.succeeded = list(succeeded)
        details = "; ".join(str(f) for f in self.failures)
        super().__init__(
            f"{len(self.failures)} transfer(s) failed: {details}",
            code="partial_fetch_failure",
        )


__all__ = [
    "ComponentNotFoundError",
    "ConfigurationError",
    "DependencyCycleError",
    "DuplicateComponentError",
    "InsufficientSpecification",
    "PartialFetchFailure",
    "StackbuildError",
    "StoreError",
    "TransferFailure",
    "UnresolvedDependencyError",
]
