"""Exception hierarchy for polyrelease.

Every error carries a human readable ``message``. The CLI prints it and
exits with a non-zero status; the commit/push stage is the only place
that catches errors and keeps going.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from polyrelease.execution.results import ExecutionResult


class PolyReleaseError(Exception):
    """Base class for all polyrelease errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(PolyReleaseError):
    """Invalid configuration, conflicting flags or missing credentials."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        self.path = path
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)


class WorkspaceNotFoundError(PolyReleaseError):
    """No polyrelease.yaml found in the directory or its parents."""

    def __init__(self, search_path: Path) -> None:
        self.search_path = search_path
        super().__init__(
            f"No polyrelease.yaml found in {search_path} or any parent directory"
        )


class PackageNotFoundError(PolyReleaseError):
    """Requested package is not part of the workspace."""

    def __init__(self, name: str, available: Sequence[str] = ()) -> None:
        self.name = name
        self.available = list(available)
        message = f"Package '{name}' not found"
        if self.available:
            message += f". Available: {', '.join(sorted(self.available))}"
        super().__init__(message)


class ManifestError(PolyReleaseError):
    """A package manifest could not be parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid manifest {path}: {reason}")


class CyclicDependencyError(PolyReleaseError):
    """The dependency graph contains at least one cycle."""

    def __init__(self, cycles: Sequence[Sequence[str]]) -> None:
        self.cycles = [list(c) for c in cycles]
        rendered = "; ".join(" -> ".join(c) for c in self.cycles)
        super().__init__(f"Circular dependencies detected: {rendered}")


class SchedulingError(PolyReleaseError):
    """The publish order could not be computed."""

    def __init__(self, remaining: Sequence[str]) -> None:
        self.remaining = sorted(remaining)
        super().__init__(
            "Cannot schedule packages, no batch can be formed for: "
            + ", ".join(self.remaining)
        )


class NoChangesError(PolyReleaseError):
    """The change set is empty outside of anchor-only mode."""

    def __init__(self) -> None:
        super().__init__("No changes detected. This must not happen!")


class InvalidVersionError(PolyReleaseError):
    """A package version is not a valid semantic version."""

    def __init__(self, version: str | None, package: str | None = None) -> None:
        self.version = version
        self.package = package
        subject = f" of package {package}" if package else ""
        super().__init__(f"Version {version!r}{subject} is not a valid semver version")


class ReleaseVersionError(PolyReleaseError):
    """An explicit release version was rejected during pre-flight checks."""

    def __init__(self, version: str, reason: str) -> None:
        self.version = version
        self.reason = reason
        super().__init__(f"New release version {version} {reason}")


class ExecutionError(PolyReleaseError):
    """An action failed while running in one or more packages."""

    def __init__(self, message: str, results: Sequence[ExecutionResult] = ()) -> None:
        self.results = list(results)
        super().__init__(message)


class TestFailureError(ExecutionError):
    """At least one package failed its test action."""

    __test__ = False

    def __init__(self, results: Sequence[ExecutionResult]) -> None:
        names = ", ".join(r.package_name for r in results)
        super().__init__(f"Tests failed for: {names}", results)


class PublishError(ExecutionError):
    """At least one package failed to publish."""

    def __init__(self, results: Sequence[ExecutionResult]) -> None:
        names = ", ".join(r.package_name for r in results)
        super().__init__(f"Publishing failed for: {names}", results)


class GitError(PolyReleaseError):
    """A git command failed."""

    def __init__(self, message: str, command: str | None = None) -> None:
        self.command = command
        if command:
            message = f"{message} (command: {command})"
        super().__init__(message)
