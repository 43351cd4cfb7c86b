"""Package model."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class Manifest(BaseModel):
    """Validated view of a package manifest as read from disk.

    Attributes:
        name: Canonical package name.
        path: Path to the manifest file.
        version: Declared version, None when the manifest has none.
        dependencies: Canonical names of runtime dependencies.
        dev_dependencies: Canonical names of dev/optional dependencies.
        test_command: Command running the package tests, if any.
        repository: Name of the repository holding the package.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    path: Path
    version: str | None = None
    dependencies: list[str] = Field(default_factory=list)
    dev_dependencies: list[str] = Field(default_factory=list)
    test_command: str | None = None
    repository: str = ""


@dataclass(frozen=True, slots=True)
class Package:
    """A workspace package with its dependency edges.

    Forward edges (``uses``, ``uses_dev``) are declared by the package;
    reverse edges (``used_by``, ``used_by_dev``) are derived when the
    graph is built.

    Attributes:
        name: Canonical package name, unique across the workspace.
        path: Path to the package manifest.
        version: Current version string (validated before use).
        repository: Name of the owning repository.
        uses: Workspace packages this package depends on at runtime.
        uses_dev: Workspace packages this package depends on for development.
        used_by: Workspace packages depending on this one at runtime.
        used_by_dev: Workspace packages depending on this one for development.
        test_command: Test action, None if the package has no tests.
    """

    name: str
    path: Path
    version: str | None = None
    repository: str = ""
    uses: tuple[str, ...] = ()
    uses_dev: tuple[str, ...] = ()
    used_by: tuple[str, ...] = ()
    used_by_dev: tuple[str, ...] = ()
    test_command: str | None = None

    @property
    def directory(self) -> Path:
        """Directory containing the manifest."""
        return self.path.parent

    @property
    def dependencies(self) -> tuple[str, ...]:
        """All workspace dependencies, runtime first."""
        return self.uses + tuple(d for d in self.uses_dev if d not in self.uses)

    @property
    def dependents(self) -> tuple[str, ...]:
        """All workspace dependents, runtime first."""
        return self.used_by + tuple(d for d in self.used_by_dev if d not in self.used_by)

    @property
    def has_tests(self) -> bool:
        return self.test_command is not None

    def owns(self, file_path: Path) -> bool:
        """Check whether a file lies inside the package directory."""
        try:
            file_path.relative_to(self.directory)
        except ValueError:
            return False
        return True


@dataclass(frozen=True, slots=True)
class AffectedPackage:
    """A package scheduled for release together with its next version."""

    package: Package
    new_version: str
    pins: dict[str, str] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.package.name

    @property
    def old_version(self) -> str | None:
        return self.package.version

    @property
    def spec(self) -> str:
        """``name@version`` label used in logs and commit messages."""
        return f"{self.package.name}@{self.new_version}"
