"""Workspace facade tying configuration, manifests and graph together."""

from __future__ import annotations

from pathlib import Path

from polyrelease.config import PolyReleaseConfig, RepositoryConfig, find_config_file, load_config
from polyrelease.errors import ConfigurationError
from polyrelease.workspace.discovery import discover_manifests
from polyrelease.workspace.graph import DependencyGraph, build_graph
from polyrelease.workspace.package import Package


class Workspace:
    """A multi-repository workspace.

    The dependency graph is built from the manifests on first access to
    :attr:`graph`, so configuration-level checks can run before any
    manifest is read.

    Attributes:
        root: Workspace root directory (where polyrelease.yaml lives).
        config: Validated configuration.
    """

    def __init__(
        self,
        root: Path,
        config: PolyReleaseConfig,
        graph: DependencyGraph | None = None,
    ) -> None:
        self.root = root
        self.config = config
        self._graph = graph

    @classmethod
    def discover(cls, path: Path | None = None, *, lazy: bool = False) -> Workspace:
        """Load the workspace containing a directory.

        Args:
            path: Directory to search from. Defaults to cwd.
            lazy: Only read the configuration; manifests are loaded on
                first access to the graph.

        Returns:
            Loaded workspace.
        """
        config_path = find_config_file(path)
        config = load_config(config_path)
        if lazy:
            return cls(config_path.parent.resolve(), config)
        return cls.load(config_path.parent, config)

    @classmethod
    def load(cls, root: Path, config: PolyReleaseConfig) -> Workspace:
        """Load manifests and build the graph for a configuration."""
        workspace = cls(root.resolve(), config)
        workspace.load_graph()
        return workspace

    def load_graph(self) -> DependencyGraph:
        """Read the manifests and build the graph, once.

        Raises:
            ManifestError: If a manifest is malformed or two packages
                share a name.
        """
        if self._graph is None:
            manifests = discover_manifests(self.root, self.config)
            self._graph = build_graph(manifests, self.config.namespace)
        return self._graph

    @property
    def graph(self) -> DependencyGraph:
        """Dependency graph, never mutated once built."""
        return self.load_graph()

    @property
    def packages(self) -> dict[str, Package]:
        """All packages by name."""
        return dict(self.graph.packages)

    @property
    def repositories(self) -> list[RepositoryConfig]:
        return self.config.repositories

    def repository_path(self, repository: RepositoryConfig | str) -> Path:
        """Absolute path of a repository."""
        if isinstance(repository, str):
            found = self.config.get_repository(repository)
            if found is None:
                raise ConfigurationError(
                    f"Repository {repository} does not exist. "
                    f"Choose one of: {', '.join(self.config.repository_names)}"
                )
            repository = found
        return (self.root / repository.path).resolve()

    def packages_in_repository(self, name: str) -> list[Package]:
        """Packages owned by a repository, sorted by name."""
        return sorted(
            (p for p in self.graph if p.repository == name),
            key=lambda p: p.name,
        )
