"""Dependency graph construction and cycle detection.

Edges point from a package to the workspace packages it uses
(``uses``/``uses_dev``). Reverse edges (``used_by``/``used_by_dev``) are
derived by inverting them, so every package knows who must be released
after it.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from polyrelease.config.schema import NamespaceConfig
from polyrelease.errors import CyclicDependencyError, PackageNotFoundError
from polyrelease.workspace.package import Manifest, Package


@dataclass(frozen=True)
class DependencyGraph:
    """Immutable graph of workspace packages.

    Attributes:
        packages: Mapping of package name to Package node.
        warnings: Non-fatal diagnostics collected while building.
    """

    packages: Mapping[str, Package]
    warnings: tuple[str, ...] = field(default=())

    def __contains__(self, name: object) -> bool:
        return name in self.packages

    def __iter__(self) -> Iterator[Package]:
        return iter(self.packages.values())

    def __len__(self) -> int:
        return len(self.packages)

    @property
    def names(self) -> list[str]:
        """Sorted package names."""
        return sorted(self.packages)

    def get(self, name: str) -> Package:
        """Get a package by name.

        Raises:
            PackageNotFoundError: If the package is not in the graph.
        """
        try:
            return self.packages[name]
        except KeyError as e:
            raise PackageNotFoundError(name, list(self.packages)) from e

    def dependents(self, name: str) -> tuple[str, ...]:
        """Direct runtime and dev dependents of a package."""
        return self.get(name).dependents

    def dependencies(self, name: str) -> tuple[str, ...]:
        """Direct runtime and dev dependencies of a package."""
        return self.get(name).dependencies

    def check_acyclic(self) -> None:
        """Raise if the graph contains any cycle.

        Raises:
            CyclicDependencyError: With every cycle found.
        """
        # Mutual pairs first, then any longer loop the DFS finds
        cycles = find_direct_cycles(self)
        cycles += [c for c in detect_cycles(self) if len(c) > 3]
        if cycles:
            raise CyclicDependencyError(cycles)


def workspace_dependencies(names: list[str], namespace: NamespaceConfig, own_name: str) -> list[str]:
    """Filter dependency names down to workspace packages.

    Args:
        names: Canonical dependency names in declaration order.
        namespace: Workspace namespace rule.
        own_name: Name of the declaring package (self references are dropped).

    Returns:
        Workspace dependency names, order preserved.
    """
    return [n for n in names if n != own_name and namespace.contains(n)]


def build_graph(
    manifests: Mapping[str, Manifest],
    namespace: NamespaceConfig,
) -> DependencyGraph:
    """Build the bidirectional dependency graph.

    A workspace dependency that is not among the loaded manifests is
    skipped with a warning.

    Args:
        manifests: Mapping of package name to manifest.
        namespace: Workspace namespace rule.

    Returns:
        The dependency graph.
    """
    uses: dict[str, list[str]] = {}
    uses_dev: dict[str, list[str]] = {}
    used_by: dict[str, list[str]] = {name: [] for name in manifests}
    used_by_dev: dict[str, list[str]] = {name: [] for name in manifests}
    warnings: list[str] = []

    for name, manifest in manifests.items():
        uses[name] = workspace_dependencies(manifest.dependencies, namespace, name)
        uses_dev[name] = workspace_dependencies(manifest.dev_dependencies, namespace, name)

    for name in manifests:
        for forward, reverse in ((uses, used_by), (uses_dev, used_by_dev)):
            for dependency in forward[name]:
                if dependency in reverse:
                    reverse[dependency].append(name)
                else:
                    warnings.append(f"Skipping {dependency} as it's not in this workspace")

    packages = {
        name: Package(
            name=name,
            path=manifest.path,
            version=manifest.version,
            repository=manifest.repository,
            uses=tuple(d for d in uses[name] if d in manifests),
            uses_dev=tuple(d for d in uses_dev[name] if d in manifests),
            used_by=tuple(used_by[name]),
            used_by_dev=tuple(used_by_dev[name]),
            test_command=manifest.test_command,
        )
        for name, manifest in manifests.items()
    }

    return DependencyGraph(packages=MappingProxyType(packages), warnings=tuple(warnings))


def find_direct_cycles(graph: DependencyGraph) -> list[list[str]]:
    """Find mutual (length 2) dependencies.

    For every package, intersect what it uses with what uses it; any
    overlap is a package that is both upstream and downstream.

    Args:
        graph: Dependency graph.

    Returns:
        One ``[package, other, package]`` witness per pair.
    """
    cycles: list[list[str]] = []
    seen: set[frozenset[str]] = set()
    for pkg in graph:
        for other in sorted(set(pkg.dependencies) & set(pkg.dependents)):
            pair = frozenset((pkg.name, other))
            if pair not in seen:
                seen.add(pair)
                cycles.append([pkg.name, other, pkg.name])
    return cycles


def detect_cycles(graph: DependencyGraph) -> list[list[str]]:
    """Detect cycles of any length with a depth-first search.

    Args:
        graph: Dependency graph.

    Returns:
        List of cycles, each a path that starts and ends with the same
        package. Empty if the graph is acyclic.
    """
    white, gray, black = 0, 1, 2
    color = {name: white for name in graph.packages}
    cycles: list[list[str]] = []

    for start in graph.names:
        if color[start] != white:
            continue

        # Iterative DFS; the stack holds (node, iterator over its dependencies)
        path: list[str] = [start]
        color[start] = gray
        stack = [(start, iter(sorted(graph.dependencies(start))))]

        while stack:
            node, neighbors = stack[-1]
            advanced = False
            for neighbor in neighbors:
                if color[neighbor] == gray:
                    cycle = path[path.index(neighbor) :] + [neighbor]
                    cycles.append(cycle)
                elif color[neighbor] == white:
                    color[neighbor] = gray
                    path.append(neighbor)
                    stack.append((neighbor, iter(sorted(graph.dependencies(neighbor)))))
                    advanced = True
                    break
            if not advanced:
                color[node] = black
                path.pop()
                stack.pop()

    return cycles
