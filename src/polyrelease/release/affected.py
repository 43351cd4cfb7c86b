"""Affected-set resolution.

Maps a change set onto the packages that own the changed files, forces
the anchors in, and closes the set over reverse dependencies so every
transitive dependent of a changed package is released with it.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from polyrelease.errors import NoChangesError, PackageNotFoundError

if TYPE_CHECKING:
    from polyrelease.config.schema import AnchorConfig
    from polyrelease.workspace.graph import DependencyGraph


def packages_owning(graph: DependencyGraph, changes: Sequence[Path]) -> set[str]:
    """Names of packages whose directory contains at least one changed file."""
    return {pkg.name for pkg in graph if any(pkg.owns(change) for change in changes)}


def transitive_dependents(graph: DependencyGraph, seeds: Iterable[str]) -> set[str]:
    """Close a set of packages over ``used_by`` and ``used_by_dev``.

    Worklist traversal; each package is enqueued at most once, so the
    cost is O(V + E).

    Args:
        graph: Dependency graph.
        seeds: Starting package names.

    Returns:
        The seeds plus all of their transitive dependents.
    """
    visited: set[str] = set()
    queue: deque[str] = deque()
    for seed in seeds:
        if seed not in visited:
            visited.add(seed)
            queue.append(seed)

    while queue:
        current = queue.popleft()
        for dependent in graph.dependents(current):
            if dependent not in visited:
                visited.add(dependent)
                queue.append(dependent)

    return visited


def resolve_affected(
    graph: DependencyGraph,
    changes: Sequence[Path],
    anchors: AnchorConfig,
    *,
    anchor_only: bool = False,
) -> frozenset[str]:
    """Compute the set of packages that must be released together.

    Args:
        graph: Dependency graph (already checked for cycles).
        changes: Absolute paths of changed files.
        anchors: Anchor packages; the core anchor is always included.
        anchor_only: Seed with the anchors only and ignore ``changes``.

    Returns:
        The affected set.

    Raises:
        NoChangesError: If ``changes`` is empty outside anchor-only mode.
        PackageNotFoundError: If the core anchor is not in the workspace.
    """
    if anchor_only:
        seeds = {name for name in anchors.names if name in graph}
    else:
        if not changes:
            raise NoChangesError()
        seeds = packages_owning(graph, changes)

    if anchors.core not in graph:
        raise PackageNotFoundError(anchors.core, graph.names)
    seeds.add(anchors.core)

    return frozenset(transitive_dependents(graph, seeds))
