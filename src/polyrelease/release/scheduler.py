"""Publish-order scheduling.

Layered topological sort over the reverse-dependency edges of the
packages being released: a package lands in a batch only once every
package it depends on (within the set) sits in an earlier batch.
"""

from __future__ import annotations

from collections.abc import Collection
from typing import TYPE_CHECKING

from polyrelease.errors import SchedulingError

if TYPE_CHECKING:
    from polyrelease.workspace.graph import DependencyGraph

Batches = list[list[str]]


def publish_order(graph: DependencyGraph, names: Collection[str]) -> Batches:
    """Arrange packages into sequential, internally independent batches.

    Args:
        graph: Dependency graph.
        names: Packages to schedule. Edges to packages outside this set
            are ignored.

    Returns:
        Batches in execution order; names inside a batch are sorted.

    Raises:
        SchedulingError: If no batch can be formed while packages remain.
    """
    members = set(names)
    # dag[x] lists the in-set packages that must wait for x
    dag = {
        name: [d for d in graph.dependents(name) if d in members and d != name]
        for name in members
    }
    pending = {name: 0 for name in members}
    for dependents in dag.values():
        for dependent in dependents:
            pending[dependent] += 1

    batches: Batches = []
    ready = sorted(n for n, count in pending.items() if count == 0)
    scheduled = 0

    while ready:
        batches.append(ready)
        scheduled += len(ready)
        next_ready: list[str] = []
        for name in ready:
            for dependent in dag[name]:
                pending[dependent] -= 1
                if pending[dependent] == 0:
                    next_ready.append(dependent)
        ready = sorted(set(next_ready))

    if scheduled != len(members):
        done = {n for batch in batches for n in batch}
        raise SchedulingError(sorted(members - done))

    return batches


def flatten(batches: Batches) -> list[str]:
    """Batches as a single ordered list."""
    return [name for batch in batches for name in batch]


def batch_index(batches: Batches) -> dict[str, int]:
    """Map each package to the index of its batch."""
    return {name: i for i, batch in enumerate(batches) for name in batch}
