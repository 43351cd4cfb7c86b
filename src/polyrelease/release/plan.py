"""Release plan: the read-only result of the planning phase."""

from __future__ import annotations

from dataclasses import dataclass, field

from polyrelease.git.changes import ChangeSet
from polyrelease.release.scheduler import Batches, flatten
from polyrelease.workspace.graph import DependencyGraph
from polyrelease.workspace.package import AffectedPackage, Package


@dataclass
class ReleasePlan:
    """What a run will test, publish and commit.

    Attributes:
        graph: Dependency graph the plan was computed from.
        targets: Packages the run operates on (affected set, or every
            package when testing all).
        batches: Publish order of ``targets``.
        releases: Version assignments, empty when nothing is published.
        anchor_version: Synchronized anchor version, if computed.
        changes: Change set the affected set was resolved from.
        warnings: Non-fatal diagnostics collected while planning.
    """

    graph: DependencyGraph
    targets: frozenset[str]
    batches: Batches
    releases: dict[str, AffectedPackage] = field(default_factory=dict)
    anchor_version: str | None = None
    changes: ChangeSet = field(default_factory=ChangeSet)
    warnings: list[str] = field(default_factory=list)

    @property
    def order(self) -> list[str]:
        return flatten(self.batches)

    @property
    def ordered_releases(self) -> list[AffectedPackage]:
        """Releases in publish order."""
        return [self.releases[name] for name in self.order if name in self.releases]

    def package_batches(self) -> list[list[Package]]:
        """Batches resolved to Package objects."""
        return [[self.graph.get(name) for name in batch] for batch in self.batches]

    def releases_in(self, repository: str) -> list[AffectedPackage]:
        """Releases whose package lives in a repository."""
        return [r for r in self.ordered_releases if r.package.repository == repository]

    def __len__(self) -> int:
        return len(self.targets)
