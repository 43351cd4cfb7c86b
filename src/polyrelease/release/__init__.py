"""Release planning and execution."""

from polyrelease.release.affected import packages_owning, resolve_affected, transitive_dependents
from polyrelease.release.engine import (
    ExecutionEngine,
    ReleaseReport,
    ReleaseStage,
    RepositoryResult,
    commit_messages,
    publish_tag,
)
from polyrelease.release.plan import ReleasePlan
from polyrelease.release.scheduler import Batches, batch_index, flatten, publish_order

__all__ = [
    "Batches",
    "ExecutionEngine",
    "ReleasePlan",
    "ReleaseReport",
    "ReleaseStage",
    "RepositoryResult",
    "batch_index",
    "commit_messages",
    "flatten",
    "packages_owning",
    "publish_order",
    "publish_tag",
    "resolve_affected",
    "transitive_dependents",
]
