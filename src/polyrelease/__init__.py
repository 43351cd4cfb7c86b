"""polyrelease - release orchestrator for multi-repository Python workspaces.

Given packages spread over several git repositories, polyrelease:
- Builds the workspace dependency graph and rejects cycles
- Resolves the packages affected by the latest commits
- Derives synchronized anchor versions and independent patch bumps
- Tests and publishes in dependency order with bounded concurrency
- Commits and pushes each repository on a best-effort basis
"""

from polyrelease.config import PolyReleaseConfig, load_config
from polyrelease.errors import (
    ConfigurationError,
    CyclicDependencyError,
    ExecutionError,
    GitError,
    InvalidVersionError,
    ManifestError,
    NoChangesError,
    PackageNotFoundError,
    PolyReleaseError,
    PublishError,
    ReleaseVersionError,
    SchedulingError,
    TestFailureError,
    WorkspaceNotFoundError,
)
from polyrelease.execution import (
    BatchResult,
    ExecutionResult,
    ExecutionStatus,
    ParallelExecutor,
)
from polyrelease.workspace import DependencyGraph, Package, Workspace

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Core
    "Workspace",
    "Package",
    "DependencyGraph",
    # Config
    "PolyReleaseConfig",
    "load_config",
    # Execution
    "ParallelExecutor",
    "ExecutionResult",
    "ExecutionStatus",
    "BatchResult",
    # Errors
    "PolyReleaseError",
    "ConfigurationError",
    "WorkspaceNotFoundError",
    "PackageNotFoundError",
    "ManifestError",
    "CyclicDependencyError",
    "SchedulingError",
    "NoChangesError",
    "InvalidVersionError",
    "ReleaseVersionError",
    "ExecutionError",
    "TestFailureError",
    "PublishError",
    "GitError",
]
