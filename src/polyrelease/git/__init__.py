"""Git integration."""

from polyrelease.git.changes import (
    ChangeSet,
    Commit,
    collect_changes,
    ensure_changes_saved,
    get_changes_from_commit,
    get_latest_commit,
)
from polyrelease.git.client import GitClient
from polyrelease.git.repo import (
    get_unpushed_commit_count,
    get_unsaved_changes,
    is_git_repo,
    run_git_command,
    run_git_command_async,
)

__all__ = [
    "ChangeSet",
    "Commit",
    "GitClient",
    "collect_changes",
    "ensure_changes_saved",
    "get_changes_from_commit",
    "get_latest_commit",
    "get_unpushed_commit_count",
    "get_unsaved_changes",
    "is_git_repo",
    "run_git_command",
    "run_git_command_async",
]
