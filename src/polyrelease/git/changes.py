"""Change-set collection from the latest commits of each repository."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from polyrelease.config.schema import RepositoryConfig
from polyrelease.errors import ConfigurationError, GitError
from polyrelease.git.repo import get_unsaved_changes, is_git_repo, run_git_command_async


@dataclass(frozen=True, slots=True)
class Commit:
    """The latest commit of a repository.

    Attributes:
        repository: Repository name.
        directory: Repository directory.
        hash: Commit SHA.
        date: Author date.
        parents: Parent commit SHAs.
    """

    repository: str
    directory: Path
    hash: str
    date: datetime
    parents: tuple[str, ...] = ()

    @property
    def is_merge_commit(self) -> bool:
        return len(self.parents) > 1


@dataclass(frozen=True)
class ChangeSet:
    """Files judged changed since the last release point.

    Attributes:
        files: Absolute paths of changed files.
        commits: Commits the files were taken from.
    """

    files: tuple[Path, ...] = ()
    commits: tuple[Commit, ...] = field(default=())

    def __iter__(self) -> Iterator[Path]:
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)

    def __bool__(self) -> bool:
        return bool(self.files)


def parse_commit_line(repository: str, directory: Path, line: str) -> Commit:
    """Parse ``<iso date> <hash> <parents...>`` as printed by git log."""
    parts = line.strip().split()
    if len(parts) < 2:
        raise GitError(f"Unexpected git log output in {directory}: {line!r}")
    date_str, commit_hash, *parents = parts
    if date_str.endswith("Z"):
        date_str = date_str[:-1] + "+00:00"
    return Commit(
        repository=repository,
        directory=directory,
        hash=commit_hash,
        date=datetime.fromisoformat(date_str),
        parents=tuple(parents),
    )


async def get_latest_commit(repository: str, directory: Path) -> Commit:
    """Get the latest commit of a repository."""
    _, stdout, _ = await run_git_command_async(
        ["log", "--pretty=format:%ad %H %P", "--date=iso-strict", "-n", "1"],
        cwd=directory,
    )
    return parse_commit_line(repository, directory, stdout)


async def get_changes_from_commit(commit: Commit) -> list[Path]:
    """List files touched by a commit.

    Merge commits are diffed across their parents.

    Returns:
        Absolute paths of the changed files.
    """
    hashes = list(commit.parents) if commit.is_merge_commit else [commit.hash]
    _, stdout, _ = await run_git_command_async(
        ["diff-tree", "--root", "--no-commit-id", "--name-only", "-r", *hashes],
        cwd=commit.directory,
    )
    return [commit.directory / line for line in stdout.splitlines() if line.strip()]


async def ensure_changes_saved(repositories: Sequence[tuple[RepositoryConfig, Path]]) -> None:
    """Fail if any repository has uncommitted changes.

    Args:
        repositories: Pairs of (repository config, repository directory).

    Raises:
        GitError: Naming the first dirty repository and its changes.
    """
    unsaved = await asyncio.gather(
        *(get_unsaved_changes(directory, allow=repo.allow_dirty) for repo, directory in repositories)
    )
    for (repo, _), changes in zip(repositories, unsaved, strict=True):
        if changes:
            raise GitError(
                f"{repo.name} has unsaved changes. Before publishing, please commit them. "
                f"Changes:\n\n{changes}\n"
            )


async def collect_changes(
    repositories: Sequence[tuple[RepositoryConfig, Path]],
    *,
    all_repos: bool = False,
    repo: str | None = None,
    dirty: bool = False,
) -> ChangeSet:
    """Collect the files changed by the latest commits.

    Args:
        repositories: Pairs of (repository config, repository directory).
        all_repos: Union the latest commit of every repository instead of
            only the most recent one.
        repo: Restrict to a single repository.
        dirty: Skip the uncommitted-changes guard.

    Returns:
        The change set (may be empty; the resolver decides if that is fatal).

    Raises:
        ConfigurationError: If ``repo`` names an unknown repository.
        GitError: If a repository is dirty or a git command fails.
    """
    if repo is not None and repo not in {r.name for r, _ in repositories}:
        raise ConfigurationError(
            f"Provided repo {repo} does not exist. "
            f"Please choose one of: {', '.join(r.name for r, _ in repositories)}."
        )

    for config, directory in repositories:
        if not is_git_repo(directory):
            raise GitError(f"Repository {config.name} at {directory} is not a git repository")

    if not dirty:
        await ensure_changes_saved(repositories)

    selected = [(r, d) for r, d in repositories if repo is None or r.name == repo]
    commits = await asyncio.gather(*(get_latest_commit(r.name, d) for r, d in selected))
    commits = sorted(commits, key=lambda c: c.date, reverse=True)

    if not all_repos:
        commits = commits[:1]

    changes = await asyncio.gather(*(get_changes_from_commit(c) for c in commits))
    files = [path for per_commit in changes for path in per_commit]

    return ChangeSet(files=tuple(files), commits=tuple(commits))
