"""Git repository queries."""

from __future__ import annotations

import asyncio
import re
import subprocess
from pathlib import Path

from polyrelease.errors import GitError

AHEAD_PATTERN = re.compile(r"branch\.ab\s\+(\d+)")


def run_git_command(
    args: list[str],
    cwd: Path | None = None,
    *,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run a git command synchronously.

    Args:
        args: Git command arguments (without 'git').
        cwd: Working directory.
        check: Raise on non-zero exit code.

    Returns:
        Completed process result.

    Raises:
        GitError: If command fails and check is True.
    """
    cmd = ["git"] + args

    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
        if check and result.returncode != 0:
            raise GitError(
                result.stderr.strip() or f"Command failed with exit code {result.returncode}",
                command=" ".join(cmd),
            )
        return result
    except FileNotFoundError as e:
        raise GitError("Git is not installed") from e


async def run_git_command_async(
    args: list[str],
    cwd: Path | None = None,
    *,
    check: bool = True,
) -> tuple[int, str, str]:
    """Run a git command asynchronously.

    Args:
        args: Git command arguments (without 'git').
        cwd: Working directory.
        check: Raise on non-zero exit code.

    Returns:
        Tuple of (exit_code, stdout, stderr).

    Raises:
        GitError: If command fails and check is True.
    """
    cmd = ["git"] + args

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout_bytes, stderr_bytes = await process.communicate()
        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")

        if check and process.returncode != 0:
            raise GitError(
                stderr.strip() or f"Command failed with exit code {process.returncode}",
                command=" ".join(cmd),
            )

        return process.returncode or 0, stdout, stderr
    except FileNotFoundError as e:
        raise GitError("Git is not installed") from e


def is_git_repo(path: Path) -> bool:
    """Check if path is inside a git repository.

    Args:
        path: Path to check.

    Returns:
        True if path is inside a git repository.
    """
    try:
        result = run_git_command(
            ["rev-parse", "--git-dir"],
            cwd=path,
            check=False,
        )
        return result.returncode == 0
    except (FileNotFoundError, GitError):
        return False


def porcelain_path(line: str) -> str:
    """Extract the path from a ``git status --porcelain`` line.

    Renames (``old -> new``) report the new path.
    """
    path = line[3:]
    if " -> " in path:
        path = path.split(" -> ", 1)[1]
    return path.strip('"')


async def get_unsaved_changes(cwd: Path, *, allow: list[str] | None = None) -> str | None:
    """Get uncommitted changes of a repository.

    Args:
        cwd: Repository directory.
        allow: Paths (relative to the repository) whose changes are ignored.

    Returns:
        Porcelain status lines of the remaining changes, or None when clean.
    """
    _, stdout, _ = await run_git_command_async(["status", "--porcelain"], cwd=cwd)
    allowed = set(allow or [])
    lines = [
        line
        for line in stdout.splitlines()
        if line.strip() and porcelain_path(line) not in allowed
    ]
    return "\n".join(lines) or None


def parse_unpushed_count(output: str) -> int:
    """Read the number of commits ahead of upstream from porcelain v2 output."""
    for line in output.splitlines():
        if line.startswith("# branch.ab"):
            match = AHEAD_PATTERN.search(line)
            if match:
                return int(match.group(1))
    return 0


async def get_unpushed_commit_count(cwd: Path) -> int:
    """Count local commits not yet pushed to the upstream branch.

    Args:
        cwd: Repository directory.

    Returns:
        Number of commits ahead; 0 when there is no upstream.
    """
    _, stdout, _ = await run_git_command_async(["status", "--porcelain=v2", "--branch"], cwd=cwd)
    return parse_unpushed_count(stdout)


async def get_remotes(cwd: Path) -> list[str]:
    """List configured remote names."""
    _, stdout, _ = await run_git_command_async(["remote"], cwd=cwd)
    return [r for r in stdout.strip().splitlines() if r]
