"""Mutating git operations used after a successful publish."""

from __future__ import annotations

from pathlib import Path

from polyrelease.config.schema import GitConfig
from polyrelease.errors import ExecutionError, GitError
from polyrelease.execution.actions import ActionRunner
from polyrelease.git.repo import get_remotes, get_unpushed_commit_count, get_unsaved_changes


class GitClient:
    """Git operations routed through an :class:`ActionRunner`.

    Commit, pull and push are echoed and honour the runner's dry-run
    flag. Status queries always run.
    """

    def __init__(self, runner: ActionRunner, config: GitConfig | None = None) -> None:
        self.runner = runner
        self.config = config or GitConfig()

    async def unsaved_changes(self, cwd: Path, *, allow: list[str] | None = None) -> str | None:
        return await get_unsaved_changes(cwd, allow=allow)

    async def unpushed_commit_count(self, cwd: Path) -> int:
        return await get_unpushed_commit_count(cwd)

    async def _git(self, cwd: Path, *args: str, secret: str | None = None) -> None:
        display = None
        if secret:
            display = ["git", *(a.replace(secret, "***") for a in args)]
        try:
            await self.runner.run(cwd, ["git", *args], display=display)
        except ExecutionError as e:
            raise GitError(e.message) from e

    async def pull(self, cwd: Path) -> None:
        """Pull the default branch from the configured remote."""
        await self._git(cwd, "pull", self.config.remote, self.config.default_branch, "--no-edit")

    async def commit(self, cwd: Path, messages: list[str]) -> None:
        """Commit all tracked changes.

        Args:
            cwd: Repository directory.
            messages: One ``-m`` paragraph per message.
        """
        if not messages:
            raise GitError("Refusing to commit without a message")
        args = ["commit", "-a"]
        for message in messages:
            args.extend(["-m", message])
        await self._git(cwd, *args)

    async def push(
        self,
        cwd: Path,
        *,
        token: str | None = None,
        push_url: str | None = None,
    ) -> None:
        """Push the default branch.

        With a token and a push URL (CI), the push goes through a dedicated
        remote whose URL embeds the token and sets it as upstream.
        Otherwise the configured remote is used.

        Args:
            cwd: Repository directory.
            token: Access token for CI pushes.
            push_url: Remote URL template; ``{token}`` is replaced by the token.
        """
        branch = self.config.default_branch
        if token and push_url:
            remote = self.config.push_remote
            url = push_url.replace("{token}", token)
            if remote not in await get_remotes(cwd):
                await self._git(cwd, "remote", "add", remote, url, secret=token)
            else:
                await self._git(cwd, "remote", "set-url", remote, url, secret=token)
            await self._git(cwd, "push", "--set-upstream", remote, branch)
        else:
            await self._git(cwd, "push", self.config.remote, branch)
