"""Dry-run aware runner for external commands.

Mutating commands (version bumps, publishes, commits, pushes) go
through :meth:`ActionRunner.run`, which echoes them and, in dry-run
mode, only echoes them. Read-only queries go through
:meth:`ActionRunner.output` and always execute.
"""

from __future__ import annotations

import shlex
from collections.abc import Callable, Sequence
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from polyrelease.errors import ExecutionError
from polyrelease.execution.runner import run_exec


class ActionRunner:
    """Run external programs on behalf of the release pipeline.

    Attributes:
        console: Console receiving the command echo.
        dry_run: If True, mutating commands are logged but not executed.
        root: Paths are displayed relative to this directory.
        env: Extra environment variables for every command.
    """

    def __init__(
        self,
        console: Console | None = None,
        *,
        dry_run: bool = False,
        root: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> None:
        self.console = console or Console()
        self.dry_run = dry_run
        self.root = root
        self.env = dict(env or {})

    def _display_dir(self, cwd: Path) -> str:
        if self.root is not None:
            try:
                relative = cwd.resolve().relative_to(self.root.resolve())
                return f"./{relative.as_posix()}" if str(relative) != "." else "./"
            except ValueError:
                pass
        return str(cwd)

    def echo(self, cwd: Path, args: Sequence[str], *, dry: bool = False) -> None:
        """Print a command the way it is (or would be) run."""
        directory = self._display_dir(cwd)
        padding = " " * max(1, 20 - len(directory))
        line = (
            f"[underline]{escape(directory)}[/underline]{padding}"
            f"[bold]{escape(shlex.join(args))}[/bold]"
        )
        if dry:
            line += " [dim](dry)[/dim]"
        self.console.print(line)

    async def run(
        self,
        cwd: Path,
        args: Sequence[str],
        *,
        env: dict[str, str] | None = None,
        display: Sequence[str] | None = None,
    ) -> None:
        """Run a mutating command.

        Args:
            cwd: Working directory.
            args: Program and arguments.
            env: Extra environment variables.
            display: Arguments to echo instead of ``args`` (hides secrets).

        Raises:
            ExecutionError: If the command exits non-zero.
        """
        self.echo(cwd, display or args, dry=self.dry_run)
        if self.dry_run:
            return

        run_env = {**self.env, **(env or {})}
        exit_code, stdout, stderr, _ = await run_exec(args, cwd, env=run_env)
        if exit_code != 0:
            raise ExecutionError(
                f"Error running {shlex.join(display or args)} in {self._display_dir(cwd)}: "
                + (stderr.strip() or stdout.strip() or f"exit code {exit_code}")
            )

    def edit(self, path: Path, description: Sequence[str], apply: Callable[[], None]) -> None:
        """Apply an in-process file edit, echoed like a command.

        Args:
            path: File being edited; its directory is shown.
            description: Pseudo-command describing the edit.
            apply: Performs the edit; not called in dry-run mode.
        """
        self.echo(path.parent, description, dry=self.dry_run)
        if not self.dry_run:
            apply()

    async def output(
        self,
        cwd: Path,
        args: Sequence[str],
        *,
        check: bool = True,
    ) -> str:
        """Run a read-only command and return its stdout.

        Args:
            cwd: Working directory.
            args: Program and arguments.
            check: Raise on non-zero exit code.

        Raises:
            ExecutionError: If ``check`` and the command exits non-zero.
        """
        exit_code, stdout, stderr, _ = await run_exec(args, cwd, env=self.env)
        if check and exit_code != 0:
            raise ExecutionError(
                f"Error running {shlex.join(args)} in {self._display_dir(cwd)}: "
                + (stderr.strip() or f"exit code {exit_code}")
            )
        return stdout
