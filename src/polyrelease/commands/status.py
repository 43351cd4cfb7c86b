"""Repository utility commands: status, pull and order.

These bypass the affected-set pipeline entirely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.markup import escape

from polyrelease.commands.base import Command, CommandContext
from polyrelease.errors import PolyReleaseError
from polyrelease.git.client import GitClient
from polyrelease.git.repo import run_git_command_async
from polyrelease.release.scheduler import Batches, publish_order

if TYPE_CHECKING:
    from polyrelease.workspace.workspace import Workspace


@dataclass
class StatusResult:
    """``git status`` output per repository."""

    statuses: dict[str, str] = field(default_factory=dict)


class StatusCommand(Command[StatusResult]):
    """Run ``git status`` in every repository."""

    async def execute(self) -> StatusResult:
        result = StatusResult()
        for repo, directory in self.repositories:
            self.console.print(f"\nStatus for [cyan]{escape(repo.name)}[/cyan]")
            _, stdout, _ = await run_git_command_async(["status"], cwd=directory)
            self.console.print(escape(stdout.rstrip()))
            result.statuses[repo.name] = stdout
        return result


class PullCommand(Command[list[str]]):
    """Pull the default branch in every repository."""

    def __init__(self, context: CommandContext, git: GitClient | None = None) -> None:
        super().__init__(context)
        self.git = git or GitClient(context.runner(), self.workspace.config.git)

    async def execute(self) -> list[str]:
        """Pull each repository in configuration order.

        Returns:
            Names of the pulled repositories.

        Raises:
            GitError: On the first failing pull.
        """
        pulled = []
        for repo, directory in self.repositories:
            self.console.print(f"\nPulling [cyan]{escape(repo.name)}[/cyan]")
            await self.git.pull(directory)
            pulled.append(repo.name)
        return pulled


class OrderCommand(Command[Batches]):
    """Compute the publish batches of the whole workspace."""

    async def execute(self) -> Batches:
        graph = self.workspace.graph
        graph.check_acyclic()
        return publish_order(graph, graph.names)


async def handle_status_command(
    workspace: Workspace,
    *,
    console: Console,
    error_console: Console,
) -> None:
    try:
        context = CommandContext(workspace=workspace, console=console, error_console=error_console)
        await StatusCommand(context).execute()
    except PolyReleaseError as e:
        error_console.print(f"[red]Error:[/red] {escape(e.message)}")
        raise typer.Exit(1) from e


async def handle_pull_command(
    workspace: Workspace,
    *,
    console: Console,
    error_console: Console,
    dry_run: bool = False,
) -> None:
    try:
        context = CommandContext(
            workspace=workspace, dry_run=dry_run, console=console, error_console=error_console
        )
        pulled = await PullCommand(context).execute()
        console.print(f"\n[green]Pulled {len(pulled)} repositories[/green]")
    except PolyReleaseError as e:
        error_console.print(f"[red]Error:[/red] {escape(e.message)}")
        raise typer.Exit(1) from e


async def handle_order_command(
    workspace: Workspace,
    *,
    console: Console,
    error_console: Console,
) -> None:
    try:
        context = CommandContext(workspace=workspace, console=console, error_console=error_console)
        batches = await OrderCommand(context).execute()
        for warning in workspace.graph.warnings:
            console.print(f"[yellow]{escape(warning)}[/yellow]")
        for index, batch in enumerate(batches):
            console.print(f"[bold]{index + 1}.[/bold] {', '.join(batch)}")
    except PolyReleaseError as e:
        error_console.print(f"[red]Error:[/red] {escape(e.message)}")
        raise typer.Exit(1) from e
