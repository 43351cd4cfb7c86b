"""polyrelease CLI application."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from polyrelease.errors import PolyReleaseError
from polyrelease.workspace import Workspace


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from polyrelease import __version__

        print(f"polyrelease {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="polyrelease",
    help="Release orchestrator for multi-repository Python workspaces",
    no_args_is_help=True,
    add_completion=False,
)


@app.callback()
def _app_callback(
    version: Annotated[  # noqa: ARG001
        bool,
        typer.Option("--version", "-V", help="Show version and exit", callback=version_callback),
    ] = False,
) -> None:
    """Release orchestrator for multi-repository Python workspaces."""
    pass


console = Console()
error_console = Console(stderr=True)


def get_workspace(path: Path | None = None) -> Workspace:
    """Load workspace configuration from current directory or specified path.

    Manifests are read later, once a command first needs the graph.
    """
    try:
        return Workspace.discover(path, lazy=True)
    except PolyReleaseError as e:
        error_console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1) from e


@app.command()
def release(
    publish: Annotated[
        bool,
        typer.Option("--publish", help="Publish affected packages"),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Echo the publish commands without running them"),
    ] = False,
    release_version: Annotated[
        str | None,
        typer.Option("--release", help="Explicit anchor release version (implies --publish)"),
    ] = None,
    release_tag: Annotated[
        str | None,
        typer.Option(
            "--release-tag",
            envvar="POLYRELEASE_RELEASE_TAG",
            help="Release version taken from a CI tag",
            show_envvar=True,
        ),
    ] = None,
    test_changed: Annotated[
        bool,
        typer.Option("--test-changed", help="Also test affected packages when publishing"),
    ] = False,
    test_all: Annotated[
        bool,
        typer.Option("--test-all", help="Test every package in the workspace"),
    ] = False,
    all_repos: Annotated[
        bool,
        typer.Option("--all-repos", help="Use the latest commit of every repository"),
    ] = False,
    repo: Annotated[
        str | None,
        typer.Option("--repo", "-r", help="Only look at changes in this repository"),
    ] = None,
    dirty: Annotated[
        bool,
        typer.Option("--dirty", help="Skip the uncommitted-changes guard"),
    ] = False,
    anchor_only: Annotated[
        bool,
        typer.Option(
            "--anchor-only",
            envvar="POLYRELEASE_ANCHOR_ONLY",
            help="Release only the anchors and their dependents",
        ),
    ] = False,
    ci: Annotated[
        bool,
        typer.Option("--ci", envvar="CI", help="Running in CI"),
    ] = False,
    github_token: Annotated[
        str | None,
        typer.Option("--github-token", envvar="GITHUB_TOKEN", help="Token for CI pushes"),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip the confirmation prompt"),
    ] = False,
) -> None:
    """Test, version and publish packages affected by the latest changes."""
    from polyrelease.commands import ReleaseOptions, handle_release_command

    workspace = get_workspace()
    options = ReleaseOptions(
        publish=publish,
        dry_run=dry_run,
        test_changed=test_changed,
        test_all=test_all,
        release=release_version,
        release_tag=release_tag,
        all_repos=all_repos,
        repo=repo,
        dirty=dirty,
        anchor_only=anchor_only,
        ci=ci,
        github_token=github_token,
        yes=yes,
    )

    asyncio.run(
        handle_release_command(
            workspace, options, console=console, error_console=error_console
        )
    )


@app.command()
def status() -> None:
    """Show git status of every repository."""
    from polyrelease.commands import handle_status_command

    workspace = get_workspace()
    asyncio.run(handle_status_command(workspace, console=console, error_console=error_console))


@app.command()
def pull(
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Echo the pull commands without running them"),
    ] = False,
) -> None:
    """Pull the default branch in every repository."""
    from polyrelease.commands import handle_pull_command

    workspace = get_workspace()
    asyncio.run(
        handle_pull_command(
            workspace, console=console, error_console=error_console, dry_run=dry_run
        )
    )


@app.command()
def order() -> None:
    """Print the publish batches of the whole workspace."""
    from polyrelease.commands import handle_order_command

    workspace = get_workspace()
    asyncio.run(handle_order_command(workspace, console=console, error_console=error_console))


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
