"""Release command implementation."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from polyrelease.commands.base import Command, CommandContext
from polyrelease.errors import ConfigurationError, PolyReleaseError
from polyrelease.git.changes import collect_changes
from polyrelease.git.client import GitClient
from polyrelease.release.affected import resolve_affected
from polyrelease.release.engine import ExecutionEngine, ReleaseReport
from polyrelease.release.plan import ReleasePlan
from polyrelease.release.scheduler import publish_order
from polyrelease.uv.registry import Registry, UvRegistry
from polyrelease.versioning.derive import (
    compute_anchor_version,
    derive_versions,
    validate_release_version,
)

if TYPE_CHECKING:
    from polyrelease.workspace.workspace import Workspace


@dataclass
class ReleaseOptions:
    """Options for the release command.

    Every run-level setting lives here; nothing below the CLI reads the
    process environment.
    """

    publish: bool = False
    dry_run: bool = False
    test_changed: bool = False
    test_all: bool = False
    release: str | None = None
    release_tag: str | None = None
    all_repos: bool = False
    repo: str | None = None
    dirty: bool = False
    anchor_only: bool = False
    ci: bool = False
    github_token: str | None = None
    yes: bool = False

    @property
    def will_publish(self) -> bool:
        """Packages are really published."""
        return self.publish or self.release is not None

    @property
    def runs_publish_stage(self) -> bool:
        """The publish stage runs, for real or dry."""
        return self.will_publish or self.dry_run

    @property
    def runs_tests(self) -> bool:
        if self.dry_run:
            return False
        return (
            not self.will_publish
            or self.test_changed
            or self.release is not None
            or self.test_all
        )

    @property
    def skip_dirty_guard(self) -> bool:
        """Test-only runs and ``--dirty`` skip the unsaved-changes guard."""
        return self.dirty or not self.runs_publish_stage

    def resolve(self) -> ReleaseOptions:
        """Check flag combinations and apply implied flags.

        Returns:
            A new options object; ``release`` implies ``publish`` and
            anchor-only mode.

        Raises:
            ConfigurationError: On conflicting flags or a missing credential.
        """
        if self.dry_run and self.publish:
            raise ConfigurationError(
                "Can't use --dry-run and --publish at the same time. "
                "Please choose for either one or the other."
            )

        options = self
        if self.release_tag:
            if self.release:
                raise ConfigurationError(
                    "Can't provide env var POLYRELEASE_RELEASE_TAG and --release at the same time"
                )
            options = replace(options, release=self.release_tag, release_tag=None)

        if options.release is not None:
            options = replace(options, publish=True, anchor_only=True)

        if options.ci and options.will_publish and not options.github_token:
            raise ConfigurationError("Missing env var GITHUB_TOKEN")

        return options


@dataclass
class ReleaseResult:
    """Result of the release command."""

    plan: ReleasePlan
    report: ReleaseReport | None = None

    @property
    def success(self) -> bool:
        return self.report is not None and self.report.success


class ReleaseCommand(Command[ReleaseResult]):
    """Test, version and publish the packages affected by recent changes."""

    def __init__(
        self,
        context: CommandContext,
        options: ReleaseOptions | None = None,
        *,
        registry: Registry | None = None,
        git: GitClient | None = None,
    ) -> None:
        super().__init__(context)
        self.options = (options or ReleaseOptions()).resolve()
        self.config = self.workspace.config
        runner = context.runner(dry_run=self.is_dry_run)
        versioning = self.config.versioning
        self.registry = registry or UvRegistry(
            runner,
            self.config.publish,
            spellings=(versioning.prerelease_tag, versioning.release_channel),
        )
        self.git = git or GitClient(runner, self.config.git)

    @property
    def is_dry_run(self) -> bool:
        return self.options.dry_run or self.context.dry_run

    async def check_release_version(self) -> None:
        """Reject an explicit release version before any graph work.

        Raises:
            ReleaseVersionError: If the version is invalid, not greater
                than the published CLI anchor, or off-channel.
        """
        if self.options.release is None:
            return
        published = await self.registry.query_remote_version(self.config.anchors.cli)
        validate_release_version(
            self.options.release,
            published=published,
            channel=self.config.versioning.release_channel,
        )

    async def plan(self) -> ReleasePlan:
        """Compute affected packages, versions and publish order.

        Raises:
            ReleaseVersionError: If an explicit release is rejected.
            CyclicDependencyError: If the graph has a cycle.
            GitError: If a repository is dirty or git fails.
            NoChangesError: If nothing changed outside anchor-only mode.
            InvalidVersionError: If a package version does not parse.
            SchedulingError: If the publish order cannot be formed.
        """
        options = self.options
        await self.check_release_version()

        graph = self.workspace.graph
        graph.check_acyclic()

        changes = await collect_changes(
            self.repositories,
            all_repos=options.all_repos,
            repo=options.repo,
            dirty=options.skip_dirty_guard,
        )
        if not options.will_publish and not options.test_all:
            self.console.print("[bold]Changed files:[/bold]")
            for path in changes:
                self.console.print(f"  {escape(str(path))}")

        affected = resolve_affected(
            graph, changes.files, self.config.anchors, anchor_only=options.anchor_only
        )
        targets = frozenset(graph.names) if options.test_all else affected
        batches = publish_order(graph, targets)

        releases = {}
        anchor_version = None
        if options.runs_publish_stage:
            anchor_version = options.release or await compute_anchor_version(
                graph, self.config.anchors, self.config.versioning, self.registry
            )
            releases = await derive_versions(
                graph,
                affected,
                anchors=self.config.anchors,
                anchor_version=anchor_version,
                registry=self.registry if options.ci else None,
            )

        return ReleasePlan(
            graph=graph,
            targets=targets,
            batches=batches,
            releases=releases,
            anchor_version=anchor_version,
            changes=changes,
            warnings=list(graph.warnings),
        )

    async def run(self, plan: ReleasePlan) -> ReleaseReport:
        """Execute a plan."""
        engine = ExecutionEngine(
            self.config,
            self.registry,
            self.git,
            console=self.console,
            error_console=self.context.error_console,
            dry_run=self.is_dry_run,
        )
        return await engine.run(
            plan,
            self.repositories,
            test=self.options.runs_tests,
            publish=self.options.runs_publish_stage,
            token=self.options.github_token if self.options.ci else None,
        )

    async def execute(self) -> ReleaseResult:
        """Plan then run."""
        plan = await self.plan()
        return ReleaseResult(plan=plan, report=await self.run(plan))


async def release(
    workspace: Workspace,
    options: ReleaseOptions | None = None,
    *,
    console: Console | None = None,
) -> ReleaseResult:
    """Convenience function to run a release."""
    context = CommandContext(workspace=workspace, console=console or Console())
    cmd = ReleaseCommand(context, options)
    return await cmd.execute()


def render_plan(plan: ReleasePlan) -> Table:
    """Plan as a table of packages in publish order."""
    table = Table(title="Release plan")
    table.add_column("Batch", style="dim")
    table.add_column("Package", style="cyan")
    table.add_column("Repository")
    table.add_column("Current", style="dim")
    table.add_column("Next", style="green")

    for index, batch in enumerate(plan.batches):
        for name in batch:
            pkg = plan.graph.get(name)
            release = plan.releases.get(name)
            table.add_row(
                str(index + 1),
                name,
                pkg.repository,
                pkg.version or "-",
                release.new_version if release else "-",
            )
    return table


async def handle_release_command(
    workspace: Workspace,
    options: ReleaseOptions,
    *,
    console: Console,
    error_console: Console,
) -> None:
    """Handle the release command from the CLI with plan and confirmation."""
    try:
        context = CommandContext(
            workspace=workspace, console=console, error_console=error_console
        )
        cmd = ReleaseCommand(context, options)
        options = cmd.options

        plan = await cmd.plan()
        for warning in plan.warnings:
            console.print(f"[yellow]{escape(warning)}[/yellow]")

        if options.anchor_only:
            console.print("[bold]Anchor-only mode: releasing the anchors and their dependents.[/bold]")
        if options.dry_run:
            console.print("[yellow]Dry run - no changes will be made[/yellow]\n")
        console.print(render_plan(plan))

        if options.will_publish:
            if options.release:
                console.print(
                    f"\n[red bold]This will release {escape(options.release)} "
                    f"on {workspace.config.publish.stable_tag}![/red bold]"
                )
            if not options.yes and not typer.confirm("\nProceed with publishing?", default=False):
                console.print("[yellow]Release cancelled.[/yellow]")
                return

        report = await cmd.run(plan)
        for warning in report.warnings:
            console.print(f"[yellow]Ignored: {escape(warning)}[/yellow]")

        if options.runs_publish_stage:
            verb = "Dry published" if options.dry_run else "Published"
            console.print(f"\n[green]{verb} {len(plan.releases)} packages[/green]")
        else:
            console.print(f"\n[green]Tested {len(plan)} packages[/green]")

    except typer.Exit:
        raise
    except PolyReleaseError as e:
        error_console.print(f"[red]Error:[/red] {escape(e.message)}")
        raise typer.Exit(1) from e
    except Exception as e:
        error_console.print_exception()
        raise typer.Exit(1) from e
