"""Release execution engine.

Drives a :class:`ReleasePlan` through the run state machine::

    PENDING -> TESTING -> DRY | PUBLISHING -> COMMITTING -> PUSHING -> DONE

Any stage may move to FAILED. Test and publish failures are fatal and
raised; commit/push failures are caught per repository and reported.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from polyrelease.config.schema import (
    AnchorConfig,
    PolyReleaseConfig,
    RepositoryConfig,
)
from polyrelease.errors import PolyReleaseError, PublishError, TestFailureError
from polyrelease.execution.parallel import OutputHandler, ParallelExecutor, command_action
from polyrelease.execution.results import BatchResult, ExecutionResult, ExecutionStatus
from polyrelease.git.client import GitClient
from polyrelease.release.plan import ReleasePlan
from polyrelease.uv.registry import Registry
from polyrelease.versioning.semver import Version
from polyrelease.workspace.package import AffectedPackage, Package


class ReleaseStage(Enum):
    PENDING = "pending"
    TESTING = "testing"
    DRY = "dry"
    PUBLISHING = "publishing"
    COMMITTING = "committing"
    PUSHING = "pushing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RepositoryResult:
    """Outcome of the commit/push stage for one repository.

    Attributes:
        repository: Repository name.
        committed: A commit was created (or echoed in dry-run mode).
        pushed: A push was performed (or echoed in dry-run mode).
        skipped: Reasons for skipped steps.
        error: Message of the error that stopped this repository, if any.
    """

    repository: str
    committed: bool = False
    pushed: bool = False
    skipped: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class ReleaseReport:
    """Everything a run did."""

    stage: ReleaseStage = ReleaseStage.PENDING
    tests: BatchResult | None = None
    published: BatchResult | None = None
    repositories: list[RepositoryResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True once the run reached DONE; commit/push errors do not count."""
        return self.stage == ReleaseStage.DONE

    @property
    def warnings(self) -> list[str]:
        return [f"{r.repository}: {r.error}" for r in self.repositories if r.error]


def publish_tag(name: str, version: str, config: PolyReleaseConfig) -> str:
    """Distribution tag for a release.

    Anchors on the prerelease channel (``<tag>.N``) go to that channel;
    everything else, explicit anchor releases included, goes to the
    stable tag.
    """
    tag = config.versioning.prerelease_tag
    if name in config.anchors and Version.is_valid(version):
        prerelease = Version.parse(version).prerelease or ""
        if tag in prerelease.split("."):
            return tag
    return config.publish.stable_tag


def commit_messages(releases: Sequence[AffectedPackage], anchors: AnchorConfig) -> list[str]:
    """``name@version`` lines, anchors first, then by name."""
    ordered = sorted(releases, key=lambda r: (r.name not in anchors, r.name))
    return [r.spec for r in ordered]


class ExecutionEngine:
    """Run the test, publish and commit/push stages of a plan.

    Attributes:
        config: Workspace configuration.
        registry: Version writer and publisher.
        git: Git client for the commit/push stage.
        console: Output console.
        error_console: Console for errors and ignored failures.
        dry_run: Publish stage only echoes mutating commands.
        output_handler: Receives streamed test output.
    """

    def __init__(
        self,
        config: PolyReleaseConfig,
        registry: Registry,
        git: GitClient,
        *,
        console: Console | None = None,
        error_console: Console | None = None,
        dry_run: bool = False,
        output_handler: OutputHandler | None = None,
    ) -> None:
        self.config = config
        self.registry = registry
        self.git = git
        self.console = console or Console()
        self.error_console = error_console or Console(stderr=True)
        self.dry_run = dry_run
        self.output_handler = output_handler
        self.report = ReleaseReport()

    @property
    def stage(self) -> ReleaseStage:
        return self.report.stage

    def _enter(self, stage: ReleaseStage) -> None:
        self.report.stage = stage

    async def test(self, plan: ReleasePlan) -> BatchResult:
        """Run package tests batch by batch.

        Packages without a test command are skipped.

        Raises:
            TestFailureError: If any package test fails.
        """
        self._enter(ReleaseStage.TESTING)
        self.console.print(
            f"\n[bold]Run [cyan]tests[/cyan].[/bold] Testing order: {', '.join(plan.order)}"
        )

        executor = ParallelExecutor(concurrency=self.config.test.concurrency, fail_fast=True)
        action = command_action(
            lambda pkg: pkg.test_command,
            env=self.config.env,
            timeout=self.config.test.timeout,
            output_handler=self.output_handler,
        )

        def on_batch(index: int, batch: list[Package]) -> None:
            names = ", ".join(p.name for p in batch)
            self.console.print(f"[dim]Batch {index + 1}:[/dim] {names}")

        result = await executor.execute_batches(plan.package_batches(), action, on_batch=on_batch)
        self.report.tests = result

        for r in result:
            if r.status == ExecutionStatus.SKIPPED:
                self.console.print(
                    f"Skipping [magenta]{r.package_name}[/magenta], as it doesn't have tests"
                )

        if result.any_failure:
            self._enter(ReleaseStage.FAILED)
            raise TestFailureError(result.failures)
        return result

    async def publish(self, plan: ReleasePlan) -> BatchResult:
        """Write versions and publish every release in batch order.

        Per package the order is fixed: pins and version are written,
        then the package is published. Siblings already running when a
        publish fails are allowed to finish; nothing after them starts.

        Raises:
            PublishError: If any package fails to publish.
        """
        self._enter(ReleaseStage.DRY if self.dry_run else ReleaseStage.PUBLISHING)
        verb = "Dry publish" if self.dry_run else "Publishing"
        self.console.print(
            f"\n[blue]{verb} [bold]{len(plan.releases)}[/bold] packages."
            + (f" Anchor version: [bold]{plan.anchor_version}[/bold]." if plan.anchor_version else "")
            + " Publish order:[/blue]"
        )
        for i, batch in enumerate(plan.batches):
            self.console.print(f"[blue]  {i + 1}. {', '.join(batch)}[/blue]")

        async def action(pkg: Package) -> ExecutionResult:
            release = plan.releases[pkg.name]
            tag = publish_tag(pkg.name, release.new_version, self.config)
            self.console.print(
                f"\n{verb} [magenta]{escape(release.spec)}[/magenta] [dim]on {tag}[/dim]"
            )
            start = time.monotonic()
            await self.registry.apply_version(pkg, release.new_version, release.pins)
            await self.registry.publish(pkg, tag)
            return ExecutionResult.success_result(
                pkg.name,
                duration_ms=int((time.monotonic() - start) * 1000),
                command=f"publish {release.spec} --tag {tag}",
            )

        batches = [
            [plan.graph.get(name) for name in batch if name in plan.releases]
            for batch in plan.batches
        ]
        executor = ParallelExecutor(concurrency=self.config.publish.concurrency, fail_fast=True)
        result = await executor.execute_batches([b for b in batches if b], action)
        self.report.published = result

        if result.any_failure:
            self._enter(ReleaseStage.FAILED)
            raise PublishError(result.failures)
        return result

    async def finalize_repository(
        self,
        repository: RepositoryConfig,
        directory: Path,
        messages: list[str],
        *,
        token: str | None = None,
    ) -> RepositoryResult:
        """Pull, commit and push one repository, never raising.

        Args:
            repository: Repository settings.
            directory: Repository directory.
            messages: Commit message paragraphs.
            token: Access token for CI pushes.

        Returns:
            The result, carrying the error message if a step failed.
        """
        result = RepositoryResult(repository.name)
        label = f"[cyan]./{escape(repository.path)}[/cyan]"
        try:
            await self.git.pull(directory)

            if not await self.git.unsaved_changes(directory):
                result.skipped.append("commit: already committed")
                self.console.print(
                    f"\n[bold]Skipping[/bold] committing changes of {label} "
                    "as they're already committed"
                )
            else:
                self.console.print(f"\nCommitting changes of {label}")
                await self.git.commit(directory, messages)
                result.committed = True

            self._enter(ReleaseStage.PUSHING)
            unpushed = await self.git.unpushed_commit_count(directory)
            if unpushed == 0:
                result.skipped.append("push: already pushed")
                self.console.print(
                    f"[bold]Skipping[/bold] pushing commits of {label} as they're already pushed"
                )
            else:
                self.console.print(f"There are {unpushed} unpushed local commits in {label}")
                await self.git.push(directory, token=token, push_url=repository.push_url)
                result.pushed = True
        except Exception as e:
            result.error = e.message if isinstance(e, PolyReleaseError) else str(e)
            self.error_console.print(f"[red]{escape(result.error)}[/red]")
            self.error_console.print("Ignoring this error, continuing")
        return result

    async def commit_and_push(
        self,
        plan: ReleasePlan,
        repositories: Sequence[tuple[RepositoryConfig, Path]],
        *,
        token: str | None = None,
    ) -> list[RepositoryResult]:
        """Best-effort commit/push of every repository with releases."""
        results = []
        for repository, directory in repositories:
            releases = plan.releases_in(repository.name)
            if not releases:
                continue
            self._enter(ReleaseStage.COMMITTING)
            messages = commit_messages(releases, self.config.anchors)
            results.append(
                await self.finalize_repository(repository, directory, messages, token=token)
            )
        self.report.repositories = results
        return results

    async def run(
        self,
        plan: ReleasePlan,
        repositories: Sequence[tuple[RepositoryConfig, Path]],
        *,
        test: bool = True,
        publish: bool = False,
        token: str | None = None,
    ) -> ReleaseReport:
        """Run the selected stages in order.

        Args:
            plan: Release plan.
            repositories: Pairs of (repository config, directory) in
                processing order.
            test: Run the test stage.
            publish: Run the publish (or dry publish) and commit/push stages.
            token: Access token for CI pushes.

        Returns:
            The run report with stage DONE.

        Raises:
            TestFailureError: If tests fail.
            PublishError: If publishing fails.
        """
        if test:
            await self.test(plan)
        if publish:
            await self.publish(plan)
            await self.commit_and_push(plan, repositories, token=token)
        self._enter(ReleaseStage.DONE)
        return self.report
