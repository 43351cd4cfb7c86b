"""Parallel package actions with concurrency control."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable

from polyrelease.execution.results import BatchResult, ExecutionResult
from polyrelease.execution.runner import run_in_package
from polyrelease.workspace.package import Package

PackageAction = Callable[[Package], Awaitable[ExecutionResult]]
OutputHandler = Callable[[str, str, bool], None]


def command_action(
    command_for: Callable[[Package], str | None],
    *,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
    output_handler: OutputHandler | None = None,
) -> PackageAction:
    """Build an action running a per-package shell command.

    Packages for which ``command_for`` returns None are skipped.

    Args:
        command_for: Returns the command to run in a package.
        env: Environment variables.
        timeout: Per-package timeout in seconds.
        output_handler: Callback (pkg_name, line, is_stderr) for streaming output.

    Returns:
        Package action.
    """

    async def action(pkg: Package) -> ExecutionResult:
        command = command_for(pkg)
        if command is None:
            return ExecutionResult.skipped_result(pkg.name, "no command")

        on_out = None
        on_err = None
        if output_handler:
            handler = output_handler

            def _on_out(line: str) -> None:
                handler(pkg.name, line, False)

            def _on_err(line: str) -> None:
                handler(pkg.name, line, True)

            on_out = _on_out
            on_err = _on_err

        return await run_in_package(
            pkg,
            command,
            env=env,
            timeout=timeout,
            on_stdout=on_out,
            on_stderr=on_err,
        )

    return action


class ParallelExecutor:
    """Run package actions with controlled parallelism.

    Supports batch-by-batch (topological) execution and fail-fast
    behavior. Fail-fast never interrupts actions that already started;
    it only cancels the ones still waiting for a slot and every later
    batch.

    Attributes:
        concurrency: Maximum number of concurrent actions.
        fail_fast: Stop scheduling new actions after the first failure.
    """

    def __init__(
        self,
        concurrency: int = 4,
        fail_fast: bool = False,
    ) -> None:
        """Initialize executor.

        Args:
            concurrency: Maximum parallel actions.
            fail_fast: Stop on first failure.
        """
        self.concurrency = max(1, concurrency)
        self.fail_fast = fail_fast
        self._cancelled = False

    async def execute(
        self,
        packages: Iterable[Package],
        action: PackageAction,
    ) -> BatchResult:
        """Run an action across packages in parallel.

        Args:
            packages: Packages to run the action in.
            action: Coroutine function producing a result per package.

        Returns:
            Batch result with one result per package, in input order.
        """
        semaphore = asyncio.Semaphore(self.concurrency)

        async def run_one(pkg: Package) -> ExecutionResult:
            if self._cancelled:
                return ExecutionResult.cancelled_result(pkg.name)

            async with semaphore:
                if self._cancelled:
                    return ExecutionResult.cancelled_result(pkg.name)

                try:
                    result = await action(pkg)
                except Exception as e:
                    result = ExecutionResult.failure_result(pkg.name, stderr=str(e))

                if self.fail_fast and result.failed:
                    self._cancelled = True

                return result

        tasks = [asyncio.create_task(run_one(pkg)) for pkg in packages]
        results = await asyncio.gather(*tasks)

        return BatchResult(results=list(results))

    async def execute_batches(
        self,
        batches: Iterable[list[Package]],
        action: PackageAction,
        *,
        on_batch: Callable[[int, list[Package]], None] | None = None,
    ) -> BatchResult:
        """Run an action across package batches (topological order).

        Each batch runs in parallel, but batches are sequential: batch
        ``i + 1`` starts only after every action of batch ``i`` finished.

        Args:
            batches: Package batches in dependency order.
            action: Coroutine function producing a result per package.
            on_batch: Called with (index, packages) before a batch starts.

        Returns:
            Batch result with all execution results.
        """
        all_results: list[ExecutionResult] = []
        self._cancelled = False

        for index, batch in enumerate(batches):
            if self._cancelled:
                # Mark remaining as cancelled
                all_results.extend(ExecutionResult.cancelled_result(pkg.name) for pkg in batch)
                continue

            if on_batch:
                on_batch(index, batch)

            batch_result = await self.execute(batch, action)
            all_results.extend(batch_result.results)

            if self.fail_fast and batch_result.any_failure:
                self._cancelled = True

        return BatchResult(results=all_results)
