"""Execution result types."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum


class ExecutionStatus(Enum):
    """Outcome of running an action in one package."""

    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class ExecutionResult:
    """Result of running an action in a package.

    Attributes:
        package_name: Package the action ran in.
        status: Outcome.
        exit_code: Process exit code (-1 when not applicable).
        stdout: Captured standard output.
        stderr: Captured standard error, or the error message.
        duration_ms: Wall time in milliseconds.
        command: The command that was run, if any.
    """

    package_name: str
    status: ExecutionStatus
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    command: str | None = None

    @property
    def success(self) -> bool:
        return self.status in (ExecutionStatus.SUCCESS, ExecutionStatus.SKIPPED)

    @property
    def failed(self) -> bool:
        return self.status == ExecutionStatus.FAILURE

    @classmethod
    def success_result(
        cls,
        package_name: str,
        *,
        stdout: str = "",
        stderr: str = "",
        duration_ms: int = 0,
        command: str | None = None,
    ) -> ExecutionResult:
        return cls(
            package_name=package_name,
            status=ExecutionStatus.SUCCESS,
            exit_code=0,
            stdout=stdout,
            stderr=stderr,
            duration_ms=duration_ms,
            command=command,
        )

    @classmethod
    def failure_result(
        cls,
        package_name: str,
        *,
        exit_code: int = -1,
        stdout: str = "",
        stderr: str = "",
        duration_ms: int = 0,
        command: str | None = None,
    ) -> ExecutionResult:
        return cls(
            package_name=package_name,
            status=ExecutionStatus.FAILURE,
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            duration_ms=duration_ms,
            command=command,
        )

    @classmethod
    def skipped_result(cls, package_name: str, reason: str = "") -> ExecutionResult:
        return cls(
            package_name=package_name,
            status=ExecutionStatus.SKIPPED,
            exit_code=0,
            stdout=reason,
        )

    @classmethod
    def cancelled_result(cls, package_name: str) -> ExecutionResult:
        return cls(
            package_name=package_name,
            status=ExecutionStatus.CANCELLED,
            exit_code=-1,
        )


@dataclass
class BatchResult:
    """Results of an action across many packages."""

    results: list[ExecutionResult] = field(default_factory=list)

    def __iter__(self) -> Iterator[ExecutionResult]:
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)

    @property
    def all_success(self) -> bool:
        return all(r.success for r in self.results)

    @property
    def any_failure(self) -> bool:
        return any(r.failed for r in self.results)

    @property
    def failures(self) -> list[ExecutionResult]:
        return [r for r in self.results if r.failed]

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.status == ExecutionStatus.SUCCESS)

    @property
    def skipped_count(self) -> int:
        return sum(1 for r in self.results if r.status == ExecutionStatus.SKIPPED)

    @property
    def cancelled_count(self) -> int:
        return sum(1 for r in self.results if r.status == ExecutionStatus.CANCELLED)
