"""Base command infrastructure."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Generic, TypeVar

from rich.console import Console

from polyrelease.config.schema import RepositoryConfig
from polyrelease.execution.actions import ActionRunner
from polyrelease.workspace import Workspace

TResult = TypeVar("TResult")


@dataclass
class CommandContext:
    """Context passed to all commands.

    Attributes:
        workspace: The workspace instance.
        dry_run: If True, mutating commands are echoed but not run.
        console: Console for regular output.
        error_console: Console for errors.
        env: Extra environment variables for every command.
    """

    workspace: Workspace
    dry_run: bool = False
    console: Console = field(default_factory=Console)
    error_console: Console = field(default_factory=lambda: Console(stderr=True))
    env: dict[str, str] = field(default_factory=dict)

    def runner(self, *, dry_run: bool | None = None) -> ActionRunner:
        """Action runner echoing to the context console.

        Args:
            dry_run: Overrides the context's dry-run flag.
        """
        return ActionRunner(
            self.console,
            dry_run=self.dry_run if dry_run is None else dry_run,
            root=self.workspace.root,
            env={**self.workspace.config.env, **self.env},
        )


class Command(ABC, Generic[TResult]):
    """Base class for all polyrelease commands.

    Commands encapsulate the logic for a specific operation.
    They receive a context and return a result.
    """

    def __init__(self, context: CommandContext) -> None:
        self.context = context
        self.workspace = context.workspace
        self.console = context.console

    @property
    def repositories(self) -> list[tuple[RepositoryConfig, Path]]:
        """Configured repositories with their absolute directories."""
        return [(r, self.workspace.repository_path(r)) for r in self.workspace.repositories]

    @abstractmethod
    async def execute(self) -> TResult:
        """Execute the command.

        Returns:
            Command-specific result.
        """
        ...

    def validate(self) -> list[str]:
        """Validate that the command can be executed.

        Returns:
            List of validation errors (empty if valid).
        """
        return []
