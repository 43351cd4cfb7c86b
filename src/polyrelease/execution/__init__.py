"""Command execution: subprocess runner, parallel executor and results."""

from polyrelease.execution.actions import ActionRunner
from polyrelease.execution.parallel import ParallelExecutor, PackageAction, command_action
from polyrelease.execution.results import BatchResult, ExecutionResult, ExecutionStatus
from polyrelease.execution.runner import run_command, run_exec, run_in_package

__all__ = [
    "ActionRunner",
    "BatchResult",
    "ExecutionResult",
    "ExecutionStatus",
    "PackageAction",
    "ParallelExecutor",
    "command_action",
    "run_command",
    "run_exec",
    "run_in_package",
]
