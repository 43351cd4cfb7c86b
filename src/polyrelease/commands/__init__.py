"""polyrelease commands."""

from polyrelease.commands.base import Command, CommandContext
from polyrelease.commands.release import (
    ReleaseCommand,
    ReleaseOptions,
    ReleaseResult,
    handle_release_command,
    release,
    render_plan,
)
from polyrelease.commands.status import (
    OrderCommand,
    PullCommand,
    StatusCommand,
    StatusResult,
    handle_order_command,
    handle_pull_command,
    handle_status_command,
)

__all__ = [
    # Base
    "Command",
    "CommandContext",
    # Release
    "ReleaseCommand",
    "ReleaseOptions",
    "ReleaseResult",
    "handle_release_command",
    "release",
    "render_plan",
    # Repository utilities
    "OrderCommand",
    "PullCommand",
    "StatusCommand",
    "StatusResult",
    "handle_order_command",
    "handle_pull_command",
    "handle_status_command",
]
