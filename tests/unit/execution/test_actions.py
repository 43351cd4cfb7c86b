"""Tests for the dry-run aware action runner."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from rich.console import Console

from polyrelease.errors import ExecutionError
from polyrelease.execution.actions import ActionRunner


@pytest.fixture
def console() -> Console:
    return Console(record=True, width=200)


@pytest.mark.asyncio
async def test_dry_run_only_echoes(console):
    runner = ActionRunner(console, dry_run=True, root=Path("/ws"))

    with patch("polyrelease.execution.actions.run_exec") as mock_exec:
        await runner.run(Path("/ws/engine"), ["git", "push", "origin", "main"])

    mock_exec.assert_not_called()
    text = console.export_text()
    assert "./engine" in text
    assert "git push origin main (dry)" in text


@pytest.mark.asyncio
async def test_run_executes_with_env(console):
    runner = ActionRunner(console, root=Path("/ws"), env={"A": "1"})

    with patch("polyrelease.execution.actions.run_exec") as mock_exec:
        mock_exec.return_value = (0, "", "", 3)
        await runner.run(Path("/ws/engine"), ["uv", "build"], env={"B": "2"})

    mock_exec.assert_awaited_once_with(["uv", "build"], Path("/ws/engine"), env={"A": "1", "B": "2"})
    assert "(dry)" not in console.export_text()


@pytest.mark.asyncio
async def test_failure_hides_secret_from_message(console):
    runner = ActionRunner(console)

    with patch("polyrelease.execution.actions.run_exec") as mock_exec:
        mock_exec.return_value = (1, "", "fatal: denied", 3)
        with pytest.raises(ExecutionError) as exc_info:
            await runner.run(
                Path("/ws"),
                ["git", "remote", "add", "push", "https://tok@host"],
                display=["git", "remote", "add", "push", "https://***@host"],
            )

    assert "tok@" not in exc_info.value.message
    assert "fatal: denied" in exc_info.value.message
    assert "tok@" not in console.export_text()


def test_edit_applies_unless_dry(console):
    apply = MagicMock()
    ActionRunner(console).edit(Path("/ws/a/pyproject.toml"), ["set-version", "a==1.0.1"], apply)
    apply.assert_called_once()

    apply.reset_mock()
    ActionRunner(console, dry_run=True).edit(Path("/ws/a/pyproject.toml"), ["set-version"], apply)
    apply.assert_not_called()


@pytest.mark.asyncio
async def test_output_runs_even_in_dry_run(console):
    runner = ActionRunner(console, dry_run=True)

    with patch("polyrelease.execution.actions.run_exec") as mock_exec:
        mock_exec.return_value = (0, " M file.py\n", "", 1)
        output = await runner.output(Path("/ws"), ["git", "status", "--porcelain"])

    assert output == " M file.py\n"


@pytest.mark.asyncio
async def test_output_check(console):
    runner = ActionRunner(console)

    with patch("polyrelease.execution.actions.run_exec") as mock_exec:
        mock_exec.return_value = (1, "partial", "bad", 1)
        assert await runner.output(Path("/ws"), ["pip"], check=False) == "partial"
        with pytest.raises(ExecutionError, match="bad"):
            await runner.output(Path("/ws"), ["pip"])
