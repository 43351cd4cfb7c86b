"""Shared test fixtures for polyrelease tests."""

from __future__ import annotations

import subprocess
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
from dotenv import load_dotenv

from polyrelease.config import PolyReleaseConfig, load_config
from polyrelease.workspace import Workspace

# Load .env from project root (doesn't override existing env vars)
load_dotenv(Path(__file__).parent.parent / ".env")


SAMPLE_CONFIG = """\
name: test-platform
namespace:
  prefix: acme-
  exclude:
    - acme-studio
anchors:
  core: acme-core
  cli: acme-cli
repositories:
  - name: engine
    path: engine
    packages:
      - packages/*
  - name: tools
    path: tools
    packages:
      - packages/*
    exclude:
      - "packages/example*"
versioning:
  prerelease_tag: alpha
  anchor_base: 2.0.0
  release_channel: preview
test:
  command: "python -c 'print(42)'"
"""


def write_package(
    repo_dir: Path,
    name: str,
    version: str | None = "1.0.0",
    dependencies: list[str] | None = None,
    dev_dependencies: list[str] | None = None,
    tests: bool = False,
) -> Path:
    """Create ``packages/<name>/pyproject.toml`` inside a repository."""
    pkg_dir = repo_dir / "packages" / name
    pkg_dir.mkdir(parents=True, exist_ok=True)
    lines = ["[project]", f'name = "{name}"']
    if version is not None:
        lines.append(f'version = "{version}"')
    deps = ", ".join(f'"{d}"' for d in dependencies or [])
    lines.append(f"dependencies = [{deps}]")
    if dev_dependencies:
        dev = ", ".join(f'"{d}"' for d in dev_dependencies)
        lines += ["", "[dependency-groups]", f"dev = [{dev}]"]
    (pkg_dir / "pyproject.toml").write_text("\n".join(lines) + "\n")
    if tests:
        (pkg_dir / "tests").mkdir(exist_ok=True)
        (pkg_dir / "tests" / "test_smoke.py").write_text("def test_smoke():\n    pass\n")
    return pkg_dir


def run_git(args: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
    """Run a git command."""
    return subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )


def init_repo(repo_dir: Path) -> None:
    """Initialize a repository on ``main`` and commit everything."""
    run_git(["init", "-q"], repo_dir)
    run_git(["checkout", "-q", "-b", "main"], repo_dir)
    run_git(["config", "user.email", "test@example.com"], repo_dir)
    run_git(["config", "user.name", "Test User"], repo_dir)
    run_git(["config", "commit.gpgsign", "false"], repo_dir)
    run_git(["add", "-A"], repo_dir)
    run_git(["commit", "-q", "-m", "initial commit"], repo_dir)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def sample_config_yaml() -> str:
    """Sample polyrelease.yaml content."""
    return SAMPLE_CONFIG


@pytest.fixture
def sample_config() -> PolyReleaseConfig:
    """Parsed sample configuration."""
    import yaml

    return PolyReleaseConfig.model_validate(yaml.safe_load(SAMPLE_CONFIG))


@pytest.fixture
def workspace_dir(temp_dir: Path, sample_config_yaml: str) -> Path:
    """Create a two-repository workspace.

    engine/  acme-core
    tools/   acme-cli (uses acme-core), acme-plugin-x (uses acme-cli),
             acme-docs (standalone), example-app (excluded)
    """
    (temp_dir / "polyrelease.yaml").write_text(sample_config_yaml)

    engine = temp_dir / "engine"
    write_package(engine, "acme-core", "2.0.0-alpha.3", ["requests>=2"], tests=True)

    tools = temp_dir / "tools"
    write_package(tools, "acme-cli", "2.0.0-alpha.3", ["acme-core>=2.0.0a1", "typer"])
    write_package(
        tools,
        "acme-plugin-x",
        "0.4.1",
        ["acme-cli"],
        dev_dependencies=["acme-studio", "pytest"],
        tests=True,
    )
    write_package(tools, "acme-docs", "1.0.0", [])
    write_package(tools, "example-app", "0.0.1", ["acme-cli"])

    return temp_dir


@pytest.fixture
def workspace(workspace_dir: Path) -> Workspace:
    """Loaded sample workspace."""
    config_path = workspace_dir / "polyrelease.yaml"
    return Workspace.load(workspace_dir, load_config(config_path))


@pytest.fixture
def git_workspace(workspace_dir: Path) -> Path:
    """Sample workspace where every repository is a git repository."""
    for repo in ("engine", "tools"):
        init_repo(workspace_dir / repo)
    return workspace_dir
