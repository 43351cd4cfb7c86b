"""Tests for manifest discovery."""

from __future__ import annotations

from pathlib import Path

import pytest

from polyrelease.config import PolyReleaseConfig
from polyrelease.errors import ManifestError
from polyrelease.workspace.discovery import (
    discover_manifests,
    find_manifest_paths,
    read_manifest,
)


class TestReadManifest:
    def test_full_manifest(self, temp_dir: Path) -> None:
        path = temp_dir / "pyproject.toml"
        path.write_text(
            """\
[project]
name = "Acme_Plugin.X"
version = "0.4.1"
dependencies = ["acme-cli[extra]>=2; python_version > '3.9'", "requests"]

[project.optional-dependencies]
docs = ["acme-docs"]

[dependency-groups]
dev = ["pytest", {include-group = "docs"}, "acme-docs"]
"""
        )
        fields = read_manifest(path, "tools")

        assert fields is not None
        assert fields["name"] == "acme-plugin-x"
        assert fields["version"] == "0.4.1"
        assert fields["dependencies"] == ["acme-cli", "requests"]
        assert fields["dev_dependencies"] == ["acme-docs", "pytest"]
        assert fields["repository"] == "tools"
        assert fields["test_command"] is None

    def test_without_project_name(self, temp_dir: Path) -> None:
        path = temp_dir / "pyproject.toml"
        path.write_text("[tool.uv.workspace]\nmembers = []\n")
        assert read_manifest(path, "tools") is None

    def test_malformed_toml(self, temp_dir: Path) -> None:
        path = temp_dir / "pyproject.toml"
        path.write_text("[project\nname = 'x'\n")
        with pytest.raises(ManifestError, match="invalid TOML"):
            read_manifest(path, "tools")

    def test_non_string_version(self, temp_dir: Path) -> None:
        path = temp_dir / "pyproject.toml"
        path.write_text('[project]\nname = "x"\nversion = 1\n')
        with pytest.raises(ManifestError, match="version must be a string"):
            read_manifest(path, "tools")

    def test_invalid_requirement(self, temp_dir: Path) -> None:
        path = temp_dir / "pyproject.toml"
        path.write_text('[project]\nname = "x"\ndependencies = ["not a valid req !!"]\n')
        with pytest.raises(ManifestError, match="invalid requirement"):
            read_manifest(path, "tools")

    def test_default_test_command_needs_tests_dir(self, temp_dir: Path) -> None:
        path = temp_dir / "pyproject.toml"
        path.write_text('[project]\nname = "x"\n')
        assert read_manifest(path, "r", default_test_command="pytest")["test_command"] is None

        (temp_dir / "tests").mkdir()
        assert read_manifest(path, "r", default_test_command="pytest")["test_command"] == "pytest"

    def test_tool_table_overrides_test_command(self, temp_dir: Path) -> None:
        path = temp_dir / "pyproject.toml"
        path.write_text('[project]\nname = "x"\n\n[tool.polyrelease]\ntest = "make test"\n')
        fields = read_manifest(path, "r", default_test_command="pytest")
        assert fields["test_command"] == "make test"


class TestDiscoverManifests:
    def test_sample_workspace(self, workspace_dir: Path, sample_config: PolyReleaseConfig) -> None:
        manifests = discover_manifests(workspace_dir, sample_config)

        assert sorted(manifests) == ["acme-cli", "acme-core", "acme-docs", "acme-plugin-x"]
        assert manifests["acme-core"].repository == "engine"
        assert manifests["acme-cli"].repository == "tools"
        assert manifests["acme-core"].test_command == sample_config.test.command
        assert manifests["acme-docs"].test_command is None

    def test_exclude_pattern(self, workspace_dir: Path, sample_config: PolyReleaseConfig) -> None:
        tools = sample_config.get_repository("tools")
        paths = find_manifest_paths(workspace_dir, tools)
        assert all("example-app" not in str(p) for p in paths)
        assert len(paths) == 3

    def test_duplicate_names(self, workspace_dir: Path, sample_config: PolyReleaseConfig) -> None:
        dup = workspace_dir / "tools" / "packages" / "core-copy"
        dup.mkdir(parents=True)
        (dup / "pyproject.toml").write_text('[project]\nname = "acme_core"\n')

        with pytest.raises(ManifestError, match="already defined"):
            discover_manifests(workspace_dir, sample_config)
