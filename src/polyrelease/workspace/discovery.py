"""Package discovery across configured repositories."""

from __future__ import annotations

import fnmatch
from pathlib import Path
from typing import Any

from packaging.requirements import InvalidRequirement, Requirement
from packaging.utils import canonicalize_name

from polyrelease.compat import tomllib
from polyrelease.config.schema import PolyReleaseConfig, RepositoryConfig
from polyrelease.errors import ManifestError
from polyrelease.workspace.package import Manifest

MANIFEST_FILENAME = "pyproject.toml"


def _requirement_names(path: Path, requirements: Any, field: str) -> list[str]:
    """Parse PEP 508 requirement strings into canonical names."""
    if requirements is None:
        return []
    if not isinstance(requirements, list):
        raise ManifestError(path, f"{field} must be a list")

    names: list[str] = []
    for item in requirements:
        # dependency-groups may contain {include-group = "..."} tables
        if isinstance(item, dict):
            continue
        if not isinstance(item, str):
            raise ManifestError(path, f"{field} contains a non-string entry: {item!r}")
        try:
            name = canonicalize_name(Requirement(item).name)
        except InvalidRequirement as e:
            raise ManifestError(path, f"invalid requirement {item!r} in {field}: {e}") from e
        if name not in names:
            names.append(name)
    return names


def read_manifest(
    path: Path,
    repository: str,
    *,
    default_test_command: str | None = None,
) -> dict[str, Any] | None:
    """Read a pyproject.toml into the fields of a Manifest.

    Args:
        path: Path to pyproject.toml.
        repository: Owning repository name.
        default_test_command: Test command used when the package has a tests/ directory.

    Returns:
        Manifest fields, or None if the file declares no project name.

    Raises:
        ManifestError: If the file is malformed.
    """
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ManifestError(path, str(e)) from e
    except tomllib.TOMLDecodeError as e:
        raise ManifestError(path, f"invalid TOML: {e}") from e

    project = data.get("project")
    if not isinstance(project, dict) or not project.get("name"):
        return None

    name = project["name"]
    if not isinstance(name, str):
        raise ManifestError(path, "[project].name must be a string")

    version = project.get("version")
    if version is not None and not isinstance(version, str):
        raise ManifestError(path, "[project].version must be a string")

    dependencies = _requirement_names(path, project.get("dependencies"), "dependencies")

    dev_dependencies: list[str] = []
    optional = project.get("optional-dependencies") or {}
    groups = data.get("dependency-groups") or {}
    for section, table in (("optional-dependencies", optional), ("dependency-groups", groups)):
        if not isinstance(table, dict):
            raise ManifestError(path, f"{section} must be a table")
        for group, requirements in table.items():
            for dep in _requirement_names(path, requirements, f"{section}.{group}"):
                if dep not in dev_dependencies:
                    dev_dependencies.append(dep)

    tool = data.get("tool", {}).get("polyrelease", {})
    test_command = tool.get("test") if isinstance(tool, dict) else None
    if test_command is None and (path.parent / "tests").is_dir():
        test_command = default_test_command

    return {
        "name": canonicalize_name(name),
        "path": path,
        "version": version,
        "dependencies": dependencies,
        "dev_dependencies": dev_dependencies,
        "test_command": test_command,
        "repository": repository,
    }


def _is_excluded(relative: str, patterns: list[str]) -> bool:
    return any(
        fnmatch.fnmatch(relative, pattern) or fnmatch.fnmatch(relative + "/", pattern)
        for pattern in patterns
    )


def find_manifest_paths(root: Path, repository: RepositoryConfig) -> list[Path]:
    """Find package manifests of a repository.

    Args:
        root: Workspace root.
        repository: Repository configuration.

    Returns:
        Sorted manifest paths.
    """
    repo_root = (root / repository.path).resolve()
    found: set[Path] = set()

    for pattern in repository.packages:
        for candidate in repo_root.glob(pattern):
            manifest = candidate / MANIFEST_FILENAME if candidate.is_dir() else candidate
            if manifest.name != MANIFEST_FILENAME or not manifest.is_file():
                continue
            relative = manifest.relative_to(repo_root).as_posix()
            if _is_excluded(relative, repository.exclude):
                continue
            found.add(manifest)

    return sorted(found)


def discover_manifests(root: Path, config: PolyReleaseConfig) -> dict[str, Manifest]:
    """Load the manifests of every package in every repository.

    Args:
        root: Workspace root.
        config: Workspace configuration.

    Returns:
        Mapping of package name to Manifest.

    Raises:
        ManifestError: On malformed manifests or duplicate package names.
    """
    manifests: dict[str, Manifest] = {}
    for repository in config.repositories:
        for path in find_manifest_paths(root, repository):
            fields = read_manifest(
                path,
                repository.name,
                default_test_command=config.test.command,
            )
            if fields is None:
                continue
            if fields["name"] in manifests:
                other = manifests[fields["name"]].path
                raise ManifestError(path, f"package {fields['name']} already defined in {other}")
            manifests[fields["name"]] = Manifest(**fields)

    return manifests
