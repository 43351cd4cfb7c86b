"""Formatting-preserving pyproject.toml rewrites.

Uses tomlkit so that comments and layout survive a version bump.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, cast

import tomlkit
from packaging.requirements import InvalidRequirement, Requirement
from packaging.utils import canonicalize_name
from tomlkit.exceptions import ParseError

from polyrelease.errors import ManifestError


def pin_dep(dep_str: str, version: str) -> str:
    """Pin a PEP 508 dependency to an exact version.

    Extras and environment markers are kept; the version specifier is
    replaced.

    Examples:
        pin_dep("acme-core>=1.0", "1.0.1") -> "acme-core==1.0.1"
        pin_dep("acme-core[cli]~=1.0", "1.0.1") -> "acme-core[cli]==1.0.1"
    """
    req = Requirement(dep_str)
    extras = f"[{','.join(sorted(req.extras))}]" if req.extras else ""
    marker = f"; {req.marker}" if req.marker else ""
    return f"{req.name}{extras}=={version}{marker}"


def _pin_dep_list(deps: list[Any], versions: Mapping[str, str]) -> None:
    for i, dep in enumerate(deps):
        if not isinstance(dep, str):
            continue
        try:
            name = canonicalize_name(Requirement(dep).name)
        except InvalidRequirement:
            continue
        if name in versions:
            deps[i] = pin_dep(dep, versions[name])


def rewrite_manifest(path: Path, version: str, pins: Mapping[str, str]) -> None:
    """Set ``[project].version`` and pin internal dependencies.

    Pins apply to ``[project].dependencies``, every
    ``[project.optional-dependencies]`` group and every
    ``[dependency-groups]`` group.

    Args:
        path: Manifest path.
        version: New version.
        pins: Canonical package name to exact version.

    Raises:
        ManifestError: If the manifest cannot be parsed or has no [project] table.
    """
    try:
        doc = tomlkit.parse(path.read_text(encoding="utf-8"))
    except (OSError, ParseError) as e:
        raise ManifestError(path, str(e)) from e

    if "project" not in doc:
        raise ManifestError(path, "missing [project] table")
    project = cast(dict[str, Any], doc["project"])
    project["version"] = version

    if pins:
        deps = project.get("dependencies")
        if isinstance(deps, list):
            _pin_dep_list(deps, pins)

        for groups in (project.get("optional-dependencies"), doc.get("dependency-groups")):
            if isinstance(groups, dict):
                for group in groups.values():
                    if isinstance(group, list):
                        _pin_dep_list(group, pins)

    path.write_text(tomlkit.dumps(doc), encoding="utf-8")
