"""Next-version derivation for affected packages.

Two policies apply within one run:

- The anchor packages share a single synchronized version, either the
  explicit release version or ``<base>-<tag>.<N+1>`` where ``N`` is the
  highest counter seen locally or on the registry.
- Every other package gets an independent patch bump.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Collection, Iterable
from typing import TYPE_CHECKING

from polyrelease.errors import ReleaseVersionError
from polyrelease.versioning.semver import Version, patch_version
from polyrelease.workspace.package import AffectedPackage

if TYPE_CHECKING:
    from polyrelease.config.schema import AnchorConfig, VersioningConfig
    from polyrelease.uv.registry import Registry
    from polyrelease.workspace.graph import DependencyGraph


def prerelease_counter(version: str | None, tag: str) -> int | None:
    """Extract ``N`` from a ``<tag>.N`` prerelease marker."""
    if not version or not version.strip():
        return None
    match = re.search(rf"{re.escape(tag)}\.(\d+)", version)
    return int(match.group(1)) if match else None


def next_anchor_version(versions: Iterable[str | None], *, base: str, tag: str) -> str:
    """Compute the next synchronized anchor version.

    Args:
        versions: Local and remote anchor versions (missing ones may be None).
        base: Core version the counter is appended to.
        tag: Prerelease channel, e.g. ``alpha``.

    Returns:
        ``<base>-<tag>.<max + 1>``, starting at 1 when no counter exists.
    """
    counters = [c for v in versions if (c := prerelease_counter(v, tag)) is not None]
    return f"{base}-{tag}.{max(counters, default=0) + 1}"


def validate_release_version(
    version: str,
    *,
    published: str | None,
    channel: str,
) -> None:
    """Pre-flight check of an explicit release version.

    Args:
        version: Requested release version.
        published: Currently published anchor version, None if never published.
        channel: Substring every release version must contain.

    Raises:
        ReleaseVersionError: If the version is invalid, not greater than the
            published one, or does not follow the channel naming scheme.
    """
    if not Version.is_valid(version):
        raise ReleaseVersionError(version, "is not a valid semver version")

    if published and Version.is_valid(published):
        if not Version.parse(version) > Version.parse(published):
            raise ReleaseVersionError(
                version,
                f"is not greater than the current semver version {published.strip()}",
            )

    if channel not in version:
        raise ReleaseVersionError(
            version,
            f"does not follow the {channel} naming scheme",
        )


async def compute_anchor_version(
    graph: DependencyGraph,
    anchors: AnchorConfig,
    versioning: VersioningConfig,
    registry: Registry,
) -> str:
    """Scan local and published anchor versions for the next counter."""
    local = [graph.get(name).version for name in anchors.names if name in graph]
    remote = await asyncio.gather(
        *(registry.query_remote_version(name, prerelease=True) for name in anchors.names)
    )
    return next_anchor_version(
        [*local, *remote],
        base=versioning.anchor_base,
        tag=versioning.prerelease_tag,
    )


def current_version(local: str | None, remote: str | None) -> str | None:
    """Pick the greater of the local and published versions."""
    if not remote or not Version.is_valid(remote):
        return local
    if not Version.is_valid(local):
        return local
    return max(local, remote, key=Version.parse)  # type: ignore[arg-type]


async def derive_versions(
    graph: DependencyGraph,
    affected: Collection[str],
    *,
    anchors: AnchorConfig,
    anchor_version: str,
    registry: Registry | None = None,
) -> dict[str, AffectedPackage]:
    """Assign the next version to every affected package.

    Args:
        graph: Dependency graph.
        affected: Names of packages to release.
        anchors: Anchor packages, which receive ``anchor_version``.
        anchor_version: Synchronized version of the anchors.
        registry: When given, patch bumps start from the greater of the
            local and published version.

    Returns:
        Mapping of package name to AffectedPackage, with internal pins
        for every dependency that is released in the same run.

    Raises:
        InvalidVersionError: If a package version does not parse.
    """
    names = sorted(affected)
    others = [n for n in names if n not in anchors]

    remote: dict[str, str | None] = {}
    if registry is not None and others:
        published = await asyncio.gather(
            *(registry.query_remote_version(n, prerelease=False) for n in others)
        )
        remote = dict(zip(others, published, strict=True))

    versions: dict[str, str] = {}
    for name in names:
        if name in anchors:
            versions[name] = anchor_version
            continue
        package = graph.get(name)
        base = current_version(package.version, remote.get(name))
        versions[name] = patch_version(base, name)

    return {
        name: AffectedPackage(
            package=graph.get(name),
            new_version=versions[name],
            pins={dep: versions[dep] for dep in graph.get(name).dependencies if dep in versions},
        )
        for name in names
    }
