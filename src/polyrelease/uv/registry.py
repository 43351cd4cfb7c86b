"""Package registry access through uv and pip."""

from __future__ import annotations

import re
import sys
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from pathlib import Path

from packaging.version import InvalidVersion
from packaging.version import Version as Pep440Version

from polyrelease.config.schema import PublishConfig
from polyrelease.execution.actions import ActionRunner
from polyrelease.uv.manifest import rewrite_manifest
from polyrelease.workspace.package import Package

LATEST_VERSION_PATTERN = re.compile(r"^\S+\s+\(([^)]+)\)", re.MULTILINE)
PRERELEASE_LABELS = {"a": "alpha", "b": "beta", "rc": "rc"}


def parse_index_versions(output: str) -> str | None:
    """Read the latest version from ``pip index versions`` output.

    The first line looks like ``acme-core (2.0.0a3)``.
    """
    match = LATEST_VERSION_PATTERN.search(output)
    return match.group(1) if match else None


def to_semver(version: str, spellings: Sequence[str] = ()) -> str:
    """Spell a normalized PEP 440 version the way manifests declare it.

    Indexes report ``2.0.0-alpha.3`` as ``2.0.0a3``. The pre-release label
    is taken from the first of ``spellings`` that normalizes to the same
    kind (``preview`` for ``rc``), else from :data:`PRERELEASE_LABELS`.
    Unparsable versions are returned unchanged.
    """
    try:
        parsed = Pep440Version(version)
    except InvalidVersion:
        return version
    release = ".".join(str(part) for part in (*parsed.release, 0, 0)[:3])
    if parsed.pre is None:
        return release

    labels = dict(PRERELEASE_LABELS)
    for spelling in reversed(spellings):
        try:
            pre = Pep440Version(f"0{spelling}0").pre
        except InvalidVersion:
            continue
        if pre is not None:
            labels[pre[0]] = spelling
    kind, number = parsed.pre
    return f"{release}-{labels[kind]}.{number}"


class Registry(ABC):
    """Where package versions are written, published and looked up."""

    @abstractmethod
    async def apply_version(
        self, package: Package, version: str, pins: Mapping[str, str]
    ) -> None:
        """Write the new version and internal pins into the manifest."""

    @abstractmethod
    async def publish(self, package: Package, tag: str) -> None:
        """Build and upload a package under a distribution tag."""

    @abstractmethod
    async def query_remote_version(self, name: str, *, prerelease: bool = False) -> str | None:
        """Latest published version, None if never published."""


class UvRegistry(Registry):
    """Registry backed by ``uv build``/``uv publish`` and ``pip index``.

    Attributes:
        runner: Dry-run aware command runner.
        config: Publishing settings.
        spellings: Pre-release labels used when reading published versions.
    """

    def __init__(
        self,
        runner: ActionRunner,
        config: PublishConfig | None = None,
        *,
        spellings: Sequence[str] = (),
    ) -> None:
        self.runner = runner
        self.config = config or PublishConfig()
        self.spellings = tuple(spellings)

    async def apply_version(
        self, package: Package, version: str, pins: Mapping[str, str]
    ) -> None:
        pins = dict(pins) if self.config.pin_internal else {}
        description = ["set-version", f"{package.name}=={version}"]
        description += [f"{name}=={pin}" for name, pin in sorted(pins.items())]
        self.runner.edit(
            package.path,
            description,
            lambda: rewrite_manifest(package.path, version, pins),
        )

    async def publish(self, package: Package, tag: str) -> None:
        """Build the package then upload it.

        Args:
            package: Package to publish.
            tag: Distribution tag; mapped to a uv index through
                ``publish.indexes`` when configured.
        """
        out_dir = package.directory / "dist"
        await self.runner.run(
            package.directory, ["uv", "build", "--out-dir", str(out_dir)]
        )
        args = ["uv", "publish"]
        index = self.config.indexes.get(tag)
        if index:
            args += ["--index", index]
        args.append(str(out_dir / "*"))
        await self.runner.run(package.directory, args)

    async def query_remote_version(self, name: str, *, prerelease: bool = False) -> str | None:
        args = [sys.executable, "-m", "pip", "index", "versions", name]
        if prerelease:
            args.append("--pre")
        cwd = self.runner.root or Path.cwd()
        output = await self.runner.output(cwd, args, check=False)
        version = parse_index_versions(output)
        return to_semver(version, self.spellings) if version else None
