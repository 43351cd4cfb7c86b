"""Semantic version parsing, comparison and bumping."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering

from polyrelease.errors import InvalidVersionError

# https://semver.org/#is-there-a-suggested-regular-expression-regex-to-check-a-semver-string
SEMVER_PATTERN = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+(?P<build>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)


def _prerelease_key(prerelease: str | None) -> tuple[int, tuple[tuple[int, int | str], ...]]:
    """Sort key implementing semver prerelease precedence.

    A version without prerelease ranks above any prerelease of the same
    core version; numeric identifiers rank below alphanumeric ones.
    """
    if prerelease is None:
        return (1, ())
    parts: list[tuple[int, int | str]] = []
    for identifier in prerelease.split("."):
        if identifier.isdigit():
            parts.append((0, int(identifier)))
        else:
            parts.append((1, identifier))
    return (0, tuple(parts))


@total_ordering
@dataclass(frozen=True, slots=True)
class Version:
    """A semantic version.

    Attributes:
        major: Major version.
        minor: Minor version.
        patch: Patch version.
        prerelease: Dot-separated prerelease identifiers, e.g. ``alpha.3``.
        build: Build metadata (ignored for precedence).
    """

    major: int
    minor: int
    patch: int
    prerelease: str | None = None
    build: str | None = None

    @classmethod
    def parse(cls, version: str | None) -> Version:
        """Parse a version string.

        Raises:
            InvalidVersionError: If the string is not valid semver.
        """
        if version is None:
            raise InvalidVersionError(version)
        match = SEMVER_PATTERN.match(version.strip())
        if not match:
            raise InvalidVersionError(version)
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            prerelease=match.group("prerelease"),
            build=match.group("build"),
        )

    @classmethod
    def is_valid(cls, version: str | None) -> bool:
        """Check whether a string is a valid semantic version."""
        return version is not None and SEMVER_PATTERN.match(version.strip()) is not None

    @property
    def is_prerelease(self) -> bool:
        return self.prerelease is not None

    def bump_patch(self) -> Version:
        """Increment the patch number, dropping prerelease and build metadata."""
        return Version(self.major, self.minor, self.patch + 1)

    def _key(self) -> tuple[int, int, int, tuple[int, tuple[tuple[int, int | str], ...]]]:
        return (self.major, self.minor, self.patch, _prerelease_key(self.prerelease))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: Version) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        version = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            version += f"-{self.prerelease}"
        if self.build:
            version += f"+{self.build}"
        return version


def patch_version(version: str | None, package: str | None = None) -> str:
    """Return the next patch version of a version string.

    ``1.2.3`` becomes ``1.2.4`` and ``1.2.3-alpha.5`` becomes ``1.2.4``.

    Raises:
        InvalidVersionError: If the version does not parse.
    """
    try:
        return str(Version.parse(version).bump_patch())
    except InvalidVersionError as e:
        raise InvalidVersionError(version, package) from e
