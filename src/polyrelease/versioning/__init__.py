"""Semantic versioning and next-version derivation."""

from polyrelease.versioning.derive import (
    compute_anchor_version,
    derive_versions,
    next_anchor_version,
    prerelease_counter,
    validate_release_version,
)
from polyrelease.versioning.semver import Version, patch_version

__all__ = [
    "Version",
    "compute_anchor_version",
    "derive_versions",
    "next_anchor_version",
    "patch_version",
    "prerelease_counter",
    "validate_release_version",
]
