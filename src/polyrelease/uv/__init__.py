"""uv integration: manifest rewrites and publishing."""

from polyrelease.uv.manifest import pin_dep, rewrite_manifest
from polyrelease.uv.registry import Registry, UvRegistry, parse_index_versions, to_semver

__all__ = [
    "Registry",
    "UvRegistry",
    "parse_index_versions",
    "pin_dep",
    "rewrite_manifest",
    "to_semver",
]
