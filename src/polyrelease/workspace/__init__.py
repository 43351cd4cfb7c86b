"""Workspace model: packages, manifests and the dependency graph."""

from polyrelease.workspace.discovery import discover_manifests, read_manifest
from polyrelease.workspace.graph import (
    DependencyGraph,
    build_graph,
    detect_cycles,
    find_direct_cycles,
)
from polyrelease.workspace.package import AffectedPackage, Manifest, Package
from polyrelease.workspace.workspace import Workspace

__all__ = [
    "AffectedPackage",
    "DependencyGraph",
    "Manifest",
    "Package",
    "Workspace",
    "build_graph",
    "detect_cycles",
    "discover_manifests",
    "find_direct_cycles",
    "read_manifest",
]
