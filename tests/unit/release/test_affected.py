"""Tests for affected-set resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from polyrelease.config import AnchorConfig, NamespaceConfig
from polyrelease.errors import NoChangesError, PackageNotFoundError
from polyrelease.release.affected import (
    packages_owning,
    resolve_affected,
    transitive_dependents,
)
from polyrelease.workspace.graph import build_graph
from polyrelease.workspace.package import Manifest

ROOT = Path("/ws")


def manifest(name: str, deps: list[str] = (), dev: list[str] = ()) -> Manifest:
    return Manifest(
        name=name,
        path=ROOT / name / "pyproject.toml",
        version="1.0.0",
        dependencies=list(deps),
        dev_dependencies=list(dev),
    )


@pytest.fixture
def chain():
    """anchor, and A <- B <- C (C uses B, B uses A)."""
    manifests = [
        manifest("anchor"),
        manifest("cli", ["anchor"]),
        manifest("a"),
        manifest("b", ["a"]),
        manifest("c", dev=["b"]),
        manifest("unrelated"),
    ]
    return build_graph({m.name: m for m in manifests}, NamespaceConfig())


ANCHORS = AnchorConfig(core="anchor", cli="cli")


class TestResolveAffected:
    def test_closure_over_dependents(self, chain) -> None:
        affected = resolve_affected(chain, [ROOT / "a" / "src" / "a.py"], ANCHORS)
        assert affected == {"a", "b", "c", "anchor", "cli"}

    def test_core_anchor_always_included(self, chain) -> None:
        affected = resolve_affected(chain, [ROOT / "unrelated" / "README.md"], ANCHORS)
        assert affected == {"unrelated", "anchor", "cli"}

    def test_change_outside_every_package(self, chain) -> None:
        affected = resolve_affected(chain, [ROOT / "docs" / "index.md"], ANCHORS)
        assert affected == {"anchor", "cli"}

    def test_idempotent(self, chain) -> None:
        changes = [ROOT / "b" / "x.py", ROOT / "unrelated" / "y.py"]
        assert resolve_affected(chain, changes, ANCHORS) == resolve_affected(
            chain, list(reversed(changes)), ANCHORS
        )

    def test_empty_changes_is_fatal(self, chain) -> None:
        with pytest.raises(NoChangesError, match="This must not happen"):
            resolve_affected(chain, [], ANCHORS)

    def test_anchor_only_ignores_changes(self, chain) -> None:
        assert resolve_affected(chain, [], ANCHORS, anchor_only=True) == {"anchor", "cli"}
        assert resolve_affected(
            chain, [ROOT / "a" / "x.py"], ANCHORS, anchor_only=True
        ) == {"anchor", "cli"}

    def test_missing_core_anchor(self, chain) -> None:
        anchors = AnchorConfig(core="ghost", cli="cli")
        with pytest.raises(PackageNotFoundError, match="ghost"):
            resolve_affected(chain, [ROOT / "a" / "x.py"], anchors)

    def test_sibling_directory_prefix_does_not_match(self) -> None:
        manifests = [manifest("anchor"), manifest("core"), manifest("core-extras")]
        graph = build_graph({m.name: m for m in manifests}, NamespaceConfig())
        assert packages_owning(graph, [ROOT / "core-extras" / "x.py"]) == {"core-extras"}


class TestTransitiveDependents:
    def test_seed_without_dependents(self, chain) -> None:
        assert transitive_dependents(chain, ["c"]) == {"c"}

    def test_each_package_once(self, chain) -> None:
        assert transitive_dependents(chain, ["a", "b", "a"]) == {"a", "b", "c"}
