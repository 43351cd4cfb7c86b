"""Tests for pyproject.toml rewrites."""

from pathlib import Path

import pytest
import tomlkit

from polyrelease.errors import ManifestError
from polyrelease.uv.manifest import pin_dep, rewrite_manifest

MANIFEST = """\
[project]
name = "acme-cli"
# bumped by the release pipeline
version = "2.0.0-alpha.3"
dependencies = [
    "acme-core>=2.0.0a1",
    "typer>=0.12",  # cli framework
    "acme-plugin[extra]~=0.4; python_version >= '3.11'",
]

[project.optional-dependencies]
docs = ["acme-docs"]

[dependency-groups]
dev = ["acme_core", "pytest"]
"""


@pytest.mark.parametrize(
    ("dep", "expected"),
    [
        ("acme-core>=1.0", "acme-core==1.0.1"),
        ("acme-core", "acme-core==1.0.1"),
        ("acme-core[cli,async]~=1.0", "acme-core[async,cli]==1.0.1"),
        (
            "acme-core>=1; python_version < '3.11'",
            'acme-core==1.0.1; python_version < "3.11"',
        ),
    ],
)
def test_pin_dep(dep: str, expected: str) -> None:
    assert pin_dep(dep, "1.0.1") == expected


@pytest.fixture
def manifest_path(temp_dir: Path) -> Path:
    path = temp_dir / "pyproject.toml"
    path.write_text(MANIFEST)
    return path


def test_rewrite_sets_version_and_pins(manifest_path: Path) -> None:
    rewrite_manifest(
        manifest_path,
        "2.0.0-alpha.4",
        {"acme-core": "2.0.0-alpha.4", "acme-plugin": "0.4.2", "acme-docs": "1.0.1"},
    )

    doc = tomlkit.parse(manifest_path.read_text())
    project = doc["project"]
    assert project["version"] == "2.0.0-alpha.4"
    assert list(project["dependencies"]) == [
        "acme-core==2.0.0-alpha.4",
        "typer>=0.12",
        'acme-plugin[extra]==0.4.2; python_version >= "3.11"',
    ]
    assert list(project["optional-dependencies"]["docs"]) == ["acme-docs==1.0.1"]
    assert list(doc["dependency-groups"]["dev"]) == ["acme_core==2.0.0-alpha.4", "pytest"]


def test_rewrite_preserves_comments(manifest_path: Path) -> None:
    rewrite_manifest(manifest_path, "2.0.0-alpha.4", {"acme-core": "2.0.0-alpha.4"})

    text = manifest_path.read_text()
    assert "# bumped by the release pipeline" in text
    assert "# cli framework" in text


def test_rewrite_without_pins_only_sets_version(manifest_path: Path) -> None:
    rewrite_manifest(manifest_path, "3.0.0", {})

    text = manifest_path.read_text()
    assert 'version = "3.0.0"' in text
    assert '"acme-core>=2.0.0a1"' in text


def test_rewrite_adds_missing_version(temp_dir: Path) -> None:
    path = temp_dir / "pyproject.toml"
    path.write_text('[project]\nname = "acme-docs"\n')

    rewrite_manifest(path, "0.0.1", {})

    assert tomlkit.parse(path.read_text())["project"]["version"] == "0.0.1"


def test_rewrite_errors(temp_dir: Path) -> None:
    with pytest.raises(ManifestError):
        rewrite_manifest(temp_dir / "missing.toml", "1.0.0", {})

    no_project = temp_dir / "tool.toml"
    no_project.write_text("[tool.uv]\npackage = true\n")
    with pytest.raises(ManifestError, match=r"missing \[project\] table"):
        rewrite_manifest(no_project, "1.0.0", {})

    broken = temp_dir / "broken.toml"
    broken.write_text("[project\n")
    with pytest.raises(ManifestError):
        rewrite_manifest(broken, "1.0.0", {})
