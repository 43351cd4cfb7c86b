"""Configuration schema for polyrelease.yaml."""

from __future__ import annotations

from packaging.utils import canonicalize_name
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class NamespaceConfig(BaseModel):
    """Naming rule separating workspace packages from third-party ones.

    Attributes:
        prefix: Canonical name prefix shared by all workspace packages.
        exclude: Prefixes inside the namespace that never create release edges.
    """

    model_config = ConfigDict(extra="forbid")

    prefix: str = ""
    exclude: list[str] = Field(default_factory=list)

    @field_validator("prefix")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        return value.lower().replace("_", "-").replace(".", "-")

    @field_validator("exclude")
    @classmethod
    def _normalize_exclude(cls, value: list[str]) -> list[str]:
        return [v.lower().replace("_", "-").replace(".", "-") for v in value]

    def contains(self, name: str) -> bool:
        """Check whether a canonical package name belongs to the workspace."""
        if not name.startswith(self.prefix):
            return False
        return not any(name.startswith(excluded) for excluded in self.exclude)


class AnchorConfig(BaseModel):
    """The two version-synchronized anchor packages."""

    model_config = ConfigDict(extra="forbid")

    core: str
    cli: str

    @field_validator("core", "cli")
    @classmethod
    def _canonical(cls, value: str) -> str:
        return canonicalize_name(value)

    @property
    def names(self) -> tuple[str, str]:
        """Anchor names, CLI first."""
        return (self.cli, self.core)

    def __contains__(self, name: object) -> bool:
        return name in self.names


class RepositoryConfig(BaseModel):
    """A source repository holding workspace packages."""

    model_config = ConfigDict(extra="forbid")

    name: str
    path: str
    packages: list[str] = Field(default_factory=lambda: ["."])
    exclude: list[str] = Field(default_factory=list)
    allow_dirty: list[str] = Field(default_factory=list)
    push_url: str | None = None


class VersioningConfig(BaseModel):
    """Version derivation settings."""

    model_config = ConfigDict(extra="forbid")

    prerelease_tag: str = "alpha"
    anchor_base: str = "1.0.0"
    release_channel: str = "preview"


class PublishConfig(BaseModel):
    """Publishing settings."""

    model_config = ConfigDict(extra="forbid")

    stable_tag: str = "latest"
    concurrency: int = Field(default=1, ge=1)
    indexes: dict[str, str] = Field(default_factory=dict)
    pin_internal: bool = True


class TestConfig(BaseModel):
    """Test stage settings."""

    __test__ = False

    model_config = ConfigDict(extra="forbid")

    command: str | None = "pytest"
    concurrency: int = Field(default=4, ge=1)
    timeout: float | None = None


class GitConfig(BaseModel):
    """Git remote and branch settings."""

    model_config = ConfigDict(extra="forbid")

    default_branch: str = "main"
    remote: str = "origin"
    push_remote: str = "origin-push"


class PolyReleaseConfig(BaseModel):
    """Root configuration model.

    Attributes:
        name: Workspace name.
        namespace: Workspace namespace rule.
        anchors: Anchor packages.
        repositories: Source repositories, in processing order.
        versioning: Version derivation settings.
        publish: Publishing settings.
        test: Test stage settings.
        git: Git settings.
        env: Extra environment variables for every package action.
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    namespace: NamespaceConfig = Field(default_factory=NamespaceConfig)
    anchors: AnchorConfig
    repositories: list[RepositoryConfig] = Field(min_length=1)
    versioning: VersioningConfig = Field(default_factory=VersioningConfig)
    publish: PublishConfig = Field(default_factory=PublishConfig)
    test: TestConfig = Field(default_factory=TestConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    env: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _unique_repositories(self) -> PolyReleaseConfig:
        seen: set[str] = set()
        for repo in self.repositories:
            if repo.name in seen:
                raise ValueError(f"Duplicate repository name: {repo.name}")
            seen.add(repo.name)
        return self

    @property
    def repository_names(self) -> list[str]:
        """Names of all configured repositories."""
        return [r.name for r in self.repositories]

    def get_repository(self, name: str) -> RepositoryConfig | None:
        """Get a repository by name."""
        for repo in self.repositories:
            if repo.name == name:
                return repo
        return None
