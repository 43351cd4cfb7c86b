"""Configuration loading and schema."""

from polyrelease.config.loader import CONFIG_FILENAME, find_config_file, load_config
from polyrelease.config.schema import (
    AnchorConfig,
    GitConfig,
    NamespaceConfig,
    PolyReleaseConfig,
    PublishConfig,
    RepositoryConfig,
    TestConfig,
    VersioningConfig,
)

__all__ = [
    "CONFIG_FILENAME",
    "find_config_file",
    "load_config",
    "AnchorConfig",
    "GitConfig",
    "NamespaceConfig",
    "PolyReleaseConfig",
    "PublishConfig",
    "RepositoryConfig",
    "TestConfig",
    "VersioningConfig",
]
