"""Configuration file discovery and loading."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from polyrelease.config.schema import PolyReleaseConfig
from polyrelease.errors import ConfigurationError, WorkspaceNotFoundError

CONFIG_FILENAME = "polyrelease.yaml"


def find_config_file(start: Path | None = None) -> Path:
    """Find polyrelease.yaml by walking up from a directory.

    Args:
        start: Directory to start searching from. Defaults to cwd.

    Returns:
        Path to the configuration file.

    Raises:
        WorkspaceNotFoundError: If no configuration file is found.
    """
    start = (start or Path.cwd()).resolve()
    for directory in [start, *start.parents]:
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    raise WorkspaceNotFoundError(start)


def load_config(path: Path) -> PolyReleaseConfig:
    """Load and validate a configuration file.

    Args:
        path: Path to polyrelease.yaml.

    Returns:
        Validated configuration.

    Raises:
        ConfigurationError: If the file cannot be read or is invalid.
    """
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration: {e}", path=path) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML: {e}", path=path) from e

    if not isinstance(raw, dict):
        raise ConfigurationError("Configuration must be a mapping", path=path)

    try:
        return PolyReleaseConfig.model_validate(raw)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(errors, path=path) from e
