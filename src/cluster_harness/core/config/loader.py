"""Harness configuration file loading.

The YAML file holds the same keys as ``HarnessConfig``; ``HARNESS_*``
environment variables override whatever the file sets.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml

from cluster_harness.integrations.kubernetes.config import HarnessConfig

logger = structlog.get_logger()

# XDG-compliant config location
CONFIG_DIR = Path.home() / ".config" / "cluster-harness"
CONFIG_FILE = CONFIG_DIR / "config.yaml"


class ConfigFileError(ValueError):
    """Raised when the configuration file cannot be parsed."""


def read_config_file(path: Path) -> dict[str, Any]:
    """Read a YAML configuration file into a dict.

    A missing or empty file yields an empty dict.

    Raises:
        ConfigFileError: If the file is not valid YAML or not a mapping.
    """
    if not path.exists():
        logger.debug("config_file_not_found", path=str(path))
        return {}

    content = path.read_text()
    if not content.strip():
        return {}

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigFileError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigFileError(f"Expected a mapping at the top of {path}")
    return data


def load_config(path: Path | str | None = None, **overrides: Any) -> HarnessConfig:
    """Load the harness configuration.

    Precedence, lowest first: the YAML file, keyword overrides, ``HARNESS_*``
    environment variables.

    Args:
        path: Configuration file; ``~/.config/cluster-harness/config.yaml`` if None.
        **overrides: Explicit values, ignored when None.

    Returns:
        Validated configuration.
    """
    config_path = Path(path).expanduser() if path else CONFIG_FILE
    data = read_config_file(config_path)
    data.update({key: value for key, value in overrides.items() if value is not None})
    config = HarnessConfig.from_env(data)
    logger.debug("config_loaded", path=str(config_path), namespace=config.namespace)
    return config
