"""Configuration loading with Pydantic validation."""

from cluster_harness.core.config.loader import (
    CONFIG_DIR,
    CONFIG_FILE,
    ConfigFileError,
    load_config,
    read_config_file,
)

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE",
    "ConfigFileError",
    "load_config",
    "read_config_file",
]
