"""Installer configuration loading."""

from .parser import (
    APP_NAME,
    InstallerConfig,
    load_config,
    default_config_file,
)

__all__ = ["APP_NAME", "InstallerConfig", "load_config", "default_config_file"]
