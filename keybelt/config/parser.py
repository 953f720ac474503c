"""YAML configuration for the keybelt installer.

Configuration is built once at startup from the environment (XDG base
directories) and an optional ``<config_home>/keybelt/config.yaml`` file,
then passed explicitly to every component.

Example config.yaml:

    timeout: 60
    lock_timeout: 600
    mirrors:
      - https://mirror.example.com/portable-ruby/{version}/{filename}
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from keybelt.core.directory import BaseDirs
from keybelt.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

APP_NAME = "keybelt"
CONFIG_FILENAME = "config.yaml"

DEFAULT_TIMEOUT = 30.0
DEFAULT_LOCK_TIMEOUT = 300.0

KNOWN_KEYS = {"timeout", "lock_timeout", "mirrors"}


@dataclass(frozen=True)
class InstallerConfig:
    """Complete installer configuration."""

    base_dirs: BaseDirs
    app_name: str = APP_NAME
    timeout: float = DEFAULT_TIMEOUT
    lock_timeout: float = DEFAULT_LOCK_TIMEOUT
    mirrors: Optional[Tuple[str, ...]] = None  # URL templates, None = built-in


def default_config_file(base_dirs: BaseDirs, app_name: str = APP_NAME) -> Path:
    """Location of the optional config file."""
    return base_dirs.config_home / app_name / CONFIG_FILENAME


def load_config(
    environ: Optional[Mapping[str, str]] = None,
    config_file: Optional[Path] = None,
) -> InstallerConfig:
    """
    Build installer configuration.

    Args:
        environ: Environment mapping (defaults to os.environ)
        config_file: Explicit config file (defaults to <config_home>/keybelt/config.yaml)

    Returns:
        InstallerConfig

    Raises:
        ConfigError: If the config file exists but is invalid
    """
    if environ is None:
        environ = os.environ

    base_dirs = BaseDirs.from_environ(environ)
    if config_file is None:
        config_file = default_config_file(base_dirs)

    data = _read_yaml(config_file)
    return _parse_and_validate(data, base_dirs)


def _read_yaml(config_file: Path) -> Dict[str, Any]:
    if not config_file.exists():
        logger.debug(f"Config file not found (optional): {config_file}")
        return {}

    logger.debug(f"Loading configuration from {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read {config_file}: {e}") from e

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigError(f"{config_file} must contain a mapping at top level")

    return data


def _positive_number(data: Dict[str, Any], key: str, default: float) -> float:
    if key not in data:
        return default

    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"'{key}' must be a positive number, got {value!r}")

    return float(value)


def _parse_mirrors(data: Dict[str, Any]) -> Optional[Tuple[str, ...]]:
    if "mirrors" not in data:
        return None

    mirrors = data["mirrors"]
    if not isinstance(mirrors, list) or not mirrors:
        raise ConfigError("'mirrors' must be a non-empty list of URL templates")

    for template in mirrors:
        if not isinstance(template, str) or not template.strip():
            raise ConfigError(f"Invalid mirror template: {template!r}")

    return tuple(template.strip() for template in mirrors)


def _parse_and_validate(data: Dict[str, Any], base_dirs: BaseDirs) -> InstallerConfig:
    for key in sorted(set(data) - KNOWN_KEYS, key=str):
        logger.warning(f"Ignoring unknown configuration key: {key}")

    return InstallerConfig(
        base_dirs=base_dirs,
        timeout=_positive_number(data, "timeout", DEFAULT_TIMEOUT),
        lock_timeout=_positive_number(data, "lock_timeout", DEFAULT_LOCK_TIMEOUT),
        mirrors=_parse_mirrors(data),
    )
