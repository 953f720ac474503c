"""
Directory layout for keybelt.

Paths follow the XDG Base Directory Specification
(https://specifications.freedesktop.org/basedir-spec/basedir-spec-latest.html).
Everything in this module is a pure function of its inputs: it computes
locations and never touches the disk. Callers create directories themselves.

Directory Structure:
    <data_home>/<app>/<bundle>/
        - <version>/      : Extracted bundle tree
        - <filename>      : Cached, verified archive
        - current         : Symlink to the active <version>/ directory

    <runtime_home>/<app>/
        - <filename>.incomplete : Download staging file (always cleaned up)
        - <bundle>.lock         : Install lock
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_DATA_SUBDIR = Path(".local") / "share"
DEFAULT_CONFIG_SUBDIR = Path(".config")
DEFAULT_RUNTIME_DIR = Path("/tmp")

INCOMPLETE_SUFFIX = ".incomplete"
CURRENT_LINK_NAME = "current"


def _env_path(environ: Mapping[str, str], name: str) -> Optional[Path]:
    """Return environment variable as a Path, treating empty values as unset."""
    value = environ.get(name)
    if not value:
        return None
    return Path(value)


@dataclass(frozen=True)
class BaseDirs:
    """
    Per-user base directories.

    Attributes:
        data_home: Persistent data root (XDG_DATA_HOME)
        runtime_home: Scratch root for transient files (XDG_RUNTIME_DIR)
        config_home: Configuration root (XDG_CONFIG_HOME)
    """

    data_home: Path
    runtime_home: Path
    config_home: Path

    @classmethod
    def from_environ(
        cls, environ: Optional[Mapping[str, str]] = None, home: Optional[Path] = None
    ) -> "BaseDirs":
        """
        Resolve base directories from environment overrides.

        Args:
            environ: Environment mapping (defaults to os.environ)
            home: Home directory used for defaults (defaults to HOME or Path.home())

        Returns:
            BaseDirs with every override applied

        Example:
            >>> BaseDirs.from_environ({"HOME": "/home/me"})
            BaseDirs(data_home=PosixPath('/home/me/.local/share'), ...)
        """
        if environ is None:
            environ = os.environ

        if home is None:
            home = _env_path(environ, "HOME") or Path.home()

        data_home = _env_path(environ, "XDG_DATA_HOME") or home / DEFAULT_DATA_SUBDIR
        runtime_home = (
            _env_path(environ, "XDG_RUNTIME_DIR")
            or _env_path(environ, "TMPDIR")
            or DEFAULT_RUNTIME_DIR
        )
        config_home = (
            _env_path(environ, "XDG_CONFIG_HOME") or home / DEFAULT_CONFIG_SUBDIR
        )

        return cls(
            data_home=data_home, runtime_home=runtime_home, config_home=config_home
        )


@dataclass(frozen=True)
class InstallPaths:
    """Every location one installer run reads or writes."""

    data_dir: Path
    runtime_dir: Path
    config_dir: Path
    bundle_dir: Path
    versioned_install_dir: Path
    current_link_path: Path
    temp_download_path: Path
    cached_archive_path: Path
    lock_path: Path

    @property
    def executable_path(self) -> Path:
        """Path to the bundle's main executable through the current link."""
        return self.current_link_path / "bin" / "ruby"


def plan_paths(
    base_dirs: BaseDirs, app_name: str, bundle: str, version: str, filename: str
) -> InstallPaths:
    """
    Compute install locations for a bundle.

    Args:
        base_dirs: Resolved base directories
        app_name: Application directory name (e.g. 'keybelt')
        bundle: Bundle directory name (e.g. 'portable-ruby')
        version: Bundle version (e.g. '3.3.2')
        filename: Archive filename for the current platform

    Returns:
        InstallPaths for this run

    Example:
        >>> paths = plan_paths(base_dirs, "keybelt", "portable-ruby", "3.3.2", "r.tar.gz")
        >>> paths.current_link_path
        PosixPath('/home/me/.local/share/keybelt/portable-ruby/current')
    """
    data_dir = base_dirs.data_home / app_name
    runtime_dir = base_dirs.runtime_home / app_name
    config_dir = base_dirs.config_home / app_name
    bundle_dir = data_dir / bundle

    return InstallPaths(
        data_dir=data_dir,
        runtime_dir=runtime_dir,
        config_dir=config_dir,
        bundle_dir=bundle_dir,
        versioned_install_dir=bundle_dir / version,
        current_link_path=bundle_dir / CURRENT_LINK_NAME,
        temp_download_path=runtime_dir / f"{filename}{INCOMPLETE_SUFFIX}",
        cached_archive_path=bundle_dir / filename,
        lock_path=runtime_dir / f"{bundle}.lock",
    )


__all__ = [
    "BaseDirs",
    "InstallPaths",
    "plan_paths",
    "CURRENT_LINK_NAME",
    "INCOMPLETE_SUFFIX",
]
