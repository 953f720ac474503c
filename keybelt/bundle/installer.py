"""
Bundle installation pipeline.

This module orchestrates one install run end to end:
1. Check requirements
2. Create the runtime and bundle directories
3. Reuse the cached archive if it still verifies, otherwise download it
   from the mirrors into a staging file and move it into the cache
4. Remove the old versioned install directory and recreate it empty
5. Extract the archive into it with two leading path components stripped
6. Repoint the ``current`` symlink at the versioned directory

Steps 4-6 are not staged: an interruption between clearing and finishing
extraction leaves an empty or partial versioned directory. Re-running the
installer repairs it from the cached archive.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence, Tuple

import requests

from keybelt.bundle.catalog import BundleSpec
from keybelt.bundle.fetcher import fetch
from keybelt.config.parser import InstallerConfig
from keybelt.core.directory import InstallPaths, plan_paths
from keybelt.core.download import DownloadProgress
from keybelt.core.filesystem import (
    atomic_move,
    ensure_directory,
    extract_archive,
    replace_symlink,
    safe_rmtree,
    scoped_temp_file,
)
from keybelt.core.locking import install_lock
from keybelt.core.requirements import Requirement, check_requirements
from keybelt.core.verification import verify_file_hash

logger = logging.getLogger(__name__)

STRIP_COMPONENTS = 2


@dataclass
class InstallResult:
    """Result of an install run."""

    version: str
    """Installed bundle version"""

    install_dir: Path
    """Versioned directory the archive was extracted into"""

    current_link: Path
    """Symlink pointing at install_dir"""

    executable: Path
    """Main executable reached through current_link"""

    archive_path: Path
    """Cached, verified archive"""

    was_cached: bool
    """Whether the cached archive was reused (no download)"""

    mirror_url: Optional[str] = None
    """Mirror that served the archive, None on cache hit"""

    download_time: float = 0.0
    """Time spent downloading in seconds"""


class BundleInstaller:
    """
    Installs one bundle into the per-user data directory.

    Example:
        >>> config = load_config()
        >>> bundle = resolve(detect_platform_key(), config.mirrors)
        >>> result = BundleInstaller(config, bundle).install()
        >>> print(result.executable)
        /home/me/.local/share/keybelt/portable-ruby/current/bin/ruby
    """

    def __init__(
        self,
        config: InstallerConfig,
        bundle: BundleSpec,
        paths: Optional[InstallPaths] = None,
        requirements: Optional[Sequence[Requirement]] = None,
        session: Optional[requests.Session] = None,
        progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    ):
        """
        Initialize installer.

        Args:
            config: Installer configuration
            bundle: Bundle resolved for this platform
            paths: Install locations (planned from config and bundle if None)
            requirements: Requirement set (DEFAULT_REQUIREMENTS if None)
            session: Optional requests session for downloads
            progress_callback: Optional download progress callback
        """
        self.config = config
        self.bundle = bundle
        self.paths = paths or plan_paths(
            config.base_dirs,
            config.app_name,
            bundle.name,
            bundle.version,
            bundle.filename,
        )
        self.requirements = requirements
        self.session = session
        self.progress_callback = progress_callback

    def install(self) -> InstallResult:
        """
        Run the full install pipeline.

        Returns:
            InstallResult describing the published install

        Raises:
            MissingToolsError: If a requirement is missing
            AllMirrorsFailedError: If the archive could not be downloaded
            FilesystemError: If directories, extraction or linking fail
        """
        check_requirements(self.requirements)

        ensure_directory(self.paths.runtime_dir)
        ensure_directory(self.paths.bundle_dir)

        with install_lock(self.paths.lock_path, timeout=self.config.lock_timeout):
            was_cached, mirror_url, download_time = self._obtain_archive()

            self._clear_old_install()
            self._extract()
            replace_symlink(self.paths.current_link_path, self.paths.versioned_install_dir)

        return InstallResult(
            version=self.bundle.version,
            install_dir=self.paths.versioned_install_dir,
            current_link=self.paths.current_link_path,
            executable=self.paths.executable_path,
            archive_path=self.paths.cached_archive_path,
            was_cached=was_cached,
            mirror_url=mirror_url,
            download_time=download_time,
        )

    def is_cached(self) -> bool:
        """Check whether the cached archive exists and verifies."""
        return verify_file_hash(self.paths.cached_archive_path, self.bundle.sha256)

    def _obtain_archive(self) -> Tuple[bool, Optional[str], float]:
        """Make sure a verified archive sits at cached_archive_path."""
        if self.is_cached():
            logger.info(f"Using cached {self.bundle.display_name}.")
            return True, None, 0.0

        logger.info(f"Downloading {self.bundle.display_name}.")
        download_start = time.time()

        with scoped_temp_file(self.paths.temp_download_path) as temp_path:
            mirror_url = fetch(
                self.bundle.mirror_urls,
                temp_path,
                self.bundle.sha256,
                timeout=self.config.timeout,
                progress_callback=self.progress_callback,
                session=self.session,
                bundle_name=self.bundle.display_name,
            )
            atomic_move(temp_path, self.paths.cached_archive_path)

        download_time = time.time() - download_start
        logger.debug(f"Download complete in {download_time:.2f}s from {mirror_url}")
        return False, mirror_url, download_time

    def _clear_old_install(self) -> None:
        install_dir = self.paths.versioned_install_dir
        logger.debug(f"Removing old installation: {install_dir}")
        safe_rmtree(install_dir, require_prefix=self.paths.bundle_dir)
        ensure_directory(install_dir)

    def _extract(self) -> None:
        logger.debug(f"Extracting to: {self.paths.versioned_install_dir}")
        extract_archive(
            self.paths.cached_archive_path,
            self.paths.versioned_install_dir,
            strip_components=STRIP_COMPONENTS,
        )
