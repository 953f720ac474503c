"""
Core functionality for keybelt.

This package contains the foundational modules that the installer depends on.
"""

from .directory import (
    BaseDirs,
    InstallPaths,
    plan_paths,
)

from .platform import (
    PlatformKey,
    detect_platform_key,
    clear_platform_cache,
)

from .verification import (
    compute_file_hash,
    verify_file_hash,
    select_digest_backend,
)

from .exceptions import (
    KeybeltError,
    UnsupportedPlatformError,
    MissingToolsError,
    ConfigError,
    DownloadError,
    ChecksumError,
    AllMirrorsFailedError,
    FilesystemError,
    ArchiveExtractionError,
    InsecureArchiveError,
    InstallLockTimeout,
)

__all__ = [
    "BaseDirs",
    "InstallPaths",
    "plan_paths",
    "PlatformKey",
    "detect_platform_key",
    "clear_platform_cache",
    "compute_file_hash",
    "verify_file_hash",
    "select_digest_backend",
    "KeybeltError",
    "UnsupportedPlatformError",
    "MissingToolsError",
    "ConfigError",
    "DownloadError",
    "ChecksumError",
    "AllMirrorsFailedError",
    "FilesystemError",
    "ArchiveExtractionError",
    "InsecureArchiveError",
    "InstallLockTimeout",
]
