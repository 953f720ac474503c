"""
Centralized exception hierarchy for keybelt.

Every fatal condition the installer can hit derives from KeybeltError so the
CLI can report it uniformly and exit non-zero.
"""

from typing import Iterable, List, Mapping, Optional, Sequence


# ============================================================================
# Base Exceptions
# ============================================================================


class KeybeltError(Exception):
    """Base exception for all keybelt errors."""

    pass


# ============================================================================
# Pre-flight Exceptions
# ============================================================================


class UnsupportedPlatformError(KeybeltError):
    """Raised when no bundle exists for the detected OS/architecture pair."""

    def __init__(self, os_name: str, arch: str):
        self.os_name = os_name
        self.arch = arch
        super().__init__(f"Unsupported platform: {os_name}/{arch}")


class MissingToolsError(KeybeltError):
    """Raised when one or more required tools are unavailable."""

    def __init__(self, missing: Iterable[str]):
        self.missing: List[str] = list(missing)
        noun = "requirement" if len(self.missing) == 1 else "requirements"
        super().__init__(f"Please install the missing {noun} and try again.")


class ConfigError(KeybeltError):
    """Configuration parsing or validation error."""

    pass


# ============================================================================
# Network Exceptions
# ============================================================================


class DownloadError(KeybeltError):
    """Raised when a single download attempt fails."""

    pass


class ChecksumError(DownloadError):
    """Raised when downloaded content does not match the expected digest."""

    pass


class AllMirrorsFailedError(KeybeltError):
    """Raised when every mirror was tried and none produced a verified file."""

    def __init__(
        self,
        urls: Sequence[str],
        errors: Optional[Mapping[str, Exception]] = None,
        bundle_name: str = "bundle",
    ):
        self.urls = list(urls)
        self.errors = dict(errors or {})
        super().__init__(
            f"Could not download the {bundle_name} "
            f"({len(self.urls)} mirror(s) tried)."
        )


# ============================================================================
# Filesystem Exceptions
# ============================================================================


class FilesystemError(KeybeltError):
    """Base exception for filesystem operations."""

    pass


class ArchiveExtractionError(FilesystemError):
    """Failed to extract an archive."""

    pass


class InsecureArchiveError(ArchiveExtractionError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass


class InstallLockTimeout(FilesystemError):
    """Raised when the install lock cannot be acquired within timeout."""

    pass
