"""
Platform detection for keybelt.

Bundles are published per (operating system, architecture) pair using the
exact strings the kernel reports, so detection does no
normalization: "Darwin"/"arm64" and "Darwin"/"x86_64" are distinct keys,
and "linux" is not the same as "Linux".

Usage:
    from keybelt.core.platform import detect_platform_key

    key = detect_platform_key()
    print(f"Running on {key}")  # e.g. Linux/x86_64
"""

import functools
import platform
from dataclasses import dataclass


@dataclass(frozen=True)
class PlatformKey:
    """
    Lookup key for platform-specific bundles.

    Attributes:
        os: Operating system name as reported by ``uname -s`` (e.g. 'Darwin')
        arch: Machine hardware name as reported by ``uname -m`` (e.g. 'arm64')
    """

    os: str
    arch: str

    def __str__(self) -> str:
        return f"{self.os}/{self.arch}"


@functools.lru_cache(maxsize=1)
def detect_platform_key() -> PlatformKey:
    """
    Detect the current platform key.

    This function is cached - it only runs detection once per process.

    Returns:
        PlatformKey with the raw OS and architecture strings

    Example:
        >>> detect_platform_key()
        PlatformKey(os='Linux', arch='x86_64')
    """
    return PlatformKey(os=platform.system(), arch=platform.machine())


def clear_platform_cache():
    """
    Clear the platform detection cache.

    Forces the next call to detect_platform_key() to re-detect.
    """
    detect_platform_key.cache_clear()


__all__ = [
    "PlatformKey",
    "detect_platform_key",
    "clear_platform_cache",
]
