"""
Bundle resolution, download and installation.
"""

from .catalog import (
    BundleSpec,
    resolve,
    supported_platforms,
    BUNDLE_NAME,
    BUNDLE_VERSION,
)
from .fetcher import fetch
from .installer import BundleInstaller, InstallResult

__all__ = [
    "BundleSpec",
    "resolve",
    "supported_platforms",
    "BUNDLE_NAME",
    "BUNDLE_VERSION",
    "fetch",
    "BundleInstaller",
    "InstallResult",
]
