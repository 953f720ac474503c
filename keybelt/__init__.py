"""
keybelt - portable bundle installer.

Downloads a pre-built Portable Ruby bundle for the current platform,
verifies it against a pinned SHA-256 checksum, caches it under the XDG data
directory and publishes a stable ``current`` symlink to the active version.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
