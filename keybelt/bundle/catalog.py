"""
Bundle catalog: which archive to fetch for which platform.

The catalog is a static table keyed by PlatformKey. Each entry carries the
archive filename and its pinned SHA-256; mirror URLs are rendered from
templates so every mirror serves the same bytes for the same digest.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from keybelt.core.exceptions import ConfigError, UnsupportedPlatformError
from keybelt.core.platform import PlatformKey

logger = logging.getLogger(__name__)

BUNDLE_NAME = "portable-ruby"
BUNDLE_DISPLAY_NAME = "Portable Ruby"
BUNDLE_VERSION = "3.3.2"

# Content-addressed blob endpoint first, tagged release asset second.
DEFAULT_MIRROR_TEMPLATES: Tuple[str, ...] = (
    "https://ghcr.io/v2/homebrew/portable-ruby/portable-ruby/blobs/sha256:{sha256}",
    "https://github.com/Homebrew/homebrew-portable-ruby/releases/download/{version}/{filename}",
)


@dataclass(frozen=True)
class BundleSpec:
    """A downloadable bundle for one platform."""

    name: str
    """Bundle directory name (e.g. 'portable-ruby')"""

    version: str
    """Bundle version"""

    filename: str
    """Archive filename"""

    sha256: str
    """Expected SHA-256 of the archive (lowercase hex)"""

    mirror_urls: Tuple[str, ...]
    """Download URLs in priority order"""

    display_name: str = BUNDLE_DISPLAY_NAME

    def __post_init__(self):
        if not self.filename:
            raise ValueError("Filename cannot be empty")
        if not self.sha256:
            raise ValueError("SHA256 cannot be empty")
        if not self.mirror_urls:
            raise ValueError("At least one mirror URL is required")


# (filename, sha256) per platform
_PLATFORM_ARCHIVES: Dict[PlatformKey, Tuple[str, str]] = {
    PlatformKey("Darwin", "x86_64"): (
        f"portable-ruby-{BUNDLE_VERSION}.el_capitan.bottle.tar.gz",
        "5c86a23e0e3caee1a4cfd958ed7d50a38e752ebaf2e7c5717e5c8eabaa6e9f12",
    ),
    PlatformKey("Darwin", "arm64"): (
        f"portable-ruby-{BUNDLE_VERSION}.arm64_big_sur.bottle.tar.gz",
        "bbb73a9d86fa37128c54c74b020096a646c46c525fd5eb0c4a2467551fb2d377",
    ),
    PlatformKey("Linux", "x86_64"): (
        f"portable-ruby-{BUNDLE_VERSION}.x86_64_linux.bottle.tar.gz",
        "dd3cffcc524de404e87bef92d89f3694a9ef13f2586a6dce4807456f1b30c7b0",
    ),
}


def supported_platforms() -> List[PlatformKey]:
    """List every platform with a published bundle."""
    return list(_PLATFORM_ARCHIVES)


def render_mirror_urls(
    templates: Sequence[str], version: str, filename: str, sha256: str
) -> Tuple[str, ...]:
    """
    Render mirror URL templates.

    Templates may reference {version}, {filename} and {sha256}.

    Raises:
        ConfigError: If a template references an unknown placeholder
    """
    urls = []
    for template in templates:
        try:
            urls.append(
                template.format(version=version, filename=filename, sha256=sha256)
            )
        except (KeyError, IndexError, ValueError, AttributeError) as e:
            raise ConfigError(f"Invalid mirror template {template!r}: {e}") from e
    return tuple(urls)


def resolve(
    key: PlatformKey, mirror_templates: Optional[Sequence[str]] = None
) -> BundleSpec:
    """
    Look up the bundle for a platform.

    Matching is exact; no normalization or partial matches are attempted.

    Args:
        key: Platform to resolve
        mirror_templates: Override for DEFAULT_MIRROR_TEMPLATES

    Returns:
        BundleSpec for the platform

    Raises:
        UnsupportedPlatformError: If no bundle exists for key

    Example:
        >>> spec = resolve(PlatformKey("Linux", "x86_64"))
        >>> spec.filename
        'portable-ruby-3.3.2.x86_64_linux.bottle.tar.gz'
    """
    entry = _PLATFORM_ARCHIVES.get(key)
    if entry is None:
        raise UnsupportedPlatformError(key.os, key.arch)

    filename, sha256 = entry
    templates = DEFAULT_MIRROR_TEMPLATES if mirror_templates is None else mirror_templates

    return BundleSpec(
        name=BUNDLE_NAME,
        version=BUNDLE_VERSION,
        filename=filename,
        sha256=sha256,
        mirror_urls=render_mirror_urls(templates, BUNDLE_VERSION, filename, sha256),
    )
