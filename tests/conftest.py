"""
Pytest configuration and shared fixtures for keybelt tests.
"""

import hashlib
import io
import tarfile
from typing import Callable, Dict

import pytest

from keybelt.bundle.catalog import BundleSpec
from keybelt.config.parser import InstallerConfig
from keybelt.core.directory import BaseDirs
from keybelt.core.platform import clear_platform_cache


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line(
        "markers",
        "integration: marks tests that exercise the whole install pipeline",
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


BUNDLE_FILES = {
    "bin/ruby": b"#!/bin/sh\necho ruby 3.3.2\n",
    "lib/ruby/3.3.0/set.rb": b"class Set; end\n",
    "share/doc/README": b"Portable Ruby\n",
}


@pytest.fixture(autouse=True)
def _reset_platform_cache():
    clear_platform_cache()
    yield
    clear_platform_cache()


@pytest.fixture
def base_dirs(tmp_path) -> BaseDirs:
    """Base directories rooted in a temporary directory."""
    return BaseDirs(
        data_home=tmp_path / "data",
        runtime_home=tmp_path / "run",
        config_home=tmp_path / "config",
    )


@pytest.fixture
def installer_config(base_dirs) -> InstallerConfig:
    """Installer configuration with short timeouts."""
    return InstallerConfig(base_dirs=base_dirs, timeout=5, lock_timeout=5)


@pytest.fixture
def make_archive() -> Callable[..., bytes]:
    """
    Factory building a gzip-compressed tar in memory.

    Entries are placed under ``prefix`` so that stripping two components
    yields the given relative paths.
    """

    def _make(
        files: Dict[str, bytes] = BUNDLE_FILES,
        prefix: str = "portable-ruby/3.3.2",
    ) -> bytes:
        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
            parts = prefix.split("/")
            for i in range(1, len(parts) + 1):
                info = tarfile.TarInfo("/".join(parts[:i]))
                info.type = tarfile.DIRTYPE
                info.mode = 0o755
                tar.addfile(info)

            for rel_path, content in files.items():
                info = tarfile.TarInfo(f"{prefix}/{rel_path}")
                info.size = len(content)
                info.mode = 0o755 if rel_path.startswith("bin/") else 0o644
                tar.addfile(info, io.BytesIO(content))
        return buffer.getvalue()

    return _make


@pytest.fixture
def archive_bytes(make_archive) -> bytes:
    """Default bundle archive."""
    return make_archive()


@pytest.fixture
def bundle_spec(archive_bytes) -> BundleSpec:
    """Bundle whose digest matches archive_bytes, served by two mirrors."""
    return BundleSpec(
        name="portable-ruby",
        version="3.3.2",
        filename="portable-ruby-3.3.2.x86_64_linux.bottle.tar.gz",
        sha256=hashlib.sha256(archive_bytes).hexdigest(),
        mirror_urls=(
            "https://primary.example.com/blobs/sha256:abc",
            "https://releases.example.com/3.3.2/portable-ruby.tar.gz",
        ),
    )
