"""
Integration tests for the install pipeline.

Network access is replaced by `responses`; the filesystem is a temporary
directory standing in for the XDG base directories.
"""

import os

import pytest
import responses

from keybelt.bundle.installer import BundleInstaller
from keybelt.core.exceptions import AllMirrorsFailedError, MissingToolsError
from keybelt.core.requirements import COMMAND, Alternative, Requirement

PRIMARY = "https://primary.example.com/blobs/sha256:abc"
SECONDARY = "https://releases.example.com/3.3.2/portable-ruby.tar.gz"

pytestmark = pytest.mark.integration


@pytest.fixture
def installer(installer_config, bundle_spec):
    return BundleInstaller(installer_config, bundle_spec, requirements=())


class TestFreshInstall:
    """Test installs with an empty cache."""

    @responses.activate
    def test_installs_and_links(self, installer, archive_bytes):
        responses.add(responses.GET, PRIMARY, body=archive_bytes, status=200)

        result = installer.install()
        paths = installer.paths

        assert result.version == "3.3.2"
        assert result.was_cached is False
        assert result.mirror_url == PRIMARY
        assert result.install_dir == paths.versioned_install_dir
        assert (paths.versioned_install_dir / "bin" / "ruby").is_file()
        assert paths.current_link_path.is_symlink()
        assert paths.current_link_path.resolve() == paths.versioned_install_dir.resolve()
        assert result.executable == paths.current_link_path / "bin" / "ruby"
        assert os.access(result.executable, os.X_OK)
        assert paths.cached_archive_path.read_bytes() == archive_bytes
        assert not paths.temp_download_path.exists()

    @responses.activate
    def test_layout_under_base_dirs(self, installer, base_dirs, archive_bytes):
        responses.add(responses.GET, PRIMARY, body=archive_bytes, status=200)

        installer.install()

        bundle_dir = base_dirs.data_home / "keybelt" / "portable-ruby"
        assert (bundle_dir / "3.3.2" / "lib" / "ruby" / "3.3.0" / "set.rb").exists()
        assert (bundle_dir / "current").is_symlink()
        assert (bundle_dir / installer.bundle.filename).is_file()
        assert (base_dirs.runtime_home / "keybelt").is_dir()

    @responses.activate
    def test_falls_back_to_second_mirror(self, installer, archive_bytes):
        responses.add(responses.GET, PRIMARY, status=404)
        responses.add(responses.GET, SECONDARY, body=archive_bytes, status=200)

        result = installer.install()

        assert result.mirror_url == SECONDARY
        assert installer.paths.current_link_path.is_symlink()


class TestCachedInstall:
    """Test reuse of a verified cached archive."""

    @responses.activate
    def test_second_run_skips_download(self, installer, archive_bytes):
        responses.add(responses.GET, PRIMARY, body=archive_bytes, status=200)
        installer.install()
        calls_after_first = len(responses.calls)
        first_target = installer.paths.current_link_path.resolve()

        result = installer.install()

        assert installer.paths.current_link_path.resolve() == first_target

        assert result.was_cached is True
        assert result.mirror_url is None
        assert len(responses.calls) == calls_after_first
        assert (installer.paths.versioned_install_dir / "bin" / "ruby").is_file()

    @responses.activate
    def test_corrupted_cache_is_downloaded_again(self, installer, archive_bytes):
        cache = installer.paths.cached_archive_path
        cache.parent.mkdir(parents=True)
        cache.write_bytes(b"truncated")
        responses.add(responses.GET, PRIMARY, body=archive_bytes, status=200)

        result = installer.install()

        assert result.was_cached is False
        assert cache.read_bytes() == archive_bytes

    def test_is_cached(self, installer, archive_bytes):
        assert installer.is_cached() is False

        cache = installer.paths.cached_archive_path
        cache.parent.mkdir(parents=True)
        cache.write_bytes(archive_bytes)

        assert installer.is_cached() is True


class TestReinstall:
    """Test reinstalling over an existing installation."""

    @responses.activate
    def test_stale_files_are_removed(self, installer, archive_bytes):
        responses.add(responses.GET, PRIMARY, body=archive_bytes, status=200)
        installer.install()
        stale = installer.paths.versioned_install_dir / "stale.rb"
        stale.write_text("old")

        installer.install()

        assert not stale.exists()
        assert (installer.paths.versioned_install_dir / "bin" / "ruby").is_file()

    @responses.activate
    def test_current_link_is_repointed(self, installer, archive_bytes):
        old = installer.paths.bundle_dir / "3.3.1"
        old.mkdir(parents=True)
        installer.paths.current_link_path.symlink_to(old)
        responses.add(responses.GET, PRIMARY, body=archive_bytes, status=200)

        installer.install()

        assert (
            installer.paths.current_link_path.resolve()
            == installer.paths.versioned_install_dir.resolve()
        )
        assert old.is_dir()


class TestFailures:
    """Test aborted installs."""

    @responses.activate
    def test_all_mirrors_fail_leaves_no_install(self, installer):
        responses.add(responses.GET, PRIMARY, status=500)
        responses.add(responses.GET, SECONDARY, body=b"tampered", status=200)

        with pytest.raises(AllMirrorsFailedError):
            installer.install()

        paths = installer.paths
        assert not paths.versioned_install_dir.exists()
        assert not paths.current_link_path.exists()
        assert not paths.cached_archive_path.exists()
        assert not paths.temp_download_path.exists()

    def test_missing_requirements_touch_nothing(
        self, installer_config, bundle_spec, base_dirs
    ):
        unavailable = Requirement(
            "archive extraction",
            (Alternative(COMMAND, "keybelt-test-no-such-command"),),
        )
        installer = BundleInstaller(
            installer_config, bundle_spec, requirements=[unavailable]
        )

        with pytest.raises(MissingToolsError):
            installer.install()

        assert not base_dirs.data_home.exists()
        assert not base_dirs.runtime_home.exists()

    @responses.activate
    def test_interrupted_download_removes_staging_file(
        self, installer, archive_bytes, monkeypatch
    ):
        def interrupted(*args, **kwargs):
            installer.paths.temp_download_path.write_bytes(b"partial")
            raise KeyboardInterrupt

        monkeypatch.setattr("keybelt.bundle.installer.fetch", interrupted)

        with pytest.raises(KeyboardInterrupt):
            installer.install()

        assert not installer.paths.temp_download_path.exists()
        assert not installer.paths.cached_archive_path.exists()
