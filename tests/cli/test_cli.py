"""
Tests for the keybelt-install command line.
"""

import pytest
import responses

from keybelt import __version__
from keybelt.cli.parser import CLI
from keybelt.core.platform import PlatformKey


@pytest.fixture
def xdg_env(tmp_path, monkeypatch):
    """Point every base directory at tmp_path."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("XDG_RUNTIME_DIR", str(tmp_path / "run"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    return tmp_path


@pytest.fixture
def cli():
    return CLI()


class TestArguments:
    """Test argument parsing."""

    def test_defaults(self, cli):
        args = cli.parse_args([])

        assert args.verbose is False
        assert args.quiet is False

    def test_version(self, cli, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.parse_args(["--version"])

        assert exc_info.value.code == 0
        assert capsys.readouterr().out.strip() == f"keybelt {__version__}"

    def test_rejects_positional_arguments(self, cli):
        with pytest.raises(SystemExit) as exc_info:
            cli.parse_args(["ruby"])

        assert exc_info.value.code == 2


class TestRun:
    """Test full CLI runs."""

    def test_unsupported_platform(self, cli, xdg_env, monkeypatch, capsys):
        monkeypatch.setattr(
            "keybelt.cli.parser.detect_platform_key",
            lambda: PlatformKey("Plan9", "mips"),
        )

        exit_code = cli.run([])

        assert exit_code == 1
        assert "FATAL: Unsupported platform: Plan9/mips" in capsys.readouterr().err
        assert not (xdg_env / "data").exists()
        assert not (xdg_env / "run").exists()

    @responses.activate
    def test_successful_install(
        self, cli, xdg_env, monkeypatch, capsys, bundle_spec, archive_bytes
    ):
        monkeypatch.setattr(
            "keybelt.cli.parser.detect_platform_key",
            lambda: PlatformKey("Linux", "x86_64"),
        )
        monkeypatch.setattr(
            "keybelt.cli.parser.resolve", lambda key, mirrors=None: bundle_spec
        )
        responses.add(
            responses.GET, bundle_spec.mirror_urls[0], body=archive_bytes, status=200
        )

        exit_code = cli.run([])

        current = xdg_env / "data" / "keybelt" / "portable-ruby" / "current"
        assert exit_code == 0
        assert capsys.readouterr().out.strip() == (
            f"Portable Ruby 3.3.2 is now available at {current / 'bin' / 'ruby'}"
        )
        assert current.is_symlink()

    @responses.activate
    def test_all_mirrors_fail(
        self, cli, xdg_env, monkeypatch, capsys, bundle_spec
    ):
        monkeypatch.setattr(
            "keybelt.cli.parser.resolve", lambda key, mirrors=None: bundle_spec
        )
        for url in bundle_spec.mirror_urls:
            responses.add(responses.GET, url, status=404)

        exit_code = cli.run(["--quiet"])

        assert exit_code == 1
        assert (
            "FATAL: Could not download the Portable Ruby (2 mirror(s) tried)."
            in capsys.readouterr().err
        )
        assert not (xdg_env / "data" / "keybelt" / "portable-ruby" / "3.3.2").exists()

    def test_invalid_config(self, cli, xdg_env, capsys):
        config_file = xdg_env / "config" / "keybelt" / "config.yaml"
        config_file.parent.mkdir(parents=True)
        config_file.write_text("timeout: -5\n")

        assert cli.run([]) == 1
        assert "FATAL: 'timeout' must be a positive number" in capsys.readouterr().err

    def test_keyboard_interrupt(self, cli, xdg_env, monkeypatch):
        def interrupted():
            raise KeyboardInterrupt

        monkeypatch.setattr("keybelt.cli.parser.load_config", interrupted)

        assert cli.run([]) == 130
