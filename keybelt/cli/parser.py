"""
keybelt CLI.

The installer takes no positional arguments: what gets installed is compiled
in and where it goes is driven by the XDG environment variables. The only
options control log verbosity.
"""

import argparse
import logging
import signal
import sys
from typing import List, Optional

from keybelt import __version__
from keybelt.bundle.catalog import resolve
from keybelt.bundle.installer import BundleInstaller
from keybelt.cli.utils import format_success_message, print_fatal
from keybelt.config.parser import load_config
from keybelt.core.download import DownloadProgress
from keybelt.core.exceptions import KeybeltError
from keybelt.core.platform import detect_platform_key

logger = logging.getLogger(__name__)


class CLI:
    """keybelt command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="keybelt-install",
            description="Install Portable Ruby for the current platform",
            epilog=(
                "Honors XDG_DATA_HOME, XDG_RUNTIME_DIR (or TMPDIR) and "
                "XDG_CONFIG_HOME."
            ),
        )
        parser.add_argument(
            "--version", action="version", version=f"keybelt {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        return parser

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run the installer.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)
        self._configure_logging(parsed_args)

        try:
            return self._install(parsed_args)
        except KeybeltError as e:
            print_fatal(str(e))
            return 1
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _install(self, args) -> int:
        config = load_config()

        key = detect_platform_key()
        logger.debug(f"Detected platform: {key}")
        bundle = resolve(key, config.mirrors)

        progress_callback = _log_progress if args.verbose else None
        result = BundleInstaller(
            config, bundle, progress_callback=progress_callback
        ).install()

        print(format_success_message(bundle.display_name, result))
        return 0

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )


def _log_progress(progress: DownloadProgress) -> None:
    logger.debug(f"Downloaded {progress}")


def _exit_on_sigterm(signum, frame):
    # SystemExit unwinds the stack, so staging-file cleanup still runs
    sys.exit(128 + signum)


def main():
    """Main entry point for CLI."""
    signal.signal(signal.SIGTERM, _exit_on_sigterm)

    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
