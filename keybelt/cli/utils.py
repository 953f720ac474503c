"""
Shared output helpers for the CLI.
"""

import sys

from keybelt.bundle.installer import InstallResult


def print_fatal(message: str) -> None:
    """
    Print a fatal error to stderr in the installer's standard format.

    Args:
        message: Error message
    """
    print(f"FATAL: {message}", file=sys.stderr)


def format_success_message(display_name: str, result: InstallResult) -> str:
    """
    Format the final success line.

    Example:
        >>> format_success_message("Portable Ruby", result)
        'Portable Ruby 3.3.2 is now available at /home/me/.local/share/keybelt/portable-ruby/current/bin/ruby'
    """
    return f"{display_name} {result.version} is now available at {result.executable}"
