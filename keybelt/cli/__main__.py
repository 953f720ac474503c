"""
Entry point for running the keybelt CLI as a module.

Usage: python -m keybelt.cli [--verbose | --quiet]
"""

from .parser import main

if __name__ == "__main__":
    main()
