"""
Entry point for running the keybelt installer as a module.

Usage: python -m keybelt [--verbose | --quiet]
"""

from keybelt.cli.parser import main

if __name__ == "__main__":
    main()
