"""
Entry point for running prefvault as a module.

Usage:
    python -m prefvault [command] [options]
"""

from prefvault.cli import main

if __name__ == "__main__":
    main()
