"""
Entry point for running the critique CLI as a module.

Usage:
    python -m critique --help
    python -m critique find ./essay.txt "some snippet"
"""

from critique.app.cli import main

if __name__ == "__main__":
    main()
