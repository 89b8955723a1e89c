"""
Entry point for running Kitsub as a module.

Usage: python -m kitsub [command] [options]
"""

from kitsub.cli.parser import main

if __name__ == "__main__":
    main()
