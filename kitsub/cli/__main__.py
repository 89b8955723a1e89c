"""
Entry point for running the Kitsub CLI as a module.

Usage: python -m kitsub.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
