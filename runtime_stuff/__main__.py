"""
Entry point for running the toolkit as a module.

Usage: python -m runtime_stuff <command> [options]
"""

from runtime_stuff.cli import app

if __name__ == "__main__":
    app()
