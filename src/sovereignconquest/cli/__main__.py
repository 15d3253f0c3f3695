"""Entry point for running the CLI as a module.

Usage:
    python -m sovereignconquest.cli
"""

from sovereignconquest.cli.app import app

if __name__ == "__main__":
    app()
