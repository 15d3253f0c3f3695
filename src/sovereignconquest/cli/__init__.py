"""Sovereign Conquest CLI.

A terminal client for logging in, issuing game commands and reading mail.

Usage:
    sovereign --help
"""

from sovereignconquest.cli.app import app

__all__ = ["app"]
