"""CLI commands for TokenWatch.

This package provides the command-line interface for TokenWatch,
including alert config management, sentiment and KOL inspection, and
running the engine.
"""

from tokenwatch.cli.main import cli, main

__all__ = ["cli", "main"]
